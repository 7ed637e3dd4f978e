"""Persistent variant cache for Ariston Velis plants."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .models import VariantEntry

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_LOGGER = logging.getLogger(__name__)


class VariantCache:
    """JSON-file backed map of plant id to its last-known-good variant.

    The file is read once when loaded and rewritten in full on every
    update. A missing or unreadable file yields an empty cache; read and
    write failures are logged, never raised. With a Home Assistant
    instance, async_put writes in the executor.
    """

    def __init__(
        self,
        path: Path,
        variants: dict[str, VariantEntry] | None = None,
        hass: HomeAssistant | None = None,
    ) -> None:
        self._path = path
        self._variants: dict[str, VariantEntry] = variants or {}
        self._hass = hass
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        """Return the backing file path."""
        return self._path

    @classmethod
    def load(cls, path: str | Path, hass: HomeAssistant | None = None) -> VariantCache:
        """Load the cache from disk.

        Args:
            path: Location of the cache JSON document.
            hass: Home Assistant instance used for executor writes, if any.

        Returns:
            A cache holding every well-formed entry found in the file.

        """
        path = Path(path)
        return cls(path, _read_variants(path), hass)

    def get(self, device_id: str) -> VariantEntry | None:
        """Return the cached entry for a plant, if any."""
        return self._variants.get(device_id)

    def put(self, device_id: str, variant: str) -> VariantEntry:
        """Store the variant for a plant and persist the whole cache."""
        entry = self._set(device_id, variant)
        self._save(self.as_dict())
        return entry

    async def async_put(self, device_id: str, variant: str) -> VariantEntry:
        """Store the variant for a plant and persist without blocking the loop."""
        entry = self._set(device_id, variant)
        async with self._write_lock:
            document = self.as_dict()
            if self._hass is not None:
                await self._hass.async_add_executor_job(self._save, document)
            else:
                self._save(document)
        return entry

    def _set(self, device_id: str, variant: str) -> VariantEntry:
        entry = VariantEntry(
            variant=str(variant),
            updated_at=datetime.now(UTC).isoformat(),
        )
        self._variants[device_id] = entry
        return entry

    def as_dict(self) -> dict[str, Any]:
        """Return the cache in its on-disk shape."""
        return {
            "variants": {
                device_id: {"variant": entry.variant, "updatedAt": entry.updated_at}
                for device_id, entry in self._variants.items()
            }
        }

    def _save(self, document: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as err:
            _LOGGER.warning("Failed to save variant cache %s: %s", self._path, err)


def _read_variants(path: Path) -> dict[str, VariantEntry]:
    try:
        if not path.exists():
            return {}
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        _LOGGER.warning("Failed to load variant cache %s: %s", path, err)
        return {}

    payload = raw.get("variants") if isinstance(raw, dict) else None
    if not isinstance(payload, dict):
        return {}

    variants: dict[str, VariantEntry] = {}
    for device_id, value in payload.items():
        if not isinstance(value, dict) or not isinstance(value.get("variant"), str):
            _LOGGER.debug("Ignoring malformed cache entry for %s", device_id)
            continue
        variants[str(device_id)] = VariantEntry(
            variant=value["variant"],
            updated_at=str(value.get("updatedAt", "")),
        )
    return variants
