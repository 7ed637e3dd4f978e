"""Data models for Ariston Velis integration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .const import (
    CONF_EXTRA_ATTRIBUTES,
    CONF_MAX_TEMP,
    CONF_MIN_TEMP,
    CONF_PLANT_ID,
    CONF_POLL_INTERVAL,
    CONF_REFRESH_ON_GET,
    CONF_REFRESH_ON_GET_COOLDOWN,
    DEFAULT_MAX_TEMP,
    DEFAULT_MIN_TEMP,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REFRESH_ON_GET_COOLDOWN,
    MIN_POLL_INTERVAL,
    MIN_REFRESH_ON_GET_COOLDOWN,
)


class Variant(StrEnum):
    """Known response shapes of the plant data endpoint, in priority order."""

    SE = "sePlantData"
    MED = "medPlantData"
    SLP = "slpPlantData"
    ONE = "onePlantData"
    EVO = "evoPlantData"

    @property
    def priority(self) -> int:
        """Return the tie-break rank, lower wins."""
        return list(Variant).index(self)


class ControllerState(StrEnum):
    """Lifecycle of a device coordinator."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    REFRESHING = "refreshing"


@dataclass(slots=True)
class NormalizedFields:
    """Device fields extracted from any variant, each may be missing."""

    current_temp: Any = None
    target_temp: Any = None
    power_state: Any = None
    anti_leg: Any = None
    heat_req: Any = None
    av_shw: Any = None
    mode: Any = None


@dataclass(slots=True)
class Candidate:
    """A scored, provisional result of probing one variant."""

    variant: Variant
    raw: dict[str, Any]
    fields: NormalizedFields
    score: int = 0


@dataclass(frozen=True, slots=True)
class Resolution:
    """The winning variant for a device together with its data."""

    variant: Variant
    raw: dict[str, Any]
    fields: NormalizedFields


@dataclass(frozen=True)
class VariantEntry:
    """Last-known-good variant of a device, as persisted."""

    variant: str
    updated_at: str


@dataclass(frozen=True)
class AristonDevice:
    """Represents an Ariston plant returned by the device listing.

    Attributes:
        id: Plant (gateway) identifier.
        raw: The listing record as returned by the API.

    """

    id: str
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class AristonDeviceState:
    """Last-known device values held by the coordinator."""

    current_temp: float | None = None
    target_temp: float | None = None
    power: bool | None = None
    anti_leg: bool | None = None
    heat_req: bool | None = None
    av_shw: float | None = None
    mode: int | None = None
    variant: Variant | None = None
    last_refresh_at: float = 0.0


@dataclass(frozen=True)
class AristonControllerConfig:
    """Per-device options with defaults and lower bounds applied."""

    plant_id: str | None = None
    poll_interval: int = DEFAULT_POLL_INTERVAL
    min_temp: int = DEFAULT_MIN_TEMP
    max_temp: int = DEFAULT_MAX_TEMP
    refresh_on_get: bool = True
    refresh_on_get_cooldown: int = DEFAULT_REFRESH_ON_GET_COOLDOWN
    extra_attributes: bool = True

    @classmethod
    def from_entry_data(cls, data: Mapping[str, Any]) -> AristonControllerConfig:
        """Build the configuration from config entry data.

        Args:
            data: Config entry data (or options) mapping.

        Returns:
            Configuration with every value clamped to its allowed range.

        """
        min_temp = max(1, int(data.get(CONF_MIN_TEMP) or DEFAULT_MIN_TEMP))
        max_temp = max(min_temp + 1, int(data.get(CONF_MAX_TEMP) or DEFAULT_MAX_TEMP))
        poll_interval = max(
            MIN_POLL_INTERVAL,
            int(data.get(CONF_POLL_INTERVAL) or DEFAULT_POLL_INTERVAL),
        )
        cooldown = max(
            MIN_REFRESH_ON_GET_COOLDOWN,
            int(
                data.get(CONF_REFRESH_ON_GET_COOLDOWN)
                or DEFAULT_REFRESH_ON_GET_COOLDOWN
            ),
        )
        return cls(
            plant_id=data.get(CONF_PLANT_ID) or None,
            poll_interval=poll_interval,
            min_temp=min_temp,
            max_temp=max_temp,
            refresh_on_get=data.get(CONF_REFRESH_ON_GET, True) is not False,
            refresh_on_get_cooldown=cooldown,
            extra_attributes=data.get(CONF_EXTRA_ATTRIBUTES, True) is not False,
        )
