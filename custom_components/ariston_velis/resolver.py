"""Variant resolution for Ariston plants.

Each plant answers on one of several undocumented plant data endpoints
("variants"). The resolver tries the cached variant first, otherwise
probes every variant, scores the answers and remembers the winner.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import httpx

from . import api
from .const import TRUSTED_SCORE
from .models import Candidate, NormalizedFields, Resolution, Variant

if TYPE_CHECKING:
    from .session import AristonSessionManager
    from .storage import VariantCache

_LOGGER = logging.getLogger(__name__)


def _is_number(value: object) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _in_range(value: object) -> bool:
    return _is_number(value) and 0 < value < 100  # type: ignore[operator]


def score_candidate(fields: NormalizedFields) -> int:
    """Score how plausible a variant's fields are.

    Args:
        fields: Normalized fields of one probe.

    Returns:
        +3 for a current temperature in (0, 100), +2 for a target temperature
        in (0, 100), +1 for a boolean power state. A response with no
        temperatures and power explicitly off is a placeholder and scores 0.

    """
    score = 0
    if _in_range(fields.current_temp):
        score += 3
    if _in_range(fields.target_temp):
        score += 2
    if isinstance(fields.power_state, bool):
        score += 1

    no_temps = all(
        not _is_number(temp) or temp == 0
        for temp in (fields.current_temp, fields.target_temp)
    )
    if no_temps and fields.power_state is False:
        score = 0
    return score


def select_best(candidates: list[Candidate]) -> Candidate:
    """Return the highest scoring candidate, earlier variants win ties."""
    return min(candidates, key=lambda c: (-c.score, c.variant.priority))


class VariantResolver:
    """Find and remember the variant a plant answers on."""

    def __init__(
        self,
        session: httpx.AsyncClient,
        session_manager: AristonSessionManager,
        cache: VariantCache,
    ) -> None:
        self._session = session
        self._session_manager = session_manager
        self._cache = cache

    async def async_resolve(self, device_id: str) -> Resolution:
        """Resolve the best variant for a plant and return its data.

        Args:
            device_id: Plant identifier.

        Returns:
            Resolution with the winning variant, raw body and fields.

        Raises:
            AristonRateLimitedError: If nothing succeeded and at least one
                probe was rate limited; carries the largest retry-after seen.
            AristonAuthError: If every probe had its token rejected.
            AristonTransportError: If every probe failed at network level.
            AristonNoDataError: If no variant yielded usable data.

        """
        token = self._session_manager.require_token()
        rate_limits: list[api.AristonRateLimitedError] = []

        entry = self._cache.get(device_id)
        cached = _as_variant(entry.variant) if entry else None
        if cached is not None:
            try:
                candidate = await api.async_probe_variant(
                    self._session, token, cached, device_id
                )
            except api.AristonRateLimitedError as err:
                rate_limits.append(err)
                _LOGGER.debug("Cached variant %s rate limited", cached)
            except api.AristonApiClientError as err:
                _LOGGER.debug("Cached variant %s failed: %s", cached, err)
            else:
                if candidate is not None:
                    _LOGGER.debug("Using cached variant %s for %s", cached, device_id)
                    candidate.score = TRUSTED_SCORE
                    return _resolution(candidate)
                _LOGGER.debug("Cached variant %s returned no data", cached)

        candidates: list[Candidate] = []
        errors: list[api.AristonApiClientError] = []
        for variant in Variant:
            try:
                candidate = await api.async_probe_variant(
                    self._session, token, variant, device_id
                )
            except api.AristonRateLimitedError as err:
                rate_limits.append(err)
                _LOGGER.debug("Variant %s rate limited", variant)
                continue
            except api.AristonApiClientError as err:
                errors.append(err)
                _LOGGER.debug("Variant %s failed: %s", variant, err)
                continue

            if candidate is None:
                _LOGGER.debug("Variant %s returned no data", variant)
                continue
            candidate.score = score_candidate(candidate.fields)
            _LOGGER.debug("Variant %s scored %d", variant, candidate.score)
            candidates.append(candidate)

        if not candidates:
            raise _no_candidates_error(device_id, rate_limits, errors)

        best = select_best(candidates)
        await self._cache.async_put(device_id, best.variant)
        _LOGGER.info(
            "Resolved variant %s for %s (score %d)", best.variant, device_id, best.score
        )
        return _resolution(best)


def _as_variant(value: str) -> Variant | None:
    try:
        return Variant(value)
    except ValueError:
        _LOGGER.warning("Ignoring unknown cached variant %s", value)
        return None


def _resolution(candidate: Candidate) -> Resolution:
    return Resolution(
        variant=candidate.variant, raw=candidate.raw, fields=candidate.fields
    )


def _no_candidates_error(
    device_id: str,
    rate_limits: list[api.AristonRateLimitedError],
    errors: list[api.AristonApiClientError],
) -> api.AristonApiClientError:
    if rate_limits:
        delays = [err.retry_after for err in rate_limits if err.retry_after is not None]
        retry_after = max(delays) if delays else None
        return api.AristonRateLimitedError(
            f"All variants rate limited for {device_id}", retry_after
        )
    if len(errors) == len(Variant):
        if all(isinstance(err, api.AristonAuthError) for err in errors):
            return api.AristonAuthError(f"Token rejected for {device_id}")
        if all(isinstance(err, api.AristonTransportError) for err in errors):
            return api.AristonTransportError(f"No variant reachable for {device_id}")
    return api.AristonNoDataError(f"No plant data for {device_id}")
