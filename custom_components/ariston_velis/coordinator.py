"""Coordinator for Ariston Velis integration.

The coordinator owns the cached state of one plant. Reads never wait on
the network: they return the last known values while refreshes run in
the background, coalesced into a single in-flight request.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import time
from typing import TYPE_CHECKING, Any

from . import api
from .const import (
    DEFAULT_RATE_LIMIT_BACKOFF,
    FAILURE_BACKOFF,
    INIT_RETRY_DELAY,
    INITIAL_REFRESH_DELAY,
    LOGIN_ATTEMPTS,
    LOGIN_BACKOFF_BASE,
    LOGIN_BACKOFF_MAX,
    MAX_SHOWERS,
    MIN_RATE_LIMIT_BACKOFF,
    MODE_NAMES,
    MODE_TEMPERATURE_RANGES,
    PLACEHOLDER_MARGIN,
    PLACEHOLDER_TEMPS,
    TEMP_VALID_MAX,
    TEMP_VALID_MIN,
)
from .models import AristonDeviceState, ControllerState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Coroutine

    import httpx

    from .models import AristonControllerConfig, Resolution, Variant
    from .resolver import VariantResolver
    from .session import AristonSessionManager

_LOGGER = logging.getLogger(__name__)


def _is_number(value: object) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def validate_temperature(
    value: object, min_temp: float, max_temp: float
) -> float | None:
    """Return a temperature reading, or None if it is a placeholder value.

    Readings outside [0, 65] are discarded. The API also reports exactly 0
    or 33 in some device states; those are discarded when they lie more
    than 5 degrees outside the configured operating range.

    Args:
        value: Raw reading.
        min_temp: Configured minimum temperature.
        max_temp: Configured maximum temperature.

    Returns:
        The reading, or None if it must not overwrite a cached value.

    """
    if not _is_number(value):
        return None
    if value < TEMP_VALID_MIN or value > TEMP_VALID_MAX:  # type: ignore[operator]
        return None
    if value in PLACEHOLDER_TEMPS and (
        value < min_temp - PLACEHOLDER_MARGIN  # type: ignore[operator]
        or value > max_temp + PLACEHOLDER_MARGIN  # type: ignore[operator]
    ):
        return None
    return value  # type: ignore[return-value]


def get_mode_name(mode: int | None) -> str:
    """Return the human label of a mode code."""
    if mode is None:
        return "Unknown"
    return MODE_NAMES.get(mode, f"Mode {mode}")


def get_mode_temperature_range(
    mode: int | None, min_temp: int, max_temp: int
) -> tuple[int, int]:
    """Return the temperature range of a mode, or the configured range."""
    if mode is None:
        return min_temp, max_temp
    return MODE_TEMPERATURE_RANGES.get(mode, (min_temp, max_temp))


class AristonDeviceCoordinator:
    """Coordinator that keeps the cached state of one Ariston plant."""

    def __init__(
        self,
        session: httpx.AsyncClient,
        session_manager: AristonSessionManager,
        resolver: VariantResolver,
        config: AristonControllerConfig,
    ) -> None:
        self._session = session
        self._session_manager = session_manager
        self._resolver = resolver
        self.config = config
        self.plant_id = config.plant_id
        self.data = AristonDeviceState()
        self.state = ControllerState.UNINITIALIZED

        self._listeners: list[Callable[[], None]] = []
        self._refresh_task: asyncio.Task[bool] | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._init_task: asyncio.Task[None] | None = None
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._backoff_until = 0.0

    @property
    def ready(self) -> bool:
        """Return True once initialization has completed."""
        return self.state in (ControllerState.READY, ControllerState.REFRESHING)

    @property
    def variant(self) -> Variant | None:
        """Return the variant the plant currently answers on."""
        return self.data.variant

    def async_add_listener(self, update_callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback run after every state change.

        Returns:
            A function to unregister the callback.

        """
        self._listeners.append(update_callback)

        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    def _notify_listeners(self) -> None:
        for update_callback in list(self._listeners):
            try:
                update_callback()
            except Exception:
                _LOGGER.exception("Error in coordinator listener")

    # Lifecycle

    def async_start(self) -> None:
        """Initialize in the background, retrying until it succeeds."""
        if self._init_task is not None and not self._init_task.done():
            return
        self._init_task = asyncio.create_task(self._async_initialize_until_ready())

    async def async_stop(self) -> None:
        """Cancel polling, initialization and background refreshes."""
        tasks = [self._init_task, self._poll_task, self._refresh_task]
        tasks.extend(self._background_tasks)
        for task in tasks:
            if task is not None and not task.done():
                task.cancel()
        for task in tasks:
            if task is not None:
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._init_task = None
        self._poll_task = None
        self._refresh_task = None
        self._background_tasks.clear()

    async def _async_initialize_until_ready(self) -> None:
        while not self.ready:
            try:
                await self.async_initialize()
            except api.AristonApiClientError:
                _LOGGER.warning(
                    "Initialization failed, retrying in %.0fs", INIT_RETRY_DELAY
                )
            except Exception:
                _LOGGER.exception("Unexpected error during initialization")
            else:
                return
            await asyncio.sleep(INIT_RETRY_DELAY)

    async def async_initialize(self) -> None:
        """Log in, find the plant and its variant, then start polling.

        Raises:
            AristonAuthError: If login failed after every retry.
            AristonNoDataError: If no plant or no plant data was found.
            AristonApiClientError: For other API failures.

        """
        self.state = ControllerState.INITIALIZING
        try:
            await self._async_login_with_backoff()
            if not self.plant_id:
                self.plant_id = await self._async_discover_plant()
            resolution = await self._resolver.async_resolve(self.plant_id)
            self._apply_resolution(resolution)
            self.data.last_refresh_at = time.monotonic()
            self.state = ControllerState.READY
        except api.AristonApiClientError as err:
            _LOGGER.error("Initialize error: %s", err)
            raise
        finally:
            if self.state is ControllerState.INITIALIZING:
                self.state = ControllerState.UNINITIALIZED

        self._start_polling()
        _LOGGER.info("Device %s initialized successfully", self.plant_id)
        self._notify_listeners()

    async def _async_login_with_backoff(self) -> str:
        for attempt in range(1, LOGIN_ATTEMPTS):
            try:
                return await self._session_manager.async_login()
            except api.AristonApiClientError as err:
                delay = min(LOGIN_BACKOFF_BASE * 2 ** (attempt - 1), LOGIN_BACKOFF_MAX)
                _LOGGER.warning(
                    "Login attempt %d failed, retrying in %.0fs: %s",
                    attempt,
                    delay,
                    err,
                )
                await asyncio.sleep(delay)
        return await self._session_manager.async_login()

    async def _async_discover_plant(self) -> str:
        devices = await api.async_list_devices(
            self._session, self._session_manager.require_token()
        )
        if not devices:
            error_msg = "No Velis devices found"
            raise api.AristonNoDataError(error_msg)
        _LOGGER.info("Discovered plant %s", devices[0].id)
        return devices[0].id

    # Polling

    def _start_polling(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
        self._poll_task = asyncio.create_task(self._async_poll_loop())

    async def _async_poll_loop(self) -> None:
        await asyncio.sleep(INITIAL_REFRESH_DELAY)
        while True:
            await self.async_refresh()
            await asyncio.sleep(self._next_poll_delay())

    def _next_poll_delay(self) -> float:
        remaining_backoff = self._backoff_until - time.monotonic()
        return max(float(self.config.poll_interval), remaining_backoff)

    def _back_off(self, delay: float) -> None:
        self._backoff_until = max(self._backoff_until, time.monotonic() + delay)

    async def async_refresh(self) -> bool:
        """Refresh the cached state, sharing any refresh already running.

        Returns:
            True if fresh data was applied, False if the refresh failed or
            the device is not initialized. Failures are logged, never raised.

        """
        if not self.ready or self.plant_id is None:
            return False

        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.create_task(self._async_do_refresh())
            self._refresh_task = task
            task.add_done_callback(self._clear_refresh_task)
        return await asyncio.shield(task)

    def _clear_refresh_task(self, task: asyncio.Task[bool]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    @property
    def refresh_in_progress(self) -> bool:
        """Return True while a refresh is in flight."""
        return self._refresh_task is not None and not self._refresh_task.done()

    async def _async_do_refresh(self) -> bool:
        self.state = ControllerState.REFRESHING
        try:
            resolution = await self._resolver.async_resolve(self.plant_id)
        except api.AristonRateLimitedError as err:
            delay = (
                max(MIN_RATE_LIMIT_BACKOFF, err.retry_after)
                if err.retry_after is not None
                else DEFAULT_RATE_LIMIT_BACKOFF
            )
            self._back_off(delay)
            _LOGGER.warning("Rate limited, backing off: %s (retry in %.0fs)", err, delay)
            return False
        except api.AristonAuthError as err:
            _LOGGER.warning("Session rejected, logging in again: %s", err)
            self._back_off(FAILURE_BACKOFF)
            await self._async_relogin()
            return False
        except api.AristonApiClientError as err:
            self._back_off(FAILURE_BACKOFF)
            _LOGGER.warning("Refresh failed: %s", err)
            return False
        except Exception:
            self._back_off(FAILURE_BACKOFF)
            _LOGGER.exception("Unexpected error refreshing %s", self.plant_id)
            return False
        finally:
            if self.state is ControllerState.REFRESHING:
                self.state = ControllerState.READY

        self._apply_resolution(resolution)
        self.data.last_refresh_at = time.monotonic()
        self._notify_listeners()
        return True

    async def _async_relogin(self) -> None:
        self._session_manager.invalidate()
        try:
            await self._session_manager.async_login()
        except api.AristonApiClientError as err:
            _LOGGER.warning("Login failed, will retry next cycle: %s", err)

    def maybe_refresh(self) -> bool:
        """Start a background refresh if the cached data is older than the cooldown.

        Returns:
            True if a refresh was started.

        """
        if not self.config.refresh_on_get or not self.ready:
            return False
        if self.refresh_in_progress:
            return False
        now = time.monotonic()
        if now < self._backoff_until:
            return False
        if now - self.data.last_refresh_at < self.config.refresh_on_get_cooldown:
            return False
        self._spawn(self.async_refresh())
        return True

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    def _apply_resolution(self, resolution: Resolution) -> None:
        """Merge resolved fields into the cached state.

        Missing or ill-typed values never replace a cached value.
        """
        fields = resolution.fields
        state = self.data
        state.variant = resolution.variant

        current = validate_temperature(
            fields.current_temp, self.config.min_temp, self.config.max_temp
        )
        if current is not None:
            state.current_temp = current
        elif fields.current_temp is not None:
            _LOGGER.debug(
                "Current temperature %s discarded as placeholder value",
                fields.current_temp,
            )

        target = validate_temperature(
            fields.target_temp, self.config.min_temp, self.config.max_temp
        )
        if target is not None:
            state.target_temp = target
        elif fields.target_temp is not None:
            _LOGGER.debug(
                "Target temperature %s discarded as placeholder value",
                fields.target_temp,
            )

        if isinstance(fields.power_state, bool):
            state.power = fields.power_state
        if isinstance(fields.anti_leg, bool):
            state.anti_leg = fields.anti_leg
        if isinstance(fields.heat_req, bool):
            state.heat_req = fields.heat_req
        if _is_number(fields.av_shw):
            state.av_shw = fields.av_shw

        if _is_number(fields.mode) and int(fields.mode) != state.mode:
            old_mode = state.mode
            state.mode = int(fields.mode)
            low, high = self.mode_temperature_range
            if old_mode is None:
                _LOGGER.info(
                    "Device mode: %s (%s), temp range: %s-%s°C",
                    get_mode_name(state.mode),
                    state.mode,
                    low,
                    high,
                )
            else:
                _LOGGER.info(
                    "Mode changed: %s (%s) -> %s (%s), temp range: %s-%s°C",
                    get_mode_name(old_mode),
                    old_mode,
                    get_mode_name(state.mode),
                    state.mode,
                    low,
                    high,
                )

    # Reads

    def _clamp(self, value: float) -> float:
        return max(self.config.min_temp, min(self.config.max_temp, value))

    @property
    def display_current_temperature(self) -> float:
        """Return the current temperature clamped to the configured range."""
        if self.data.current_temp is None:
            return self.config.min_temp
        return self._clamp(self.data.current_temp)

    @property
    def display_target_temperature(self) -> float:
        """Return the target temperature clamped to the configured range."""
        if self.data.target_temp is None:
            return self.config.min_temp
        return self._clamp(self.data.target_temp)

    @property
    def available_showers(self) -> int:
        """Return the number of available showers, between 0 and 4."""
        if self.data.av_shw is None:
            return 0
        return max(0, min(MAX_SHOWERS, round(self.data.av_shw)))

    @property
    def mode_name(self) -> str:
        """Return the label of the current mode."""
        return get_mode_name(self.data.mode)

    @property
    def mode_temperature_range(self) -> tuple[int, int]:
        """Return the temperature range of the current mode."""
        return get_mode_temperature_range(
            self.data.mode, self.config.min_temp, self.config.max_temp
        )

    # Commands

    def clamp_target_temperature(self, value: float) -> int:
        """Round to the nearest whole degree and clamp to the configured range."""
        return int(self._clamp(math.floor(float(value) + 0.5)))

    def _ensure_ready(self) -> None:
        if not self.ready or self.plant_id is None or self.data.variant is None:
            error_msg = "Device not ready yet. Try again in a moment."
            raise api.AristonNotReadyError(error_msg)

    async def async_set_temperature(self, value: float) -> int:
        """Set the target temperature.

        Args:
            value: Requested temperature, rounded and clamped before sending.

        Returns:
            The temperature that was sent.

        Raises:
            AristonNotReadyError: If the device is not initialized.
            AristonApiClientError: If the write failed twice.

        """
        self._ensure_ready()
        target = self.clamp_target_temperature(value)
        old = self.data.target_temp if self.data.target_temp is not None else target

        async def send(token: str, variant: Variant) -> None:
            await api.async_set_temperature(
                self._session, token, variant, self.plant_id, old, target, eco=False
            )

        await self._async_write(send, "Set temperature")
        self.data.target_temp = target
        self._after_command()
        return target

    async def async_set_power(self, on: bool) -> None:  # noqa: FBT001
        """Switch the water heater on or off.

        Raises:
            AristonNotReadyError: If the device is not initialized.
            AristonApiClientError: If the write failed twice.

        """
        self._ensure_ready()

        async def send(token: str, variant: Variant) -> None:
            await api.async_set_power(self._session, token, variant, self.plant_id, on)

        await self._async_write(send, "Set power")
        self.data.power = on
        self._after_command()

    async def _async_write(
        self, send: Callable[[str, Variant], Awaitable[None]], what: str
    ) -> None:
        try:
            await send(self._session_manager.require_token(), self.data.variant)
        except api.AristonApiClientError as err:
            _LOGGER.warning("%s failed, re-probing variant: %s", what, err)
            resolution = await self._resolver.async_resolve(self.plant_id)
            self.data.variant = resolution.variant
            await send(self._session_manager.require_token(), resolution.variant)

    def _after_command(self) -> None:
        self._notify_listeners()
        self._spawn(self.async_refresh())
