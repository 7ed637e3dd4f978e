"""Water heater entity for Ariston Velis plants.

The entity is a thin view over the coordinator: reads return cached
values and commands go through the coordinator's write-then-verify path.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from homeassistant.components.water_heater import (
    STATE_ELECTRIC,
    WaterHeaterEntity,
    WaterHeaterEntityFeature,
)
from homeassistant.const import ATTR_TEMPERATURE, STATE_OFF, UnitOfTemperature
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo

from . import api
from .const import DOMAIN

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import AristonDeviceCoordinator

_LOGGER = logging.getLogger(__name__)

SCAN_INTERVAL = timedelta(seconds=30)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the water heater entity for an Ariston plant."""
    coordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    async_add_entities([AristonWaterHeaterEntity(coordinator, entry)])


class AristonWaterHeaterEntity(WaterHeaterEntity):
    """Water heater entity backed by an AristonDeviceCoordinator."""

    _attr_temperature_unit = UnitOfTemperature.CELSIUS
    _attr_target_temperature_step = 1
    _attr_has_entity_name = True
    _attr_name = None
    _attr_should_poll = True
    _attr_supported_features = (
        WaterHeaterEntityFeature.TARGET_TEMPERATURE | WaterHeaterEntityFeature.ON_OFF
    )

    def __init__(self, coordinator: AristonDeviceCoordinator, entry: ConfigEntry) -> None:
        """Initialize the entity.

        Args:
            coordinator: Coordinator holding the plant state.
            entry: Config entry the entity belongs to.

        """
        self._coordinator = coordinator
        self._attr_unique_id = entry.unique_id or entry.entry_id
        self._device_name = entry.title
        self._attr_min_temp = coordinator.config.min_temp
        self._attr_max_temp = coordinator.config.max_temp
        self._listener_unsub = None

    @property
    def available(self) -> bool:
        """Return True once the plant has been initialized."""
        return self._coordinator.ready

    @property
    def device_info(self) -> DeviceInfo:
        """Return device registry information."""
        identifier = self._coordinator.plant_id or self._attr_unique_id
        return DeviceInfo(
            identifiers={(DOMAIN, identifier)},
            name=self._device_name,
            manufacturer="Ariston",
            model="Velis",
        )

    @property
    def current_temperature(self) -> float | None:
        """Return the current water temperature."""
        return self._coordinator.display_current_temperature

    @property
    def target_temperature(self) -> float | None:
        """Return the target water temperature."""
        return self._coordinator.display_target_temperature

    @property
    def current_operation(self) -> str | None:
        """Return the operation derived from the power state."""
        if self._coordinator.data.power is None:
            return None
        return STATE_ELECTRIC if self._coordinator.data.power else STATE_OFF

    @property
    def extra_state_attributes(self) -> dict[str, Any] | None:
        """Return auxiliary sensors and mode details."""
        if not self._coordinator.config.extra_attributes:
            return None
        data = self._coordinator.data
        low, high = self._coordinator.mode_temperature_range
        return {
            "anti_legionella": bool(data.anti_leg),
            "heating_active": bool(data.heat_req),
            "available_showers": self._coordinator.available_showers,
            "mode": data.mode if data.mode is not None else 0,
            "mode_name": self._coordinator.mode_name,
            "mode_temperature_range": f"{low}-{high}°C",
            "variant": str(data.variant) if data.variant else None,
        }

    async def async_added_to_hass(self) -> None:
        """Subscribe to coordinator updates."""
        await super().async_added_to_hass()
        self._listener_unsub = self._coordinator.async_add_listener(
            self.async_write_ha_state
        )

    async def async_will_remove_from_hass(self) -> None:
        """Unsubscribe from coordinator updates."""
        await super().async_will_remove_from_hass()

        if self._listener_unsub is not None:
            self._listener_unsub()
            self._listener_unsub = None

    async def async_update(self) -> None:
        """Refresh in the background when the cached data is stale."""
        self._coordinator.maybe_refresh()

    async def async_set_temperature(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Set the target temperature.

        Args:
            **kwargs: Keyword arguments containing temperature data.

        """
        temperature = kwargs.get(ATTR_TEMPERATURE)
        if temperature is None:
            return
        await self._async_command(self._coordinator.async_set_temperature(temperature))

    async def async_turn_on(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Turn the water heater on."""
        await self._async_command(self._coordinator.async_set_power(True))  # noqa: FBT003

    async def async_turn_off(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Turn the water heater off."""
        await self._async_command(self._coordinator.async_set_power(False))  # noqa: FBT003

    async def _async_command(self, command: Any) -> None:  # noqa: ANN401
        try:
            await command
        except api.AristonNotReadyError as err:
            raise HomeAssistantError(str(err)) from err
        except api.AristonApiClientError as err:
            _LOGGER.exception("Command failed for %s", self._device_name)
            error_msg = f"Command failed: {err}"
            raise HomeAssistantError(error_msg) from err
