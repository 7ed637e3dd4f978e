"""
Configuration flow for Ariston Velis integration.

This module handles the setup and configuration of the Ariston Velis
integration through Home Assistant's config flow system.
"""

import logging
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import ConfigFlow, ConfigFlowResult
from homeassistant.const import CONF_NAME, CONF_PASSWORD, CONF_USERNAME
from homeassistant.helpers.httpx_client import get_async_client

from . import api
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
    DOMAIN,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_NO_DEVICES,
    ERROR_UNKNOWN,
    MIN_POLL_INTERVAL,
    MIN_REFRESH_ON_GET_COOLDOWN,
)

_LOGGER = logging.getLogger(__name__)

DEFAULT_NAME = "Ariston Heater"

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_USERNAME): str,
        vol.Required(CONF_PASSWORD): str,
        vol.Optional(CONF_NAME, default=DEFAULT_NAME): str,
        vol.Optional(CONF_PLANT_ID): str,
        vol.Optional(CONF_POLL_INTERVAL, default=DEFAULT_POLL_INTERVAL): vol.All(
            vol.Coerce(int), vol.Range(min=MIN_POLL_INTERVAL)
        ),
        vol.Optional(CONF_MIN_TEMP, default=DEFAULT_MIN_TEMP): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(CONF_MAX_TEMP, default=DEFAULT_MAX_TEMP): vol.All(
            vol.Coerce(int), vol.Range(min=2)
        ),
        vol.Optional(CONF_REFRESH_ON_GET, default=True): bool,
        vol.Optional(
            CONF_REFRESH_ON_GET_COOLDOWN, default=DEFAULT_REFRESH_ON_GET_COOLDOWN
        ): vol.All(vol.Coerce(int), vol.Range(min=MIN_REFRESH_ON_GET_COOLDOWN)),
        vol.Optional(CONF_EXTRA_ATTRIBUTES, default=True): bool,
    }
)


class AristonVelisConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle configuration flow for Ariston Velis integration."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """
        Handle the initial step of the config flow.

        Args:
            user_input: User input data containing credentials and options.

        Returns:
            ConfigFlowResult indicating the next step or errors.

        """
        errors: dict[str, str] = {}

        if user_input is not None:
            username = user_input[CONF_USERNAME]
            password = user_input[CONF_PASSWORD]
            plant_id = user_input.get(CONF_PLANT_ID) or None

            try:
                session = get_async_client(self.hass)
                token = await api.async_login(session, username, password)
                if plant_id is None:
                    devices = await api.async_list_devices(session, token)
                    if not devices:
                        _LOGGER.warning("No Velis devices found (%s)", ERROR_NO_DEVICES)
                        errors["base"] = ERROR_NO_DEVICES
                    else:
                        plant_id = devices[0].id
                _LOGGER.info("Successfully authenticated with Ariston API")

            except api.AristonAuthError as err:
                _LOGGER.warning(
                    "Authentication failed (%s): %s", ERROR_INVALID_AUTH, err
                )
                errors["base"] = ERROR_INVALID_AUTH
            except api.AristonApiClientError:
                _LOGGER.exception("Connection error (%s)", ERROR_CANNOT_CONNECT)
                errors["base"] = ERROR_CANNOT_CONNECT
            except Exception:
                _LOGGER.exception(
                    "Unexpected error during authentication (%s)",
                    ERROR_UNKNOWN,
                )
                errors["base"] = ERROR_UNKNOWN

            if not errors:
                await self.async_set_unique_id(f"{username.lower()}_{plant_id}")
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title=user_input.get(CONF_NAME) or DEFAULT_NAME,
                    data={**user_input, CONF_PLANT_ID: plant_id},
                )

        return self.async_show_form(
            step_id="user",
            data_schema=STEP_USER_DATA_SCHEMA,
            errors=errors,
        )
