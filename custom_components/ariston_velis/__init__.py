"""The Ariston Velis integration."""

from __future__ import annotations

import logging
from pathlib import Path

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_PASSWORD, CONF_USERNAME, Platform
from homeassistant.core import HomeAssistant

from .api import create_session_client
from .const import CACHE_FILENAME, DOMAIN
from .coordinator import AristonDeviceCoordinator
from .models import AristonControllerConfig
from .resolver import VariantResolver
from .session import AristonSessionManager
from .storage import VariantCache

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.WATER_HEATER]
DATA_VARIANT_CACHE = "variant_cache"


async def _async_get_variant_cache(hass: HomeAssistant) -> VariantCache:
    """Return the variant cache shared by every entry, loading it once."""
    domain_data = hass.data.setdefault(DOMAIN, {})
    cache = domain_data.get(DATA_VARIANT_CACHE)
    if cache is None:
        cache_path = Path(hass.config.path(".storage", CACHE_FILENAME))
        loaded = await hass.async_add_executor_job(VariantCache.load, cache_path, hass)
        cache = domain_data.setdefault(DATA_VARIANT_CACHE, loaded)
    return cache


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up Ariston Velis integration for entry %s", entry.entry_id)

    if CONF_USERNAME not in entry.data or CONF_PASSWORD not in entry.data:
        _LOGGER.error("Missing credentials in configuration for entry %s", entry.entry_id)
        return False

    session = create_session_client(hass)
    cache = await _async_get_variant_cache(hass)
    session_manager = AristonSessionManager(
        session, entry.data[CONF_USERNAME], entry.data[CONF_PASSWORD]
    )
    config = AristonControllerConfig.from_entry_data({**entry.data, **entry.options})
    coordinator = AristonDeviceCoordinator(
        session,
        session_manager,
        VariantResolver(session, session_manager, cache),
        config,
    )

    hass.data[DOMAIN][entry.entry_id] = {
        "session": session,
        "coordinator": coordinator,
    }

    # Initialization retries in the background, failures at boot are common
    coordinator.async_start()

    try:
        await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    except Exception:
        _LOGGER.exception("Failed to setup platforms for entry %s", entry.entry_id)
        await coordinator.async_stop()
        hass.data[DOMAIN].pop(entry.entry_id, None)
        return False

    _LOGGER.info(
        "Successfully setup Ariston Velis integration for entry %s", entry.entry_id
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading Ariston Velis integration for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)
        return False

    entry_data = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if entry_data is not None:
        await entry_data["coordinator"].async_stop()
        _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)

    _LOGGER.info(
        "Successfully unloaded Ariston Velis integration for entry %s", entry.entry_id
    )
    return True
