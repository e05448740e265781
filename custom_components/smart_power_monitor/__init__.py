"""The Smart Power Monitor integration."""
from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .const import (
    CONF_AUTH_TOKEN,
    CONF_COMMAND_DELAY,
    CONF_DATABASE_URL,
    CONF_NOTIFY_SERVICE,
    CONF_OPTIMISTIC,
    CONF_RESET_ON_TURN_OFF,
    CONF_SOURCE,
    DEFAULT_COMMAND_DELAY,
    DOMAIN,
    PLATFORMS,
    SOURCE_SIMULATED,
)

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Smart Power Monitor from a config entry."""
    from .config_manager import ConfigManager
    from .dispatcher import CommandDispatcher
    from .session import MonitorSession
    from .sources import RealtimeReadingSource, SimulatedReadingSource
    from .store import RealtimeStore

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN]["entry_id"] = entry.entry_id
    settings = {**entry.data, **(entry.options or {})}

    # Initialize config manager
    config_manager = ConfigManager(hass)
    await config_manager.async_load()
    hass.data[DOMAIN]["config_manager"] = config_manager

    def _build_source():
        if settings.get(CONF_SOURCE) == SOURCE_SIMULATED:
            return SimulatedReadingSource()
        store = RealtimeStore(
            async_get_clientsession(hass),
            settings[CONF_DATABASE_URL],
            settings.get(CONF_AUTH_TOKEN),
        )
        return RealtimeReadingSource(store)

    dispatcher = CommandDispatcher(
        None,
        delay=float(settings.get(CONF_COMMAND_DELAY, DEFAULT_COMMAND_DELAY)),
        reset_on_turn_off=settings.get(CONF_RESET_ON_TURN_OFF, True),
    )
    session = MonitorSession(
        hass,
        _build_source,
        dispatcher,
        config_manager,
        notify_service=settings.get(CONF_NOTIFY_SERVICE) or None,
        optimistic=settings.get(CONF_OPTIMISTIC, False),
    )
    await session.async_start()
    hass.data[DOMAIN]["session"] = session

    # Register WebSocket API
    from .websocket import async_setup as async_setup_websocket
    async_setup_websocket(hass)

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # Listen for options updates
    entry.async_on_unload(entry.add_update_listener(async_options_update_listener))

    return True


async def async_options_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update - reload with the new settings."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    # Release the subscription so no dismissed state gets updated
    session = hass.data.get(DOMAIN, {}).get("session")
    if session:
        await session.async_stop()

    config_manager = hass.data.get(DOMAIN, {}).get("config_manager")
    if config_manager:
        await config_manager.async_save()

    # Clean up data
    if unload_ok:
        hass.data.pop(DOMAIN, None)

    return unload_ok
