"""WebSocket API for Smart Power Monitor."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.components import websocket_api
from homeassistant.core import HomeAssistant, callback

from .const import COMPONENT_IDS, DOMAIN
from .models import InvalidCommandError
from .session import NotConnectedError, bill_for_record
from .store import RealtimeStoreError
from .tariff import InvalidTariffError, estimate_cost

_LOGGER = logging.getLogger(__name__)


@callback
def async_setup(hass: HomeAssistant) -> None:
    """Set up WebSocket API."""
    websocket_api.async_register_command(hass, websocket_get_state)
    websocket_api.async_register_command(hass, websocket_subscribe)
    websocket_api.async_register_command(hass, websocket_reconnect)
    websocket_api.async_register_command(hass, websocket_toggle_component)
    websocket_api.async_register_command(hass, websocket_turn_off_all)
    websocket_api.async_register_command(hass, websocket_dismiss_warning)
    websocket_api.async_register_command(hass, websocket_set_foreground)
    websocket_api.async_register_command(hass, websocket_set_notifications)
    websocket_api.async_register_command(hass, websocket_get_tariff)
    websocket_api.async_register_command(hass, websocket_get_tariff_settings)
    websocket_api.async_register_command(hass, websocket_save_tariff_settings)
    websocket_api.async_register_command(hass, websocket_get_cost_estimate)
    _LOGGER.info("Smart Power Monitor WebSocket API registered")


def _get_session(hass: HomeAssistant):
    return hass.data.get(DOMAIN, {}).get("session")


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/get_state",
    }
)
@callback
def websocket_get_state(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Get the mirrored monitoring record and UI flags."""
    session = _get_session(hass)
    if session:
        connection.send_result(msg["id"], session.state.as_dict())
    else:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/subscribe",
    }
)
@callback
def websocket_subscribe(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Push the state to the panel on every change until unsubscribed."""
    session = _get_session(hass)
    if not session:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")
        return

    @callback
    def _forward(state) -> None:
        connection.send_message(websocket_api.event_message(msg["id"], state.as_dict()))

    connection.subscriptions[msg["id"]] = session.async_add_listener(_forward)
    connection.send_result(msg["id"])
    _forward(session.state)


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/reconnect",
    }
)
@websocket_api.async_response
async def websocket_reconnect(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Reopen the subscription after a failed fetch."""
    session = _get_session(hass)
    if not session:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")
        return
    await session.async_restart()
    connection.send_result(msg["id"], {"success": True})


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/toggle_component",
        vol.Required("component_id"): vol.In(COMPONENT_IDS),
    }
)
@websocket_api.async_response
async def websocket_toggle_component(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Toggle one of the switchable loads."""
    session = _get_session(hass)
    if not session:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")
        return
    try:
        await session.async_toggle(msg["component_id"])
        connection.send_result(msg["id"], {"success": True})
    except NotConnectedError as e:
        connection.send_error(msg["id"], "not_connected", str(e))
    except (RealtimeStoreError, InvalidCommandError) as e:
        _LOGGER.error("Failed to toggle component %s: %s", msg["component_id"], e)
        connection.send_error(msg["id"], "toggle_failed", "Failed to control device. Check connection.")


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/turn_off_all",
    }
)
@websocket_api.async_response
async def websocket_turn_off_all(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Turn off all loads and clear the warning."""
    session = _get_session(hass)
    if not session:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")
        return
    try:
        await session.async_turn_off_all()
        connection.send_result(msg["id"], {"success": True})
    except NotConnectedError as e:
        connection.send_error(msg["id"], "not_connected", str(e))
    except RealtimeStoreError as e:
        _LOGGER.error("Failed to turn off all components: %s", e)
        connection.send_error(msg["id"], "turn_off_failed", "Failed to turn off devices. Check connection.")


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/dismiss_warning",
    }
)
@websocket_api.async_response
async def websocket_dismiss_warning(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Dismiss the warning modal and reset the threshold level."""
    session = _get_session(hass)
    if not session:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")
        return
    try:
        await session.async_dismiss_warning()
        connection.send_result(msg["id"], {"success": True})
    except RealtimeStoreError as e:
        _LOGGER.error("Failed to reset threshold level: %s", e)
        connection.send_error(msg["id"], "reset_failed", "Failed to reset threshold level.")


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/set_foreground",
        vol.Required("foreground"): bool,
    }
)
@callback
def websocket_set_foreground(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Report whether the dashboard is currently visible."""
    session = _get_session(hass)
    if not session:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")
        return
    session.set_foreground(msg["foreground"])
    connection.send_result(msg["id"], {"foreground": msg["foreground"]})


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/set_notifications",
        vol.Required("enabled"): bool,
    }
)
@websocket_api.async_response
async def websocket_set_notifications(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Grant or revoke permission for push notifications."""
    session = _get_session(hass)
    if not session:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")
        return
    await session.async_set_notifications_enabled(msg["enabled"])
    connection.send_result(msg["id"], {
        "enabled": msg["enabled"],
        "permission_granted": session.permission_granted,
    })


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/get_tariff",
    }
)
@callback
def websocket_get_tariff(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Get the tiered bill for the current billing month."""
    session = _get_session(hass)
    if not session:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")
        return
    record = session.state.record
    connection.send_result(msg["id"], {
        "total_energy_kwh": record.total_energy / 1000.0,
        "warning_threshold_kwh": record.warning_threshold / 1000.0,
        "critical_threshold_kwh": record.critical_threshold / 1000.0,
        "bill": bill_for_record(record).as_dict(),
    })


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/get_tariff_settings",
    }
)
@callback
def websocket_get_tariff_settings(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Get the stored flat/dual tariff settings."""
    config_manager = hass.data.get(DOMAIN, {}).get("config_manager")
    if config_manager:
        connection.send_result(msg["id"], config_manager.tariff_settings.as_dict())
    else:
        connection.send_error(msg["id"], "not_ready", "Config manager not initialized")


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/save_tariff_settings",
        vol.Required("settings"): dict,
    }
)
@websocket_api.async_response
async def websocket_save_tariff_settings(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Save flat/dual tariff settings."""
    config_manager = hass.data.get(DOMAIN, {}).get("config_manager")
    if not config_manager:
        connection.send_error(msg["id"], "not_ready", "Config manager not initialized")
        return
    settings = await config_manager.async_update_tariff(msg["settings"])
    connection.send_result(msg["id"], settings.as_dict())


@websocket_api.websocket_command(
    {
        vol.Required("type"): "smart_power_monitor/get_cost_estimate",
        vol.Optional("power"): vol.Coerce(float),
    }
)
@callback
def websocket_get_cost_estimate(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    """Project daily, monthly and yearly cost from the stored tariff settings."""
    session = _get_session(hass)
    config_manager = hass.data.get(DOMAIN, {}).get("config_manager")
    if not session or not config_manager:
        connection.send_error(msg["id"], "not_ready", "Monitoring session not initialized")
        return
    power = msg.get("power", session.state.record.power)
    try:
        estimate = estimate_cost(power, config_manager.tariff_settings)
    except InvalidTariffError as e:
        connection.send_error(msg["id"], "invalid_tariff", str(e))
        return
    connection.send_result(msg["id"], {"power": power, **estimate.as_dict()})
