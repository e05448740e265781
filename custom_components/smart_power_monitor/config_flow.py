"""Config flow for Smart Power Monitor integration."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry, ConfigFlow, ConfigFlowResult, OptionsFlow
from homeassistant.core import callback
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
    MONITORING_PATH,
    NAME,
    SOURCE_REALTIME,
    SOURCE_SIMULATED,
)
from .store import RealtimeStore, StoreReadError

_LOGGER = logging.getLogger(__name__)


def _normalize_notify_service(value: str | None) -> str:
    """Accept ``notify.mobile_app_x`` or ``mobile_app_x``; store the service name."""
    value = (value or "").strip()
    if value.startswith("notify."):
        value = value[len("notify."):]
    return value


class SmartPowerMonitorConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Smart Power Monitor."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Get the options flow for this handler."""
        return SmartPowerMonitorOptionsFlow()

    async def _async_validate_database(self, url: str, token: str | None) -> str | None:
        """Read the monitoring record once; return an error key on failure."""
        if not url.startswith("https://"):
            return "invalid_url"
        store = RealtimeStore(async_get_clientsession(self.hass), url, token)
        try:
            await store.async_get(MONITORING_PATH)
        except StoreReadError as err:
            _LOGGER.error("Cannot reach realtime database %s: %s", url, err)
            return "cannot_connect"
        return None

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step."""
        # Only allow one instance
        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        errors: dict[str, str] = {}

        if user_input is not None:
            source = user_input.get(CONF_SOURCE, SOURCE_REALTIME)
            url = (user_input.get(CONF_DATABASE_URL) or "").strip().rstrip("/")
            token = (user_input.get(CONF_AUTH_TOKEN) or "").strip() or None

            if source == SOURCE_REALTIME:
                error = await self._async_validate_database(url, token)
                if error:
                    errors[CONF_DATABASE_URL if error == "invalid_url" else "base"] = error

            if not errors:
                return self.async_create_entry(
                    title=NAME,
                    data={
                        CONF_SOURCE: source,
                        CONF_DATABASE_URL: url,
                        CONF_AUTH_TOKEN: token,
                    },
                    options={
                        CONF_NOTIFY_SERVICE: _normalize_notify_service(
                            user_input.get(CONF_NOTIFY_SERVICE)
                        ),
                        CONF_COMMAND_DELAY: DEFAULT_COMMAND_DELAY,
                        CONF_RESET_ON_TURN_OFF: True,
                        CONF_OPTIMISTIC: False,
                    },
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema({
                vol.Required(CONF_SOURCE, default=SOURCE_REALTIME): vol.In(
                    [SOURCE_REALTIME, SOURCE_SIMULATED]
                ),
                vol.Optional(CONF_DATABASE_URL, default=""): str,
                vol.Optional(CONF_AUTH_TOKEN, default=""): str,
                vol.Optional(CONF_NOTIFY_SERVICE, default=""): str,
            }),
            errors=errors,
        )


class SmartPowerMonitorOptionsFlow(OptionsFlow):
    """Handle options flow for Smart Power Monitor."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Manage notification target and command behaviour."""
        if user_input is not None:
            data = dict(user_input)
            data[CONF_NOTIFY_SERVICE] = _normalize_notify_service(data.get(CONF_NOTIFY_SERVICE))
            return self.async_create_entry(data=data)

        current = self.config_entry.options or {}
        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema({
                vol.Optional(
                    CONF_NOTIFY_SERVICE,
                    default=current.get(CONF_NOTIFY_SERVICE, ""),
                ): str,
                vol.Required(
                    CONF_COMMAND_DELAY,
                    default=current.get(CONF_COMMAND_DELAY, DEFAULT_COMMAND_DELAY),
                ): vol.All(vol.Coerce(float), vol.Range(min=0.0, max=5.0)),
                vol.Required(
                    CONF_RESET_ON_TURN_OFF,
                    default=current.get(CONF_RESET_ON_TURN_OFF, True),
                ): bool,
                vol.Required(
                    CONF_OPTIMISTIC,
                    default=current.get(CONF_OPTIMISTIC, False),
                ): bool,
            }),
        )
