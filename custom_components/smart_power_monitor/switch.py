"""Switches for the remotely controlled loads."""
from __future__ import annotations

from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import COMPONENT_IDS, COMPONENT_NAMES, DOMAIN
from .entity import SmartPowerMonitorEntity
from .session import MonitorSession, NotConnectedError
from .store import RealtimeStoreError


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up one switch per component."""
    session: MonitorSession = hass.data[DOMAIN]["session"]
    async_add_entities(
        ComponentSwitch(session, entry.entry_id, component_id)
        for component_id in COMPONENT_IDS
    )


class ComponentSwitch(SmartPowerMonitorEntity, SwitchEntity):
    """A switchable load reached through the command channel."""

    _attr_icon = "mdi:power-socket"

    def __init__(self, session: MonitorSession, entry_id: str, component_id: int) -> None:
        super().__init__(session, entry_id, f"component{component_id}")
        self.component_id = component_id
        self._attr_name = COMPONENT_NAMES[component_id]

    @property
    def is_on(self) -> bool:
        return self.session.state.record.is_on(self.component_id)

    async def _async_toggle_to(self, turn_on: bool) -> None:
        if self.is_on == turn_on:
            return
        try:
            await self.session.async_toggle(self.component_id)
        except NotConnectedError as err:
            raise HomeAssistantError(str(err)) from err
        except RealtimeStoreError as err:
            raise HomeAssistantError(
                f"Failed to control {self._attr_name}. Check connection."
            ) from err

    async def async_turn_on(self, **kwargs: Any) -> None:
        await self._async_toggle_to(True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        await self._async_toggle_to(False)
