"""Base entity for Smart Power Monitor."""
from __future__ import annotations

from homeassistant.core import callback
from homeassistant.helpers.entity import DeviceInfo, Entity

from .const import DOMAIN, NAME
from .session import LocalState, MonitorSession


class SmartPowerMonitorEntity(Entity):
    """Entity that mirrors the monitoring session state."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(self, session: MonitorSession, entry_id: str, key: str) -> None:
        self.session = session
        self._attr_unique_id = f"{entry_id}_{key}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, entry_id)},
            name=NAME,
            manufacturer=NAME,
            model="Energy monitor",
        )

    @property
    def available(self) -> bool:
        return self.session.state.connected

    async def async_added_to_hass(self) -> None:
        """Follow session updates until removed."""
        self.async_on_remove(self.session.async_add_listener(self._handle_state))

    @callback
    def _handle_state(self, state: LocalState) -> None:
        self.async_write_ha_state()
