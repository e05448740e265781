"""Sensors for live readings, threshold level and the monthly bill."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import UnitOfEnergy, UnitOfPower
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .entity import SmartPowerMonitorEntity
from .session import LocalState, MonitorSession

LEVEL_NAMES = {0: "normal", 1: "warning", 2: "critical"}


@dataclass(frozen=True)
class MonitorSensorDescription:
    """How to read one sensor from the session state."""

    key: str
    name: str
    value_fn: Callable[[LocalState], Any]
    device_class: SensorDeviceClass | None = None
    state_class: SensorStateClass | None = None
    unit: str | None = None
    options: list[str] | None = None


SENSORS = (
    MonitorSensorDescription(
        key="power",
        name="Power",
        value_fn=lambda state: state.record.power,
        device_class=SensorDeviceClass.POWER,
        state_class=SensorStateClass.MEASUREMENT,
        unit=UnitOfPower.WATT,
    ),
    MonitorSensorDescription(
        key="daily_energy",
        name="Daily energy",
        value_fn=lambda state: state.record.daily_energy,
        device_class=SensorDeviceClass.ENERGY,
        state_class=SensorStateClass.TOTAL_INCREASING,
        unit=UnitOfEnergy.WATT_HOUR,
    ),
    MonitorSensorDescription(
        key="total_energy",
        name="Monthly energy",
        value_fn=lambda state: state.record.total_energy,
        device_class=SensorDeviceClass.ENERGY,
        state_class=SensorStateClass.TOTAL_INCREASING,
        unit=UnitOfEnergy.WATT_HOUR,
    ),
    MonitorSensorDescription(
        key="threshold_level",
        name="Threshold level",
        value_fn=lambda state: LEVEL_NAMES[int(state.record.threshold_level)],
        device_class=SensorDeviceClass.ENUM,
        options=list(LEVEL_NAMES.values()),
    ),
    MonitorSensorDescription(
        key="estimated_bill",
        name="Estimated bill",
        value_fn=lambda state: round(state.bill.total, 2) if state.bill else None,
        state_class=SensorStateClass.TOTAL,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up monitoring sensors."""
    session: MonitorSession = hass.data[DOMAIN]["session"]
    async_add_entities(
        MonitorSensor(session, entry.entry_id, description) for description in SENSORS
    )


class MonitorSensor(SmartPowerMonitorEntity, SensorEntity):
    """A value read from the last monitoring record."""

    def __init__(
        self,
        session: MonitorSession,
        entry_id: str,
        description: MonitorSensorDescription,
    ) -> None:
        super().__init__(session, entry_id, description.key)
        self.description = description
        self._attr_name = description.name
        self._attr_device_class = description.device_class
        self._attr_state_class = description.state_class
        self._attr_native_unit_of_measurement = description.unit
        self._attr_options = description.options

    @property
    def native_value(self) -> Any:
        return self.description.value_fn(self.session.state)

    @property
    def extra_state_attributes(self) -> dict[str, Any] | None:
        state = self.session.state
        if self.description.key == "estimated_bill" and state.bill:
            return {
                "range": state.bill.range_label,
                "fixed_charge": state.bill.fixed,
                "energy_charge": state.bill.energy_charge,
            }
        if self.description.key == "threshold_level":
            return {
                "warning_visible": state.warning_visible,
                "daily_classification": LEVEL_NAMES[int(state.classification)],
            }
        return None
