"""Typed snapshot of the shared monitoring record and the command grammar."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from .const import (
    COMMAND_NONE,
    COMMAND_TOGGLE_PREFIX,
    COMMAND_TURN_OFF_ALL,
    COMPONENT_IDS,
    DAYS_PER_MONTH,
    DEFAULT_CRITICAL_THRESHOLD,
    DEFAULT_WARNING_THRESHOLD,
    FIELD_COMMAND,
    FIELD_CRITICAL_THRESHOLD,
    FIELD_DAILY_ENERGY,
    FIELD_POWER,
    FIELD_THRESHOLD_LEVEL,
    FIELD_TOTAL_ENERGY,
    FIELD_WARNING_THRESHOLD,
)


class InvalidCommandError(ValueError):
    """Raised when a command string does not match the command grammar."""


class ThresholdLevel(IntEnum):
    """Tri-state severity of the current reading."""

    NORMAL = 0
    WARNING = 1
    CRITICAL = 2

    @classmethod
    def coerce(cls, value: Any) -> "ThresholdLevel":
        """Clamp any numeric-ish value into the valid level range."""
        level = _safe_int(value, 0)
        return cls(max(cls.NORMAL, min(cls.CRITICAL, level)))


def _safe_int(val: Any, default: int) -> int:
    """Parse int safely; return default for None, empty string, or invalid."""
    if val is None or val == "" or isinstance(val, bool):
        return default
    try:
        return int(val) if isinstance(val, (int, float)) else int(str(val).strip())
    except (ValueError, TypeError):
        return default


def _safe_float(val: Any, default: float) -> float:
    """Parse float safely; return default for None, empty string, or invalid."""
    if val is None or val == "" or isinstance(val, bool):
        return default
    try:
        return float(val) if isinstance(val, (int, float)) else float(str(val).strip())
    except (ValueError, TypeError):
        return default


def clamp_energy(value: float) -> float:
    """Energy written back to the store is never negative."""
    return value if value > 0 else 0.0


def component_field(component_id: int) -> str:
    """Return the record field holding a component's on/off state."""
    if component_id not in COMPONENT_IDS:
        raise InvalidCommandError(f"Unknown component id: {component_id}")
    return f"component{component_id}"


@dataclass(frozen=True)
class MonitoringRecord:
    """Last-seen state of the monitoring document."""

    components: tuple[bool, ...] = (False, False, False)
    power: float = 0.0
    daily_energy: float = 0.0
    total_energy: float = 0.0
    threshold_level: ThresholdLevel = ThresholdLevel.NORMAL
    warning_threshold: float = DEFAULT_WARNING_THRESHOLD
    critical_threshold: float = DEFAULT_CRITICAL_THRESHOLD
    command: str = COMMAND_NONE

    @classmethod
    def from_snapshot(cls, data: dict[str, Any] | None) -> "MonitoringRecord":
        """Build a record from the raw JSON object pushed by the store."""
        if not isinstance(data, dict):
            return cls()

        components = tuple(
            bool(data.get(f"component{cid}", False)) for cid in COMPONENT_IDS
        )
        # Zero or missing thresholds fall back to defaults
        warning = _safe_float(data.get(FIELD_WARNING_THRESHOLD), 0.0) or DEFAULT_WARNING_THRESHOLD
        critical = _safe_float(data.get(FIELD_CRITICAL_THRESHOLD), 0.0) or DEFAULT_CRITICAL_THRESHOLD
        command = data.get(FIELD_COMMAND)

        return cls(
            components=components,
            power=_safe_float(data.get(FIELD_POWER), 0.0),
            daily_energy=clamp_energy(_safe_float(data.get(FIELD_DAILY_ENERGY), 0.0)),
            total_energy=_safe_float(data.get(FIELD_TOTAL_ENERGY), 0.0),
            threshold_level=ThresholdLevel.coerce(data.get(FIELD_THRESHOLD_LEVEL)),
            warning_threshold=warning,
            critical_threshold=critical,
            command=command if isinstance(command, str) else COMMAND_NONE,
        )

    def is_on(self, component_id: int) -> bool:
        """Return the last known state of a component."""
        component_field(component_id)
        return self.components[component_id - 1]

    def daily_thresholds(self) -> tuple[float, float]:
        """Return (warning, critical) limits comparable with daily energy."""
        return (
            self.warning_threshold / DAYS_PER_MONTH,
            self.critical_threshold / DAYS_PER_MONTH,
        )

    def as_dict(self) -> dict[str, Any]:
        """Serialize for the websocket API."""
        result: dict[str, Any] = {
            f"component{cid}": self.components[cid - 1] for cid in COMPONENT_IDS
        }
        result.update({
            FIELD_POWER: self.power,
            FIELD_DAILY_ENERGY: self.daily_energy,
            FIELD_TOTAL_ENERGY: self.total_energy,
            FIELD_THRESHOLD_LEVEL: int(self.threshold_level),
            FIELD_WARNING_THRESHOLD: self.warning_threshold,
            FIELD_CRITICAL_THRESHOLD: self.critical_threshold,
            FIELD_COMMAND: self.command,
        })
        return result


@dataclass(frozen=True)
class Command:
    """A parsed command channel value."""

    kind: str
    component_id: int | None = None
    turn_on: bool | None = None

    def __str__(self) -> str:
        if self.kind == COMMAND_TOGGLE_PREFIX:
            return format_toggle_command(self.component_id, self.turn_on)
        return self.kind


def format_toggle_command(component_id: int | None, turn_on: bool | None) -> str:
    """Return the command string that switches one component."""
    if component_id is None or turn_on is None:
        raise InvalidCommandError("Toggle command needs a component id and a target state")
    component_field(component_id)
    return f"{COMMAND_TOGGLE_PREFIX}:{component_id}:{'ON' if turn_on else 'OFF'}"


def parse_command(value: str) -> Command:
    """Parse a command channel value.

    Accepted forms are ``NONE``, ``TURNOFFALL`` and ``TOGGLE:<id>:<ON|OFF>``.
    """
    if value in (COMMAND_NONE, COMMAND_TURN_OFF_ALL):
        return Command(kind=value)

    parts = value.split(":") if isinstance(value, str) else []
    if len(parts) != 3 or parts[0] != COMMAND_TOGGLE_PREFIX or parts[2] not in ("ON", "OFF"):
        raise InvalidCommandError(f"Malformed command: {value!r}")
    if not parts[1].isdigit():
        raise InvalidCommandError(f"Malformed component id in command: {value!r}")

    component_id = int(parts[1])
    component_field(component_id)
    return Command(kind=COMMAND_TOGGLE_PREFIX, component_id=component_id, turn_on=parts[2] == "ON")


@dataclass
class ClassifiedReading:
    """A record paired with the severity level that drives alerting."""

    record: MonitoringRecord
    level: ThresholdLevel = field(default=ThresholdLevel.NORMAL)
