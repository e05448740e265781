"""Sources of classified readings: the realtime store or a local simulator."""
from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, AsyncIterator, Callable

from .const import (
    COMMAND_TOGGLE_PREFIX,
    COMMAND_TURN_OFF_ALL,
    COMPONENT_IDS,
    FIELD_COMMAND,
    FIELD_DAILY_ENERGY,
    FIELD_THRESHOLD_LEVEL,
    MONITORING_PATH,
    SIMULATED_COMPONENT_POWER,
    SIMULATED_CRITICAL_POWER,
    SIMULATED_INTERVAL,
    SIMULATED_JITTER,
    SIMULATED_WARNING_POWER,
)
from .models import (
    ClassifiedReading,
    InvalidCommandError,
    MonitoringRecord,
    ThresholdLevel,
    clamp_energy,
    parse_command,
)
from .store import RealtimeStore, StoreWriteError
from .threshold import classify

_LOGGER = logging.getLogger(__name__)


class ReadingSource(ABC):
    """Produces a lazy sequence of classified readings."""

    @abstractmethod
    def async_readings(self) -> AsyncIterator[ClassifiedReading]:
        """Yield readings until closed; raise on read failure."""

    @abstractmethod
    async def async_close(self) -> None:
        """Release the underlying subscription or timer."""

    @property
    @abstractmethod
    def command_target(self) -> Any:
        """Object accepting per-field writes of the monitoring record."""


class RealtimeReadingSource(ReadingSource):
    """Readings pushed by the realtime store; the device sets the level."""

    def __init__(self, store: RealtimeStore, path: str = MONITORING_PATH) -> None:
        self.store = store
        self.path = path
        self._queue: asyncio.Queue = asyncio.Queue()
        self._unsubscribe: Callable[[], None] | None = None
        self._closed = False

    @property
    def command_target(self) -> RealtimeStore:
        return self.store

    def _on_snapshot(self, data: Any) -> None:
        if not self._closed:
            self._queue.put_nowait(data)

    def _on_error(self, err: Exception) -> None:
        if not self._closed:
            self._queue.put_nowait(err)

    async def async_readings(self) -> AsyncIterator[ClassifiedReading]:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.async_subscribe(
                self.path, self._on_snapshot, self._on_error
            )
        while not self._closed:
            item = await self._queue.get()
            if isinstance(item, Exception):
                raise item
            record = MonitoringRecord.from_snapshot(item)
            yield ClassifiedReading(record=record, level=record.threshold_level)

    async def async_close(self) -> None:
        self._closed = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


class SimulatedReadingSource(ReadingSource):
    """Simulate the metering device locally.

    Each component draws a fixed load when on, readings jitter by a few watts,
    and the level is classified from instantaneous power.
    """

    def __init__(
        self,
        interval: float = SIMULATED_INTERVAL,
        rng: random.Random | None = None,
    ) -> None:
        self.interval = interval
        self._rng = rng or random.Random()
        self._record = MonitoringRecord()
        self._closed = False
        self._changed = asyncio.Event()

    @property
    def command_target(self) -> "SimulatedReadingSource":
        return self

    @property
    def record(self) -> MonitoringRecord:
        return self._record

    def _measure(self, elapsed: float) -> MonitoringRecord:
        load = sum(
            SIMULATED_COMPONENT_POWER[cid]
            for cid in COMPONENT_IDS
            if self._record.components[cid - 1]
        )
        jitter = self._rng.randint(-SIMULATED_JITTER, SIMULATED_JITTER - 1)
        power = float(max(0, load + jitter))
        level = classify(power, SIMULATED_WARNING_POWER, SIMULATED_CRITICAL_POWER)
        energy = power * elapsed / 3600.0
        return replace(
            self._record,
            power=power,
            daily_energy=self._record.daily_energy + energy,
            total_energy=self._record.total_energy + energy,
            threshold_level=level,
        )

    async def async_readings(self) -> AsyncIterator[ClassifiedReading]:
        loop = asyncio.get_running_loop()
        # the first reading covers one full interval
        elapsed = self.interval
        while not self._closed:
            self._changed.clear()
            self._record = self._measure(elapsed)
            yield ClassifiedReading(record=self._record, level=self._record.threshold_level)
            started = loop.time()
            try:
                await asyncio.wait_for(self._changed.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            elapsed = min(loop.time() - started, self.interval)

    async def async_close(self) -> None:
        self._closed = True
        self._changed.set()

    async def async_set(self, path: str, value: Any) -> None:
        """Apply a write the way the device would react to it."""
        if self._closed:
            raise StoreWriteError("Simulated device is disconnected")
        field = path.rsplit("/", 1)[-1]

        if field == FIELD_COMMAND:
            self._apply_command(value)
        elif field == FIELD_THRESHOLD_LEVEL:
            self._record = replace(self._record, threshold_level=ThresholdLevel.coerce(value))
        elif field == FIELD_DAILY_ENERGY:
            self._record = replace(self._record, daily_energy=clamp_energy(float(value)))
        elif field.startswith("component"):
            cid = int(field[len("component"):])
            self._set_component(cid, bool(value))
        else:
            raise StoreWriteError(f"Unsupported field for simulated device: {field}")

    def _apply_command(self, value: str) -> None:
        try:
            command = parse_command(value)
        except InvalidCommandError as err:
            raise StoreWriteError(str(err)) from err

        self._record = replace(self._record, command=value)
        if command.kind == COMMAND_TURN_OFF_ALL:
            self._record = replace(self._record, components=(False,) * len(COMPONENT_IDS))
            self._changed.set()
        elif command.kind == COMMAND_TOGGLE_PREFIX:
            self._set_component(command.component_id, command.turn_on)

    def _set_component(self, component_id: int, turn_on: bool) -> None:
        components = list(self._record.components)
        components[component_id - 1] = turn_on
        self._record = replace(self._record, components=tuple(components))
        self._changed.set()
        _LOGGER.debug("Simulated component %s is now %s", component_id, turn_on)
