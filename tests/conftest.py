import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from custom_components.smart_power_monitor.models import ClassifiedReading
from custom_components.smart_power_monitor.sources import ReadingSource
from custom_components.smart_power_monitor.store import StoreReadError, StoreWriteError


class FakeStore:
    """Records per-field writes; fields listed in ``fail_on`` raise."""

    def __init__(self, fail_on: tuple[str, ...] = ()) -> None:
        self.writes: list[tuple[str, Any]] = []
        self.fail_on = set(fail_on)

    async def async_set(self, path: str, value: Any) -> None:
        if path.rsplit("/", 1)[-1] in self.fail_on:
            raise StoreWriteError(f"write to {path} rejected")
        self.writes.append((path, value))

    def commands(self) -> list[str]:
        return [value for path, value in self.writes if path == "monitoring/command"]


class QueueSource(ReadingSource):
    """Reading source fed by the test through a queue."""

    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    @property
    def command_target(self) -> FakeStore:
        return self.store

    def push(self, item: ClassifiedReading | Exception) -> None:
        self.queue.put_nowait(item)

    def fail(self) -> None:
        self.push(StoreReadError("connection refused"))

    async def async_readings(self):
        while not self.closed:
            item = await self.queue.get()
            if isinstance(item, Exception):
                raise item
            yield item

    async def async_close(self) -> None:
        self.closed = True


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def hass():
    hass = MagicMock()
    hass.bus.async_fire = MagicMock()
    hass.services.async_call = AsyncMock()
    hass.async_create_task = MagicMock(side_effect=lambda coro: asyncio.ensure_future(coro))

    async def _run_in_executor(func, *args):
        return func(*args)

    hass.async_add_executor_job = AsyncMock(side_effect=_run_in_executor)
    return hass


@pytest.fixture
def config_manager():
    manager = MagicMock()
    manager.product_name = "Smart Power Monitor"
    manager.notifications_enabled = True
    manager.async_set_notifications_enabled = AsyncMock()
    return manager
