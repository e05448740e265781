"""Translate user intents into writes on the shared command channel."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

from .const import (
    COMMAND_NONE,
    COMMAND_TURN_OFF_ALL,
    DEFAULT_COMMAND_DELAY,
    FIELD_COMMAND,
    FIELD_DAILY_ENERGY,
    FIELD_THRESHOLD_LEVEL,
    MONITORING_PATH,
)
from .models import ThresholdLevel, clamp_energy, component_field, format_toggle_command
from .store import StoreWriteError

_LOGGER = logging.getLogger(__name__)


class CommandTarget(Protocol):
    """Anything that accepts per-field writes of the monitoring record."""

    async def async_set(self, path: str, value: Any) -> None:
        ...


def _field_path(field: str) -> str:
    return f"{MONITORING_PATH}/{field}"


class CommandDispatcher:
    """Write commands so the device always sees a change on the command field.

    The device only reacts to changes of ``command``, so each command is
    preceded by a ``NONE`` write and the real value follows after ``delay``.
    The delayed write is fire-and-forget and not retried.
    """

    def __init__(
        self,
        store: CommandTarget | None,
        delay: float = DEFAULT_COMMAND_DELAY,
        reset_on_turn_off: bool = True,
        on_error: Callable[[Exception], Awaitable[None] | None] | None = None,
    ) -> None:
        """Initialize the dispatcher."""
        self.store = store
        self.delay = delay
        self.reset_on_turn_off = reset_on_turn_off
        self.on_error = on_error
        self._pending: set[asyncio.Task] = set()

    async def _async_write(self, field: str, value: Any) -> None:
        try:
            await self.store.async_set(_field_path(field), value)
        except StoreWriteError as err:
            _LOGGER.error("Failed to write %s: %s", field, err)
            raise

    async def async_toggle(
        self,
        component_id: int,
        current_state: bool,
        threshold_level: ThresholdLevel = ThresholdLevel.NORMAL,
        daily_energy: float | None = None,
        power: float | None = None,
        optimistic: bool = False,
    ) -> asyncio.Task:
        """Flip a component and return the task carrying the delayed command.

        With ``optimistic`` the component field is written directly as well.
        Turning a component off optimistically also subtracts its load from
        today's energy.
        """
        target = not current_state
        command = format_toggle_command(component_id, target)

        if optimistic:
            await self._async_write(component_field(component_id), target)
            if not target and daily_energy is not None and power is not None:
                await self._async_write(FIELD_DAILY_ENERGY, clamp_energy(daily_energy - power))

        await self._async_write(FIELD_COMMAND, COMMAND_NONE)
        task = self._schedule_command(command)
        _LOGGER.info("Component %s switching %s", component_id, "on" if target else "off")

        if not target and self.reset_on_turn_off and threshold_level != ThresholdLevel.NORMAL:
            await self.async_reset_threshold()

        return task

    async def async_turn_off_all(self) -> None:
        """Switch every component off and clear the active warning."""
        await self._async_write(FIELD_COMMAND, COMMAND_TURN_OFF_ALL)
        _LOGGER.info("Turn off all components requested")
        await self.async_reset_threshold()

    async def async_reset_threshold(self) -> None:
        """Reset the threshold level; repeating it on an already-normal level is harmless."""
        await self._async_write(FIELD_THRESHOLD_LEVEL, int(ThresholdLevel.NORMAL))

    def _schedule_command(self, command: str) -> asyncio.Task:
        task = asyncio.create_task(self._async_delayed_command(command))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _async_delayed_command(self, command: str) -> None:
        await asyncio.sleep(self.delay)
        try:
            await self._async_write(FIELD_COMMAND, command)
        except StoreWriteError as err:
            if self.on_error is None:
                return
            result = self.on_error(err)
            if asyncio.iscoroutine(result):
                await result
