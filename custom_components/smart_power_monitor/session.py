"""Monitoring session: owns the subscription and the locally mirrored state."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable

from homeassistant.components import persistent_notification
from homeassistant.core import HomeAssistant, callback

from .alert_policy import AlertDecision, AlertPolicy, Notification
from .const import ALERT_EVENT, DOMAIN, ERROR_FETCH_FAILED
from .dispatcher import CommandDispatcher
from .models import MonitoringRecord, ThresholdLevel
from .sources import ReadingSource
from .store import RealtimeStoreError
from .tariff import TariffBreakdown, calculate_tiered_bill
from .threshold import classify_record

if TYPE_CHECKING:
    from .config_manager import ConfigManager

_LOGGER = logging.getLogger(__name__)


class NotConnectedError(Exception):
    """A command was requested before a live record was received."""


@dataclass
class LocalState:
    """Last-seen record plus ephemeral UI flags."""

    record: MonitoringRecord = field(default_factory=MonitoringRecord)
    classification: ThresholdLevel = ThresholdLevel.NORMAL
    warning_visible: bool = False
    warning_level: ThresholdLevel = ThresholdLevel.NORMAL
    vibrate_seconds: float | None = None
    foreground: bool = False
    notifications_enabled: bool = True
    connected: bool = False
    error: str | None = None
    bill: TariffBreakdown | None = None

    def as_dict(self) -> dict[str, Any]:
        """Serialize for the websocket API."""
        return {
            "record": self.record.as_dict(),
            "classification": int(self.classification),
            "warning_visible": self.warning_visible,
            "warning_level": int(self.warning_level),
            "vibrate_seconds": self.vibrate_seconds,
            "foreground": self.foreground,
            "notifications_enabled": self.notifications_enabled,
            "connected": self.connected,
            "error": self.error,
            "bill": self.bill.as_dict() if self.bill else None,
        }


def bill_for_record(record: MonitoringRecord) -> TariffBreakdown:
    """Tiered bill for the month so far; energy and breakpoints in kWh."""
    return calculate_tiered_bill(
        record.total_energy / 1000.0,
        record.warning_threshold / 1000.0,
        record.critical_threshold / 1000.0,
    )


class MonitorSession:
    """Mirror the monitoring record and turn level changes into alerts."""

    def __init__(
        self,
        hass: HomeAssistant,
        source_factory: Callable[[], ReadingSource],
        dispatcher: CommandDispatcher,
        config_manager: "ConfigManager",
        notify_service: str | None = None,
        optimistic: bool = False,
    ) -> None:
        """Initialize the session."""
        self.hass = hass
        self._source_factory = source_factory
        self.source: ReadingSource | None = None
        self.dispatcher = dispatcher
        self.dispatcher.on_error = self._async_on_command_error
        self.config_manager = config_manager
        self.notify_service = notify_service
        self.optimistic = optimistic
        self.policy = AlertPolicy(config_manager.product_name)
        self.state = LocalState(notifications_enabled=config_manager.notifications_enabled)
        self._task: asyncio.Task | None = None
        self._listeners: list[Callable[[LocalState], None]] = []

    @property
    def permission_granted(self) -> bool:
        """Push notifications need a notify service and the user's consent."""
        return bool(self.notify_service) and self.state.notifications_enabled

    async def async_start(self) -> None:
        """Open the subscription."""
        if self._task is not None and not self._task.done():
            return
        self.source = self._source_factory()
        self.dispatcher.store = self.source.command_target
        self.state.error = None
        self._task = asyncio.create_task(self._reading_loop(self.source))
        _LOGGER.info("Monitoring session started")

    async def async_stop(self) -> None:
        """Release the subscription; no state updates happen afterwards."""
        if self.source is not None:
            await self.source.async_close()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.state.connected = False
        _LOGGER.info("Monitoring session stopped")

    async def async_restart(self) -> None:
        """Reopen the subscription after a read failure."""
        await self.async_stop()
        await self.async_start()

    async def _reading_loop(self, source: ReadingSource) -> None:
        try:
            async for reading in source.async_readings():
                self._handle_reading(reading.record, reading.level)
        except Exception as err:
            if isinstance(err, RealtimeStoreError):
                _LOGGER.error("Monitoring subscription failed: %s", err)
            else:
                _LOGGER.exception("Monitoring session error: %s", err)
            self.state.connected = False
            self.state.error = ERROR_FETCH_FAILED
            self._notify_listeners()

    @callback
    def _handle_reading(self, record: MonitoringRecord, level: ThresholdLevel) -> None:
        """Update local state from a pushed record and apply the alert policy."""
        self.state.record = record
        self.state.classification = classify_record(record)
        self.state.bill = bill_for_record(record)
        self.state.connected = True
        self.state.error = None
        _LOGGER.debug(
            "Reading: %sW, %sWh today, level %s", record.power, record.daily_energy, int(level)
        )

        decision = self.policy.evaluate(
            level, record.power, self.state.foreground, self.permission_granted
        )
        self._apply_decision(decision, level)
        self._notify_listeners()

    def _apply_decision(self, decision: AlertDecision, level: ThresholdLevel) -> None:
        if decision.show_modal:
            self.state.warning_visible = True
            self.state.warning_level = level
            self.state.vibrate_seconds = decision.vibrate_seconds
            self.hass.bus.async_fire(
                ALERT_EVENT,
                {
                    "level": int(level),
                    "power": self.state.record.power,
                    "vibrate_seconds": decision.vibrate_seconds,
                },
            )
            _LOGGER.warning(
                "Threshold level %s reached at %sW", int(level), self.state.record.power
            )
        if decision.notification is not None:
            self.hass.async_create_task(self._async_send_notification(decision.notification))

    async def _async_send_notification(self, notification: Notification) -> None:
        """Deliver a push notification through the configured notify service."""
        if not self.notify_service:
            return
        try:
            await self.hass.services.async_call(
                "notify",
                self.notify_service,
                {
                    "title": notification.title,
                    "message": notification.message,
                    "data": {
                        "channel": DOMAIN,
                        "importance": "max",
                        "priority": "high",
                        "ttl": 0,
                    },
                },
                blocking=False,
            )
            _LOGGER.debug("Notification sent via notify.%s: %s", self.notify_service, notification.title)
        except Exception as e:
            _LOGGER.error("Failed to send notification: %s", e)

    async def _async_on_command_error(self, err: Exception) -> None:
        """Surface a failed delayed command write to the user."""
        persistent_notification.async_create(
            self.hass,
            f"Failed to control device: {err}",
            title=self.config_manager.product_name,
            notification_id=f"{DOMAIN}_command_error",
        )

    async def async_toggle(self, component_id: int) -> asyncio.Task:
        """Toggle one component from its last known state.

        Turning a component off during a warning also resets the level; the
        modal is hidden even if one of those writes fails.
        """
        self._ensure_connected()
        record = self.state.record
        current = record.is_on(component_id)
        hide = (
            current
            and self.dispatcher.reset_on_turn_off
            and record.threshold_level != ThresholdLevel.NORMAL
        )
        try:
            task = await self.dispatcher.async_toggle(
                component_id,
                current,
                threshold_level=record.threshold_level,
                daily_energy=record.daily_energy,
                power=record.power,
                optimistic=self.optimistic,
            )
        finally:
            if hide:
                self._hide_warning()
                self._notify_listeners()

        if self.optimistic:
            components = list(record.components)
            components[component_id - 1] = not current
            self.state.record = replace(record, components=tuple(components))
        self._notify_listeners()
        return task

    async def async_turn_off_all(self) -> None:
        """Switch everything off; the modal is hidden even if the write fails."""
        self._ensure_connected()
        try:
            await self.dispatcher.async_turn_off_all()
        finally:
            self._hide_warning()
            self._notify_listeners()

    async def async_dismiss_warning(self) -> None:
        """Reset the threshold level; the modal is hidden even if the write fails."""
        try:
            await self.dispatcher.async_reset_threshold()
        finally:
            self._hide_warning()
            self._notify_listeners()

    def _ensure_connected(self) -> None:
        if not self.state.connected:
            raise NotConnectedError("No live data from the monitoring device")

    def _hide_warning(self) -> None:
        self.policy.dismiss()
        self.state.warning_visible = False
        self.state.vibrate_seconds = None

    @callback
    def set_foreground(self, foreground: bool) -> None:
        """Record whether the dashboard is visible to the user."""
        self.state.foreground = foreground
        if foreground:
            record = self.state.record
            decision = self.policy.foreground_changed(record.threshold_level, record.power)
            self._apply_decision(decision, record.threshold_level)
        self._notify_listeners()

    async def async_set_notifications_enabled(self, enabled: bool) -> None:
        """Grant or revoke permission for push notifications."""
        self.state.notifications_enabled = enabled
        await self.config_manager.async_set_notifications_enabled(enabled)
        self._notify_listeners()

    @callback
    def async_add_listener(self, listener: Callable[[LocalState], None]) -> Callable[[], None]:
        """Register a state listener; returns a function that removes it."""
        self._listeners.append(listener)

        @callback
        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify_listeners(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)
