"""Decide how a threshold level change is surfaced to the user."""
from __future__ import annotations

from dataclasses import dataclass

from .const import (
    DEFAULT_CRITICAL_MSG,
    DEFAULT_WARNING_MSG,
    NAME,
    VIBRATION_DURATION,
)
from .models import ThresholdLevel


@dataclass(frozen=True)
class Notification:
    """A push notification to deliver immediately."""

    title: str
    message: str
    level: ThresholdLevel


@dataclass(frozen=True)
class AlertDecision:
    """What to do for one observed reading."""

    show_modal: bool = False
    vibrate_seconds: float | None = None
    notification: Notification | None = None


NO_ALERT = AlertDecision()


def format_reading(value: float) -> str:
    """Format a reading for alert text."""
    return f"{value:g}W"


class AlertPolicy:
    """Track level transitions and choose modal, vibration or push notification.

    A level increase observed while the app is in the background produces a
    single push notification (when permitted). While in the foreground, each
    transition into a nonzero level shows the warning modal and vibrates once.
    """

    def __init__(self, product_name: str = NAME) -> None:
        self.product_name = product_name
        self.previous_level = ThresholdLevel.NORMAL
        # Level the foreground alert last fired for; NORMAL re-arms it
        self._alerted_level = ThresholdLevel.NORMAL
        self.modal_visible = False

    def evaluate(
        self,
        level: ThresholdLevel,
        value: float,
        foreground: bool,
        permission: bool,
    ) -> AlertDecision:
        """Advance the policy with a new reading and return the actions to take."""
        level = ThresholdLevel(level)
        previous = self.previous_level
        self.previous_level = level

        if level == ThresholdLevel.NORMAL:
            self._alerted_level = ThresholdLevel.NORMAL
            return NO_ALERT

        if foreground:
            if level == self._alerted_level:
                return NO_ALERT
            self._alerted_level = level
            self.modal_visible = True
            return AlertDecision(show_modal=True, vibrate_seconds=VIBRATION_DURATION)

        if level > previous and permission:
            return AlertDecision(notification=self._build_notification(level, value))
        return NO_ALERT

    def foreground_changed(self, level: ThresholdLevel, value: float) -> AlertDecision:
        """Show a level that was raised while the app was in the background."""
        if level == ThresholdLevel.NORMAL or level == self._alerted_level:
            return NO_ALERT
        self._alerted_level = ThresholdLevel(level)
        self.modal_visible = True
        return AlertDecision(show_modal=True, vibrate_seconds=VIBRATION_DURATION)

    def dismiss(self) -> None:
        """Hide the warning modal locally."""
        self.modal_visible = False

    def _build_notification(self, level: ThresholdLevel, value: float) -> Notification:
        reading = format_reading(value)
        if level == ThresholdLevel.CRITICAL:
            title = "Critical"
            message = DEFAULT_CRITICAL_MSG.format(value=reading)
        else:
            title = "Warning"
            message = DEFAULT_WARNING_MSG.format(value=reading)
        return Notification(
            title=f"{self.product_name} {title}",
            message=message,
            level=level,
        )
