"""Threshold classification of power and energy readings."""
from __future__ import annotations

from .models import MonitoringRecord, ThresholdLevel


def classify(value: float, warn: float, crit: float) -> ThresholdLevel:
    """Classify a reading against warning and critical limits.

    Comparisons are strict: a value equal to a limit stays in the lower tier.
    """
    if value > crit:
        return ThresholdLevel.CRITICAL
    if value > warn:
        return ThresholdLevel.WARNING
    return ThresholdLevel.NORMAL


def classify_record(record: MonitoringRecord) -> ThresholdLevel:
    """Classify today's energy against the per-day share of the monthly limits."""
    warn, crit = record.daily_thresholds()
    return classify(record.daily_energy, warn, crit)
