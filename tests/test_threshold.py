import pytest

from custom_components.smart_power_monitor.models import MonitoringRecord, ThresholdLevel
from custom_components.smart_power_monitor.threshold import classify, classify_record


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, ThresholdLevel.NORMAL),
        (99.9, ThresholdLevel.NORMAL),
        (100, ThresholdLevel.NORMAL),
        (100.1, ThresholdLevel.WARNING),
        (150, ThresholdLevel.WARNING),
        (150.1, ThresholdLevel.CRITICAL),
        (10_000, ThresholdLevel.CRITICAL),
    ],
)
def test_classify_uses_strict_boundaries(value, expected):
    assert classify(value, 100, 150) == expected


def test_classify_negative_reading_is_normal():
    assert classify(-5, 100, 150) == ThresholdLevel.NORMAL


def test_classify_record_uses_per_day_share_of_monthly_limits():
    # 30000 / 30 = 1000 Wh warning, 60000 / 30 = 2000 Wh critical
    base = dict(WARNING_THRESHOLD=30000, CRITICAL_THRESHOLD=60000)

    assert classify_record(MonitoringRecord.from_snapshot({**base, "dailyEnergy": 1000})) == ThresholdLevel.NORMAL
    assert classify_record(MonitoringRecord.from_snapshot({**base, "dailyEnergy": 1500})) == ThresholdLevel.WARNING
    assert classify_record(MonitoringRecord.from_snapshot({**base, "dailyEnergy": 2000})) == ThresholdLevel.WARNING
    assert classify_record(MonitoringRecord.from_snapshot({**base, "dailyEnergy": 2001})) == ThresholdLevel.CRITICAL
