import pytest

from custom_components.smart_power_monitor.models import ThresholdLevel
from custom_components.smart_power_monitor.tariff import (
    InvalidTariffError,
    TariffSettings,
    calculate_tiered_bill,
    estimate_cost,
)


def test_bill_in_normal_tier():
    bill = calculate_tiered_bill(50, 100, 300)
    assert bill.tier == ThresholdLevel.NORMAL
    assert bill.energy_charge == 200
    assert bill.fixed == 75
    assert bill.total == 275
    assert bill.range_label == "Below 100 kWh (Normal)"


def test_bill_in_warning_tier():
    bill = calculate_tiered_bill(150, 100, 300)
    assert bill.tier == ThresholdLevel.WARNING
    assert bill.energy_charge == 100 * 4 + 50 * 6
    assert bill.fixed == 200
    assert bill.total == 900


def test_bill_in_critical_tier():
    bill = calculate_tiered_bill(400, 100, 300)
    assert bill.tier == ThresholdLevel.CRITICAL
    assert bill.energy_charge == 400 + 1200 + 1400
    assert bill.fixed == 400
    assert bill.total == 3400


def test_bill_boundaries_belong_to_lower_tier():
    assert calculate_tiered_bill(100, 100, 300).fixed == 75
    assert calculate_tiered_bill(300, 100, 300).fixed == 200


def test_energy_charge_is_continuous_across_tiers():
    below = calculate_tiered_bill(300, 100, 300).energy_charge
    above = calculate_tiered_bill(300.0001, 100, 300).energy_charge
    assert above == pytest.approx(below, abs=0.01)


def test_flat_rate_estimate():
    settings = TariffSettings(tariff="10", daily_hours="5")
    estimate = estimate_cost(2000, settings)
    assert estimate.daily == pytest.approx(100)
    assert estimate.monthly == pytest.approx(3000)
    assert estimate.yearly == pytest.approx(36500)


def test_dual_rate_estimate():
    settings = TariffSettings(
        use_dual_tariff=True,
        peak_tariff="20",
        off_peak_tariff="8",
        peak_hours="4",
        off_peak_hours="10",
    )
    estimate = estimate_cost(500, settings)
    assert estimate.daily == pytest.approx(0.5 * 4 * 20 + 0.5 * 10 * 8)
    assert estimate.monthly == pytest.approx(estimate.daily * 30)


def test_estimate_rejects_missing_rate():
    with pytest.raises(InvalidTariffError):
        estimate_cost(500, TariffSettings(tariff="", daily_hours="5"))


def test_estimate_rejects_more_than_a_day_of_hours():
    settings = TariffSettings(
        use_dual_tariff=True,
        peak_tariff="20",
        off_peak_tariff="8",
        peak_hours="16",
        off_peak_hours="10",
    )
    with pytest.raises(InvalidTariffError):
        estimate_cost(500, settings)


def test_settings_from_dict_stores_numbers_as_text():
    settings = TariffSettings.from_dict({"tariff": 12.5, "daily_hours": 6, "use_dual_tariff": 0})
    assert settings.tariff == "12.5"
    assert settings.daily_hours == "6"
    assert settings.use_dual_tariff is False
