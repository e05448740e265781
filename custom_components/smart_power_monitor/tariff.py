"""Electricity bill calculations."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .const import TIER_FIXED_CHARGES, TIER_RATES
from .models import ThresholdLevel


class InvalidTariffError(ValueError):
    """Raised when stored tariff settings cannot be used for an estimate."""


@dataclass(frozen=True)
class TariffBreakdown:
    """Bill for the current billing month."""

    tier: ThresholdLevel
    range_label: str
    fixed: float
    energy_charge: float
    total: float

    def as_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["tier"] = int(self.tier)
        return result


def calculate_tiered_bill(kwh: float, wt: float, ct: float) -> TariffBreakdown:
    """Return the tiered bill for ``kwh`` with breakpoints ``wt`` < ``ct``.

    Each tier only charges its own marginal rate on the energy inside it; the
    fixed charge steps up with the tier reached.
    """
    low_rate, mid_rate, high_rate = TIER_RATES
    low_fixed, mid_fixed, high_fixed = TIER_FIXED_CHARGES

    if kwh <= wt:
        tier = ThresholdLevel.NORMAL
        energy_charge = kwh * low_rate
        fixed = low_fixed
        label = f"Below {wt:g} kWh (Normal)"
    elif kwh <= ct:
        tier = ThresholdLevel.WARNING
        energy_charge = wt * low_rate + (kwh - wt) * mid_rate
        fixed = mid_fixed
        label = f"Between {wt:g} - {ct:g} kWh (Warning)"
    else:
        tier = ThresholdLevel.CRITICAL
        energy_charge = wt * low_rate + (ct - wt) * mid_rate + (kwh - ct) * high_rate
        fixed = high_fixed
        label = f"Above {ct:g} kWh (Critical)"

    return TariffBreakdown(
        tier=tier,
        range_label=label,
        fixed=fixed,
        energy_charge=energy_charge,
        total=energy_charge + fixed,
    )


@dataclass
class TariffSettings:
    """User tariff settings, persisted as strings except the dual-rate flag."""

    tariff: str = ""
    daily_hours: str = ""
    use_dual_tariff: bool = False
    peak_tariff: str = ""
    off_peak_tariff: str = ""
    peak_hours: str = ""
    off_peak_hours: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TariffSettings":
        data = data or {}
        return cls(
            tariff=_as_text(data.get("tariff")),
            daily_hours=_as_text(data.get("daily_hours")),
            use_dual_tariff=bool(data.get("use_dual_tariff", False)),
            peak_tariff=_as_text(data.get("peak_tariff")),
            off_peak_tariff=_as_text(data.get("off_peak_tariff")),
            peak_hours=_as_text(data.get("peak_hours")),
            off_peak_hours=_as_text(data.get("off_peak_hours")),
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CostEstimate:
    """Projected cost of running the current load."""

    daily: float
    monthly: float
    yearly: float

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


def _as_text(val: Any) -> str:
    if val is None:
        return ""
    return str(val).strip()


def _parse_number(name: str, val: str) -> float:
    try:
        number = float(val)
    except (ValueError, TypeError) as err:
        raise InvalidTariffError(f"{name} must be a number") from err
    if number < 0:
        raise InvalidTariffError(f"{name} must not be negative")
    return number


def estimate_cost(power_w: float, settings: TariffSettings) -> CostEstimate:
    """Project daily, monthly and yearly cost of drawing ``power_w`` watts."""
    usage_kw = max(power_w, 0.0) / 1000.0

    if settings.use_dual_tariff:
        peak_rate = _parse_number("Peak tariff", settings.peak_tariff)
        off_peak_rate = _parse_number("Off-peak tariff", settings.off_peak_tariff)
        peak_hours = _parse_number("Peak hours", settings.peak_hours)
        off_peak_hours = _parse_number("Off-peak hours", settings.off_peak_hours)
        if peak_hours + off_peak_hours > 24:
            raise InvalidTariffError("Peak and off-peak hours exceed 24 hours")
        daily = usage_kw * peak_hours * peak_rate + usage_kw * off_peak_hours * off_peak_rate
    else:
        rate = _parse_number("Tariff", settings.tariff)
        hours = _parse_number("Daily hours", settings.daily_hours)
        if hours > 24:
            raise InvalidTariffError("Daily hours exceed 24 hours")
        daily = usage_kw * hours * rate

    return CostEstimate(daily=daily, monthly=daily * 30, yearly=daily * 365)
