"""
SIP projection and model portfolio allocation.

A SIP (systematic investment plan) invests a fixed amount at the start of
every month. Its future value at a monthly rate r over n months is

    FV = P * ((1 + r)^n - 1) / r * (1 + r)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

RiskProfile = Literal["conservative", "moderate", "aggressive"]

DEFAULT_SIP_RATE = 12.0  # % per annum
DEFAULT_SIP_MONTHS = 60

# Percent of each monthly investment per asset class; each row sums to 100
ALLOCATIONS: dict[RiskProfile, dict[str, int]] = {
    "conservative": {"Equity": 25, "Debt": 45, "Hybrid": 20, "Gold": 10},
    "moderate": {"Equity": 55, "Debt": 15, "Hybrid": 20, "Gold": 10},
    "aggressive": {"Equity": 75, "Debt": 5, "Hybrid": 10, "Gold": 10},
}


@dataclass(frozen=True)
class Fund:
    name: str
    asset_class: str
    risk_level: Literal["low", "medium", "high"]
    returns_1y: float
    returns_3y: float
    returns_5y: float
    min_investment: int


FUNDS: tuple[Fund, ...] = (
    Fund("Tata Index Nifty 50", "Equity", "high", 18.5, 15.2, 14.8, 500),
    Fund("Tata Large Cap Fund", "Equity", "medium", 22.3, 16.8, 15.2, 500),
    Fund("Tata Hybrid Equity Fund", "Hybrid", "medium", 14.2, 12.5, 11.8, 500),
    Fund("Tata Short Term Bond", "Debt", "low", 7.5, 7.2, 7.8, 1000),
    Fund("Tata Gold Fund", "Gold", "medium", 12.8, 10.5, 9.2, 500),
)


@dataclass(frozen=True)
class SavingsGoal:
    name: str
    target: float
    current: float

    @property
    def progress(self) -> float:
        """Percent of the target saved so far, capped at 100."""
        if self.target <= 0:
            return 100.0
        return min(100.0, self.current / self.target * 100)

    def monthly_required(self, months: int) -> int:
        if months <= 0:
            raise ValueError(f"Months must be positive, got {months}")
        return round(max(0.0, self.target - self.current) / months)


def project_sip_value(
    monthly: float,
    annual_rate: float = DEFAULT_SIP_RATE,
    months: int = DEFAULT_SIP_MONTHS,
) -> int:
    """Future value of a monthly SIP, rounded to whole rupees."""
    if monthly < 0:
        raise ValueError(f"Monthly investment must be non-negative, got {monthly}")
    if annual_rate < 0:
        raise ValueError(f"Expected return must be non-negative, got {annual_rate}")
    if months <= 0:
        raise ValueError(f"Horizon must be at least one month, got {months}")

    rate = annual_rate / 12 / 100
    if rate == 0:
        return round(monthly * months)
    return round(monthly * ((1 + rate) ** months - 1) / rate * (1 + rate))


def allocate(monthly: float, profile: RiskProfile = "moderate") -> dict[str, int]:
    """Split a monthly investment across asset classes for a risk profile."""
    if profile not in ALLOCATIONS:
        raise ValueError(f"Unknown risk profile: {profile}")
    return {
        asset_class: round(monthly * share / 100)
        for asset_class, share in ALLOCATIONS[profile].items()
    }


def funds_for(asset_class: str) -> list[Fund]:
    return [fund for fund in FUNDS if fund.asset_class == asset_class]
