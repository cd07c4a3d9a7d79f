"""
CIBIL-like credit score simulator.

Five weighted factors produce a percentage that is scaled onto 300-900:

    payment history      35%   on-time payments, 0-100
    credit utilization   30%   card balance vs limit, 0-100 (lower is better)
    credit age           15%   years, full marks at 10
    credit mix           10%   number of credit types, full marks at 5
    new credit inquiries 10%   recent applications, zero marks at 5
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

MIN_SCORE = 300
MAX_SCORE = 900

Impact = Literal["positive", "neutral", "negative"]

# (min score, label) from best to worst
SCORE_CATEGORIES: tuple[tuple[int, str], ...] = (
    (750, "Excellent"),
    (700, "Good"),
    (650, "Fair"),
    (550, "Poor"),
)

# (min score, estimated annual rate %)
RATE_TIERS: tuple[tuple[int, float], ...] = (
    (800, 10.5),
    (750, 11.5),
    (700, 12.5),
    (650, 14.5),
    (600, 16.5),
)
FALLBACK_RATE = 18.5


@dataclass(frozen=True)
class CreditProfile:
    payment_history: float = 85
    credit_utilization: float = 30
    credit_age: float = 5
    credit_mix: int = 3
    new_credit: int = 2


@dataclass(frozen=True)
class CreditFactor:
    name: str
    value: float
    weight: int
    impact: Impact
    suggestion: str


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def calculate_score(profile: CreditProfile) -> int:
    payment = profile.payment_history / 100 * 35
    utilization = (100 - profile.credit_utilization) / 100 * 30
    age = min(profile.credit_age / 10, 1) * 15
    mix = min(profile.credit_mix / 5, 1) * 10
    inquiries = max((5 - profile.new_credit) / 5, 0) * 10

    total = payment + utilization + age + mix + inquiries
    return int(_clamp(round(MIN_SCORE + total * 6), MIN_SCORE, MAX_SCORE))


def score_category(score: int) -> str:
    for threshold, label in SCORE_CATEGORIES:
        if score >= threshold:
            return label
    return "Very Poor"


def estimated_interest_rate(score: int) -> float:
    for threshold, rate in RATE_TIERS:
        if score >= threshold:
            return rate
    return FALLBACK_RATE


def _grade(value: float, good: float, fair: float, higher_is_better: bool = True) -> Impact:
    if higher_is_better:
        if value >= good:
            return "positive"
        return "neutral" if value >= fair else "negative"
    if value <= good:
        return "positive"
    return "neutral" if value <= fair else "negative"


def factor_breakdown(profile: CreditProfile) -> list[CreditFactor]:
    """Per-factor impact with a suggestion for the user."""
    return [
        CreditFactor(
            "Payment History", profile.payment_history, 35,
            _grade(profile.payment_history, 90, 70),
            "Pay all EMIs on time to improve this factor"
            if profile.payment_history < 90
            else "Excellent! Keep up the timely payments",
        ),
        CreditFactor(
            "Credit Utilization", profile.credit_utilization, 30,
            _grade(profile.credit_utilization, 30, 50, higher_is_better=False),
            "Keep credit card usage below 30% of limit"
            if profile.credit_utilization > 30
            else "Great credit utilization ratio!",
        ),
        CreditFactor(
            "Credit Age", profile.credit_age, 15,
            _grade(profile.credit_age, 5, 2),
            "Maintain older accounts to build credit history"
            if profile.credit_age < 5
            else "Good credit history length",
        ),
        CreditFactor(
            "Credit Mix", profile.credit_mix, 10,
            _grade(profile.credit_mix, 3, 2),
            "Having diverse credit types helps your score"
            if profile.credit_mix < 3
            else "Healthy credit mix",
        ),
        CreditFactor(
            "New Credit Inquiries", profile.new_credit, 10,
            _grade(profile.new_credit, 2, 4, higher_is_better=False),
            "Limit new credit applications in short periods"
            if profile.new_credit > 2
            else "Minimal recent inquiries",
        ),
    ]
