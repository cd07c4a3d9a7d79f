"""Monthly budget analysis and a rough loan-eligibility estimate."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

EXPENSE_CATEGORIES = (
    "Housing",
    "Food",
    "Transportation",
    "Utilities",
    "Healthcare",
    "Entertainment",
    "Shopping",
    "Education",
    "EMI",
    "Other",
)

# Share of income a lender lets go to EMIs, and the tenure the estimate assumes
MAX_EMI_SHARE = 0.5
ELIGIBILITY_MONTHS = 60


@dataclass(frozen=True)
class Expense:
    category: str
    amount: float
    description: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        if self.category not in EXPENSE_CATEGORIES:
            raise ValueError(f"Unknown expense category: {self.category}")
        if self.amount < 0:
            raise ValueError(f"Expense amount must be non-negative, got {self.amount}")


@dataclass(frozen=True)
class ExpenseAnalysis:
    total_expenses: float
    savings: float
    savings_rate: float  # % of income
    debt_to_income: float  # EMI % of income
    category_totals: dict[str, float]
    recommendations: list[str]
    max_emi: float
    max_loan_amount: float


def _category_total(expenses: list[Expense], category: str) -> float:
    return sum(e.amount for e in expenses if e.category == category)


def analyze_expenses(monthly_income: float, expenses: list[Expense]) -> ExpenseAnalysis:
    if monthly_income <= 0:
        raise ValueError(f"Monthly income must be positive, got {monthly_income}")

    total = sum(e.amount for e in expenses)
    savings = monthly_income - total
    savings_rate = savings / monthly_income * 100
    existing_emi = _category_total(expenses, "EMI")
    debt_to_income = existing_emi / monthly_income * 100
    food_share = _category_total(expenses, "Food") / monthly_income * 100

    recommendations: list[str] = []
    if savings_rate < 20:
        recommendations.append(
            "🚨 Your savings rate is below 20%. Aim to save at least 20% of income."
        )
    if debt_to_income > 40:
        recommendations.append(
            "⚠️ Your EMI-to-income ratio is high. Consider debt consolidation."
        )
    if food_share > 15:
        recommendations.append(
            "💡 Food expenses are high. Consider meal planning to reduce costs."
        )
    if savings_rate >= 30:
        recommendations.append(
            "🌟 Great savings rate! Consider investing surplus in mutual funds."
        )

    max_emi = monthly_income * MAX_EMI_SHARE - existing_emi
    category_totals = {
        category: amount
        for category in EXPENSE_CATEGORIES
        if (amount := _category_total(expenses, category)) > 0
    }

    return ExpenseAnalysis(
        total_expenses=total,
        savings=savings,
        savings_rate=savings_rate,
        debt_to_income=debt_to_income,
        category_totals=category_totals,
        recommendations=recommendations,
        max_emi=max(0.0, max_emi),
        max_loan_amount=max(0.0, max_emi * ELIGIBILITY_MONTHS),
    )
