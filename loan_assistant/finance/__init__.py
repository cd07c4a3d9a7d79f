"""Loan calculators: EMI, lender comparison, credit score, budget, EMI calendar, SIP."""

from .emi_calendar import EMICalendar, EMIEntry
from .credit import (
    CreditFactor,
    CreditProfile,
    calculate_score,
    estimated_interest_rate,
    factor_breakdown,
    score_category,
)
from .emi import (
    LENDERS,
    AmortizationRow,
    Lender,
    LoanOffer,
    amortization_schedule,
    best_offer,
    calculate_emi,
    compare_lenders,
    savings_against_best,
    total_interest,
)
from .expenses import Expense, ExpenseAnalysis, analyze_expenses
from .portfolio import (
    ALLOCATIONS,
    FUNDS,
    Fund,
    SavingsGoal,
    allocate,
    funds_for,
    project_sip_value,
)

__all__ = [
    "ALLOCATIONS",
    "FUNDS",
    "LENDERS",
    "AmortizationRow",
    "CreditFactor",
    "CreditProfile",
    "EMICalendar",
    "EMIEntry",
    "Expense",
    "ExpenseAnalysis",
    "Fund",
    "Lender",
    "LoanOffer",
    "SavingsGoal",
    "allocate",
    "amortization_schedule",
    "analyze_expenses",
    "best_offer",
    "calculate_emi",
    "calculate_score",
    "compare_lenders",
    "estimated_interest_rate",
    "factor_breakdown",
    "funds_for",
    "project_sip_value",
    "savings_against_best",
    "score_category",
    "total_interest",
]
