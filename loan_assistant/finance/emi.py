"""
EMI arithmetic and lender comparison.

Amounts are rupees. EMIs are rounded to whole rupees the way lenders quote
them; schedules and totals are derived from the rounded EMI.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

MAX_COMPARED_LENDERS = 4


@dataclass(frozen=True)
class Lender:
    """A lender's published personal-loan terms."""
    id: str
    name: str
    interest_rate: float  # % per annum
    processing_fee: float  # % of principal
    max_tenure: int  # months


@dataclass(frozen=True)
class LoanOffer:
    """One lender's cost for a given amount and tenure."""
    lender: Lender
    emi: int
    total_interest: int
    processing_amount: int
    total_payable: int


@dataclass(frozen=True)
class AmortizationRow:
    month: int
    emi: int
    principal: float
    interest: float
    balance: float  # outstanding after this month's payment


LENDERS: dict[str, Lender] = {
    lender.id: lender
    for lender in (
        Lender("tata", "Tata Capital", 10.5, 1.5, 60),
        Lender("hdfc", "HDFC Bank", 11.25, 2.0, 60),
        Lender("icici", "ICICI Bank", 11.0, 1.75, 60),
        Lender("sbi", "SBI", 10.75, 1.0, 72),
    )
}


def _check_terms(principal: float, annual_rate: float, months: int) -> None:
    if principal < 0:
        raise ValueError(f"Principal must be non-negative, got {principal}")
    if annual_rate < 0:
        raise ValueError(f"Interest rate must be non-negative, got {annual_rate}")
    if months <= 0:
        raise ValueError(f"Tenure must be at least one month, got {months}")


def calculate_emi(principal: float, annual_rate: float, months: int) -> int:
    """
    Equated monthly instalment for a reducing-balance loan.

        EMI = P * r * (1 + r)^n / ((1 + r)^n - 1),  r = annual_rate / 12 / 100

    A zero rate splits the principal evenly across the tenure.
    """
    _check_terms(principal, annual_rate, months)
    monthly_rate = annual_rate / 12 / 100
    if monthly_rate == 0:
        return round(principal / months)

    growth = (1 + monthly_rate) ** months
    return round(principal * monthly_rate * growth / (growth - 1))


def total_interest(principal: float, annual_rate: float, months: int) -> int:
    return calculate_emi(principal, annual_rate, months) * months - round(principal)


def amortization_schedule(
    principal: float, annual_rate: float, months: int
) -> list[AmortizationRow]:
    """Month-by-month split of each EMI into interest and principal."""
    emi = calculate_emi(principal, annual_rate, months)
    monthly_rate = annual_rate / 12 / 100
    balance = float(principal)
    rows: list[AmortizationRow] = []

    for month in range(1, months + 1):
        interest = balance * monthly_rate
        repaid = emi - interest
        balance = max(0.0, balance - repaid)
        rows.append(AmortizationRow(
            month=month,
            emi=emi,
            principal=round(repaid, 2),
            interest=round(interest, 2),
            balance=round(balance, 2),
        ))

    return rows


def quote(lender: Lender, amount: float, months: int) -> LoanOffer:
    interest = total_interest(amount, lender.interest_rate, months)
    processing = round(amount * lender.processing_fee / 100)
    return LoanOffer(
        lender=lender,
        emi=calculate_emi(amount, lender.interest_rate, months),
        total_interest=interest,
        processing_amount=processing,
        total_payable=round(amount) + interest + processing,
    )


def compare_lenders(
    amount: float,
    months: int,
    lender_ids: Iterable[str] = ("tata", "hdfc"),
) -> list[LoanOffer]:
    """Quote up to four lenders side by side, in the order requested."""
    ids = list(dict.fromkeys(lender_ids))
    if len(ids) > MAX_COMPARED_LENDERS:
        raise ValueError(
            f"At most {MAX_COMPARED_LENDERS} lenders can be compared, got {len(ids)}"
        )

    unknown = [lender_id for lender_id in ids if lender_id not in LENDERS]
    if unknown:
        raise ValueError(f"Unknown lender(s): {', '.join(unknown)}")

    return [quote(LENDERS[lender_id], amount, months) for lender_id in ids]


def best_offer(offers: list[LoanOffer]) -> LoanOffer | None:
    """Cheapest offer by total payable; the first one wins a tie."""
    if not offers:
        return None
    return min(offers, key=lambda offer: offer.total_payable)


def savings_against_best(offers: list[LoanOffer]) -> dict[str, int]:
    best = best_offer(offers)
    if best is None:
        return {}
    return {
        offer.lender.id: offer.total_payable - best.total_payable for offer in offers
    }
