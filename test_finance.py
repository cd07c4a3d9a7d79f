#!/usr/bin/env python3
"""
Tests for the loan calculators: EMI and lender comparison, credit score
simulator, expense analyzer, EMI calendar and SIP portfolio.
"""

from datetime import date

import pytest

from loan_assistant.finance import (
    ALLOCATIONS,
    FUNDS,
    LENDERS,
    CreditProfile,
    EMICalendar,
    EMIEntry,
    Expense,
    SavingsGoal,
    allocate,
    amortization_schedule,
    analyze_expenses,
    best_offer,
    calculate_emi,
    calculate_score,
    compare_lenders,
    estimated_interest_rate,
    factor_breakdown,
    funds_for,
    project_sip_value,
    savings_against_best,
    score_category,
    total_interest,
)


class TestEMI:

    def test_known_value(self):
        # 1 lakh at 12% for a year
        assert calculate_emi(100000, 12, 12) == 8885

    def test_zero_rate_splits_evenly(self):
        assert calculate_emi(120000, 0, 12) == 10000
        assert total_interest(120000, 0, 12) == 0

    def test_longer_tenure_lowers_emi_raises_interest(self):
        short = calculate_emi(500000, 11.5, 24)
        long = calculate_emi(500000, 11.5, 60)

        assert long < short
        assert total_interest(500000, 11.5, 60) > total_interest(500000, 11.5, 24)

    def test_total_interest_uses_rounded_emi(self):
        emi = calculate_emi(500000, 11.5, 36)
        assert total_interest(500000, 11.5, 36) == emi * 36 - 500000

    @pytest.mark.parametrize("principal,rate,months", [
        (-1, 10, 12),
        (100000, -0.5, 12),
        (100000, 10, 0),
    ])
    def test_invalid_terms(self, principal, rate, months):
        with pytest.raises(ValueError):
            calculate_emi(principal, rate, months)

    def test_amortization_pays_off_the_loan(self):
        rows = amortization_schedule(100000, 12, 12)

        assert len(rows) == 12
        assert [r.month for r in rows] == list(range(1, 13))
        assert rows[0].interest == 1000.0
        assert rows[-1].balance == pytest.approx(0, abs=10)
        assert sum(r.principal for r in rows) == pytest.approx(100000, abs=10)
        # Interest share shrinks as the balance falls
        assert rows[0].interest > rows[-1].interest


class TestLenderComparison:

    def test_default_pair(self):
        offers = compare_lenders(500000, 36)

        assert [o.lender.id for o in offers] == ["tata", "hdfc"]
        tata = offers[0]
        assert tata.emi == calculate_emi(500000, 10.5, 36)
        assert tata.processing_amount == 7500
        assert tata.total_payable == 500000 + tata.total_interest + 7500

    def test_best_offer_is_cheapest(self):
        offers = compare_lenders(500000, 36, ["hdfc", "sbi", "tata", "icici"])
        best = best_offer(offers)

        assert best.total_payable == min(o.total_payable for o in offers)
        savings = savings_against_best(offers)
        assert savings[best.lender.id] == 0
        assert all(v >= 0 for v in savings.values())

    def test_duplicate_ids_are_collapsed(self):
        offers = compare_lenders(200000, 12, ["sbi", "sbi", "tata"])
        assert [o.lender.id for o in offers] == ["sbi", "tata"]

    def test_at_most_four_lenders(self):
        assert len(LENDERS) == 4
        with pytest.raises(ValueError, match="At most 4"):
            compare_lenders(200000, 12, ["tata", "hdfc", "icici", "sbi", "axis"])

    def test_unknown_lender(self):
        with pytest.raises(ValueError, match="axis"):
            compare_lenders(200000, 12, ["tata", "axis"])

    def test_no_offers(self):
        assert best_offer([]) is None
        assert savings_against_best([]) == {}


class TestCreditScore:

    def test_default_profile(self):
        score = calculate_score(CreditProfile())

        assert score == 722
        assert score_category(score) == "Good"
        assert estimated_interest_rate(score) == 12.5

    def test_bounds(self):
        best = CreditProfile(payment_history=100, credit_utilization=0,
                             credit_age=20, credit_mix=8, new_credit=0)
        worst = CreditProfile(payment_history=0, credit_utilization=100,
                              credit_age=0, credit_mix=0, new_credit=9)

        assert calculate_score(best) == 900
        assert calculate_score(worst) == 300

    @pytest.mark.parametrize("score,category,rate", [
        (820, "Excellent", 10.5),
        (760, "Excellent", 11.5),
        (700, "Good", 12.5),
        (660, "Fair", 14.5),
        (610, "Poor", 16.5),
        (560, "Poor", 18.5),
        (420, "Very Poor", 18.5),
    ])
    def test_categories_and_rates(self, score, category, rate):
        assert score_category(score) == category
        assert estimated_interest_rate(score) == rate

    def test_factor_breakdown(self):
        factors = {f.name: f for f in factor_breakdown(CreditProfile())}

        assert list(factors) == [
            "Payment History",
            "Credit Utilization",
            "Credit Age",
            "Credit Mix",
            "New Credit Inquiries",
        ]
        assert sum(f.weight for f in factors.values()) == 100
        assert factors["Payment History"].impact == "neutral"
        assert factors["Payment History"].suggestion.startswith("Pay all EMIs on time")
        assert factors["Credit Utilization"].impact == "positive"

    def test_poor_utilization_is_negative(self):
        factors = factor_breakdown(CreditProfile(credit_utilization=75, new_credit=5))
        by_name = {f.name: f for f in factors}

        assert by_name["Credit Utilization"].impact == "negative"
        assert "below 30%" in by_name["Credit Utilization"].suggestion
        assert by_name["New Credit Inquiries"].impact == "negative"


class TestExpenses:

    def test_analysis(self):
        expenses = [
            Expense("Housing", 25000),
            Expense("Food", 20000),
            Expense("EMI", 10000, "Car loan"),
            Expense("EMI", 5000, "Phone"),
        ]
        analysis = analyze_expenses(100000, expenses)

        assert analysis.total_expenses == 60000
        assert analysis.savings == 40000
        assert analysis.savings_rate == 40
        assert analysis.debt_to_income == 15
        assert analysis.category_totals == {"Housing": 25000, "Food": 20000, "EMI": 15000}
        assert analysis.max_emi == 35000
        assert analysis.max_loan_amount == 35000 * 60
        assert any("Food expenses are high" in r for r in analysis.recommendations)
        assert any("Great savings rate" in r for r in analysis.recommendations)

    def test_overextended_budget(self):
        expenses = [Expense("EMI", 45000), Expense("Housing", 50000)]
        analysis = analyze_expenses(90000, expenses)

        assert analysis.savings < 0
        assert analysis.max_emi == 0
        assert analysis.max_loan_amount == 0
        assert any("savings rate is below 20%" in r for r in analysis.recommendations)
        assert any("EMI-to-income ratio is high" in r for r in analysis.recommendations)

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            Expense("Gadgets", 100)
        with pytest.raises(ValueError):
            Expense("Food", -1)
        with pytest.raises(ValueError):
            analyze_expenses(0, [])


class TestEMICalendar:

    def make_calendar(self) -> EMICalendar:
        return EMICalendar([
            EMIEntry("Home Loan", 25000, 5),
            EMIEntry("Car Loan", 12000, 20),
            EMIEntry("Personal Loan", 8000, 12),
            EMIEntry("Gold Loan", 3000, 15),
            EMIEntry("Card EMI", 2000, 31),
        ])

    def test_monthly_total(self):
        assert self.make_calendar().monthly_total == 50000

    def test_upcoming(self):
        upcoming = self.make_calendar().upcoming(today=date(2024, 4, 10))
        assert [e.due_day for e in upcoming] == [12, 15, 20]

    def test_upcoming_includes_today(self):
        upcoming = self.make_calendar().upcoming(today=date(2024, 4, 20), limit=5)
        assert [e.due_day for e in upcoming] == [20, 31]

    def test_month_grid(self):
        grid = self.make_calendar().month_grid(2024, 4)

        assert all(len(week) == 7 for week in grid)
        # April 2024 starts on a Monday
        assert [day for day, _ in grid[0]][:2] == [0, 1]

        due = {day: [e.name for e in entries] for week in grid for day, entries in week if day}
        assert due[5] == ["Home Loan"]
        # No 31st in April: the EMI lands on the 30th
        assert due[30] == ["Card EMI"]
        assert sum(len(names) for names in due.values()) == 5

    def test_invalid_due_day(self):
        with pytest.raises(ValueError):
            EMIEntry("Bad", 100, 0)
        with pytest.raises(ValueError):
            EMIEntry("Bad", 100, 32)


class TestPortfolio:

    def test_sip_projection(self):
        # 5,000 a month for five years at 12% p.a.
        assert project_sip_value(5000) == 412432
        assert project_sip_value(5000, 12.0, 60) == 412432

    def test_sip_grows_with_horizon_and_rate(self):
        assert project_sip_value(5000, 12.0, 120) > project_sip_value(5000, 12.0, 60)
        assert project_sip_value(5000, 14.0, 60) > project_sip_value(5000, 12.0, 60)

    def test_zero_rate_sip_is_contributions(self):
        assert project_sip_value(5000, 0, 60) == 300000

    @pytest.mark.parametrize("monthly,rate,months", [
        (-1, 12, 60),
        (5000, -1, 60),
        (5000, 12, 0),
    ])
    def test_invalid_sip_terms(self, monthly, rate, months):
        with pytest.raises(ValueError):
            project_sip_value(monthly, rate, months)

    def test_allocation_rows_sum_to_100(self):
        assert set(ALLOCATIONS) == {"conservative", "moderate", "aggressive"}
        assert all(sum(row.values()) == 100 for row in ALLOCATIONS.values())

    def test_allocate_moderate(self):
        assert allocate(10000) == {"Equity": 5500, "Debt": 1500, "Hybrid": 2000, "Gold": 1000}

    def test_profiles_shift_equity(self):
        conservative = allocate(10000, "conservative")
        aggressive = allocate(10000, "aggressive")

        assert conservative["Equity"] < aggressive["Equity"]
        assert conservative["Debt"] > aggressive["Debt"]

    def test_unknown_profile(self):
        with pytest.raises(ValueError, match="reckless"):
            allocate(10000, "reckless")

    def test_funds_by_asset_class(self):
        assert len(FUNDS) == 5
        assert [f.name for f in funds_for("Equity")] == [
            "Tata Index Nifty 50",
            "Tata Large Cap Fund",
        ]
        assert funds_for("Crypto") == []

    def test_savings_goal(self):
        goal = SavingsGoal("Emergency Fund", target=300000, current=125000)

        assert goal.progress == pytest.approx(41.67, abs=0.01)
        assert goal.monthly_required(12) == 14583
        assert SavingsGoal("Done", 1000, 1500).progress == 100.0
        assert SavingsGoal("Done", 1000, 1500).monthly_required(6) == 0
