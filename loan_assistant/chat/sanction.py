"""
One-shot sanction-letter trigger.

A conversation generates its sanction letter at most once. The guard is an
explicit state machine:

    AWAITING_APPROVAL -> GENERATING -> GENERATED
                                   \\-> FAILED

Only `reset()` (a full conversation reset) returns to AWAITING_APPROVAL.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

from loan_assistant.finance.emi import calculate_emi
from loan_assistant.gateway.models import SanctionLetterRequest

from .context_extractor import DEFAULT_APPROVAL_KEYWORDS, contains_approval
from .models import ConversationContext

logger = logging.getLogger(__name__)


class SanctionState(Enum):
    AWAITING_APPROVAL = "awaiting_approval"
    GENERATING = "generating"
    GENERATED = "generated"
    FAILED = "failed"


class SanctionTransitionError(RuntimeError):
    """Raised when a transition is requested from the wrong state."""


class SanctionTrigger:
    """Guards sanction-letter generation for one conversation."""

    def __init__(self, approval_keywords: Iterable[str] = DEFAULT_APPROVAL_KEYWORDS):
        self.approval_keywords = tuple(approval_keywords)
        self.state = SanctionState.AWAITING_APPROVAL
        self.document_url: str | None = None
        self.failure_reason: str | None = None

    def should_fire(self, context: ConversationContext, text: str) -> bool:
        return (
            self.state is SanctionState.AWAITING_APPROVAL
            and context.loan_amount is not None
            and contains_approval(text, self.approval_keywords)
        )

    def begin(self) -> bool:
        """Claim the single generation slot. False if already claimed."""
        if self.state is not SanctionState.AWAITING_APPROVAL:
            return False
        self.state = SanctionState.GENERATING
        return True

    def complete(self, url: str) -> None:
        self._require(SanctionState.GENERATING)
        self.state = SanctionState.GENERATED
        self.document_url = url

    def fail(self, reason: str) -> None:
        self._require(SanctionState.GENERATING)
        self.state = SanctionState.FAILED
        self.failure_reason = reason

    def reset(self) -> None:
        self.state = SanctionState.AWAITING_APPROVAL
        self.document_url = None
        self.failure_reason = None

    @property
    def generated(self) -> bool:
        return self.state is SanctionState.GENERATED

    def _require(self, expected: SanctionState) -> None:
        if self.state is not expected:
            raise SanctionTransitionError(
                f"Expected state {expected.value}, current state is {self.state.value}"
            )


def build_sanction_request(
    context: ConversationContext,
    application_id: str,
    defaults: dict[str, Any],
) -> SanctionLetterRequest:
    """
    Fill the sanction-letter payload from the conversation context.

    Terms the conversation never mentioned fall back to the configured
    defaults; a missing EMI is computed from amount, rate and tenure.
    """
    if context.loan_amount is None:
        raise ValueError("Cannot build a sanction request without a loan amount")

    interest_rate = (
        context.interest_rate
        if context.interest_rate is not None
        else defaults["interest_rate"]
    )
    tenure = context.tenure if context.tenure is not None else defaults["tenure_months"]
    emi = (
        context.emi
        if context.emi is not None
        else calculate_emi(context.loan_amount, interest_rate, tenure)
    )

    return SanctionLetterRequest(
        customer_name=context.customer_name or defaults["customer_name"],
        loan_amount=context.loan_amount,
        interest_rate=interest_rate,
        tenure_months=tenure,
        emi_amount=round(emi),
        purpose=context.purpose or defaults["purpose"],
        credit_score=(
            context.credit_score
            if context.credit_score is not None
            else defaults["credit_score"]
        ),
        application_id=application_id,
    )
