"""
Regex extraction of loan facts from assistant replies.

This is a heuristic over free text: when a reply mentions several amounts the
wrong one can win. Amounts claimed by the EMI phrase are never taken as the
loan amount; beyond that the first currency mention is used.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import ConversationContext

MIN_LOAN_AMOUNT = 10_000

DEFAULT_APPROVAL_KEYWORDS = (
    "approved",
    "sanctioned",
    "congratulations",
    "sanction letter",
)

_CURRENCY = r"(?:₹|\bRs\.?|\bINR)\s?(\d[\d,]*)"

CURRENCY_RE = re.compile(_CURRENCY, re.IGNORECASE)
EMI_RE = re.compile(r"\bEMI\b[^\n]*?" + _CURRENCY, re.IGNORECASE)
CREDIT_SCORE_RE = re.compile(
    r"\bcredit\s+score\b[^\n]*?(?<![\d,.])(\d{3})(?!\d|,\d)", re.IGNORECASE
)
INTEREST_RATE_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*%\s*(?:per\s+annum|p\.\s?a\b\.?)", re.IGNORECASE
)
TENURE_RE = re.compile(r"(?<![\d.,])(\d+)\s*months?\b", re.IGNORECASE)
NAME_RE = re.compile(
    r"\b(?:Dear|Mr\.|Ms\.|Mrs\.)\s+([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)?)"
)

# Salutations the assistant uses when it does not know the name yet
_GENERIC_NAMES = {"customer", "sir", "madam", "user", "applicant", "friend"}


def _to_int(digits: str) -> int:
    return int(digits.replace(",", ""))


def _find_emi(text: str) -> re.Match[str] | None:
    return EMI_RE.search(text)


def _find_loan_amount(
    text: str, emi_match: re.Match[str] | None, min_amount: int
) -> int | None:
    emi_start = emi_match.start(1) if emi_match else None
    for match in CURRENCY_RE.finditer(text):
        if match.start(1) == emi_start:
            continue
        amount = _to_int(match.group(1))
        return amount if amount > min_amount else None
    return None


def _find_name(text: str) -> str | None:
    for match in NAME_RE.finditer(text):
        name = match.group(1).strip()
        if name.split()[0].lower() not in _GENERIC_NAMES:
            return name
    return None


def extract_context(
    text: str,
    previous: ConversationContext | None = None,
    *,
    min_loan_amount: int = MIN_LOAN_AMOUNT,
) -> ConversationContext:
    """
    Scan a completed assistant reply and merge what it mentions.

    Fields without a match keep their previous value. The customer name is
    only filled in once.
    """
    previous = previous or ConversationContext()
    updates: dict[str, object] = {}

    emi_match = _find_emi(text)
    if emi_match:
        updates["emi"] = _to_int(emi_match.group(1))

    loan_amount = _find_loan_amount(text, emi_match, min_loan_amount)
    if loan_amount is not None:
        updates["loan_amount"] = loan_amount

    if match := CREDIT_SCORE_RE.search(text):
        updates["credit_score"] = int(match.group(1))

    if match := INTEREST_RATE_RE.search(text):
        updates["interest_rate"] = float(match.group(1))

    if match := TENURE_RE.search(text):
        updates["tenure"] = int(match.group(1))

    if previous.customer_name is None and (name := _find_name(text)):
        updates["customer_name"] = name

    return previous.merge(updates)


def contains_approval(
    text: str, keywords: Iterable[str] = DEFAULT_APPROVAL_KEYWORDS
) -> bool:
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)
