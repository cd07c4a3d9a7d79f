"""
AI gateway integration.

This package provides the HTTP side of the assistant:
- Typed wire models for every gateway endpoint
- Incremental SSE parsing of the chat completion stream
- An error taxonomy that call sites convert into toasts or chat fallbacks

The client lives in `loan_assistant.gateway.client`.
"""

from __future__ import annotations

from .exceptions import (
    GatewayError,
    GatewayHTTPError,
    MissingBodyError,
    PaymentRequiredError,
    RateLimitError,
    ResponseParseError,
    TransportError,
)
from .models import (
    CreditFactors,
    DocumentAnalysis,
    DocumentType,
    DocumentUpload,
    IncomeDetails,
    SanctionLetterRequest,
    SanctionLetterResult,
    ValidationResult,
)

__all__ = [
    # Models
    "CreditFactors",
    "DocumentAnalysis",
    "DocumentType",
    "DocumentUpload",
    # Exceptions
    "GatewayError",
    "GatewayHTTPError",
    "IncomeDetails",
    "MissingBodyError",
    "PaymentRequiredError",
    "RateLimitError",
    "ResponseParseError",
    "SanctionLetterRequest",
    "SanctionLetterResult",
    "TransportError",
    "ValidationResult",
]
