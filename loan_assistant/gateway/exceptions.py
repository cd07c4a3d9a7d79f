"""
Error taxonomy for AI gateway operations.

Every failure the gateway client can surface maps onto one of these:
- Transport failures (connection refused, DNS, timeouts)
- Non-success HTTP status, with rate-limit and payment-required split out
- A response that carries no body
- A body that cannot be decoded into the expected structure
"""

from __future__ import annotations

HTTP_PAYMENT_REQUIRED = 402
HTTP_TOO_MANY_REQUESTS = 429


class GatewayError(Exception):
    """Base gateway error with request context."""

    def __init__(
        self,
        message: str,
        endpoint: str,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.response_data = response_data or {}


class TransportError(GatewayError):
    """Network-level failure before a response was received."""
    pass


class GatewayHTTPError(GatewayError):
    """Gateway answered with a non-2xx status."""
    pass


class RateLimitError(GatewayHTTPError):
    """Rate limit error with retry information."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class PaymentRequiredError(GatewayHTTPError):
    """Gateway credits exhausted."""
    pass


class MissingBodyError(GatewayError):
    """Response arrived without a body to read."""
    pass


class ResponseParseError(GatewayError):
    """Response body did not match the expected structure."""
    pass
