"""
Centralized logging and error handling utilities for the loan assistant.

This module provides decorators and helper functions to standardize logging
and error handling patterns across the codebase, so every gateway call site
reports failures the same way and converts them into something the user sees.

Features:
- Structured logging with contextual information
- Gateway error classification into categories and user-facing messages
- Decorator that converts raw client failures into GatewayError
- Performance timing for async operations
"""

from __future__ import annotations

import functools
import json
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ParamSpec, TypeVar

import httpx
import structlog
from pydantic import ValidationError

from loan_assistant.gateway.exceptions import (
    GatewayError,
    MissingBodyError,
    PaymentRequiredError,
    RateLimitError,
    ResponseParseError,
    TransportError,
)
from loan_assistant.notices import Notice

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Type variables for generic decorators
P = ParamSpec("P")
T = TypeVar("T")
AsyncCallable = Callable[P, Awaitable[T]]

logger = structlog.get_logger(__name__)

USER_MESSAGES = {
    "rate_limited": "Rate limit exceeded. Please try again in a moment.",
    "payment_required": "Service temporarily unavailable. Please try again later.",
    "http_error": "The assistant service returned an error.",
    "missing_body": "The assistant service sent an empty response.",
    "parse_error": "Could not read the response from the assistant service.",
    "timeout_error": "The request timed out. Please try again.",
    "transport_error": "Could not reach the assistant service. Check your connection.",
    "unknown_error": "Something went wrong. Please try again.",
}


def configure_logging(logging_config: dict[str, Any]) -> None:
    """Apply the `logging` section of config.yaml to the stdlib root logger."""
    level_name = str(logging_config.get("level", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"logging.level '{level_name}' is not a valid level")

    logging.basicConfig(
        level=level, format="%(asctime)s - %(levelname)s - %(message)s"
    )

    for name in logging_config.get("quiet_loggers", ["httpx", "httpcore"]):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


class GatewayErrorHandler:
    """Centralized gateway error handling with structured logging."""

    @staticmethod
    def classify_error(error: Exception) -> tuple[str, str]:
        """
        Classify an error and return its category and a user-facing message.

        Args:
            error: The exception to classify

        Returns:
            Tuple of (error_category, user_message)
        """
        if isinstance(error, RateLimitError):
            category = "rate_limited"
        elif isinstance(error, PaymentRequiredError):
            category = "payment_required"
        elif isinstance(error, MissingBodyError):
            category = "missing_body"
        elif isinstance(error, ResponseParseError):
            category = "parse_error"
        elif isinstance(error, TransportError):
            cause = error.__cause__
            category = (
                "timeout_error"
                if isinstance(cause, httpx.TimeoutException | TimeoutError)
                else "transport_error"
            )
        elif isinstance(error, GatewayError):
            category = "http_error"
        elif isinstance(error, httpx.TimeoutException | TimeoutError):
            category = "timeout_error"
        elif isinstance(error, httpx.HTTPError | ConnectionError | OSError):
            category = "transport_error"
        elif isinstance(error, ValidationError | json.JSONDecodeError):
            category = "parse_error"
        else:
            category = "unknown_error"
        return category, USER_MESSAGES[category]

    @staticmethod
    def create_gateway_error(
        error: Exception,
        operation: str,
        endpoint: str,
        context: dict[str, Any] | None = None,
    ) -> GatewayError:
        """
        Wrap a raw exception into the matching GatewayError subclass.

        Args:
            error: Original exception
            operation: Description of the operation that failed
            endpoint: Gateway endpoint that was being called
            context: Additional context for logging

        Returns:
            GatewayError carrying the original as its cause
        """
        category, _ = GatewayErrorHandler.classify_error(error)
        context = context or {}

        logger.error(
            "Operation failed",
            operation=operation,
            endpoint=endpoint,
            error_type=type(error).__name__,
            error_category=category,
            error_message=str(error),
            **context,
        )

        message = f"{operation} failed: {error!s}"
        if category == "parse_error":
            return ResponseParseError(message, endpoint=endpoint)
        if category in ("timeout_error", "transport_error"):
            return TransportError(message, endpoint=endpoint)
        return GatewayError(message, endpoint=endpoint)

    @staticmethod
    def to_notice(error: Exception, title: str) -> Notice:
        """Build the toast shown to the user for a failed operation."""
        _, user_message = GatewayErrorHandler.classify_error(error)
        return Notice(level="error", title=title, description=user_message)


def log_operation(
    operation: str,
    *,
    log_args: bool = False,
    log_result: bool = False,
    log_timing: bool = True,
    context: dict[str, Any] | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for logging async operations with structured context.

    Args:
        operation: Description of the operation being performed
        log_args: Whether to log function arguments
        log_result: Whether to log function result
        log_timing: Whether to log execution timing
        context: Additional context to include in logs

    Returns:
        Decorated function with logging
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = logger.bind(
                operation=operation,
                function=func.__name__,
                **(context or {}),
            )

            log_data = {}
            if log_args:
                log_data.update({
                    "args": args[1:] if args else [],  # Skip 'self' if present
                    "kwargs": kwargs,
                })

            operation_logger.info("Operation started", **log_data)

            start_time = time.perf_counter() if log_timing else None

            try:
                result = await func(*args, **kwargs)

                end_log_data: dict[str, Any] = {}
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    end_log_data["duration_ms"] = duration
                if log_result:
                    end_log_data["result"] = result

                operation_logger.info(
                    "Operation completed successfully", **end_log_data
                )
                return result

            except Exception as e:
                error_log_data: dict[str, Any] = {
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                }
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    error_log_data["duration_ms"] = duration

                operation_logger.error("Operation failed", **error_log_data)
                raise

        return wrapper
    return decorator


def handle_gateway_errors(
    operation: str,
    *,
    endpoint: str,
    context: dict[str, Any] | None = None,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for standardized gateway error handling.

    GatewayError instances pass through unchanged; transport and decoding
    failures are wrapped so callers only ever catch GatewayError.

    Args:
        operation: Description of the operation for error context
        endpoint: Gateway endpoint name for error context
        context: Additional context to include in logs

    Returns:
        Decorated function with gateway error handling
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except GatewayError as e:
                logger.error(
                    "Gateway error in operation",
                    operation=operation,
                    endpoint=endpoint,
                    status_code=e.status_code,
                    error_message=str(e),
                    **(context or {}),
                )
                raise
            except (httpx.HTTPError, ValidationError, json.JSONDecodeError) as e:
                raise GatewayErrorHandler.create_gateway_error(
                    e, operation, endpoint, context
                ) from e

        return wrapper
    return decorator


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
):
    """
    Async context manager for operation logging.

    Args:
        operation: Description of the operation
        context: Additional context for logging
        log_timing: Whether to log operation timing

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(
        operation=operation,
        **(context or {}),
    )

    operation_logger.info("Operation started")
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger

        log_data: dict[str, Any] = {}
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            log_data["duration_ms"] = duration

        operation_logger.info("Operation completed successfully", **log_data)

    except Exception as e:
        error_log_data: dict[str, Any] = {
            "error_type": type(e).__name__,
            "error_message": str(e),
        }
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            error_log_data["duration_ms"] = duration

        operation_logger.error("Operation failed", **error_log_data)
        raise


class ContextualLogger:
    """Logger that maintains context across related operations."""

    def __init__(self, base_context: dict[str, Any] | None = None):
        self.base_context = base_context or {}
        self._logger = logger.bind(**self.base_context)

    def bind(self, **context: Any) -> ContextualLogger:
        """Create a new logger with additional context."""
        merged_context = {**self.base_context, **context}
        return ContextualLogger(merged_context)

    def info(self, message: str, **context: Any) -> None:
        self._logger.info(message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._logger.warning(message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._logger.error(message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, **context)
