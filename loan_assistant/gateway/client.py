"""
HTTP client for the hosted AI gateway.

All assistant intelligence lives behind four endpoints: the streamed chat
completion, single-document validation, multi-document credit analysis and
sanction-letter generation. This client owns the connection pool, the bearer
credential and the mapping of HTTP failures onto GatewayError.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Any

import httpx

from loan_assistant.logging_utils import handle_gateway_errors

from .exceptions import (
    HTTP_PAYMENT_REQUIRED,
    HTTP_TOO_MANY_REQUESTS,
    GatewayError,
    GatewayHTTPError,
    MissingBodyError,
    PaymentRequiredError,
    RateLimitError,
    ResponseParseError,
    TransportError,
)
from .models import (
    DocumentAnalysis,
    DocumentUpload,
    SanctionLetterRequest,
    SanctionLetterResult,
    ValidationResult,
)
from .streaming.parser import SSEFrameParser

logger = logging.getLogger(__name__)

HTTP_NO_CONTENT = 204
REQUIRED_ENDPOINTS = (
    "chat", "validate_document", "analyze_documents", "generate_sanction_letter"
)


def build_timeout(http_config: dict[str, Any]) -> httpx.Timeout:
    """Build an httpx.Timeout from the http_client section; None disables a limit."""
    return httpx.Timeout(
        connect=http_config.get("connect_timeout"),
        read=http_config.get("read_timeout"),
        write=http_config.get("write_timeout"),
        pool=http_config.get("pool_timeout"),
    )


class GatewayClient:
    """HTTP client for the AI gateway with SSE streaming support."""

    def __init__(
        self,
        config: dict[str, Any],
        api_key: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        # Validate required configuration parameters
        if "base_url" not in config:
            raise ValueError(
                "Required gateway configuration parameter 'base_url' not found."
            )
        endpoints = config.get("endpoints", {})
        for name in REQUIRED_ENDPOINTS:
            if name not in endpoints:
                raise ValueError(
                    f"Required gateway endpoint '{name}' not found. "
                    "All endpoints must be explicitly configured."
                )

        http_config = config.get("http_client", {})

        self.config: dict[str, Any] = config
        self.endpoints: dict[str, str] = endpoints
        self.client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=config["base_url"],
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=build_timeout(http_config),
            limits=httpx.Limits(
                max_connections=http_config.get("max_connections", 20),
                max_keepalive_connections=http_config.get("max_keepalive", 10),
            ),
            transport=transport,
        )

    async def stream_chat(
        self,
        messages: list[dict[str, str]],
        conversation_context: dict[str, Any] | None = None,
    ) -> AsyncGenerator[str]:
        """
        Stream a chat completion, yielding content deltas in arrival order.

        Reading stops at the end sentinel; whatever is still buffered when the
        body ends gets one final parse pass.
        """
        endpoint = self.endpoints["chat"]
        payload = {
            "messages": messages,
            "conversationContext": conversation_context or {},
        }
        parser = SSEFrameParser()

        try:
            async with self.client.stream("POST", endpoint, json=payload) as response:
                if not response.is_success:
                    await response.aread()
                    raise self._status_error(response, "chat")

                if (
                    response.status_code == HTTP_NO_CONTENT
                    or response.headers.get("content-length") == "0"
                ):
                    raise MissingBodyError(
                        "Chat response has no body", endpoint="chat",
                        status_code=response.status_code,
                    )

                received = 0
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    for frame in parser.feed(chunk):
                        if delta := frame.content_delta:
                            yield delta
                    if parser.done:
                        break

                if received == 0:
                    raise MissingBodyError(
                        "Chat response body was empty", endpoint="chat",
                        status_code=response.status_code,
                    )

                for frame in parser.finish():
                    if delta := frame.content_delta:
                        yield delta

        except GatewayError:
            raise
        except httpx.HTTPError as e:
            logger.error(f"HTTP error during streaming: {e}")
            raise TransportError(f"HTTP error: {e!s}", endpoint="chat") from e

        logger.debug("Chat stream finished: %s", parser.get_stats())

    @handle_gateway_errors("validate document", endpoint="validate_document")
    async def validate_document(self, upload: DocumentUpload) -> ValidationResult:
        """Run OCR validation of a single KYC document."""
        payload = {
            "documentType": upload.document_type,
            "fileName": upload.file_name,
            "fileType": upload.file_type,
            "base64Data": upload.base64_data,
        }
        data = await self._post_json("validate_document", json=payload)
        return ValidationResult.model_validate(data)

    @handle_gateway_errors("analyze documents", endpoint="analyze_documents")
    async def analyze_documents(
        self,
        customer_name: str = "Customer",
        requested_amount: int = 500000,
        *,
        pan: DocumentUpload | None = None,
        aadhaar: DocumentUpload | None = None,
        income: DocumentUpload | None = None,
    ) -> DocumentAnalysis:
        """Submit up to three documents for a combined credit assessment."""
        files = {
            field: (upload.file_name, upload.data, upload.file_type)
            for field, upload in (
                ("panDocument", pan),
                ("aadhaarDocument", aadhaar),
                ("incomeDocument", income),
            )
            if upload is not None
        }
        form = {
            "customerName": customer_name,
            "requestedAmount": str(int(requested_amount)),
        }
        data = await self._post_json("analyze_documents", data=form, files=files or None)
        return DocumentAnalysis.model_validate(data)

    @handle_gateway_errors("generate sanction letter", endpoint="generate_sanction_letter")
    async def generate_sanction_letter(
        self, request: SanctionLetterRequest
    ) -> SanctionLetterResult:
        """Ask the backend to render, store and record the sanction letter."""
        data = await self._post_json(
            "generate_sanction_letter", json=request.to_payload()
        )
        return SanctionLetterResult.model_validate(data)

    async def _post_json(self, name: str, **kwargs: Any) -> dict[str, Any]:
        response = await self.client.post(self.endpoints[name], **kwargs)
        if not response.is_success:
            raise self._status_error(response, name)
        if not response.content:
            raise MissingBodyError(
                f"{name} response has no body", endpoint=name,
                status_code=response.status_code,
            )

        data = response.json()
        if not isinstance(data, dict):
            raise ResponseParseError(
                f"Expected JSON object from {name}, got {type(data).__name__}",
                endpoint=name,
                status_code=response.status_code,
            )
        return data

    @staticmethod
    def _status_error(response: httpx.Response, name: str) -> GatewayHTTPError:
        """Map a non-2xx response onto the matching exception."""
        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text}
        if not isinstance(body, dict):
            body = {"raw": body}

        detail = body.get("error") or f"HTTP {response.status_code}"
        message = f"{name} request failed ({response.status_code}): {detail}"
        common = {
            "endpoint": name,
            "status_code": response.status_code,
            "response_data": body,
        }

        if response.status_code == HTTP_TOO_MANY_REQUESTS:
            retry_after = response.headers.get("retry-after")
            try:
                retry_seconds = float(retry_after) if retry_after else None
            except ValueError:
                retry_seconds = None
            return RateLimitError(message, retry_after=retry_seconds, **common)
        if response.status_code == HTTP_PAYMENT_REQUIRED:
            return PaymentRequiredError(message, **common)
        return GatewayHTTPError(message, **common)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> GatewayClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
