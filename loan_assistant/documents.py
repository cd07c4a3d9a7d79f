"""
KYC document upload and verification.

Documents are validated one at a time as they are picked, then the complete
set (PAN, Aadhaar, income proof) is submitted for a combined credit
assessment. Gateway failures never escape this module: validation degrades
to an invalid result and analysis to a toast.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loan_assistant.gateway.exceptions import GatewayError
from loan_assistant.gateway.models import (
    DocumentAnalysis,
    DocumentType,
    DocumentUpload,
    ValidationResult,
)
from loan_assistant.logging_utils import GatewayErrorHandler, log_operation
from loan_assistant.notices import Notice, Notifier

if TYPE_CHECKING:  # pragma: no cover
    from loan_assistant.gateway.client import GatewayClient

logger = logging.getLogger(__name__)

VALIDATION_FAILED_MESSAGE = "Failed to validate document. Please try again."
DOCUMENT_TYPES: tuple[DocumentType, ...] = ("pan", "aadhaar", "income")


class DocumentRejectedError(ValueError):
    """Raised when a file is not an acceptable KYC upload."""


def check_upload(upload: DocumentUpload, documents_config: dict[str, Any]) -> None:
    """Reject uploads with a disallowed MIME type or over the size cap."""
    accepted = documents_config["accepted_types"]
    if not any(fnmatch.fnmatch(upload.file_type, pattern) for pattern in accepted):
        raise DocumentRejectedError(
            f"{upload.file_name}: file type '{upload.file_type}' is not accepted "
            f"(expected one of {', '.join(accepted)})"
        )

    max_bytes = int(documents_config["max_file_size_mb"] * 1024 * 1024)
    if upload.size > max_bytes:
        raise DocumentRejectedError(
            f"{upload.file_name}: {upload.size} bytes exceeds the "
            f"{documents_config['max_file_size_mb']} MB limit"
        )


def load_document(
    path: str | Path,
    document_type: DocumentType,
    documents_config: dict[str, Any],
) -> DocumentUpload:
    upload = DocumentUpload.from_path(path, document_type)
    check_upload(upload, documents_config)
    return upload


def analysis_context_updates(analysis: DocumentAnalysis) -> dict[str, Any]:
    """Conversation facts implied by a completed analysis."""
    updates: dict[str, Any] = {"kyc_verified": analysis.pan_valid and analysis.aadhaar_valid}
    if analysis.income_details is not None:
        updates["monthly_income"] = round(analysis.income_details.monthly_income)
        updates["employment_type"] = analysis.income_details.employment_type
    return updates


class KycVerifier:
    """Runs document validation and analysis against the gateway."""

    def __init__(self, client: GatewayClient, notify: Notifier | None = None):
        self.client = client
        self.notify = notify
        self.validations: dict[DocumentType, ValidationResult] = {}
        self.uploads: dict[DocumentType, DocumentUpload] = {}
        self.analysis: DocumentAnalysis | None = None
        self._validating: set[DocumentType] = set()
        self.is_analyzing = False

    def is_validating(self, document_type: DocumentType) -> bool:
        return document_type in self._validating

    @property
    def all_documents_valid(self) -> bool:
        return all(
            (result := self.validations.get(t)) is not None and result.is_valid
            for t in DOCUMENT_TYPES
        )

    @log_operation("validate KYC document")
    async def validate(self, upload: DocumentUpload) -> ValidationResult | None:
        """
        Validate one document. Returns None if the same document type is
        already being validated.
        """
        document_type = upload.document_type
        if document_type in self._validating:
            logger.warning(f"Validation of {document_type} already in progress")
            return None

        self._validating.add(document_type)
        try:
            result = await self.client.validate_document(upload)
        except GatewayError as e:
            logger.error(f"Validation of {document_type} failed: {e}")
            result = ValidationResult.failed(VALIDATION_FAILED_MESSAGE)
        finally:
            self._validating.discard(document_type)

        self.uploads[document_type] = upload
        self.validations[document_type] = result
        return result

    @log_operation("analyze KYC documents")
    async def analyze(
        self, customer_name: str, requested_amount: int
    ) -> DocumentAnalysis | None:
        """Submit the validated document set for a credit assessment."""
        if self.is_analyzing:
            logger.warning("Document analysis already in progress")
            return None
        if len(self.uploads) < len(DOCUMENT_TYPES):
            self._notify(Notice(level="error", title="Please upload all three documents"))
            return None
        if not self.all_documents_valid:
            self._notify(Notice(
                level="error",
                title="Please ensure all documents are validated successfully",
            ))
            return None

        self.is_analyzing = True
        try:
            analysis = await self.client.analyze_documents(
                customer_name,
                requested_amount,
                pan=self.uploads["pan"],
                aadhaar=self.uploads["aadhaar"],
                income=self.uploads["income"],
            )
        except GatewayError as e:
            logger.error(f"Document analysis failed: {e}")
            self._notify(GatewayErrorHandler.to_notice(
                e, "Failed to analyze documents. Please try again."
            ))
            return None
        finally:
            self.is_analyzing = False

        self.analysis = self._merge_extracted(analysis)
        self._notify(Notice(
            level="success",
            title="Document analysis complete!",
            description=(
                f"Credit Score: {self.analysis.credit_score_1000:.0f}/1000 "
                f"({self.analysis.risk_level} risk)"
            ),
        ))
        return self.analysis

    def _merge_extracted(self, analysis: DocumentAnalysis) -> DocumentAnalysis:
        # Numbers read during single-document validation win over the analysis
        updates: dict[str, str] = {}
        pan_data = self.validations["pan"].extracted_data
        aadhaar_data = self.validations["aadhaar"].extracted_data
        if pan_number := pan_data.get("PAN Number"):
            updates["pan_number"] = pan_number
        if last_digits := aadhaar_data.get("Last 4 Digits"):
            updates["aadhaar_number"] = last_digits
        return analysis.model_copy(update=updates) if updates else analysis

    def reset(self) -> None:
        self.validations.clear()
        self.uploads.clear()
        self.analysis = None

    def _notify(self, notice: Notice) -> None:
        if self.notify is not None:
            self.notify(notice)
