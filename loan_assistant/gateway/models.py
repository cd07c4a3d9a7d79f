"""
Wire models for the AI gateway endpoints.

The gateway speaks camelCase JSON; these models expose snake_case attributes
and serialize back with aliases.
"""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DocumentType = Literal["pan", "aadhaar", "income"]
RiskLevel = Literal["low", "medium", "high"]


class GatewayModel(BaseModel):
    """Base for camelCase payloads."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class DocumentUpload(BaseModel):
    """A KYC document read into memory, ready to send."""
    document_type: DocumentType
    file_name: str
    file_type: str
    data: bytes

    @classmethod
    def from_path(cls, path: str | Path, document_type: DocumentType) -> DocumentUpload:
        path = Path(path)
        file_type, _ = mimetypes.guess_type(path.name)
        return cls(
            document_type=document_type,
            file_name=path.name,
            file_type=file_type or "application/octet-stream",
            data=path.read_bytes(),
        )

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def size(self) -> int:
        return len(self.data)


class ValidationResult(GatewayModel):
    """Outcome of a single-document validation."""
    is_valid: bool
    confidence: float = Field(ge=0, le=100)
    extracted_data: dict[str, str] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def failed(cls, message: str) -> ValidationResult:
        return cls(is_valid=False, confidence=0, errors=[message])


class IncomeDetails(GatewayModel):
    monthly_income: float
    employment_type: str
    employer: str | None = None


class CreditFactors(GatewayModel):
    """Four sub-scores, each out of 250, summing to the 1000-point score."""
    document_authenticity: float = Field(ge=0, le=250)
    income_stability: float = Field(ge=0, le=250)
    identity_verification: float = Field(ge=0, le=250)
    financial_history: float = Field(ge=0, le=250)

    @property
    def total(self) -> float:
        return (
            self.document_authenticity
            + self.income_stability
            + self.identity_verification
            + self.financial_history
        )


class DocumentAnalysis(GatewayModel):
    """Credit assessment built from the uploaded KYC documents."""
    pan_valid: bool
    pan_number: str | None = None
    aadhaar_valid: bool
    aadhaar_number: str | None = None
    income_details: IncomeDetails | None = None
    credit_score_1000: float = Field(alias="creditScore1000", ge=0, le=1000)
    credit_factors: CreditFactors
    eligible_amount: float
    risk_level: RiskLevel
    recommendations: list[str] = Field(default_factory=list)


class SanctionLetterRequest(GatewayModel):
    customer_name: str
    loan_amount: int
    interest_rate: float
    tenure_months: int
    emi_amount: int
    purpose: str = "Personal Use"
    credit_score: int
    application_id: str


class SanctionLetterResult(GatewayModel):
    success: bool
    url: str
    file_name: str | None = None
