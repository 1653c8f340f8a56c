from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from schemas.base import CamelModel, FrozenCamelModel


class ApplicationStatus(str, Enum):
    DRAFT = "DRAFT"
    DOCUMENTS_PENDING = "DOCUMENTS_PENDING"
    BIOMETRICS_PENDING = "BIOMETRICS_PENDING"
    CONTRACT_PENDING = "CONTRACT_PENDING"
    MATCHING_LENDER = "MATCHING_LENDER"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_DOCUMENTS = "NEEDS_DOCUMENTS"


def _clamp_score(v: Any) -> float:
    return max(0.0, min(100.0, float(v)))


class VerificationResult(FrozenCamelModel):
    is_match: bool
    confidence: float = Field(..., ge=0, le=100)
    reason: str = ""
    extracted_name: Optional[str] = None
    id_type: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, v: Any) -> float:
        return _clamp_score(v)


class DocumentAnalysisResult(FrozenCamelModel):
    document_type: str = "Unknown"
    extracted_income: float = Field(0, ge=0)
    employer_name: str = "Unknown"
    fraud_risk_score: float = Field(..., ge=0, le=100)
    risk_narrative: str = ""
    is_authentic: bool = False

    @field_validator("fraud_risk_score", mode="before")
    @classmethod
    def _clamp(cls, v: Any) -> float:
        return _clamp_score(v)

    @field_validator("extracted_income", mode="before")
    @classmethod
    def _non_negative(cls, v: Any) -> float:
        return max(0.0, float(v or 0))


class LoanApplication(FrozenCamelModel):
    id: str
    user_id: str
    country: str
    amount: float
    months: int
    monthly_payment: float
    status: ApplicationStatus = ApplicationStatus.DRAFT
    document_result: Optional[DocumentAnalysisResult] = None
    verification_result: Optional[VerificationResult] = None
    contract_text: Optional[str] = None
    contract_signed: bool = False
    biometric_attempts: int = 0
    last_biometric_attempt_at: Optional[datetime] = None
    decided_by: Optional[str] = None
    version: int = 0
    submitted_at: datetime
    updated_at: datetime


class ApplicationCreate(CamelModel):
    user_id: str
    amount: float
    months: int


class ApplicationFilter(CamelModel):
    user_id: Optional[str] = None
    status: Optional[ApplicationStatus] = None
    country: Optional[str] = None


class QuoteRequest(CamelModel):
    country: str
    amount: float
    months: int


class QuoteResponse(CamelModel):
    country: str
    currency: str
    amount: float
    months: int
    monthly_payment: float
    total_interest: float
    total_repayment: float
    reference_amount: float


class ChatTurn(CamelModel):
    role: str
    text: str


class ChatRequest(CamelModel):
    message: str = Field(..., min_length=1)
    history: list[ChatTurn] = Field(default_factory=list)
    country: str = "MY"


class ContractResponse(CamelModel):
    application_id: str
    contract_text: str
    available: bool
