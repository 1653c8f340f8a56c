from schemas.application import (
    ApplicationCreate,
    ApplicationFilter,
    ApplicationStatus,
    ChatRequest,
    ChatTurn,
    ContractResponse,
    DocumentAnalysisResult,
    LoanApplication,
    QuoteRequest,
    QuoteResponse,
    VerificationResult,
)
from schemas.country import CountryConfig
from schemas.user import CompanyProfile, LoginRequest, OtpVerify, PasswordSet, User, UserCreate, UserRole

__all__ = [
    "ApplicationCreate",
    "ApplicationFilter",
    "ApplicationStatus",
    "ChatRequest",
    "ChatTurn",
    "CompanyProfile",
    "ContractResponse",
    "CountryConfig",
    "DocumentAnalysisResult",
    "LoanApplication",
    "LoginRequest",
    "OtpVerify",
    "PasswordSet",
    "QuoteRequest",
    "QuoteResponse",
    "User",
    "UserCreate",
    "UserRole",
    "VerificationResult",
]
