from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from schemas.base import CamelModel, FrozenCamelModel


class UserRole(str, Enum):
    BORROWER = "BORROWER"
    AGENT_FREELANCE = "AGENT_FREELANCE"
    AGENT_COMPANY = "AGENT_COMPANY"
    ADMIN = "ADMIN"


class CompanyProfile(FrozenCamelModel):
    name: str = Field(..., min_length=1)
    registration_number: str = Field(..., min_length=1, alias="regNo")
    address: str = Field(..., min_length=1)


class User(FrozenCamelModel):
    id: str
    mobile: str
    national_id: str
    name: str
    country: str
    role: UserRole = UserRole.BORROWER
    is_verified: bool = False
    password_hash: Optional[str] = Field(None, exclude=True)
    company: Optional[CompanyProfile] = None
    created_at: datetime


class UserCreate(CamelModel):
    mobile: str = Field(..., min_length=3)
    national_id: str = Field(..., min_length=3)
    name: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2, max_length=2)
    role: UserRole = UserRole.BORROWER
    company: Optional[CompanyProfile] = None


class OtpVerify(CamelModel):
    code: str


class PasswordSet(CamelModel):
    password: str


class LoginRequest(CamelModel):
    mobile: str
    password: str
