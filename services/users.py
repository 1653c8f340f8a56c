"""
User registration, OTP verification, passwords and login.

OTP checking sits behind the OtpVerifier interface; the bundled StaticOtpVerifier
accepts one configured code and is meant for demos only.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import Protocol

from schemas.user import User, UserCreate, UserRole
from services.countries import get_country
from services.errors import RegistrationError, Unauthorized, ValidationError
from services.registry import Registry

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
PBKDF2_ITERATIONS = 200_000


class OtpVerifier(Protocol):
    async def verify(self, user: User, code: str) -> bool: ...


class StaticOtpVerifier:
    def __init__(self, code: str) -> None:
        self.code = code

    async def verify(self, user: User, code: str) -> bool:
        return hmac.compare_digest(code or "", self.code)


def hash_password(password: str, salt: bytes | None = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt.hex()}${digest.hex()}"


def check_password(password: str, encoded: str | None) -> bool:
    if not encoded:
        return False
    try:
        _algo, iterations, salt_hex, digest_hex = encoded.split("$")
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt_hex), int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(digest.hex(), digest_hex)


class UserService:
    def __init__(self, registry: Registry, otp_verifier: OtpVerifier) -> None:
        self.registry = registry
        self.otp_verifier = otp_verifier

    async def register(self, body: UserCreate) -> User:
        country = get_country(body.country)
        if body.role == UserRole.ADMIN:
            raise RegistrationError("Administrator accounts cannot be self-registered")
        if body.role == UserRole.AGENT_COMPANY and body.company is None:
            raise RegistrationError("Corporate agents must provide company details")
        if await self.registry.find_user(mobile=body.mobile, national_id=body.national_id) is not None:
            raise RegistrationError("Mobile number or national ID already registered")
        user = User(
            id=self.registry.new_user_id(),
            mobile=body.mobile,
            national_id=body.national_id,
            name=body.name,
            country=country.code,
            role=body.role,
            company=body.company if body.role == UserRole.AGENT_COMPANY else None,
            created_at=datetime.now(timezone.utc),
        )
        return await self.registry.insert_user(user)

    async def verify_otp(self, user_id: str, code: str) -> User:
        user = await self.registry.get_user(user_id)
        if not await self.otp_verifier.verify(user, code):
            raise ValidationError("Invalid OTP")
        return await self.registry.update_user(user_id, is_verified=True)

    async def set_password(self, user_id: str, password: str) -> User:
        user = await self.registry.get_user(user_id)
        if not user.is_verified:
            raise ValidationError("Verify your mobile number before setting a password")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return await self.registry.update_user(user_id, password_hash=hash_password(password))

    async def login(self, mobile: str, password: str) -> User:
        user = await self.registry.find_user(mobile=mobile)
        if user is None or not check_password(password, user.password_hash):
            logger.warning("Failed login for mobile %s", mobile)
            raise Unauthorized("Invalid mobile number or password")
        return user

    async def get(self, user_id: str) -> User:
        return await self.registry.get_user(user_id)

    async def ensure_admin(self, mobile: str, password: str, name: str, country: str = "MY") -> User:
        """Create the administrator account if it does not exist yet."""
        existing = await self.registry.find_user(mobile=mobile)
        if existing is not None:
            return existing
        admin = User(
            id=self.registry.new_user_id(),
            mobile=mobile,
            national_id=f"ADMIN-{mobile}",
            name=name,
            country=country,
            role=UserRole.ADMIN,
            is_verified=True,
            password_hash=hash_password(password),
            created_at=datetime.now(timezone.utc),
        )
        logger.info("Seeded administrator account %s", admin.id)
        return await self.registry.insert_user(admin)
