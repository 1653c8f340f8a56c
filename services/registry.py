"""
Application Registry: the single source of truth for users and loan applications.

Two interchangeable backends share one async interface:
  - InMemoryRegistry: dicts guarded by a threading.Lock (default, used by tests and demos)
  - SqlRegistry: SQLAlchemy async ORM with an optimistic `version` column

Every write bumps the application's version; writes carrying a stale version
fail with ConcurrentModification so callers can re-read and retry.
"""
from __future__ import annotations

import abc
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from database import init_db, make_sessionmaker
from models import LoanApplicationRow, UserRow
from schemas.application import (
    ApplicationFilter,
    ApplicationStatus,
    DocumentAnalysisResult,
    LoanApplication,
    VerificationResult,
)
from schemas.user import CompanyProfile, User, UserRole
from services.errors import ConcurrentModification, DuplicateId, NotFound

logger = logging.getLogger(__name__)

Mutation = Callable[[LoanApplication], LoanApplication]


def generate_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _matches(app: LoanApplication, flt: Optional[ApplicationFilter]) -> bool:
    if flt is None:
        return True
    if flt.user_id and app.user_id != flt.user_id:
        return False
    if flt.status and app.status != flt.status:
        return False
    if flt.country and app.country != flt.country.upper():
        return False
    return True


class Registry(abc.ABC):
    """Keyed store of users (userId -> User) and applications (appId -> LoanApplication)."""

    def new_application_id(self) -> str:
        return generate_id("app")

    def new_user_id(self) -> str:
        return generate_id("usr")

    # --- users ---

    @abc.abstractmethod
    async def insert_user(self, user: User) -> User: ...

    @abc.abstractmethod
    async def get_user(self, user_id: str) -> User: ...

    @abc.abstractmethod
    async def find_user(self, *, mobile: Optional[str] = None, national_id: Optional[str] = None) -> Optional[User]:
        """First user matching the mobile number or the national ID, if any."""

    @abc.abstractmethod
    async def update_user(
        self, user_id: str, *, is_verified: Optional[bool] = None, password_hash: Optional[str] = None
    ) -> User:
        """Only the verification flag and password hash are mutable."""

    # --- applications ---

    @abc.abstractmethod
    async def insert_application(self, app: LoanApplication) -> LoanApplication: ...

    @abc.abstractmethod
    async def get_application(self, app_id: str) -> LoanApplication: ...

    @abc.abstractmethod
    async def save_application(self, app: LoanApplication) -> LoanApplication:
        """Replace the stored snapshot if its version still equals app.version; returns the stored copy."""

    @abc.abstractmethod
    async def update_status(self, app_id: str, mutate: Mutation) -> LoanApplication:
        """Atomic read-modify-write: apply `mutate` to the current snapshot and store the result."""

    @abc.abstractmethod
    async def list_applications(self, flt: Optional[ApplicationFilter] = None) -> list[LoanApplication]: ...

    async def list_by_user(self, user_id: str) -> list[LoanApplication]:
        return await self.list_applications(ApplicationFilter(user_id=user_id))

    async def list_all(self) -> list[LoanApplication]:
        return await self.list_applications(None)

    async def close(self) -> None:
        return None


class InMemoryRegistry(Registry):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, User] = {}
        self._apps: dict[str, LoanApplication] = {}

    async def insert_user(self, user: User) -> User:
        with self._lock:
            if user.id in self._users:
                raise DuplicateId(f"User {user.id} already exists")
            if any(u.mobile == user.mobile or u.national_id == user.national_id for u in self._users.values()):
                raise DuplicateId(f"User {user.id}: mobile number or national ID already registered")
            self._users[user.id] = user
        return user

    async def get_user(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return user

    async def find_user(self, *, mobile: Optional[str] = None, national_id: Optional[str] = None) -> Optional[User]:
        with self._lock:
            for user in self._users.values():
                if (mobile and user.mobile == mobile) or (national_id and user.national_id == national_id):
                    return user
        return None

    async def update_user(
        self, user_id: str, *, is_verified: Optional[bool] = None, password_hash: Optional[str] = None
    ) -> User:
        changes: dict = {}
        if is_verified is not None:
            changes["is_verified"] = is_verified
        if password_hash is not None:
            changes["password_hash"] = password_hash
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFound(f"User {user_id} not found")
            user = user.model_copy(update=changes)
            self._users[user_id] = user
        return user

    async def insert_application(self, app: LoanApplication) -> LoanApplication:
        with self._lock:
            if app.id in self._apps:
                raise DuplicateId(f"Application {app.id} already exists")
            self._apps[app.id] = app
        return app

    async def get_application(self, app_id: str) -> LoanApplication:
        with self._lock:
            app = self._apps.get(app_id)
        if app is None:
            raise NotFound(f"Application {app_id} not found")
        return app

    async def save_application(self, app: LoanApplication) -> LoanApplication:
        with self._lock:
            current = self._apps.get(app.id)
            if current is None:
                raise NotFound(f"Application {app.id} not found")
            if current.version != app.version:
                logger.warning(
                    "Stale write for %s: expected version %s, stored %s", app.id, app.version, current.version
                )
                raise ConcurrentModification(f"Application {app.id} was modified concurrently; re-read and retry")
            stored = app.model_copy(update={"version": app.version + 1})
            self._apps[app.id] = stored
        return stored

    async def update_status(self, app_id: str, mutate: Mutation) -> LoanApplication:
        # The mutation is synchronous, so holding the lock makes the whole cycle atomic.
        with self._lock:
            current = self._apps.get(app_id)
            if current is None:
                raise NotFound(f"Application {app_id} not found")
            stored = mutate(current).model_copy(update={"version": current.version + 1})
            self._apps[app_id] = stored
        return stored

    async def list_applications(self, flt: Optional[ApplicationFilter] = None) -> list[LoanApplication]:
        with self._lock:
            apps = [a for a in self._apps.values() if _matches(a, flt)]
        return sorted(apps, key=lambda a: a.submitted_at, reverse=True)


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _user_from_row(row: UserRow) -> User:
    return User(
        id=row.id,
        mobile=row.mobile,
        national_id=row.national_id,
        name=row.name,
        country=row.country,
        role=UserRole(row.role),
        is_verified=row.is_verified,
        password_hash=row.password_hash,
        company=CompanyProfile.model_validate(row.company) if row.company else None,
        created_at=_aware(row.created_at),
    )


def _app_from_row(row: LoanApplicationRow) -> LoanApplication:
    return LoanApplication(
        id=row.id,
        user_id=row.user_id,
        country=row.country,
        amount=row.amount,
        months=row.months,
        monthly_payment=row.monthly_payment,
        status=ApplicationStatus(row.status),
        document_result=DocumentAnalysisResult.model_validate(row.document_result) if row.document_result else None,
        verification_result=(
            VerificationResult.model_validate(row.verification_result) if row.verification_result else None
        ),
        contract_text=row.contract_text,
        contract_signed=row.contract_signed,
        biometric_attempts=row.biometric_attempts,
        last_biometric_attempt_at=_aware(row.last_biometric_attempt_at),
        decided_by=row.decided_by,
        version=row.version,
        submitted_at=_aware(row.submitted_at),
        updated_at=_aware(row.updated_at),
    )


def _app_columns(app: LoanApplication) -> dict:
    """Mutable columns of an application, ready for INSERT/UPDATE."""
    return {
        "status": app.status.value,
        "document_result": app.document_result.model_dump(by_alias=False) if app.document_result else None,
        "verification_result": (
            app.verification_result.model_dump(by_alias=False) if app.verification_result else None
        ),
        "contract_text": app.contract_text,
        "contract_signed": app.contract_signed,
        "biometric_attempts": app.biometric_attempts,
        "last_biometric_attempt_at": app.last_biometric_attempt_at,
        "decided_by": app.decided_by,
        "updated_at": app.updated_at,
    }


class SqlRegistry(Registry):
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._sessionmaker = make_sessionmaker(engine)

    async def create_schema(self) -> None:
        await init_db(self._engine)

    async def insert_user(self, user: User) -> User:
        try:
            async with self._sessionmaker() as session, session.begin():
                if await session.get(UserRow, user.id) is not None:
                    raise DuplicateId(f"User {user.id} already exists")
                session.add(
                    UserRow(
                        id=user.id,
                        mobile=user.mobile,
                        national_id=user.national_id,
                        name=user.name,
                        country=user.country,
                        role=user.role.value,
                        is_verified=user.is_verified,
                        password_hash=user.password_hash,
                        company=user.company.model_dump(by_alias=False) if user.company else None,
                        created_at=user.created_at,
                    )
                )
        except IntegrityError as e:
            # Unique mobile / national_id lost a race with a concurrent registration
            raise DuplicateId(f"User {user.id}: mobile number or national ID already registered") from e
        return user

    async def get_user(self, user_id: str) -> User:
        async with self._sessionmaker() as session:
            row = await session.get(UserRow, user_id)
            if row is None:
                raise NotFound(f"User {user_id} not found")
            return _user_from_row(row)

    async def find_user(self, *, mobile: Optional[str] = None, national_id: Optional[str] = None) -> Optional[User]:
        clauses = []
        if mobile:
            clauses.append(UserRow.mobile == mobile)
        if national_id:
            clauses.append(UserRow.national_id == national_id)
        if not clauses:
            return None
        async with self._sessionmaker() as session:
            result = await session.execute(select(UserRow).where(or_(*clauses)).limit(1))
            row = result.scalar_one_or_none()
            return _user_from_row(row) if row else None

    async def update_user(
        self, user_id: str, *, is_verified: Optional[bool] = None, password_hash: Optional[str] = None
    ) -> User:
        async with self._sessionmaker() as session, session.begin():
            row = await session.get(UserRow, user_id)
            if row is None:
                raise NotFound(f"User {user_id} not found")
            if is_verified is not None:
                row.is_verified = is_verified
            if password_hash is not None:
                row.password_hash = password_hash
            await session.flush()
            return _user_from_row(row)

    async def insert_application(self, app: LoanApplication) -> LoanApplication:
        async with self._sessionmaker() as session, session.begin():
            if await session.get(LoanApplicationRow, app.id) is not None:
                raise DuplicateId(f"Application {app.id} already exists")
            session.add(
                LoanApplicationRow(
                    id=app.id,
                    user_id=app.user_id,
                    country=app.country,
                    amount=app.amount,
                    months=app.months,
                    monthly_payment=app.monthly_payment,
                    version=app.version,
                    submitted_at=app.submitted_at,
                    **_app_columns(app),
                )
            )
        return app

    async def get_application(self, app_id: str) -> LoanApplication:
        async with self._sessionmaker() as session:
            row = await session.get(LoanApplicationRow, app_id)
            if row is None:
                raise NotFound(f"Application {app_id} not found")
            return _app_from_row(row)

    async def _compare_and_set(self, session: AsyncSession, app: LoanApplication) -> LoanApplication:
        result = await session.execute(
            update(LoanApplicationRow)
            .where(LoanApplicationRow.id == app.id, LoanApplicationRow.version == app.version)
            .values(version=app.version + 1, **_app_columns(app))
        )
        if result.rowcount == 0:
            if await session.get(LoanApplicationRow, app.id) is None:
                raise NotFound(f"Application {app.id} not found")
            logger.warning("Stale write for %s at version %s", app.id, app.version)
            raise ConcurrentModification(f"Application {app.id} was modified concurrently; re-read and retry")
        return app.model_copy(update={"version": app.version + 1})

    async def save_application(self, app: LoanApplication) -> LoanApplication:
        async with self._sessionmaker() as session, session.begin():
            return await self._compare_and_set(session, app)

    async def update_status(self, app_id: str, mutate: Mutation) -> LoanApplication:
        async with self._sessionmaker() as session, session.begin():
            row = await session.get(LoanApplicationRow, app_id)
            if row is None:
                raise NotFound(f"Application {app_id} not found")
            current = _app_from_row(row)
            changed = mutate(current).model_copy(update={"version": current.version})
            return await self._compare_and_set(session, changed)

    async def list_applications(self, flt: Optional[ApplicationFilter] = None) -> list[LoanApplication]:
        stmt = select(LoanApplicationRow).order_by(LoanApplicationRow.submitted_at.desc())
        if flt is not None:
            if flt.user_id:
                stmt = stmt.where(LoanApplicationRow.user_id == flt.user_id)
            if flt.status:
                stmt = stmt.where(LoanApplicationRow.status == flt.status.value)
            if flt.country:
                stmt = stmt.where(LoanApplicationRow.country == flt.country.upper())
        async with self._sessionmaker() as session:
            result = await session.execute(stmt)
            return [_app_from_row(r) for r in result.scalars().all()]

    async def close(self) -> None:
        await self._engine.dispose()
