"""
Verification Orchestrator: drives one borrower's application through documents,
biometrics and contract signing.

The orchestrator holds no application state of its own; every operation reads the
registry, calls providers, and writes back. Operations on the same application id
are serialized with a per-id lock held for the whole operation (provider call
included), so a queued call is re-evaluated against the state its predecessor left.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from providers.adapters import ProviderAdapters, is_failed_document_analysis, text_fallback
from providers.prompts import TemplateKind
from schemas.application import (
    ApplicationFilter,
    ApplicationStatus,
    ContractResponse,
    DocumentAnalysisResult,
    LoanApplication,
    VerificationResult,
)
from schemas.user import UserRole
from services import state_machine
from services.countries import get_country
from services.errors import (
    BiometricMismatch,
    InvalidStateTransition,
    RetryLimitExceeded,
    Unauthorized,
    ValidationError,
)
from services.locks import KeyedLocks
from services.registry import Registry

logger = logging.getLogger(__name__)

HIGH_FRAUD_RISK_SCORE = 80


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BiometricPolicy:
    """Retry policy for face matching. max_attempts=None means unlimited."""
    max_attempts: Optional[int] = None
    cooldown_seconds: float = 0.0


class VerificationOrchestrator:
    def __init__(
        self,
        registry: Registry,
        providers: ProviderAdapters,
        policy: BiometricPolicy = BiometricPolicy(),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.registry = registry
        self.providers = providers
        self.policy = policy
        self.clock = clock
        self._locks = KeyedLocks()

    def _expect_status(self, app: LoanApplication, *allowed: ApplicationStatus) -> None:
        if app.status not in allowed:
            expected = " or ".join(s.value for s in allowed)
            raise InvalidStateTransition(f"Application {app.id} is {app.status.value}; expected {expected}")

    async def start_application(self, user_id: str, amount: float, months: int) -> LoanApplication:
        """Create the application in DRAFT and open it for documents (DRAFT -> DOCUMENTS_PENDING)."""
        user = await self.registry.get_user(user_id)
        # Agents submit on behalf of their clients; administrators only review
        if user.role == UserRole.ADMIN:
            raise Unauthorized(f"Administrator {user_id} cannot start a loan application")
        now = self.clock()
        draft = state_machine.new_application(
            self.registry.new_application_id(), user.id, user.country, amount, months, now=now
        )
        started = state_machine.transition(draft, ApplicationStatus.DOCUMENTS_PENDING, now=now)
        return await self.registry.insert_application(started)

    async def submit_documents(
        self,
        app_id: str,
        image: bytes,
        device_context: str,
        timeout: Optional[float] = None,
    ) -> DocumentAnalysisResult:
        async with self._locks.hold(app_id):
            app = await self.registry.get_application(app_id)
            if app.status == ApplicationStatus.NEEDS_DOCUMENTS:
                app = state_machine.reopen_for_documents(app, now=self.clock())
            self._expect_status(app, ApplicationStatus.DOCUMENTS_PENDING)

            result = await self.providers.analyze_document(image, get_country(app.country), device_context, timeout)
            with_result = app.model_copy(update={"document_result": result, "updated_at": self.clock()})
            if is_failed_document_analysis(result):
                # No usable analysis: stay in DOCUMENTS_PENDING so the borrower can upload again
                logger.warning("Application %s: document analysis unavailable; awaiting re-upload", app_id)
                await self.registry.save_application(with_result)
                return result
            try:
                advanced = state_machine.transition(with_result, ApplicationStatus.BIOMETRICS_PENDING)
            except ValidationError:
                # Keep the analysis visible for a retry even though status stays put
                await self.registry.save_application(with_result)
                raise
            await self.registry.save_application(advanced)
            if result.fraud_risk_score >= HIGH_FRAUD_RISK_SCORE:
                logger.info("Application %s: high fraud risk score %.0f", app_id, result.fraud_risk_score)
            return result

    def _check_biometric_policy(self, app: LoanApplication, now: datetime) -> None:
        policy = self.policy
        if policy.max_attempts is not None and app.biometric_attempts >= policy.max_attempts:
            raise RetryLimitExceeded(
                f"Application {app.id} reached the limit of {policy.max_attempts} biometric attempts"
            )
        if policy.cooldown_seconds > 0 and app.last_biometric_attempt_at is not None:
            elapsed = (now - app.last_biometric_attempt_at).total_seconds()
            if elapsed < policy.cooldown_seconds:
                raise RetryLimitExceeded(
                    f"Please wait {policy.cooldown_seconds - elapsed:.0f}s before retrying biometric verification"
                )

    async def submit_biometrics(
        self,
        app_id: str,
        id_image: bytes,
        selfie_image: bytes,
        device_context: str,
        timeout: Optional[float] = None,
    ) -> VerificationResult:
        """
        Face-match the ID against the selfie. A mismatch (or a provider failure, which
        reads as one) is stored and returned without advancing; the borrower may retry.
        A match advances to CONTRACT_PENDING and drafts the contract straight away.
        """
        async with self._locks.hold(app_id):
            app = await self.registry.get_application(app_id)
            self._expect_status(app, ApplicationStatus.BIOMETRICS_PENDING)
            now = self.clock()
            self._check_biometric_policy(app, now)

            result = await self.providers.match_face(
                id_image, selfie_image, get_country(app.country), device_context, timeout
            )
            attempted = app.model_copy(
                update={
                    "verification_result": result,
                    "biometric_attempts": app.biometric_attempts + 1,
                    "last_biometric_attempt_at": now,
                    "updated_at": self.clock(),
                }
            )
            try:
                advanced = state_machine.transition(attempted, ApplicationStatus.CONTRACT_PENDING)
            except BiometricMismatch as e:
                logger.info("Application %s: %s (attempt %d)", app_id, e.message, attempted.biometric_attempts)
                await self.registry.save_application(attempted)
                return result
            saved = await self.registry.save_application(advanced)
            await self._draft_contract(saved, timeout)
            return result

    async def _draft_contract(self, app: LoanApplication, timeout: Optional[float]) -> ContractResponse:
        user = await self.registry.get_user(app.user_id)
        country = get_country(app.country)
        params = {
            "name": user.name,
            "national_id": user.national_id,
            "amount": app.amount,
            "months": app.months,
            "monthly_payment": app.monthly_payment,
            "country": country.code,
            "currency_symbol": country.currency_symbol,
            "governing_law": country.governing_law,
        }
        text = await self.providers.generate_text(TemplateKind.LOAN_AGREEMENT, params, timeout)
        if text == text_fallback(TemplateKind.LOAN_AGREEMENT):
            logger.warning("Application %s: contract drafting unavailable; borrower may request it again", app.id)
            return ContractResponse(application_id=app.id, contract_text=text, available=False)
        await self.registry.save_application(app.model_copy(update={"contract_text": text, "updated_at": self.clock()}))
        return ContractResponse(application_id=app.id, contract_text=text, available=True)

    async def generate_contract(self, app_id: str, timeout: Optional[float] = None) -> ContractResponse:
        """Return the drafted contract, drafting it first if an earlier attempt produced nothing."""
        async with self._locks.hold(app_id):
            app = await self.registry.get_application(app_id)
            self._expect_status(app, ApplicationStatus.CONTRACT_PENDING)
            if app.contract_text:
                return ContractResponse(application_id=app.id, contract_text=app.contract_text, available=True)
            return await self._draft_contract(app, timeout)

    async def confirm_contract(self, app_id: str) -> LoanApplication:
        """Borrower signs; CONTRACT_PENDING -> MATCHING_LENDER."""
        async with self._locks.hold(app_id):
            app = await self.registry.get_application(app_id)
            signed = app.model_copy(update={"contract_signed": True, "updated_at": self.clock()})
            advanced = state_machine.transition(signed, ApplicationStatus.MATCHING_LENDER)
            return await self.registry.save_application(advanced)

    async def get_application(self, app_id: str) -> LoanApplication:
        return await self.registry.get_application(app_id)

    async def list_applications(self, flt: Optional[ApplicationFilter] = None) -> list[LoanApplication]:
        return await self.registry.list_applications(flt)
