"""
Lifecycle of one loan application.

DRAFT -> DOCUMENTS_PENDING -> BIOMETRICS_PENDING -> CONTRACT_PENDING -> MATCHING_LENDER
MATCHING_LENDER -> APPROVED | REJECTED | NEEDS_DOCUMENTS (admin only)
NEEDS_DOCUMENTS -> DOCUMENTS_PENDING (borrower resubmits)

Every function here is pure: it validates and returns a new LoanApplication snapshot,
it never writes anywhere.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from schemas.application import ApplicationStatus, LoanApplication
from services.countries import get_country
from services.errors import (
    BiometricMismatch,
    ContractNotSigned,
    InvalidLoanParameters,
    InvalidStateTransition,
    MissingDocumentResult,
    Unauthorized,
)

logger = logging.getLogger(__name__)

ANNUAL_INTEREST_RATE = 0.05
TENURE_STEP_MONTHS = 6
MIN_TENURE_MONTHS = 6
MAX_TENURE_MONTHS = 60


class Actor(str, Enum):
    ORCHESTRATOR = "ORCHESTRATOR"
    ADMIN = "ADMIN"


S = ApplicationStatus

TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    S.DRAFT: frozenset({S.DOCUMENTS_PENDING}),
    S.DOCUMENTS_PENDING: frozenset({S.BIOMETRICS_PENDING}),
    S.BIOMETRICS_PENDING: frozenset({S.CONTRACT_PENDING}),
    S.CONTRACT_PENDING: frozenset({S.MATCHING_LENDER}),
    S.MATCHING_LENDER: frozenset({S.APPROVED, S.REJECTED, S.NEEDS_DOCUMENTS}),
    S.NEEDS_DOCUMENTS: frozenset({S.DOCUMENTS_PENDING}),
    S.APPROVED: frozenset(),
    S.REJECTED: frozenset(),
}

TERMINAL_STATES = frozenset({S.APPROVED, S.REJECTED})
ADMIN_ONLY_TARGETS = frozenset({S.APPROVED, S.REJECTED, S.NEEDS_DOCUMENTS})


def compute_monthly_payment(amount: float, months: int) -> float:
    """Principal plus flat 5% annual interest prorated over the tenure, split evenly."""
    interest = amount * ANNUAL_INTEREST_RATE * (months / 12)
    return (amount + interest) / months


def validate_loan_parameters(country_code: str, amount: float, months: int) -> None:
    """Raise InvalidLoanParameters unless amount is within the country's limits and months is a valid tenure."""
    country = get_country(country_code)
    if amount is None or not math.isfinite(amount):
        raise InvalidLoanParameters("Loan amount must be a finite number")
    if not (country.min_loan <= amount <= country.max_loan):
        raise InvalidLoanParameters(
            f"Loan amount {country.currency_symbol}{amount:,.2f} must be between "
            f"{country.currency_symbol}{country.min_loan:,.0f} and {country.currency_symbol}{country.max_loan:,.0f}"
        )
    if isinstance(months, bool) or not isinstance(months, int):
        raise InvalidLoanParameters(f"Tenure must be a whole number of months, got {months!r}")
    if not (MIN_TENURE_MONTHS <= months <= MAX_TENURE_MONTHS) or months % TENURE_STEP_MONTHS != 0:
        raise InvalidLoanParameters(
            f"Tenure {months} months must be a multiple of {TENURE_STEP_MONTHS} between "
            f"{MIN_TENURE_MONTHS} and {MAX_TENURE_MONTHS}"
        )


def new_application(
    app_id: str,
    user_id: str,
    country: str,
    amount: float,
    months: int,
    now: Optional[datetime] = None,
) -> LoanApplication:
    """Build a DRAFT application. Parameters are validated; the DRAFT state itself is not negotiable."""
    validate_loan_parameters(country, amount, months)
    now = now or datetime.now(timezone.utc)
    return LoanApplication(
        id=app_id,
        user_id=user_id,
        country=country.upper(),
        amount=amount,
        months=months,
        monthly_payment=compute_monthly_payment(amount, months),
        status=S.DRAFT,
        submitted_at=now,
        updated_at=now,
    )


def is_terminal(status: ApplicationStatus) -> bool:
    return status in TERMINAL_STATES


def _check_guard(app: LoanApplication, target: ApplicationStatus) -> None:
    if target == S.DOCUMENTS_PENDING and app.status == S.DRAFT:
        validate_loan_parameters(app.country, app.amount, app.months)
        expected = compute_monthly_payment(app.amount, app.months)
        if not math.isclose(app.monthly_payment, expected, rel_tol=1e-9, abs_tol=1e-6):
            raise InvalidLoanParameters(
                f"Monthly payment {app.monthly_payment} does not match {expected} for the requested terms"
            )
    elif target == S.BIOMETRICS_PENDING:
        if app.document_result is None:
            raise MissingDocumentResult(f"Application {app.id} has no document analysis result")
    elif target == S.CONTRACT_PENDING:
        result = app.verification_result
        if result is None or not result.is_match:
            reason = result.reason if result is not None else "no biometric result"
            raise BiometricMismatch(f"Biometric verification failed for {app.id}: {reason}")
    elif target == S.MATCHING_LENDER:
        if not app.contract_signed or not (app.contract_text or "").strip():
            raise ContractNotSigned(f"Application {app.id} has no signed contract")


def transition(
    app: LoanApplication,
    target: ApplicationStatus,
    actor: Actor = Actor.ORCHESTRATOR,
    now: Optional[datetime] = None,
) -> LoanApplication:
    """
    Validate and apply one status change, returning the new snapshot.
    Terminal states and unlisted edges raise InvalidStateTransition; admin-only targets
    requested by anyone else raise Unauthorized; failed guards raise their own error.
    """
    current = app.status
    if is_terminal(current):
        raise InvalidStateTransition(f"Application {app.id} is {current.value}; no further transitions allowed")
    if target not in TRANSITIONS[current]:
        raise InvalidStateTransition(f"Cannot move application {app.id} from {current.value} to {target.value}")
    if target in ADMIN_ONLY_TARGETS and actor != Actor.ADMIN:
        raise Unauthorized(f"Only an administrator may move an application to {target.value}")
    _check_guard(app, target)

    logger.info("Application %s: %s -> %s (%s)", app.id, current.value, target.value, actor.value)
    return app.model_copy(update={"status": target, "updated_at": now or datetime.now(timezone.utc)})


def reopen_for_documents(app: LoanApplication, now: Optional[datetime] = None) -> LoanApplication:
    """NEEDS_DOCUMENTS -> DOCUMENTS_PENDING, dropping artifacts that depend on the old documents."""
    reopened = transition(app, S.DOCUMENTS_PENDING, Actor.ORCHESTRATOR, now=now)
    return reopened.model_copy(
        update={
            "document_result": None,
            "verification_result": None,
            "contract_text": None,
            "contract_signed": False,
            "biometric_attempts": 0,
            "last_biometric_attempt_at": None,
            "decided_by": None,
        }
    )
