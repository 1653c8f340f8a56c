"""
Domain error taxonomy.

ValidationError subclasses are surfaced to the caller synchronously and never retried.
ProviderError subclasses never leave the provider adapter boundary.
"""
from __future__ import annotations


class LendingError(Exception):
    """Base class for every error raised by the broker core."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(LendingError):
    pass


class InvalidLoanParameters(ValidationError):
    pass


class InvalidStateTransition(ValidationError):
    pass


class MissingDocumentResult(ValidationError):
    pass


class BiometricMismatch(ValidationError):
    pass


class ContractNotSigned(ValidationError):
    pass


class RetryLimitExceeded(ValidationError):
    pass


class RegistrationError(ValidationError):
    pass


class Unauthorized(LendingError):
    pass


class ConcurrentModification(LendingError):
    """Raised when a read-modify-write lost a race; re-read and retry."""


class NotFound(LendingError):
    pass


class DuplicateId(LendingError):
    pass


class ProviderError(Exception):
    pass


class ProviderUnavailable(ProviderError):
    """Network, timeout, quota or vendor-side failure. Safe to retry once."""


class ProviderRejected(ProviderError):
    """The provider understood the request and refused it, or answered with garbage."""
