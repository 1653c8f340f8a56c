"""
Fail-soft boundary around provider backends.

Every call runs under a total deadline. A ProviderUnavailable is retried once if
budget remains; ProviderRejected, deadline expiry and malformed payloads are not.
Whatever goes wrong, the caller gets a conservative domain value, never an exception.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import pydantic

from providers.base import DocumentAnalysisProvider, FaceMatchProvider, TextGenerationProvider
from providers.prompts import (
    DOCUMENT_FAILURE_NARRATIVE,
    FACE_MATCH_FAILURE_REASON,
    TEXT_FALLBACKS,
    TemplateKind,
)
from schemas.application import DocumentAnalysisResult, VerificationResult
from schemas.country import CountryConfig
from services.errors import ProviderError, ProviderRejected, ProviderUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 2  # one original call plus one retry


def failed_verification(reason: str = FACE_MATCH_FAILURE_REASON) -> VerificationResult:
    return VerificationResult(is_match=False, confidence=0, reason=reason)


def failed_document_analysis(narrative: str = DOCUMENT_FAILURE_NARRATIVE) -> DocumentAnalysisResult:
    return DocumentAnalysisResult(
        document_type="Unknown",
        extracted_income=0,
        employer_name="Unknown",
        fraud_risk_score=100,
        risk_narrative=narrative,
        is_authentic=False,
    )


def is_failed_document_analysis(result: DocumentAnalysisResult) -> bool:
    """True for the conservative default produced when the provider gave no usable analysis."""
    return not result.is_authentic and result.risk_narrative == DOCUMENT_FAILURE_NARRATIVE


def text_fallback(kind: TemplateKind) -> str:
    return TEXT_FALLBACKS[kind]


class ProviderAdapters:
    def __init__(
        self,
        face: FaceMatchProvider,
        documents: DocumentAnalysisProvider,
        text: TextGenerationProvider,
        default_timeout: float = 30.0,
    ) -> None:
        self.face = face
        self.documents = documents
        self.text = text
        self.default_timeout = default_timeout

    async def _call(self, label: str, factory: Callable[[], Awaitable[T]], timeout: Optional[float]) -> T:
        budget = self.default_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + budget
        attempt = 0
        while True:
            attempt += 1
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise ProviderUnavailable(f"{label}: deadline of {budget}s exhausted")
            try:
                return await asyncio.wait_for(factory(), timeout=remaining)
            except asyncio.TimeoutError:
                raise ProviderUnavailable(f"{label}: timed out after {budget}s") from None
            except ProviderUnavailable as e:
                if attempt >= MAX_ATTEMPTS:
                    raise
                logger.warning("%s: transient provider failure (%s); retrying once", label, e)

    async def match_face(
        self,
        id_image: bytes,
        selfie_image: bytes,
        country: CountryConfig,
        device_context: str,
        timeout: Optional[float] = None,
    ) -> VerificationResult:
        try:
            raw = await self._call(
                "match_face",
                lambda: self.face.match_face(id_image, selfie_image, country, device_context),
                timeout,
            )
            return VerificationResult.model_validate(_require_dict(raw))
        except (ProviderError, pydantic.ValidationError) as e:
            logger.warning("Face match failed soft: %s", e)
        except Exception:
            logger.exception("Unexpected face match provider error")
        return failed_verification()

    async def analyze_document(
        self,
        image: bytes,
        country: CountryConfig,
        device_context: str,
        timeout: Optional[float] = None,
    ) -> DocumentAnalysisResult:
        try:
            raw = await self._call(
                "analyze_document",
                lambda: self.documents.analyze_document(image, country, device_context),
                timeout,
            )
            return DocumentAnalysisResult.model_validate(_require_dict(raw))
        except (ProviderError, pydantic.ValidationError) as e:
            logger.warning("Document analysis failed soft: %s", e)
        except Exception:
            logger.exception("Unexpected document analysis provider error")
        return failed_document_analysis()

    async def generate_text(
        self,
        kind: TemplateKind,
        params: dict[str, Any],
        timeout: Optional[float] = None,
    ) -> str:
        try:
            text = await self._call(
                f"generate_text[{kind.value}]",
                lambda: self.text.generate_text(kind, params),
                timeout,
            )
            if text and text.strip():
                return text.strip()
            logger.warning("Text provider returned an empty %s", kind.value)
        except ProviderError as e:
            logger.warning("Text generation failed soft: %s", e)
        except Exception:
            logger.exception("Unexpected text provider error")
        return text_fallback(kind)


def _require_dict(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ProviderRejected(f"Expected a JSON object from provider, got {type(raw).__name__}")
    return raw
