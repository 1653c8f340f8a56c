"""
Capability interfaces implemented by provider backends.

Backends return raw payloads (dicts / strings) and signal failure by raising
ProviderUnavailable (transient) or ProviderRejected (permanent). They never
fall back on their own; that is the adapter's job.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence

from providers.prompts import TemplateKind
from schemas.country import CountryConfig
from services.errors import ProviderError, ProviderUnavailable

logger = logging.getLogger(__name__)


class FaceMatchProvider(Protocol):
    async def match_face(
        self, id_image: bytes, selfie_image: bytes, country: CountryConfig, device_context: str
    ) -> dict[str, Any]: ...


class DocumentAnalysisProvider(Protocol):
    async def analyze_document(self, image: bytes, country: CountryConfig, device_context: str) -> dict[str, Any]: ...


class TextGenerationProvider(Protocol):
    async def generate_text(self, kind: TemplateKind, params: dict[str, Any]) -> str: ...


class FallbackTextProvider:
    """Try each text backend in order; the first non-empty answer wins."""

    def __init__(self, providers: Sequence[TextGenerationProvider]) -> None:
        if not providers:
            raise ValueError("FallbackTextProvider needs at least one provider")
        self._providers = list(providers)

    async def generate_text(self, kind: TemplateKind, params: dict[str, Any]) -> str:
        last_error: Optional[ProviderError] = None
        for provider in self._providers:
            try:
                text = await provider.generate_text(kind, params)
            except ProviderError as e:
                logger.warning("%s failed for %s: %s", type(provider).__name__, kind.value, e)
                last_error = e
                continue
            if text and text.strip():
                return text
        raise last_error or ProviderUnavailable(f"No text provider produced output for {kind.value}")
