from providers.adapters import (
    ProviderAdapters,
    failed_document_analysis,
    failed_verification,
    is_failed_document_analysis,
    text_fallback,
)
from providers.base import (
    DocumentAnalysisProvider,
    FaceMatchProvider,
    FallbackTextProvider,
    TextGenerationProvider,
)
from providers.prompts import TemplateKind

__all__ = [
    "DocumentAnalysisProvider",
    "FaceMatchProvider",
    "FallbackTextProvider",
    "ProviderAdapters",
    "TemplateKind",
    "TextGenerationProvider",
    "failed_document_analysis",
    "failed_verification",
    "is_failed_document_analysis",
    "text_fallback",
]
