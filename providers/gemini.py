"""
Google Gemini backend for all three capabilities.
Images are sent inline; structured answers use JSON response mode.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from providers.prompts import (
    TemplateKind,
    chat_system_instruction,
    document_analysis_prompt,
    face_match_prompt,
    loan_agreement_prompt,
)
from schemas.country import CountryConfig
from services.errors import ProviderRejected, ProviderUnavailable
from utils.json_text import parse_json_object

logger = logging.getLogger(__name__)

IMAGE_MIME_TYPE = "image/jpeg"

_TRANSIENT_ERRORS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.ServerError,
    google_exceptions.DeadlineExceeded,
    google_exceptions.RetryError,
    ConnectionError,
    TimeoutError,
)


class GeminiProvider:
    def __init__(self, api_key: str, vision_model: str, text_model: str) -> None:
        self.api_key = api_key
        self.vision_model = vision_model
        self.text_model = text_model
        if api_key:
            genai.configure(api_key=api_key)

    async def _generate(
        self,
        model_name: str,
        contents: Any,
        *,
        json_mode: bool = False,
        system_instruction: Optional[str] = None,
    ) -> str:
        if not self.api_key:
            raise ProviderUnavailable("GEMINI_API_KEY not configured")
        model = genai.GenerativeModel(model_name, system_instruction=system_instruction)
        config = genai.types.GenerationConfig(
            temperature=0.1,
            response_mime_type="application/json" if json_mode else "text/plain",
        )
        try:
            resp = await model.generate_content_async(contents, generation_config=config)
        except _TRANSIENT_ERRORS as e:
            raise ProviderUnavailable(f"Gemini {model_name}: {e}") from e
        except google_exceptions.GoogleAPIError as e:
            raise ProviderRejected(f"Gemini {model_name}: {e}") from e
        try:
            text = resp.text
        except ValueError as e:
            # Blocked or empty candidates
            raise ProviderRejected(f"Gemini {model_name} returned no usable candidate: {e}") from e
        if not text or not text.strip():
            raise ProviderRejected(f"Gemini {model_name} returned an empty response")
        return text.strip()

    async def _generate_json(self, model_name: str, contents: Any) -> dict[str, Any]:
        raw = await self._generate(model_name, contents, json_mode=True)
        data = parse_json_object(raw)
        if data is None:
            raise ProviderRejected(f"Gemini {model_name} returned malformed JSON")
        return data

    async def match_face(
        self, id_image: bytes, selfie_image: bytes, country: CountryConfig, device_context: str
    ) -> dict[str, Any]:
        contents = [
            face_match_prompt(country, device_context),
            {"mime_type": IMAGE_MIME_TYPE, "data": id_image},
            {"mime_type": IMAGE_MIME_TYPE, "data": selfie_image},
        ]
        return await self._generate_json(self.vision_model, contents)

    async def analyze_document(self, image: bytes, country: CountryConfig, device_context: str) -> dict[str, Any]:
        contents = [
            document_analysis_prompt(country, device_context),
            {"mime_type": IMAGE_MIME_TYPE, "data": image},
        ]
        return await self._generate_json(self.vision_model, contents)

    async def generate_text(self, kind: TemplateKind, params: dict[str, Any]) -> str:
        if kind == TemplateKind.LOAN_AGREEMENT:
            return await self._generate(self.text_model, loan_agreement_prompt(params))
        if kind == TemplateKind.CHAT_REPLY:
            contents = [
                {"role": "model" if turn.get("role") in ("model", "assistant") else "user", "parts": [turn.get("text", "")]}
                for turn in params.get("history") or []
            ]
            contents.append({"role": "user", "parts": [params.get("message", "")]})
            return await self._generate(
                self.text_model,
                contents,
                system_instruction=chat_system_instruction(params.get("country", "MY")),
            )
        raise ProviderRejected(f"Unsupported template kind: {kind}")
