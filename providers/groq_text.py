"""Groq chat-completions backend, used as the text-generation fallback behind Gemini."""
from __future__ import annotations

from typing import Any

import groq
from groq import AsyncGroq

from providers.prompts import TemplateKind, chat_system_instruction, loan_agreement_prompt
from services.errors import ProviderRejected, ProviderUnavailable

_TRANSIENT_ERRORS = (
    groq.APIConnectionError,
    groq.RateLimitError,
    groq.InternalServerError,
)


class GroqTextProvider:
    def __init__(self, api_key: str, model: str) -> None:
        self.api_key = api_key
        self.model = model
        self._client = AsyncGroq(api_key=api_key) if api_key else None

    def _messages(self, kind: TemplateKind, params: dict[str, Any]) -> list[dict[str, str]]:
        if kind == TemplateKind.LOAN_AGREEMENT:
            return [
                {"role": "system", "content": "You draft formal loan facilitation agreements in plain text."},
                {"role": "user", "content": loan_agreement_prompt(params)},
            ]
        if kind == TemplateKind.CHAT_REPLY:
            messages = [{"role": "system", "content": chat_system_instruction(params.get("country", "MY"))}]
            for turn in params.get("history") or []:
                role = "assistant" if turn.get("role") in ("model", "assistant") else "user"
                messages.append({"role": role, "content": turn.get("text", "")})
            messages.append({"role": "user", "content": params.get("message", "")})
            return messages
        raise ProviderRejected(f"Unsupported template kind: {kind}")

    async def generate_text(self, kind: TemplateKind, params: dict[str, Any]) -> str:
        if self._client is None:
            raise ProviderUnavailable("GROQ_API_KEY not configured")
        messages = self._messages(kind, params)
        try:
            resp = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.3,
                max_tokens=4096,
            )
        except _TRANSIENT_ERRORS as e:
            raise ProviderUnavailable(f"Groq {self.model}: {e}") from e
        except groq.APIError as e:
            raise ProviderRejected(f"Groq {self.model}: {e}") from e
        content = resp.choices[0].message.content if resp.choices else None
        if not content or not content.strip():
            raise ProviderRejected(f"Groq {self.model} returned an empty response")
        return content.strip()
