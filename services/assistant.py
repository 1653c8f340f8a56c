"""Borrower-facing chat assistant, backed by the text-generation provider."""
from __future__ import annotations

from typing import Optional

from providers.adapters import ProviderAdapters
from providers.prompts import TemplateKind
from schemas.application import ChatTurn


async def chat_reply(
    providers: ProviderAdapters,
    message: str,
    history: list[ChatTurn],
    country: str = "MY",
    timeout: Optional[float] = None,
) -> str:
    params = {
        "message": message,
        "history": [{"role": t.role, "text": t.text} for t in history],
        "country": country.upper(),
    }
    return await providers.generate_text(TemplateKind.CHAT_REPLY, params, timeout)
