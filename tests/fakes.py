"""Deterministic provider doubles and builders shared by the test modules."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

from providers.adapters import ProviderAdapters
from providers.prompts import TemplateKind
from schemas.country import CountryConfig
from schemas.user import User, UserRole

MATCH = {"isMatch": True, "confidence": 93, "reason": "Facial landmarks consistent", "extractedName": "Aisyah Rahman", "idType": "MyKad"}
MISMATCH = {"isMatch": False, "confidence": 21, "reason": "Jawline and eye spacing differ"}
PAYSLIP = {
    "documentType": "Payslip",
    "extractedIncome": 4200,
    "employerName": "Petronas Dagangan Bhd",
    "fraudRiskScore": 12,
    "riskNarrative": "Consistent fonts; device matches region.",
    "isAuthentic": True,
}
CONTRACT = "FINANCIAL FACILITATION AGREEMENT\n\n1. Parties ..."


class ScriptedProvider:
    """
    Plays back queued outcomes per capability. An outcome is a payload to return or an
    exception to raise; when a queue runs dry the default payload is used.
    `gate` (an asyncio.Event) blocks calls whose image equals b"slow" until it is set.
    """

    def __init__(
        self,
        face: Optional[list[Any]] = None,
        documents: Optional[list[Any]] = None,
        text: Optional[list[Any]] = None,
        delay: float = 0.0,
    ) -> None:
        self.queues = {"face": list(face or []), "documents": list(documents or []), "text": list(text or [])}
        self.defaults = {"face": MATCH, "documents": PAYSLIP, "text": CONTRACT}
        self.calls = {"face": 0, "documents": 0, "text": 0}
        self.delay = delay
        self.gate: Optional[asyncio.Event] = None
        self.text_requests: list[tuple[TemplateKind, dict[str, Any]]] = []

    async def _play(self, kind: str, image: bytes = b"") -> Any:
        self.calls[kind] += 1
        if self.gate is not None and image == b"slow":
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.queues[kind].pop(0) if self.queues[kind] else self.defaults[kind]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def match_face(self, id_image: bytes, selfie_image: bytes, country: CountryConfig, device_context: str):
        return await self._play("face", id_image)

    async def analyze_document(self, image: bytes, country: CountryConfig, device_context: str):
        return await self._play("documents", image)

    async def generate_text(self, kind: TemplateKind, params: dict[str, Any]) -> str:
        self.text_requests.append((kind, params))
        return await self._play("text")


def adapters_for(provider: ScriptedProvider, timeout: float = 1.0) -> ProviderAdapters:
    return ProviderAdapters(face=provider, documents=provider, text=provider, default_timeout=timeout)


def make_user(
    user_id: str = "usr-borrower",
    role: UserRole = UserRole.BORROWER,
    country: str = "MY",
    mobile: str = "+60123456789",
    national_id: str = "900101-14-5566",
) -> User:
    return User(
        id=user_id,
        mobile=mobile,
        national_id=national_id,
        name="Aisyah Rahman",
        country=country,
        role=role,
        is_verified=True,
        created_at=datetime(2026, 1, 5, tzinfo=timezone.utc),
    )
