"""Fail-soft provider boundary: deadlines, the single retry, and payload validation."""
import unittest

from providers.adapters import ProviderAdapters, failed_document_analysis
from providers.base import FallbackTextProvider
from providers.prompts import TEXT_FALLBACKS, TemplateKind
from services.countries import get_country
from services.errors import ProviderRejected, ProviderUnavailable
from tests.fakes import MATCH, PAYSLIP, ScriptedProvider, adapters_for

MY = get_country("MY")


class TestFaceMatchAdapter(unittest.IsolatedAsyncioTestCase):
    async def test_parses_camel_case_payload(self):
        provider = ScriptedProvider(face=[MATCH])
        result = await adapters_for(provider).match_face(b"id", b"selfie", MY, "device")
        self.assertTrue(result.is_match)
        self.assertEqual(result.confidence, 93)
        self.assertEqual(result.extracted_name, "Aisyah Rahman")

    async def test_timeout_returns_failed_match(self):
        provider = ScriptedProvider(delay=1.0)
        result = await adapters_for(provider).match_face(b"id", b"selfie", MY, "device", timeout=0.05)
        self.assertFalse(result.is_match)
        self.assertEqual(result.confidence, 0)
        self.assertEqual(provider.calls["face"], 1)

    async def test_transient_failure_is_retried_once(self):
        provider = ScriptedProvider(face=[ProviderUnavailable("503"), MATCH])
        result = await adapters_for(provider).match_face(b"id", b"selfie", MY, "device")
        self.assertTrue(result.is_match)
        self.assertEqual(provider.calls["face"], 2)

    async def test_second_transient_failure_is_not_retried(self):
        provider = ScriptedProvider(face=[ProviderUnavailable("503"), ProviderUnavailable("503"), MATCH])
        result = await adapters_for(provider).match_face(b"id", b"selfie", MY, "device")
        self.assertFalse(result.is_match)
        self.assertEqual(provider.calls["face"], 2)

    async def test_rejection_is_not_retried(self):
        provider = ScriptedProvider(face=[ProviderRejected("bad image"), MATCH])
        result = await adapters_for(provider).match_face(b"id", b"selfie", MY, "device")
        self.assertFalse(result.is_match)
        self.assertEqual(provider.calls["face"], 1)

    async def test_malformed_payload_fails_soft(self):
        provider = ScriptedProvider(face=[{"verdict": "looks fine"}])
        result = await adapters_for(provider).match_face(b"id", b"selfie", MY, "device")
        self.assertFalse(result.is_match)
        self.assertEqual(result.confidence, 0)

    async def test_unexpected_exception_fails_soft(self):
        provider = ScriptedProvider(face=[RuntimeError("sdk bug")])
        result = await adapters_for(provider).match_face(b"id", b"selfie", MY, "device")
        self.assertFalse(result.is_match)

    async def test_confidence_is_clamped(self):
        provider = ScriptedProvider(face=[{**MATCH, "confidence": 140}])
        result = await adapters_for(provider).match_face(b"id", b"selfie", MY, "device")
        self.assertEqual(result.confidence, 100)


class TestDocumentAdapter(unittest.IsolatedAsyncioTestCase):
    async def test_parses_payload(self):
        result = await adapters_for(ScriptedProvider(documents=[PAYSLIP])).analyze_document(b"doc", MY, "device")
        self.assertEqual(result.document_type, "Payslip")
        self.assertEqual(result.extracted_income, 4200)
        self.assertEqual(result.fraud_risk_score, 12)

    async def test_failure_defaults_to_maximum_risk(self):
        provider = ScriptedProvider(documents=[ProviderRejected("unreadable")])
        result = await adapters_for(provider).analyze_document(b"doc", MY, "device")
        self.assertEqual(result.fraud_risk_score, 100)
        self.assertEqual(result, failed_document_analysis())

    async def test_negative_income_is_floored(self):
        provider = ScriptedProvider(documents=[{**PAYSLIP, "extractedIncome": -50}])
        result = await adapters_for(provider).analyze_document(b"doc", MY, "device")
        self.assertEqual(result.extracted_income, 0)


class TestTextAdapter(unittest.IsolatedAsyncioTestCase):
    async def test_returns_generated_text(self):
        provider = ScriptedProvider(text=["  Agreement body  "])
        text = await adapters_for(provider).generate_text(TemplateKind.LOAN_AGREEMENT, {"name": "A"})
        self.assertEqual(text, "Agreement body")

    async def test_placeholder_on_failure(self):
        for kind in TemplateKind:
            provider = ScriptedProvider(text=[ProviderRejected("blocked")])
            text = await adapters_for(provider).generate_text(kind, {})
            self.assertEqual(text, TEXT_FALLBACKS[kind])

    async def test_placeholder_on_empty_text(self):
        provider = ScriptedProvider(text=["   "])
        text = await adapters_for(provider).generate_text(TemplateKind.CHAT_REPLY, {"message": "hi"})
        self.assertEqual(text, TEXT_FALLBACKS[TemplateKind.CHAT_REPLY])

    async def test_fallback_chain_uses_next_backend(self):
        primary = ScriptedProvider(text=[ProviderUnavailable("no key")])
        secondary = ScriptedProvider(text=["from groq"])
        adapters = ProviderAdapters(primary, primary, FallbackTextProvider([primary, secondary]))
        text = await adapters.generate_text(TemplateKind.CHAT_REPLY, {"message": "hi"})
        self.assertEqual(text, "from groq")
        self.assertEqual(primary.calls["text"], 1)

    async def test_fallback_chain_raises_when_all_fail(self):
        chain = FallbackTextProvider(
            [ScriptedProvider(text=[ProviderUnavailable("a")]), ScriptedProvider(text=[ProviderRejected("b")])]
        )
        with self.assertRaises(ProviderRejected):
            await chain.generate_text(TemplateKind.CHAT_REPLY, {})


if __name__ == "__main__":
    unittest.main()
