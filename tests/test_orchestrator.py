"""
Orchestrator tests: the borrower journey, fail-soft outcomes, and per-application serialization.
Run from project root: python -m pytest tests/test_orchestrator.py -v
"""
import asyncio
import unittest
from datetime import datetime, timedelta, timezone

from providers.prompts import TEXT_FALLBACKS, TemplateKind
from schemas.application import ApplicationStatus
from schemas.user import UserRole
from services.errors import (
    ContractNotSigned,
    InvalidLoanParameters,
    InvalidStateTransition,
    NotFound,
    ProviderUnavailable,
    RetryLimitExceeded,
    Unauthorized,
)
from services.orchestrator import BiometricPolicy, VerificationOrchestrator
from services.registry import InMemoryRegistry
from tests.fakes import CONTRACT, MISMATCH, PAYSLIP, ScriptedProvider, adapters_for, make_user

S = ApplicationStatus


class OrchestratorTestCase(unittest.IsolatedAsyncioTestCase):
    policy = BiometricPolicy()

    async def asyncSetUp(self):
        self.registry = InMemoryRegistry()
        self.provider = ScriptedProvider()
        self.orchestrator = VerificationOrchestrator(self.registry, adapters_for(self.provider), self.policy)
        self.user = await self.registry.insert_user(make_user())

    async def _start(self, amount=5000, months=12):
        return await self.orchestrator.start_application(self.user.id, amount, months)

    async def _at_biometrics(self):
        app = await self._start()
        await self.orchestrator.submit_documents(app.id, b"payslip", "device")
        return app.id


class TestStartApplication(OrchestratorTestCase):
    async def test_start_opens_documents_step(self):
        app = await self._start()
        self.assertEqual(app.status, S.DOCUMENTS_PENDING)
        self.assertTrue(app.id.startswith("app-"))
        self.assertEqual(app.country, "MY")
        self.assertAlmostEqual(app.monthly_payment, 437.50)
        stored = await self.registry.get_application(app.id)
        self.assertEqual(stored, app)

    async def test_invalid_parameters_store_nothing(self):
        with self.assertRaises(InvalidLoanParameters):
            await self._start(amount=500)
        self.assertEqual(await self.registry.list_all(), [])

    async def test_unknown_user(self):
        with self.assertRaises(NotFound):
            await self.orchestrator.start_application("usr-missing", 5000, 12)

    async def test_agents_apply_on_behalf_of_clients(self):
        for i, role in enumerate((UserRole.AGENT_FREELANCE, UserRole.AGENT_COMPANY)):
            agent = await self.registry.insert_user(
                make_user(f"usr-agent-{i}", role, mobile=f"+6011{i}", national_id=f"A-{i}")
            )
            app = await self.orchestrator.start_application(agent.id, 5000, 12)
            self.assertEqual(app.user_id, agent.id)
            self.assertEqual(app.status, S.DOCUMENTS_PENDING)

    async def test_admins_cannot_apply(self):
        admin = await self.registry.insert_user(
            make_user("usr-admin", UserRole.ADMIN, mobile="admin", national_id="ADMIN-admin")
        )
        with self.assertRaises(Unauthorized):
            await self.orchestrator.start_application(admin.id, 5000, 12)
        self.assertEqual(await self.registry.list_all(), [])


class TestJourney(OrchestratorTestCase):
    async def test_happy_path_to_matching_lender(self):
        app = await self._start()

        doc = await self.orchestrator.submit_documents(app.id, b"payslip", "Chrome/Android")
        self.assertEqual(doc.employer_name, "Petronas Dagangan Bhd")
        self.assertEqual((await self.registry.get_application(app.id)).status, S.BIOMETRICS_PENDING)

        verification = await self.orchestrator.submit_biometrics(app.id, b"id", b"selfie", "Chrome/Android")
        self.assertTrue(verification.is_match)
        stored = await self.registry.get_application(app.id)
        self.assertEqual(stored.status, S.CONTRACT_PENDING)
        self.assertEqual(stored.contract_text, CONTRACT)
        self.assertFalse(stored.contract_signed)

        kind, params = self.provider.text_requests[0]
        self.assertEqual(kind, TemplateKind.LOAN_AGREEMENT)
        self.assertAlmostEqual(params["monthly_payment"], 437.50)
        self.assertEqual(params["governing_law"], "Moneylenders Act 1951 (Malaysia)")
        self.assertEqual(params["national_id"], self.user.national_id)

        confirmed = await self.orchestrator.confirm_contract(app.id)
        self.assertEqual(confirmed.status, S.MATCHING_LENDER)
        self.assertTrue(confirmed.contract_signed)

    async def test_documents_rejected_outside_documents_step(self):
        app_id = await self._at_biometrics()
        with self.assertRaises(InvalidStateTransition):
            await self.orchestrator.submit_documents(app_id, b"payslip", "device")
        self.assertEqual(self.provider.calls["documents"], 1)

    async def test_failed_document_analysis_keeps_documents_step_open(self):
        self.provider.queues["documents"] = [ProviderUnavailable("down"), ProviderUnavailable("down")]
        app = await self._start()
        result = await self.orchestrator.submit_documents(app.id, b"payslip", "device")
        self.assertEqual(result.fraud_risk_score, 100)
        self.assertFalse(result.is_authentic)
        stored = await self.registry.get_application(app.id)
        self.assertEqual(stored.status, S.DOCUMENTS_PENDING)
        self.assertEqual(stored.document_result, result)

        # Provider is back: the re-upload replaces the placeholder and advances
        retried = await self.orchestrator.submit_documents(app.id, b"payslip", "device")
        self.assertEqual(retried.employer_name, "Petronas Dagangan Bhd")
        stored = await self.registry.get_application(app.id)
        self.assertEqual(stored.status, S.BIOMETRICS_PENDING)
        self.assertEqual(stored.document_result, retried)
        self.assertEqual(self.provider.calls["documents"], 3)

    async def test_suspicious_but_real_analysis_still_advances(self):
        self.provider.queues["documents"] = [{**PAYSLIP, "fraudRiskScore": 95, "isAuthentic": False}]
        app = await self._start()
        result = await self.orchestrator.submit_documents(app.id, b"payslip", "device")
        self.assertEqual(result.fraud_risk_score, 95)
        self.assertEqual((await self.registry.get_application(app.id)).status, S.BIOMETRICS_PENDING)

    async def test_mismatch_keeps_biometrics_pending(self):
        app_id = await self._at_biometrics()
        self.provider.queues["face"] = [MISMATCH, MISMATCH]
        for attempt in (1, 2):
            result = await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")
            self.assertFalse(result.is_match)
            stored = await self.registry.get_application(app_id)
            self.assertEqual(stored.status, S.BIOMETRICS_PENDING)
            self.assertEqual(stored.biometric_attempts, attempt)
            self.assertEqual(stored.verification_result, result)
        self.assertEqual(self.provider.calls["text"], 0)
        # Unlimited retries by default: the third attempt matches
        result = await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")
        self.assertTrue(result.is_match)
        self.assertEqual((await self.registry.get_application(app_id)).status, S.CONTRACT_PENDING)

    async def test_provider_timeout_during_biometrics(self):
        app_id = await self._at_biometrics()
        self.provider.delay = 1.0
        result = await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device", timeout=0.05)
        self.assertFalse(result.is_match)
        self.assertEqual(result.confidence, 0)
        stored = await self.registry.get_application(app_id)
        self.assertEqual(stored.status, S.BIOMETRICS_PENDING)
        self.assertFalse(stored.verification_result.is_match)

    async def test_contract_unavailable_then_regenerated(self):
        app_id = await self._at_biometrics()
        self.provider.queues["text"] = [ProviderUnavailable("down"), ProviderUnavailable("down"), "Agreement v2"]
        await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")
        stored = await self.registry.get_application(app_id)
        self.assertEqual(stored.status, S.CONTRACT_PENDING)
        self.assertIsNone(stored.contract_text)

        with self.assertRaises(ContractNotSigned):
            await self.orchestrator.confirm_contract(app_id)
        self.assertEqual((await self.registry.get_application(app_id)).status, S.CONTRACT_PENDING)

        draft = await self.orchestrator.generate_contract(app_id)
        self.assertTrue(draft.available)
        self.assertEqual(draft.contract_text, "Agreement v2")
        # Already drafted: no new provider call
        again = await self.orchestrator.generate_contract(app_id)
        self.assertEqual(again.contract_text, "Agreement v2")
        self.assertEqual(self.provider.calls["text"], 3)

        confirmed = await self.orchestrator.confirm_contract(app_id)
        self.assertEqual(confirmed.status, S.MATCHING_LENDER)

    async def test_contract_placeholder_is_reported_unavailable(self):
        app_id = await self._at_biometrics()
        self.provider.queues["text"] = [ProviderUnavailable("down")] * 4
        await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")
        draft = await self.orchestrator.generate_contract(app_id)
        self.assertFalse(draft.available)
        self.assertEqual(draft.contract_text, TEXT_FALLBACKS[TemplateKind.LOAN_AGREEMENT])

    async def test_confirm_outside_contract_step(self):
        app = await self._start()
        with self.assertRaises(InvalidStateTransition):
            await self.orchestrator.confirm_contract(app.id)
        with self.assertRaises(InvalidStateTransition):
            await self.orchestrator.generate_contract(app.id)

    async def test_resubmission_after_admin_requests_documents(self):
        app_id = await self._at_biometrics()
        await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")
        await self.orchestrator.confirm_contract(app_id)
        await self.registry.update_status(
            app_id, lambda a: a.model_copy(update={"status": S.NEEDS_DOCUMENTS})
        )

        await self.orchestrator.submit_documents(app_id, b"new-payslip", "device")
        stored = await self.registry.get_application(app_id)
        self.assertEqual(stored.status, S.BIOMETRICS_PENDING)
        self.assertIsNone(stored.verification_result)
        self.assertIsNone(stored.contract_text)
        self.assertFalse(stored.contract_signed)


class TestBiometricPolicy(OrchestratorTestCase):
    policy = BiometricPolicy(max_attempts=2)

    async def test_attempt_cap(self):
        app_id = await self._at_biometrics()
        self.provider.queues["face"] = [MISMATCH, MISMATCH]
        await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")
        await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")
        with self.assertRaises(RetryLimitExceeded):
            await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")
        self.assertEqual(self.provider.calls["face"], 2)


class TestBiometricCooldown(OrchestratorTestCase):
    async def test_cooldown_between_attempts(self):
        now = [datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)]
        self.orchestrator = VerificationOrchestrator(
            self.registry,
            adapters_for(self.provider),
            BiometricPolicy(cooldown_seconds=60),
            clock=lambda: now[0],
        )
        app_id = await self._at_biometrics()
        self.provider.queues["face"] = [MISMATCH]
        await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")

        now[0] += timedelta(seconds=30)
        with self.assertRaises(RetryLimitExceeded):
            await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")

        now[0] += timedelta(seconds=31)
        result = await self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device")
        self.assertTrue(result.is_match)


class TestConcurrency(OrchestratorTestCase):
    async def test_concurrent_documents_for_same_application(self):
        self.provider.delay = 0.05
        app = await self._start()
        outcomes = await asyncio.gather(
            self.orchestrator.submit_documents(app.id, b"payslip", "device"),
            self.orchestrator.submit_documents(app.id, b"payslip", "device"),
            return_exceptions=True,
        )
        errors = [o for o in outcomes if isinstance(o, Exception)]
        results = [o for o in outcomes if not isinstance(o, Exception)]
        self.assertEqual(len(results), 1)
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], InvalidStateTransition)
        self.assertEqual(self.provider.calls["documents"], 1)

        stored = await self.registry.get_application(app.id)
        self.assertEqual(stored.status, S.BIOMETRICS_PENDING)
        self.assertEqual(stored.document_result, results[0])
        # insert (v0) + one write
        self.assertEqual(stored.version, 1)

    async def test_concurrent_biometrics_transition_at_most_once(self):
        app_id = await self._at_biometrics()
        self.provider.delay = 0.05
        outcomes = await asyncio.gather(
            self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device"),
            self.orchestrator.submit_biometrics(app_id, b"id", b"selfie", "device"),
            return_exceptions=True,
        )
        self.assertEqual(sum(isinstance(o, InvalidStateTransition) for o in outcomes), 1)
        self.assertEqual(self.provider.calls["face"], 1)
        self.assertEqual((await self.registry.get_application(app_id)).status, S.CONTRACT_PENDING)

    async def test_different_applications_do_not_block(self):
        slow = await self._start()
        fast = await self._start()
        self.provider.gate = asyncio.Event()

        slow_task = asyncio.create_task(self.orchestrator.submit_documents(slow.id, b"slow", "device"))
        await asyncio.sleep(0)
        await asyncio.wait_for(self.orchestrator.submit_documents(fast.id, b"payslip", "device"), timeout=1)

        self.assertFalse(slow_task.done())
        self.assertEqual((await self.registry.get_application(fast.id)).status, S.BIOMETRICS_PENDING)
        self.assertEqual((await self.registry.get_application(slow.id)).status, S.DOCUMENTS_PENDING)

        self.provider.gate.set()
        await slow_task
        self.assertEqual((await self.registry.get_application(slow.id)).status, S.BIOMETRICS_PENDING)


if __name__ == "__main__":
    unittest.main()
