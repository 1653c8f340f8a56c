"""Wires registry, providers and services together from Settings."""
from __future__ import annotations

from dataclasses import dataclass

from config import Settings
from providers.adapters import ProviderAdapters
from providers.base import FallbackTextProvider
from services.admin import AdminGateway
from services.orchestrator import BiometricPolicy, VerificationOrchestrator
from services.registry import InMemoryRegistry, Registry, SqlRegistry
from services.users import StaticOtpVerifier, UserService


@dataclass
class Services:
    registry: Registry
    providers: ProviderAdapters
    orchestrator: VerificationOrchestrator
    admin: AdminGateway
    users: UserService
    provider_timeout: float

    async def close(self) -> None:
        await self.registry.close()


def build_provider_adapters(settings: Settings) -> ProviderAdapters:
    from providers.gemini import GeminiProvider
    from providers.groq_text import GroqTextProvider

    gemini = GeminiProvider(settings.gemini_api_key, settings.gemini_vision_model, settings.gemini_text_model)
    text_backends = [gemini]
    if settings.groq_api_key:
        text_backends.append(GroqTextProvider(settings.groq_api_key, settings.groq_model))
    return ProviderAdapters(
        face=gemini,
        documents=gemini,
        text=FallbackTextProvider(text_backends),
        default_timeout=settings.provider_timeout_seconds,
    )


async def build_registry(settings: Settings) -> Registry:
    if settings.registry_backend == "sql":
        from database import make_engine

        registry = SqlRegistry(make_engine(settings.database_url))
        await registry.create_schema()
        return registry
    return InMemoryRegistry()


def assemble(
    settings: Settings,
    registry: Registry,
    providers: ProviderAdapters,
) -> Services:
    policy = BiometricPolicy(
        max_attempts=settings.biometric_max_attempts,
        cooldown_seconds=settings.biometric_cooldown_seconds,
    )
    return Services(
        registry=registry,
        providers=providers,
        orchestrator=VerificationOrchestrator(registry, providers, policy),
        admin=AdminGateway(registry),
        users=UserService(registry, StaticOtpVerifier(settings.otp_code)),
        provider_timeout=settings.provider_timeout_seconds,
    )


async def build_services(settings: Settings) -> Services:
    services = assemble(settings, await build_registry(settings), build_provider_adapters(settings))
    await services.users.ensure_admin(settings.admin_mobile, settings.admin_password, settings.admin_name)
    return services
