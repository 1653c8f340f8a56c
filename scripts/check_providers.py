"""
Check connectivity to the configured text-generation backends (Gemini, then Groq).
Run: python -m scripts.check_providers (from the project root, with keys in .env)
"""
import asyncio
import os

from dotenv import load_dotenv

from config import settings
from providers.gemini import GeminiProvider
from providers.groq_text import GroqTextProvider
from providers.prompts import TemplateKind
from services.errors import ProviderError

load_dotenv()

PING = {"message": "Reply with 'Connection successful!' if you can read this.", "history": [], "country": "MY"}


def _mask(key: str) -> str:
    return f"{key[:6]}...{key[-4:]}" if len(key) > 12 else "***"


async def check(name: str, provider) -> bool:
    try:
        reply = await asyncio.wait_for(
            provider.generate_text(TemplateKind.CHAT_REPLY, PING), settings.provider_timeout_seconds
        )
    except (ProviderError, asyncio.TimeoutError) as e:
        print(f"❌ {name}: {type(e).__name__}: {e}")
        return False
    print(f"✅ {name} responded: {reply.strip()[:80]}")
    return True


async def main() -> bool:
    results = []
    gemini_key = os.environ.get("GEMINI_API_KEY") or settings.gemini_api_key
    if gemini_key:
        print(f"✓ GEMINI_API_KEY found: {_mask(gemini_key)}")
        gemini = GeminiProvider(gemini_key, settings.gemini_vision_model, settings.gemini_text_model)
        results.append(await check(f"Gemini ({settings.gemini_text_model})", gemini))
    else:
        print("❌ GEMINI_API_KEY not found in environment")

    groq_key = os.environ.get("GROQ_API_KEY") or settings.groq_api_key
    if groq_key:
        print(f"✓ GROQ_API_KEY found: {_mask(groq_key)}")
        results.append(await check(f"Groq ({settings.groq_model})", GroqTextProvider(groq_key, settings.groq_model)))
    else:
        print("- GROQ_API_KEY not set; text fallback disabled")

    return any(results)


if __name__ == "__main__":
    print("=" * 60)
    print("Checking text-generation providers")
    print("=" * 60)
    ok = asyncio.run(main())
    print("=" * 60)
    print("✅ At least one text backend is reachable." if ok else "❌ No text backend reachable. Check your API keys.")
    print("=" * 60)
