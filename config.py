from typing import Literal, Optional

from pydantic import PrivateAttr
from pydantic_settings import BaseSettings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    app_name: str = "Sg16 Finance Broker API"
    debug: bool = False
    log_level: str = "INFO"

    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    registry_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite+aiosqlite:///./sg16_broker.db"

    # Providers (Gemini first, Groq fallback for text)
    gemini_api_key: str = ""
    gemini_vision_model: str = "gemini-2.5-flash"
    gemini_text_model: str = "gemini-2.5-pro"
    groq_api_key: str = ""
    groq_model: str = "llama-3.1-8b-instant"
    provider_timeout_seconds: float = 30.0

    # Biometric retry policy; None means unlimited attempts
    biometric_max_attempts: Optional[int] = None
    biometric_cooldown_seconds: float = 0.0

    otp_code: str = "123456"
    admin_mobile: str = "admin"
    admin_password: str = "admin123"
    admin_name: str = "System Admin"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    _is_sqlite: bool = PrivateAttr(default=False)

    def model_post_init(self, __context: object) -> None:
        _scheme = self.database_url.split(":")[0].lower()
        object.__setattr__(self, "_is_sqlite", "sqlite" in _scheme)

    @property
    def is_sqlite(self) -> bool:
        return self._is_sqlite


settings = Settings()
