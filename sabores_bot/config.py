from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Evolution API
    EVOLUTION_API_URL: str
    EVOLUTION_API_KEY: str
    INSTANCE_NAME: str
    WEBHOOK_URL: Optional[str] = None

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    SERVICE_NAME: str = "WhatsApp Bot - Sabores da Dori"
    LOG_LEVEL: str = "INFO"

    # Conversation sessions
    SESSION_BACKEND: Literal["memory", "redis"] = "memory"
    SESSION_TTL_MINUTES: int = 30
    REDIS_URL: str = "redis://localhost:6379/0"

    # Outbound gateway calls
    DEFAULT_COUNTRY_CODE: str = "55"
    GATEWAY_MAX_RETRIES: int = 3
    GATEWAY_RETRY_BASE_SECONDS: float = 2.0
    GATEWAY_TIMEOUT_SECONDS: float = 30.0

    # Quotes
    QUOTES_FILE: str = "orcamentos.json"

    # Admin + alerts
    ADMIN_TOKEN: Optional[str] = None
    ALERT_BOT_TOKEN: Optional[str] = None
    ALERT_CHAT_ID: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def missing_required_settings(error: Exception) -> list[str]:
    """Names of required settings reported by a pydantic ValidationError."""
    missing = []
    for item in getattr(error, "errors", lambda: [])():
        if item.get("type") != "missing":
            continue
        name = str(item.get("loc", ("",))[0])
        if name and name not in missing:
            missing.append(name)
    return missing
