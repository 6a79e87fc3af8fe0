from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from apps/api so it works regardless of CWD
_env_file = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_env_file, extra="ignore")

    database_url: str = "postgresql://localhost/cultivate"
    sql_echo: bool = False

    # Tokens are issued by the auth service; we only decode them
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # Chat (OpenAI-compatible open-source); None => provider-specific default
    chat_api_base_url: str | None = None
    chat_api_key: str | None = None
    chat_model: str | None = None

    openai_api_key: str | None = None

    # Voice memo extraction
    extraction_timeout_seconds: float = 60.0
    extraction_max_tokens: int = 4096
    extraction_temperature: float = 0.2
    # json_object mode makes most models wrap the array in {"suggestions": [...]}
    extraction_json_mode: bool = False

    reprocess_rate_limit: str = "10/minute"

    # CORS (comma-separated origins; * allows all)
    cors_origins: str = "*"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parsed CORS origins for middleware."""
        raw = self.cors_origins.strip()
        return ["*"] if not raw else [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
