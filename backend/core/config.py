from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / ".env"

# Load environment variables from .env if present
load_dotenv(ENV_PATH)


class Settings(BaseSettings):
    app_env: str = Field("development", env="APP_ENV")
    app_host: str = Field("127.0.0.1", env="APP_HOST")
    app_port: int = Field(8000, env="APP_PORT")
    log_level: str = Field("INFO", env="LOG_LEVEL")
    cors_origins: str = Field("*", env="CORS_ORIGINS")

    long_liquidation_factor: float = Field(0.9, env="LONG_LIQUIDATION_FACTOR")
    short_liquidation_factor: float = Field(0.8, env="SHORT_LIQUIDATION_FACTOR")
    form_store_path: str = Field("data/calculator-form.json", env="FORM_STORE_PATH")

    class Config:
        env_file = ENV_PATH
        case_sensitive = False

    @field_validator("long_liquidation_factor", "short_liquidation_factor")
    @classmethod
    def validate_factor(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("liquidation factor must be in (0, 1]")
        return value

    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in (self.cors_origins or "").split(",") if origin.strip()] or ["*"]

    def resolved_form_store_path(self) -> Path:
        candidate = Path((self.form_store_path or "").strip() or "data/calculator-form.json")
        if candidate.is_absolute():
            return candidate
        return (BASE_DIR / candidate).resolve()


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def get_log_level(default: Optional[str] = None) -> str:
    """Convenience accessor for log level with optional override."""
    settings = get_settings()
    return settings.log_level or (default or "INFO")
