from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from popup_translator.config.constants import (
    DEFAULT_MODEL,
    MODEL_PRICING,
    CACHE_FILENAME,
    ERROR_HISTORY_FILENAME,
)


class Settings(BaseSettings):
    # Anthropic
    ANTHROPIC_API_KEY: str | None = Field(None)
    ANTHROPIC_API_URL: str = Field("https://api.anthropic.com/v1/messages")
    ANTHROPIC_VERSION: str = Field("2023-06-01")
    TRANSLATION_MODEL: str = Field(DEFAULT_MODEL)
    REQUEST_TIMEOUT_SEC: float = Field(30.0)

    # Translation cache
    CACHE_ENABLED: bool = Field(True)
    CACHE_MAX_ENTRIES: int = Field(100, ge=1)
    CACHE_TTL_SEC: float = Field(30 * 24 * 60 * 60, gt=0)

    # File Storage Paths
    DATA_DIR: Path = Field(Path.home() / ".popup_translator")

    # App
    LOG_LEVEL: str = Field("INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_file_encoding="utf-8"
    )

    @property
    def cache_path(self) -> Path:
        return self.DATA_DIR / CACHE_FILENAME

    @property
    def error_history_path(self) -> Path:
        return self.DATA_DIR / ERROR_HISTORY_FILENAME

    def get_model_pricing(self, model: str) -> tuple[float, float]:
        """Return (input, output) USD price per million tokens for a model."""
        return MODEL_PRICING.get(model, MODEL_PRICING[DEFAULT_MODEL])


settings = Settings()
