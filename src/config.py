"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """OmniCore assistant configuration. All values come from environment variables."""

    # Storage
    database_path: Path = Field(default=Path("data/omnicore.db"))
    max_stored_messages: int = Field(default=100, ge=1)

    # Default inference backend (used until the user saves their own config)
    default_provider: str = Field(default="mock")
    default_endpoint: str = Field(default="http://localhost:11434")
    default_model: str = Field(default="qwen2.5:7b")

    # HTTP timeouts (seconds)
    probe_timeout_seconds: float = Field(default=5.0, gt=0)
    generate_timeout_seconds: float = Field(default=120.0, gt=0)
    connect_timeout_seconds: float = Field(default=5.0, gt=0)

    # Simulated streaming
    mock_stream_delay_ms: int = Field(default=15, ge=0)

    # Prompt context
    context_memory_limit: int = Field(default=10, ge=0)
    context_history_limit: int = Field(default=10, ge=0)
    context_min_confidence: float = Field(default=0.5, ge=0, le=1)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=_env_file(),
        env_file_encoding="utf-8",
        env_prefix="OMNICORE_",
        extra="forbid",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def mock_stream_delay(self) -> float:
        """Delay between simulated fragments, in seconds."""
        return self.mock_stream_delay_ms / 1000


settings = Settings()
