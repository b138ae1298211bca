from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Pydantic Settings v2 automatically reads from environment variables
    # OPENAI_API_KEY, BACKEND, MAX_CONTACTS ... (case-insensitive)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.6

    # "auto" picks the live backend when an API key is configured, mock otherwise
    backend: Literal["auto", "live", "mock"] = "auto"
    live_source_tag: str = "chatgpt"

    # Contact-count clamp applied to every search request
    min_contacts: int = 5
    max_contacts: int = 30
    default_max_contacts: int = 15
    fallback_max_contacts: int = 10
    selection_seed_size: int = 5

    # Simulated latency of the mock backend
    mock_delay_ms: int = 420

    # In-memory session store limits; 0 disables either one
    session_ttl_seconds: int = 3600
    max_sessions: int = 1000

    log_level: str = "INFO"
    log_file: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key)

    def use_live_backend(self) -> bool:
        if self.backend == "auto":
            return self.has_api_key
        return self.backend == "live"


settings = Settings()
