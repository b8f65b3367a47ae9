"""
Sahayak — Application Configuration
Conversation core tunables (session expiry, intent threshold, need thresholds,
upstream latency budget). All config from environment / .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- App ---
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    # --- Conversation context ---
    session_timeout_seconds: float = 120.0
    max_context_turns: int = 5
    simplify_after_clarifications: int = 3
    escalate_after_failures: int = 3
    # Idle contexts older than this are dropped instead of renewed
    session_retention_seconds: float = 3600.0

    # --- Intent routing ---
    intent_confidence_threshold: float = 0.7

    # --- Matching ---
    # Annual income (INR) below which a citizen is treated as in urgent /
    # financial need. Unset by default; deployments configure it.
    poverty_income_threshold: float | None = None
    search_result_limit: int = 5

    # --- Upstream collaborators (opportunity store, profile store, classifier) ---
    upstream_timeout_seconds: float = 5.0
    upstream_retry_backoff_seconds: float = 0.5
    upstream_max_retries: int = 1

    # External opportunity store (REST). Unset: in-memory catalogue.
    opportunity_store_url: str | None = None
    opportunity_store_api_key: str | None = None

    # --- HTTP adapter ---
    rate_limit_per_minute: int = 60
    seed_catalogue_enabled: bool = True

    # --- Derived ---
    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def urgent_need_configured(self) -> bool:
        """True when an income cutoff is available for need detection."""
        return self.poverty_income_threshold is not None


@lru_cache()
def get_settings() -> Settings:
    """Cached singleton for application settings."""
    return Settings()
