"""
Centralized configuration for the WearOn B2B API.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings are namespaced (e.g., PADDLE_*, SUPABASE_*, REDIS_*).
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "WearOn B2B API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""  # Direct Postgres URL, used by run_migrations.py

    # Merchant authentication (JWTs issued to stores)
    merchant_jwt_secret: str = ""
    merchant_jwt_audience: str = "merchant"

    # Paddle
    paddle_api_key: str = ""
    paddle_env: str = "sandbox"
    paddle_webhook_secret: str = ""
    paddle_overage_price_id_starter: str = ""
    paddle_overage_price_id_growth: str = ""
    paddle_overage_price_id_scale: str = ""
    paddle_price_id_payg: str = ""
    paddle_timeout_seconds: float = 15.0
    paddle_signature_max_age_seconds: int = 300

    # Work queue
    redis_url: str = ""
    redis_queue_key: str = "wearon:tasks:generation"
    queue_publish_timeout_seconds: float = 5.0

    # Cron
    cron_secret: str = ""
    stuck_session_threshold_minutes: int = 15

    @property
    def paddle_api_base_url(self) -> str:
        """Paddle API host for the configured environment."""
        if self.paddle_env.lower() == "production":
            return "https://api.paddle.com"
        return "https://sandbox-api.paddle.com"

    def overage_price_id(self, tier: str) -> Optional[str]:
        """
        Resolve the overage price for a subscription tier.

        Falls back to the pay-as-you-go price when no tier-specific
        overage price is configured.
        """
        tier_price = getattr(self, f"paddle_overage_price_id_{tier}", "")
        return tier_price or self.paddle_price_id_payg or None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
