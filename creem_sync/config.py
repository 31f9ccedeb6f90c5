"""Creem billing sync configuration."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven settings for webhook ingestion and reconciliation."""

    # Shared HMAC secret. Empty means every webhook is rejected (fail-closed).
    webhook_secret: str = ""
    # When False no storage operations happen; user callbacks still fire.
    persist_subscriptions: bool = True

    signature_header: str = "creem-signature"
    webhook_path: str = "/creem/webhook"
    access_check_path: str = "/creem/has-access-granted"

    subscription_model: str = "creem_subscription"
    user_model: str = "user"

    model_config = {"env_prefix": "CREEM_", "env_file": ".env", "extra": "ignore"}


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the process-wide Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
