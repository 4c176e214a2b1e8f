"""
MealCoach - Configuration and settings.

Settings are read from the environment (and `.env`) via pydantic-settings.
Use `settings` for lazy access; it avoids loading `.env` at import time.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Supabase credentials are required for anything that touches the
    database; the pure modules (sanitizer, advisor, matcher) never read them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str | None = None

    # Application
    mealcoach_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Nutrition lookups are cached per process (seconds)
    nevo_cache_ttl_seconds: int = 600

    # ENFORCE_GUARDRAILS_MEAL_PLANNER=1 - pull hard-block terms into pool sanitation
    enforce_guardrails_meal_planner: bool = False

    # Used by the CLI when no authenticated user is available
    dev_user_id: str = "00000000-0000-0000-0000-000000000002"

    @property
    def is_development(self) -> bool:
        return self.mealcoach_env == "development"

    @property
    def is_production(self) -> bool:
        return self.mealcoach_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for CLI and web entry points."""
    logging.basicConfig(
        level=(level or get_settings().log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
