from __future__ import annotations

from pydantic_settings import BaseSettings


class ConfigurationError(ValueError):
    """Invalid user-supplied configuration (timezone, plan, plan file, dates)."""


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_prefix": "CLAUDE_USAGE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # Claude data location; empty = platform default search
    config_dir: str = ""

    # IANA timezone name; empty = system local zone
    timezone: str = ""

    # Plan limits
    plan: str = "pro"
    plans_file: str = ""  # optional YAML with extra / overridden plans

    # Read cache
    cache_timeout_seconds: float = 300.0

    # Live refresh
    refresh_interval_seconds: float = 3.0

    # Billing window
    # Raw requests per user-visible message; a heuristic, not a billing fact
    window_hours: int = 5
    window_message_divisor: float = 5.0

    # Thread pool for per-project aggregation (1 = sequential)
    max_workers: int = 1

    # Logging
    log_level: str = "WARNING"


settings = Settings()
