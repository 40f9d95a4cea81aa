from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "HEALTHLOOP_",
        "extra": "ignore",
    }

    # Scheduler
    fallback_delay_seconds: float = 10.0  # wake interval when no policies are registered
    isolate_failures: bool = False  # keep running other policies when one pipeline raises

    # Policy registry
    policies_file: str = "policies.yaml"
    default_interval_seconds: int = 60

    # Logging
    log_level: str = "INFO"


settings = Settings()
