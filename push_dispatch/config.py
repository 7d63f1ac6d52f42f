# push_dispatch/config.py

"""
Process configuration, read from the environment (and `.env` when present).

Call `settings()` rather than instantiating `Settings` directly; tests call
`settings.cache_clear()` after patching the environment.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # GCM / FCM legacy HTTP gateway
    gcm_api_key: Optional[str] = None
    gcm_endpoint: str = "https://fcm.googleapis.com/fcm/send"
    gcm_registration_tokens_max: int = 1000   # gateway's per-request device limit
    gcm_request_timeout_s: float = 10.0
    gcm_backoff_initial_s: float = 1.0

    log_level: str = "INFO"


@lru_cache
def settings() -> Settings:
    return Settings()
