# push_dispatch/dependencies.py

"""
Centralised FastAPI dependency providers.

Lifetimes
---------
* process-wide singletons → built on first use, cached for the process
* tests override them via `app.dependency_overrides`
"""

from __future__ import annotations

from functools import lru_cache

from push_dispatch.config import settings
from push_dispatch.services.push.service import GCMDispatchService


# ─────────────────────── DI provider helpers ───────────────────── #

@lru_cache
def get_gcm_dispatch_service() -> GCMDispatchService:
    """Return the singleton GCMDispatchService built from settings."""
    cfg = settings()
    return GCMDispatchService(
        cfg.gcm_api_key,
        max_tokens_per_request=cfg.gcm_registration_tokens_max,
    )
