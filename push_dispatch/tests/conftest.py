# tests/conftest.py
import logging

import pytest

from push_dispatch.config import settings as _settings
from push_dispatch.dependencies import get_gcm_dispatch_service
from push_dispatch.tests.gcm_test_utils import FakeGCMSender

for name in (
    "asyncio",
    "httpx",
    "httpcore",
):
    logging.getLogger(name).setLevel(logging.WARNING)

# leave the application namespace free to speak at INFO
logging.getLogger("push_dispatch").setLevel(logging.INFO)


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Each test reads settings from its own environment."""
    monkeypatch.setenv("GCM_API_KEY", "apiKey")
    _settings.cache_clear()
    get_gcm_dispatch_service.cache_clear()
    yield
    _settings.cache_clear()
    get_gcm_dispatch_service.cache_clear()


@pytest.fixture
def fake_sender():
    return FakeGCMSender()
