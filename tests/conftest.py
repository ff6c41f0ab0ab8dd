import os

import pytest

# Set test environment variables
os.environ.update(
    {
        "PAYWIZ_API_KEY": "test_key",
        "PAYWIZ_WEBHOOK_SECRET": "whsec_test",
    }
)

from paywiz.core.config import Settings, get_settings
from paywiz.services.webhook_verify import sign_payload

NOW = 1_700_000_000  # 2023-11-14 22:13:20 UTC


@pytest.fixture
def settings() -> Settings:
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def now() -> int:
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def secret() -> str:
    return "whsec_test"


@pytest.fixture
def body() -> bytes:
    return b'{"type":"account.approved","data":{"accountId":123}}'


@pytest.fixture
def signed_headers(secret):
    """Build the header pair the platform would send with ``body``."""

    def _signed_headers(body: bytes, timestamp: int = NOW, key: str = secret):
        return {
            "X-PAYwiz-Signature": sign_payload(key, body, timestamp),
            "X-PAYwiz-Timestamp": str(timestamp),
        }

    return _signed_headers
