from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

PRODUCTION_URL = "https://api-pay.araspayment.com"
SANDBOX_URL = "https://api-develop.araspayment.com"


class Settings(BaseSettings):
    api_key: SecretStr = SecretStr("")
    environment: Literal["sandbox", "production"] = "sandbox"
    base_url: str | None = None
    timeout: float = 30

    # Webhook receiving
    webhook_secret: SecretStr = SecretStr("")
    webhook_tolerance: int = 300
    webhook_signature_encoding: Literal["hex", "base64"] = "hex"
    webhook_signature_header: str = "X-PAYwiz-Signature"
    webhook_timestamp_header: str = "X-PAYwiz-Timestamp"
    max_webhook_body_bytes: int = 1_048_576  # 1 MiB

    model_config = SettingsConfigDict(
        env_prefix="PAYWIZ_", env_file=".env", extra="ignore"
    )

    @property
    def resolved_base_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.environment == "production":
            return PRODUCTION_URL
        return SANDBOX_URL


@lru_cache
def get_settings() -> Settings:
    return Settings()
