"""
SDK configuration
Settings are read from KWIKPASS_* environment variables (or a .env file),
environment tables map an environment name to its endpoints
"""
import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Deployment environment of the merchant"""
    SANDBOX = "sandbox"
    PRODUCTION = "production"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Environment":
        if (name or "").strip().lower() == cls.SANDBOX.value:
            return cls.SANDBOX
        return cls.PRODUCTION


class CheckoutUrls(BaseModel):
    shopify: str
    custom: str


class EnvironmentConfig(BaseModel):
    """Endpoints for one environment"""
    environment: Environment
    base_url: str
    collector_url: str
    schema_vendor: str
    checkout_urls: CheckoutUrls

    model_config = {"frozen": True}


PRODUCTION_CONFIG = EnvironmentConfig(
    environment=Environment.PRODUCTION,
    base_url="https://gkx.gokwik.co/kp/api/v1/",
    collector_url="https://sp-kf-collector-prod.gokwik.io",
    schema_vendor="co.gokwik",
    checkout_urls=CheckoutUrls(
        shopify="https://pdp.gokwik.co/app/appmaker-kwik-checkout.html?storeInfo=",
        custom="https://pdp.gokwik.co/v4/auto.html",
    ),
)

SANDBOX_CONFIG = EnvironmentConfig(
    environment=Environment.SANDBOX,
    base_url="https://api-gw-v4.dev.gokwik.io/sandbox/kp/api/v1/",
    collector_url="https://sp-kf-collector.dev.gokwik.io/",
    schema_vendor="in.gokwik.kwikpass",
    checkout_urls=CheckoutUrls(
        shopify="https://sandbox.pdp.gokwik.co/app/appmaker-kwik-checkout.html?storeInfo=",
        custom="https://sandbox.pdp.gokwik.co/v4/auto.html",
    ),
)


def resolve(environment_name: Optional[str]) -> EnvironmentConfig:
    """
    Resolve an environment name to its endpoint table

    Only "sandbox" (any case) selects the sandbox table. Every other value,
    including typos, resolves to production.
    """
    normalized = (environment_name or "").strip().lower()
    if normalized == Environment.SANDBOX.value:
        return SANDBOX_CONFIG
    if normalized != Environment.PRODUCTION.value:
        logger.warning(
            "Unrecognised environment %r, falling back to production",
            environment_name,
        )
    return PRODUCTION_CONFIG


class Settings(BaseSettings):
    """SDK settings"""

    model_config = SettingsConfigDict(
        env_prefix="KWIKPASS_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    ENVIRONMENT: str = Environment.SANDBOX.value
    MERCHANT_ID: str = ""
    SNOWPLOW_TRACKING_ENABLED: bool = True

    # Durable storage
    REDIS_URL: Optional[str] = None
    STORAGE_NAMESPACE: str = "gk_kwikpass_prefs"
    MEMORY_CACHE_SIZE: int = 100

    # HTTP
    HTTP_TIMEOUT_SECONDS: float = 30.0
    APP_PLATFORM: str = "android"
    APP_VERSION: str = "Unknown"

    # OTP verification
    RESEND_COOLDOWN_SECONDS: int = 30
    OTP_MAX_ATTEMPTS: int = 5

    # Audit
    AUDIT_LOG_FILE: Optional[str] = None

    @field_validator("MEMORY_CACHE_SIZE", "RESEND_COOLDOWN_SECONDS", "OTP_MAX_ATTEMPTS")
    @classmethod
    def _check_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @model_validator(mode="after")
    def _check_production_merchant(self) -> "Settings":
        if self.environment == Environment.PRODUCTION and not self.MERCHANT_ID.strip():
            raise ValueError(
                "KWIKPASS_MERCHANT_ID is required when KWIKPASS_ENVIRONMENT is production"
            )
        return self

    @property
    def environment(self) -> Environment:
        return Environment.from_name(self.ENVIRONMENT)

    @property
    def environment_config(self) -> EnvironmentConfig:
        return resolve(self.ENVIRONMENT)


settings = Settings()
