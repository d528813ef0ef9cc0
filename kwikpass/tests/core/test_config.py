"""
Tests for environment resolution and settings
"""
import logging
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from kwikpass.core.config import (
    PRODUCTION_CONFIG,
    SANDBOX_CONFIG,
    Environment,
    Settings,
    resolve,
)


class TestResolve:
    """Test environment name resolution"""

    def test_sandbox_any_case(self):
        """Test that sandbox matches case-insensitively"""
        for name in ("SANDBOX", "sandbox", "Sandbox", "  sandbox "):
            assert resolve(name) is SANDBOX_CONFIG, f"{name!r} should resolve to sandbox"

    def test_production(self):
        config = resolve("production")

        assert config is PRODUCTION_CONFIG
        assert config.base_url == "https://gkx.gokwik.co/kp/api/v1/"
        assert config.schema_vendor == "co.gokwik"

    def test_unknown_name_falls_back_to_production(self, caplog):
        """Test that typos and unknown names resolve to production with a warning"""
        with caplog.at_level(logging.WARNING, logger="kwikpass.core.config"):
            config = resolve("staging")

        assert config is PRODUCTION_CONFIG
        assert "staging" in caplog.text

    def test_missing_name_is_production(self):
        assert resolve(None).environment == Environment.PRODUCTION
        assert resolve("").environment == Environment.PRODUCTION

    def test_sandbox_table(self):
        """Test sandbox endpoints"""
        assert SANDBOX_CONFIG.base_url == "https://api-gw-v4.dev.gokwik.io/sandbox/kp/api/v1/"
        assert SANDBOX_CONFIG.collector_url == "https://sp-kf-collector.dev.gokwik.io/"
        assert SANDBOX_CONFIG.schema_vendor == "in.gokwik.kwikpass"
        assert SANDBOX_CONFIG.checkout_urls.custom == "https://sandbox.pdp.gokwik.co/v4/auto.html"


class TestSettings:
    """Test settings loading and validation"""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.environment == Environment.SANDBOX
        assert settings.STORAGE_NAMESPACE == "gk_kwikpass_prefs"
        assert settings.MEMORY_CACHE_SIZE == 100
        assert settings.RESEND_COOLDOWN_SECONDS == 30
        assert settings.OTP_MAX_ATTEMPTS == 5

    def test_reads_prefixed_environment(self):
        """Test that KWIKPASS_ variables are picked up"""
        with patch.dict(os.environ, {
            "KWIKPASS_ENVIRONMENT": "production",
            "KWIKPASS_MERCHANT_ID": "m-123",
            "KWIKPASS_OTP_MAX_ATTEMPTS": "3",
        }):
            settings = Settings(_env_file=None)

        assert settings.environment == Environment.PRODUCTION
        assert settings.environment_config is PRODUCTION_CONFIG
        assert settings.MERCHANT_ID == "m-123"
        assert settings.OTP_MAX_ATTEMPTS == 3

    def test_production_requires_merchant_id(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ENVIRONMENT="production", MERCHANT_ID="")

    def test_rejects_non_positive_values(self):
        """Test that cache size and cooldown must be positive"""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, MEMORY_CACHE_SIZE=0)
        with pytest.raises(ValidationError):
            Settings(_env_file=None, RESEND_COOLDOWN_SECONDS=-1)
