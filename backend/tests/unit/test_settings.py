"""
Unit tests for Pydantic Settings configuration.

Tests settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from marketplace.config.settings import Settings


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_has_defaults(self):
        """Settings should have sensible defaults."""
        settings = Settings(_env_file=None)

        assert settings.jwt_algorithm == "HS256"
        assert settings.platform_fee_percentage == 10.0
        assert settings.razorpay_webhook_secret is None
        assert settings.razorpay_plan_ids == {}

    def test_settings_loads_from_env(self, monkeypatch):
        """Settings should load from environment variables."""
        monkeypatch.setenv("RAZORPAY_WEBHOOK_SECRET", "whsec_env")
        monkeypatch.setenv("PLATFORM_FEE_PERCENTAGE", "12.5")
        monkeypatch.setenv("RAZORPAY_PLAN_IDS", '{"TIER2:YEARLY": "plan_t2y"}')

        settings = Settings(_env_file=None)

        assert settings.razorpay_webhook_secret == "whsec_env"
        assert settings.platform_fee_percentage == 12.5
        assert settings.razorpay_plan_ids["TIER2:YEARLY"] == "plan_t2y"

    @pytest.mark.parametrize("fee", [-1, 100.5])
    def test_fee_percentage_validated(self, fee):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, platform_fee_percentage=fee)

    def test_is_production_property(self):
        """is_production should follow the environment name."""
        assert Settings(_env_file=None, environment="production").is_production is True
        settings = Settings(_env_file=None, environment="development")
        assert settings.is_production is False
        assert settings.is_development is True

    def test_allowed_origins_includes_localhost(self):
        settings = Settings(_env_file=None)
        assert "http://localhost:3000" in settings.allowed_origins
