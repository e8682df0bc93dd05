"""Tests for shared/config.py."""

from unittest.mock import patch
import os

from shared.config import Settings, get_settings


class TestSettings:
    def test_default_values(self):
        """Settings should have sensible defaults."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)
        assert settings.app_name == "WearOn B2B API"
        assert settings.debug is False
        assert settings.port == 8000
        assert settings.paddle_env == "sandbox"
        assert settings.paddle_timeout_seconds == 15.0
        assert settings.paddle_signature_max_age_seconds == 300
        assert settings.redis_queue_key == "wearon:tasks:generation"
        assert settings.merchant_jwt_audience == "merchant"

    def test_loads_from_env(self):
        """Settings should load from environment variables."""
        with patch.dict(os.environ, {"DEBUG": "true", "PORT": "9000"}):
            settings = Settings()
            assert settings.debug is True
            assert settings.port == 9000

    def test_loads_paddle_config_from_env(self):
        """Settings should load Paddle configuration from environment variables."""
        with patch.dict(os.environ, {
            "PADDLE_API_KEY": "key-123",
            "PADDLE_ENV": "production",
            "PADDLE_TIMEOUT_SECONDS": "5",
        }):
            settings = Settings()
            assert settings.paddle_api_key == "key-123"
            assert settings.paddle_timeout_seconds == 5.0


class TestPaddleSettings:
    def test_sandbox_base_url(self):
        assert Settings(paddle_env="sandbox").paddle_api_base_url == "https://sandbox-api.paddle.com"

    def test_production_base_url(self):
        assert Settings(paddle_env="production").paddle_api_base_url == "https://api.paddle.com"

    def test_overage_price_uses_tier_price(self):
        settings = Settings(
            paddle_overage_price_id_growth="pri_growth",
            paddle_price_id_payg="pri_payg",
        )
        assert settings.overage_price_id("growth") == "pri_growth"

    def test_overage_price_falls_back_to_payg(self):
        settings = Settings(paddle_overage_price_id_scale="", paddle_price_id_payg="pri_payg")
        assert settings.overage_price_id("scale") == "pri_payg"

    def test_overage_price_none_when_unconfigured(self):
        settings = Settings(paddle_overage_price_id_starter="", paddle_price_id_payg="")
        assert settings.overage_price_id("starter") is None


class TestGetSettings:
    def test_get_settings_returns_settings_instance(self):
        """get_settings should return a Settings instance."""
        get_settings.cache_clear()
        settings = get_settings()
        assert isinstance(settings, Settings)

    def test_get_settings_caches(self):
        """get_settings should return cached instance."""
        get_settings.cache_clear()
        settings1 = get_settings()
        settings2 = get_settings()
        assert settings1 is settings2
