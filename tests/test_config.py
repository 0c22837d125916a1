"""Unit tests for core/config.py -- Settings defaults and SECRET_KEY policy."""

import pytest

from core.config import Settings


class TestSecretKeyPolicy:
    def test_production_without_key_refuses_to_start(self) -> None:
        with pytest.raises(ValueError, match="SECRET_KEY is required"):
            Settings(debug=False, secret_key="")

    def test_short_key_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least 32 characters"):
            Settings(debug=False, secret_key="too-short")

    def test_debug_generates_key(self) -> None:
        settings = Settings(debug=True, secret_key="")
        assert len(settings.secret_key) >= 32

    def test_explicit_key_kept(self) -> None:
        key = "k" * 40
        assert Settings(debug=False, secret_key=key).secret_key == key


class TestDefaults:
    def test_token_and_cache_windows(self) -> None:
        settings = Settings(debug=True, _env_file=None)
        assert settings.token_expire_seconds == 3600
        assert settings.cache_ttl_seconds == 300
        assert settings.redis_max_retries == 10

    def test_cache_ttl_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            Settings(debug=True, cache_ttl_seconds=0)
