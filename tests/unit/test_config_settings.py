"""Unit tests for settings and the exception hierarchy."""

import pytest
from pydantic import ValidationError

from threadline.config.settings import Settings, get_settings
from threadline.exceptions import (
    AIProviderException,
    CheckNotFoundException,
    CheckValidationException,
    ConfigurationException,
    SecurityException,
    ThreadlineException,
)


class TestSettings:
    """Test settings defaults and validation."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.threadline_timeout == 40.0
        assert settings.check_rate_limit == "30/minute"
        assert settings.max_request_size == 10 * 1024 * 1024

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("THREADLINE_TIMEOUT", "12.5")

        assert Settings(_env_file=None).threadline_timeout == 12.5

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, threadline_timeout=0)

    @pytest.mark.parametrize(
        "model", ["openai:gpt-4o", "anthropic:claude", "gemini:gemini-1.5-pro"]
    )
    def test_accepted_model_names(self, model):
        assert Settings(_env_file=None, ai_model=model).ai_model == model

    def test_model_must_be_provider_prefixed(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ai_model="gpt-4o")

    @pytest.mark.parametrize("model", ["fallback", "mystery:model", "openai:"])
    def test_unknown_provider_models_rejected(self, model):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ai_model=model)

    def test_is_production(self):
        assert Settings(_env_file=None, environment="Production").is_production
        assert not Settings(_env_file=None, environment="development").is_production

    def test_repr_hides_secrets(self):
        settings = Settings(
            _env_file=None, openai_api_key="sk-secret", threadline_api_key="tl-secret"
        )

        assert "sk-secret" not in repr(settings)
        assert "tl-secret" not in repr(settings)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestExceptions:
    """Test the exception hierarchy."""

    def test_base_exception_details(self):
        error = ThreadlineException("Something failed", details={"key": "value"})

        assert error.message == "Something failed"
        assert str(error) == "Something failed - Details: {'key': 'value'}"
        assert str(ThreadlineException("Plain")) == "Plain"

    def test_original_error_is_kept(self):
        cause = RuntimeError("boom")

        error = AIProviderException(
            "Generation failed", provider="openai", model="gpt-4o", original_error=cause
        )

        assert error.original_error is cause
        assert error.details == {"provider": "openai", "model": "gpt-4o"}

    def test_subclass_context_lands_in_details(self):
        assert CheckValidationException("bad", field="diff").details == {"field": "diff"}
        assert ConfigurationException("bad", config_key="ai_model").details == {
            "config_key": "ai_model"
        }
        assert SecurityException(
            "denied", security_context="authentication"
        ).details == {"security_context": "authentication"}
        assert CheckNotFoundException("missing", check_id="c1").check_id == "c1"

    def test_all_derive_from_base(self):
        for cls in (
            AIProviderException,
            CheckValidationException,
            ConfigurationException,
            SecurityException,
            CheckNotFoundException,
        ):
            assert issubclass(cls, ThreadlineException)
