"""
Name: Settings Tests

Responsibilities:
  - Test defaults and environment overrides
  - Test production requirements for the BaaS credentials
  - Test helper methods (origins, fake BaaS, stack exposure)
"""

import pytest
from fitsync.crosscutting.config import Settings
from pydantic import ValidationError

pytestmark = pytest.mark.unit

_PROD_SECRET = "p" * 32


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


class TestDefaults:
    def test_port_and_origins(self, monkeypatch):
        monkeypatch.delenv("FRONTEND_URL", raising=False)
        monkeypatch.delenv("PORT", raising=False)

        settings = _settings()

        assert settings.port == 5001
        assert settings.get_allowed_origins_list() == ["http://localhost:5173"]

    def test_origins_are_comma_separated(self):
        settings = _settings(frontend_url="https://a.app, https://b.app ,")

        assert settings.get_allowed_origins_list() == ["https://a.app", "https://b.app"]

    def test_app_env_is_normalized(self):
        assert _settings(app_env=" Production ", fake_baas=True).is_production()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_AUTH_MAX", "7")
        monkeypatch.setenv("USERS_TABLE", "profiles")

        settings = _settings()

        assert settings.rate_limit_auth_max == 7
        assert settings.users_table == "profiles"


class TestBaasSelection:
    def test_test_env_uses_fake_baas(self):
        assert _settings(app_env="test").uses_fake_baas() is True

    def test_development_uses_supabase_by_default(self):
        assert _settings(app_env="development").uses_fake_baas() is False

    def test_fake_baas_flag(self):
        assert _settings(app_env="development", fake_baas=True).uses_fake_baas()


class TestProductionRequirements:
    def test_missing_credentials_fail(self):
        with pytest.raises(ValidationError) as exc_info:
            _settings(app_env="production", supabase_url="", supabase_jwt_secret="")

        assert "SUPABASE_URL" in str(exc_info.value)

    def test_short_jwt_secret_fails(self):
        with pytest.raises(ValidationError):
            _settings(
                app_env="production",
                supabase_url="https://x.supabase.co",
                supabase_service_role_key="service",
                supabase_jwt_secret="short",
            )

    def test_complete_production_config(self):
        settings = _settings(
            app_env="production",
            supabase_url="https://x.supabase.co",
            supabase_service_role_key="service",
            supabase_jwt_secret=_PROD_SECRET,
        )

        assert settings.is_production()
        assert settings.should_expose_error_stack() is False


class TestValidation:
    @pytest.mark.parametrize(
        "field", ["rate_limit_window_seconds", "rate_limit_max_keys", "max_body_bytes"]
    )
    def test_non_positive_values_fail(self, field):
        with pytest.raises(ValidationError):
            _settings(**{field: 0})

    def test_stack_exposure_defaults_to_development_only(self):
        assert _settings(app_env="development").should_expose_error_stack() is True
        assert _settings(app_env="test").should_expose_error_stack() is False
        assert _settings(
            app_env="test", expose_error_stack=True
        ).should_expose_error_stack()
