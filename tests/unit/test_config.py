"""
Unit Tests - Configuration Validation
======================================
Test configuration validation and error handling.
"""

import pytest
from pydantic import ValidationError

from config import Settings


class TestConfigValidation:
    """Test configuration validation rules."""

    @pytest.mark.unit
    def test_valid_config_loads(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-secure-key-123")

        settings = Settings(_env_file=None)
        assert settings.openai_api_key == "sk-secure-key-123"

    @pytest.mark.unit
    def test_missing_openai_key_fails(self, monkeypatch):
        """Missing OPENAI_API_KEY should raise ValidationError."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)

        errors = exc_info.value.errors()
        assert any("openai_api_key" in str(e.get("loc", "")) for e in errors)

    @pytest.mark.unit
    def test_empty_openai_key_fails(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "   ")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.unit
    def test_unusual_key_only_warns(self, monkeypatch, capsys):
        monkeypatch.setenv("OPENAI_API_KEY", "not-an-openai-key")

        settings = Settings(_env_file=None)

        assert settings.openai_api_key == "not-an-openai-key"
        assert "WARNING" in capsys.readouterr().err

    @pytest.mark.unit
    def test_documents_per_page_validation(self, monkeypatch):
        monkeypatch.setenv("DOCUMENTS_PER_PAGE", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

        monkeypatch.setenv("DOCUMENTS_PER_PAGE", "101")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

        monkeypatch.setenv("DOCUMENTS_PER_PAGE", "10")
        assert Settings(_env_file=None).documents_per_page == 10

    @pytest.mark.unit
    def test_cache_ttl_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("TRANSLATION_CACHE_TTL_SECONDS", "0")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.unit
    def test_default_values(self, monkeypatch):
        """Default values should be applied for optional settings."""
        for name in ("ENVIRONMENT", "LOG_LEVEL", "DEBUG", "DOCUMENTS_PER_PAGE", "OPENAI_MODEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.environment == "production"
        assert settings.log_level == "INFO"
        assert settings.debug is False
        assert settings.documents_per_page == 5
        assert settings.openai_model == "gpt-3.5-turbo"
        assert settings.translation_cache_ttl_seconds == 30 * 60
        assert settings.max_login_attempts == 4

    @pytest.mark.unit
    def test_uploads_are_the_only_storage_directory(self, monkeypatch):
        """PDF exports are streamed from memory, so there is no export directory."""
        monkeypatch.delenv("UPLOAD_DIR", raising=False)
        monkeypatch.setenv("EXPORT_DIR", "/srv/exports")

        settings = Settings(_env_file=None)

        assert settings.upload_dir == "data/uploads"
        assert not any("export" in name and "dir" in name for name in Settings.model_fields)


class TestIntegrationToggles:

    @pytest.mark.unit
    def test_auth_requires_url_and_key(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)

        assert not Settings(_env_file=None).auth_enabled
        assert not Settings(_env_file=None, supabase_url="https://x.supabase.co").auth_enabled
        assert Settings(
            _env_file=None,
            supabase_url="https://x.supabase.co",
            supabase_anon_key="anon",
        ).auth_enabled

    @pytest.mark.unit
    def test_speech_requires_non_blank_key(self, monkeypatch):
        monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)

        assert not Settings(_env_file=None).speech_enabled
        assert not Settings(_env_file=None, elevenlabs_api_key="  ").speech_enabled
        assert Settings(_env_file=None, elevenlabs_api_key="xi-key").speech_enabled
