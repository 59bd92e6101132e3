"""Unit tests for settings loading."""

import pytest
from pydantic import ValidationError

from attachvault.config import Settings, clear_settings_cache, get_settings


@pytest.mark.unit
class TestSettings:
    def test_testing_environment(self):
        settings = get_settings()
        assert settings.is_testing
        assert not settings.retention_scheduler_enabled

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ATTACHVAULT_MAX_UPLOAD_BYTES", "2048")
        clear_settings_cache()
        assert get_settings().max_upload_bytes == 2048

    def test_s3_configured_requires_both_keys(self):
        assert not Settings(s3_access_key="a").s3_configured
        assert Settings(s3_access_key="a", s3_secret_key="b").s3_configured

    def test_interval_bounds(self):
        with pytest.raises(ValidationError):
            Settings(retention_interval_minutes=0)
        with pytest.raises(ValidationError):
            Settings(retention_interval_minutes=61)

    @pytest.mark.parametrize("minutes", [7, 45])
    def test_interval_must_divide_hour(self, minutes):
        with pytest.raises(ValidationError):
            Settings(retention_interval_minutes=minutes)

    @pytest.mark.parametrize("minutes", [1, 15, 20, 60])
    def test_interval_divisors_accepted(self, minutes):
        assert Settings(retention_interval_minutes=minutes).retention_interval_minutes == minutes

    def test_default_content_type_allowlist(self):
        allowed = Settings().allowed_content_types
        assert "application/pdf" in allowed
        assert "text/html" not in allowed

    def test_allowlist_from_env(self, monkeypatch):
        monkeypatch.setenv("ATTACHVAULT_ALLOWED_CONTENT_TYPES", '["text/csv"]')
        clear_settings_cache()
        assert get_settings().allowed_content_types == ["text/csv"]

    def test_validate_paths_creates_local_root(self, tmp_path):
        root = tmp_path / "uploads"
        Settings(storage_backend="local", local_storage_path=str(root)).validate_paths()
        assert root.is_dir()
