"""Tests for settings loading from app.yaml and the environment."""

import pytest

from vellum.config import Settings, get_config_path, get_settings, interpolate_env_vars


class TestConfigPath:
    def test_env_override(self, tmp_path, monkeypatch):
        """Test that VELLUM_CONFIG selects the config file."""
        custom = tmp_path / "custom.yaml"
        monkeypatch.setenv("VELLUM_CONFIG", str(custom))
        assert get_config_path() == custom

    def test_defaults_to_cwd(self, tmp_path, monkeypatch):
        """Test that app.yaml is looked up in the working directory by default."""
        monkeypatch.delenv("VELLUM_CONFIG")
        monkeypatch.chdir(tmp_path)
        assert get_config_path() == tmp_path / "app.yaml"


class TestInterpolation:
    def test_nested_values(self, monkeypatch):
        """Test that $VAR references are expanded inside nested sections and lists."""
        monkeypatch.setenv("DB_HOST", "db.internal")
        config = {"db": {"url": "postgresql+asyncpg://$DB_HOST/docs"}, "tags": ["$DB_HOST", 3]}

        assert interpolate_env_vars(config) == {
            "db": {"url": "postgresql+asyncpg://db.internal/docs"},
            "tags": ["db.internal", 3],
        }

    def test_missing_variable(self, monkeypatch):
        """Test that referencing an unset variable raises ValueError."""
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        with pytest.raises(ValueError, match="NOT_SET_ANYWHERE"):
            interpolate_env_vars("$NOT_SET_ANYWHERE")


class TestGetSettings:
    def test_defaults_without_config_file(self):
        """Test that settings fall back to defaults when no app.yaml exists."""
        settings = get_settings()

        assert settings.db.url == "sqlite+aiosqlite:///./vellum.db"
        assert settings.db.create_all is False
        assert settings.versioning.default_bump == "minor"
        assert settings.versioning.snapshot_unpublished is False
        assert settings.pages.duplicate_title_suffix == " (Copy)"
        assert settings.logfire.enabled is False

    def test_sections_from_yaml(self, app_yaml, monkeypatch):
        """Test that app.yaml sections populate the nested settings models."""
        monkeypatch.setenv("DOCS_DB", "sqlite+aiosqlite:///./docs.db")
        app_yaml(
            {
                "debug": True,
                "db": {"url": "$DOCS_DB", "create_all": True},
                "versioning": {"default_bump": "patch"},
                "pages": {"duplicate_title_suffix": " copy"},
            }
        )

        settings = get_settings()

        assert settings.debug is True
        assert settings.db.url == "sqlite+aiosqlite:///./docs.db"
        assert settings.db.create_all is True
        assert settings.versioning.default_bump == "patch"
        assert settings.pages.duplicate_title_suffix == " copy"

    def test_settings_are_cached(self):
        """Test that get_settings returns the same instance on repeated calls."""
        assert get_settings() is get_settings()

    def test_env_prefix(self, monkeypatch):
        """Test that VELLUM_ environment variables override settings."""
        monkeypatch.setenv("VELLUM_LOG_LEVEL", "DEBUG")
        assert Settings().log_level == "DEBUG"

    def test_invalid_bump_is_rejected(self, app_yaml):
        """Test that an unknown default bump in app.yaml fails validation."""
        app_yaml({"versioning": {"default_bump": "huge"}})
        with pytest.raises(ValueError):
            get_settings()
