"""Tests for settings loading."""

import pytest

from leasesentinel.config import (
    DatabaseConfig,
    DispatchConfig,
    Settings,
    get_settings,
    interpolate_env_vars,
    load_app_config,
)


class TestInterpolateEnvVars:
    def test_replaces_variables(self, monkeypatch):
        monkeypatch.setenv("RELAY_HOST", "relay.example.com")
        assert interpolate_env_vars("https://$RELAY_HOST/hook") == "https://relay.example.com/hook"

    def test_nested(self, monkeypatch):
        monkeypatch.setenv("DB_URL", "sqlite+aiosqlite:///./x.db")
        config = {"db": {"url": "$DB_URL"}, "list": ["$DB_URL", 3]}
        assert interpolate_env_vars(config) == {
            "db": {"url": "sqlite+aiosqlite:///./x.db"},
            "list": ["sqlite+aiosqlite:///./x.db", 3],
        }

    def test_missing_variable_raises(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        with pytest.raises(ValueError, match="NOT_SET_ANYWHERE"):
            interpolate_env_vars("$NOT_SET_ANYWHERE")


class TestLoadAppConfig:
    def test_missing_file(self, temp_app_yaml):
        with pytest.raises(FileNotFoundError):
            load_app_config()

    def test_empty_file(self, temp_app_yaml):
        path = temp_app_yaml({})
        path.write_text("")
        assert load_app_config() == {}


class TestGetSettings:
    """Test merging of app.yaml sections over environment defaults."""

    def test_defaults_without_app_yaml(self, temp_app_yaml, monkeypatch):
        monkeypatch.delenv("CRON_SECRET", raising=False)
        monkeypatch.delenv("RELAY_WEBHOOK_URL", raising=False)

        settings = get_settings()

        assert settings.cron_secret == ""
        assert settings.dispatch.timeout == 5.0
        assert settings.sweep.catch_up_days == 0
        assert settings.sweep.notice_window_days == 30
        assert settings.cron.max_failed_auth == 5
        assert settings.relay_url is None

    def test_sections_from_app_yaml(self, temp_app_yaml, monkeypatch):
        monkeypatch.setenv("RELAY", "https://relay.example.com/hook")
        temp_app_yaml(
            {
                "db": {"url": "sqlite+aiosqlite:///./other.db"},
                "dispatch": {"timeout": 2.5, "relay_url": "$RELAY"},
                "sweep": {"catch_up_days": 3},
                "cron": {"max_failed_auth": 2},
                "cron_secret": "from-yaml",
            }
        )

        settings = get_settings()

        assert settings.db.url == "sqlite+aiosqlite:///./other.db"
        assert settings.dispatch.timeout == 2.5
        assert settings.relay_url == "https://relay.example.com/hook"
        assert settings.sweep.catch_up_days == 3
        assert settings.cron.max_failed_auth == 2
        assert settings.cron_secret == "from-yaml"

    def test_env_secret(self, temp_app_yaml, monkeypatch):
        monkeypatch.setenv("CRON_SECRET", "from-env")
        assert get_settings().cron_secret == "from-env"

    def test_cached(self, temp_app_yaml):
        assert get_settings() is get_settings()


class TestRelayUrl:
    def test_app_yaml_wins(self):
        settings = Settings(
            relay_webhook_url="https://env.example.com",
            dispatch=DispatchConfig(relay_url="https://yaml.example.com"),
        )
        assert settings.relay_url == "https://yaml.example.com"

    def test_env_fallback(self):
        settings = Settings(relay_webhook_url="https://env.example.com")
        assert settings.relay_url == "https://env.example.com"

    def test_database_default_is_sqlite(self):
        assert DatabaseConfig().url.startswith("sqlite+aiosqlite")
