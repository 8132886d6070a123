"""
Tests for configuration loading and settings.
"""

from pathlib import Path

import pytest
from conftest import make_config

from gaspredictor.config import Config, Settings, load_config, load_settings, resolve_config
from gaspredictor.core.retry import DEFAULT_RETRY_POLICY
from gaspredictor.exceptions import ConfigurationError


def _write(path: Path, content: str) -> None:
    path.write_text(content)


class TestConfig:
    """Tests for the Config container."""

    def test_dot_notation(self):
        config = Config({"server": {"port": 8000}})
        assert config.get("server.port") == 8000
        assert config.get("server.host", "0.0.0.0") == "0.0.0.0"
        assert config.get("missing.key") is None

    def test_set_creates_sections(self):
        config = Config({})
        config.set("database.retry.max_retries", 5)
        assert config.data == {"database": {"retry": {"max_retries": 5}}}

    def test_getitem_and_contains(self):
        config = Config({"server": {"port": 8000}, "environment": "test"})
        assert config["environment"] == "test"
        assert config["server.port"] == 8000
        assert isinstance(config["server"], Config)
        assert "server.port" in config
        assert "server.host" not in config
        with pytest.raises(KeyError):
            config["nope"]

    def test_iteration(self):
        config = Config({"a": 1, "b": 2})
        assert list(config) == ["a", "b"]
        assert dict(config.items()) == {"a": 1, "b": 2}


class TestResolver:
    def test_substitutes_variables_and_env(self):
        data = {"database": {"url": "duckdb:///data/{env}.db"}, "auth": {"jwt_secret": "${SECRET}"}, "n": 3}
        resolved = resolve_config(data, "staging", {"SECRET": "s3cr3t"})
        assert resolved["database"]["url"] == "duckdb:///data/staging.db"
        assert resolved["auth"]["jwt_secret"] == "s3cr3t"
        assert resolved["n"] == 3

    def test_unknown_variable_left_untouched(self):
        assert resolve_config({"a": "${NOPE}"}, "", {}) == {"a": "${NOPE}"}

    def test_lists(self):
        assert resolve_config({"a": ["${X}", 1]}, "", {"X": "y"}) == {"a": ["y", 1]}


class TestLoadConfig:
    """Tests for load_config."""

    def test_environment_only(self, tmp_path, base_environ):
        config = load_config(tmp_path, environ=base_environ)
        assert config.environment == "development"
        assert config.get("server.port") == "8080"
        assert config.get("auth.jwt_secret") == "super-secret"
        assert config.get("rate_limit.max") == "100"

    def test_node_env_fallback(self, tmp_path, base_environ):
        environ = dict(base_environ)
        del environ["APP_ENV"]
        environ["NODE_ENV"] = "production"
        assert load_config(tmp_path, environ=environ).environment == "production"

    def test_explicit_env_wins(self, tmp_path, base_environ):
        assert load_config(tmp_path, env="test", environ=base_environ).environment == "test"

    def test_yaml_files_merge(self, tmp_path, base_environ):
        _write(tmp_path / "config.yaml", "server:\n  host: 0.0.0.0\ndatabase:\n  heartbeat_interval: 5\n")
        _write(tmp_path / "config.development.yaml", "database:\n  readiness_timeout: 12\n")
        config = load_config(tmp_path, environ=base_environ)
        assert config.get("server.host") == "0.0.0.0"
        assert config.get("database.heartbeat_interval") == 5
        assert config.get("database.readiness_timeout") == 12

    def test_environment_overrides_yaml(self, tmp_path, base_environ):
        _write(tmp_path / "config.yaml", "server:\n  port: 9999\n")
        assert load_config(tmp_path, environ=base_environ).get("server.port") == "8080"

    def test_yaml_placeholders(self, tmp_path, base_environ):
        _write(tmp_path / "config.yaml", "database:\n  url: ${DB_URL}\n")
        environ = {**base_environ, "DB_URL": "duckdb://"}
        assert load_config(tmp_path, environ=environ).get("database.url") == "duckdb://"

    def test_dotenv_files(self, tmp_path, base_environ):
        _write(tmp_path / ".env", "DATABASE_URL=duckdb:///from-env.db\nLOG_LEVEL=debug\n")
        _write(tmp_path / ".env.local", "LOG_LEVEL=warning\n")
        config = load_config(tmp_path, environ=base_environ)
        assert config.get("database.url") == "duckdb:///from-env.db"
        assert config.get("logging.level") == "warning"

    def test_process_environment_beats_dotenv(self, tmp_path, base_environ):
        _write(tmp_path / ".env", "PORT=1234\n")
        assert load_config(tmp_path, environ=base_environ).get("server.port") == "8080"

    def test_invalid_yaml(self, tmp_path, base_environ):
        _write(tmp_path / "config.yaml", "server: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Error parsing config.yaml"):
            load_config(tmp_path, environ=base_environ)

    def test_yaml_must_be_mapping(self, tmp_path, base_environ):
        _write(tmp_path / "config.yaml", "- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_config(tmp_path, environ=base_environ)


class TestSettings:
    """Tests for typed settings."""

    def test_load_settings(self, tmp_path, base_environ):
        settings = load_settings(tmp_path, environ=base_environ)
        assert settings.environment == "development"
        assert settings.is_development
        assert settings.server.port == 8080
        assert settings.rate_limit.window_ms == 900000
        assert settings.rate_limit.window_seconds == 900.0
        assert settings.rate_limit.max_requests == 100
        assert settings.database.url is None
        assert settings.database.retry == DEFAULT_RETRY_POLICY

    def test_missing_variables_reported_together(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(tmp_path, environ={"APP_ENV": "production", "PORT": "80"})
        message = str(exc_info.value)
        for name in ("JWT_SECRET", "CORS_ORIGIN", "RATE_LIMIT_WINDOW_MS", "RATE_LIMIT_MAX"):
            assert name in message
        assert "PORT" not in exc_info.value.details["missing"]

    def test_missing_environment_name(self, tmp_path, base_environ):
        environ = dict(base_environ)
        del environ["APP_ENV"]
        with pytest.raises(ConfigurationError, match="APP_ENV"):
            load_settings(tmp_path, environ=environ)

    def test_non_numeric_port(self, tmp_path, base_environ):
        with pytest.raises(ConfigurationError, match="PORT must be an integer"):
            load_settings(tmp_path, environ={**base_environ, "PORT": "eighty"})

    def test_cors_list_in_development(self, tmp_path, base_environ):
        settings = load_settings(tmp_path, environ=base_environ)
        assert settings.cors.origins == ("http://localhost:3000", "http://localhost:5173")
        assert settings.cors.credentials is True
        assert "PATCH" in settings.cors.methods
        assert settings.cors.allowed_headers == ("Content-Type", "Authorization")

    def test_cors_single_origin_outside_development(self, tmp_path, base_environ):
        settings = load_settings(tmp_path, env="production", environ=base_environ)
        assert settings.cors.origins == ("http://localhost:3000,http://localhost:5173",)

    def test_production_logs_json(self, tmp_path, base_environ):
        assert load_settings(tmp_path, env="production", environ=base_environ).logging.json_format is True
        assert load_settings(tmp_path, environ=base_environ).logging.json_format is False

    def test_retry_settings(self):
        settings = Settings.from_config(make_config(database={"retry": {"max_retries": 5, "base_delay": 0.2}}))
        assert settings.database.retry.max_retries == 5
        assert settings.database.retry.base_delay == 0.2
        assert settings.database.retry.max_delay == DEFAULT_RETRY_POLICY.max_delay

    def test_invalid_retry_settings(self):
        with pytest.raises(ConfigurationError, match="database.retry"):
            Settings.from_config(make_config(database={"retry": {"max_retries": -1}}))
        with pytest.raises(ConfigurationError, match="database.retry"):
            Settings.from_config(make_config(database={"retry": {"retries": 2}}))
        with pytest.raises(ConfigurationError, match="max_retries must be an integer"):
            Settings.from_config(make_config(database={"retry": {"max_retries": 2.5}}))

    def test_to_dict_masks_secrets(self):
        settings = Settings.from_config(make_config(database={"url": "postgresql://u:p@db/gas"}))
        data = settings.to_dict()
        assert data["jwt_secret"] == "****"
        assert data["database"]["url"] == "****"
        assert data["server"]["port"] == 8000

        raw = settings.to_dict(mask_secrets=False)
        assert raw["jwt_secret"] == "super-secret"

    def test_settings_are_frozen(self, settings):
        with pytest.raises(AttributeError):
            settings.environment = "production"  # type: ignore[misc]
