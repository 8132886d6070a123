"""
Typed application settings.

Settings are built once at process start from a loaded ``Config`` and passed
explicitly to the app, the connection and the CLI commands that need them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gaspredictor.config.loader import Config, load_config
from gaspredictor.core.retry.policy import DEFAULT_RETRY_POLICY, RetryPolicy
from gaspredictor.exceptions import ConfigurationError

DEVELOPMENT = "development"
PRODUCTION = "production"
TEST = "test"

_SECRET_KEYS = ("jwt_secret", "url")


@dataclass(frozen=True)
class ServerSettings:
    host: str = "127.0.0.1"
    port: int = 8000
    trust_proxy: bool = True
    # Request body limit (10 MB)
    client_max_size: int = 10 * 1024 * 1024


@dataclass(frozen=True)
class CorsSettings:
    origins: tuple[str, ...]
    methods: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")
    allowed_headers: tuple[str, ...] = ("Content-Type", "Authorization")
    credentials: bool = True


@dataclass(frozen=True)
class RateLimitSettings:
    window_ms: int
    max_requests: int
    message: str = "Too many requests from this IP, please try again later."

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000.0


@dataclass(frozen=True)
class DatabaseSettings:
    url: str | None = None
    readiness_timeout: float = 30.0
    heartbeat_interval: float = 10.0
    retry: RetryPolicy = DEFAULT_RETRY_POLICY


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    file: str | None = None
    json_format: bool = False
    console_type: str = "rich"


@dataclass(frozen=True)
class Settings:
    """Validated, immutable settings for one process."""

    environment: str
    jwt_secret: str
    cors: CorsSettings
    rate_limit: RateLimitSettings
    server: ServerSettings = field(default_factory=ServerSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == DEVELOPMENT

    @property
    def is_test(self) -> bool:
        return self.environment == TEST

    @classmethod
    def from_config(cls, config: Config) -> Settings:
        """
        Build settings from a loaded config.

        Every missing required value is reported in a single error.

        Raises:
            ConfigurationError: On missing or malformed values
        """
        required = {
            "environment": "APP_ENV",
            "server.port": "PORT",
            "auth.jwt_secret": "JWT_SECRET",
            "cors.origin": "CORS_ORIGIN",
            "rate_limit.window_ms": "RATE_LIMIT_WINDOW_MS",
            "rate_limit.max": "RATE_LIMIT_MAX",
        }
        missing = [variable for key, variable in required.items() if config.get(key) in (None, "")]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variable(s): {', '.join(missing)}",
                details={"missing": missing},
            )

        environment = str(config.get("environment"))

        server = ServerSettings(
            host=str(config.get("server.host", ServerSettings.host)),
            port=_as_int(config.get("server.port"), "PORT"),
            trust_proxy=_as_bool(config.get("server.trust_proxy", True)),
        )

        cors = CorsSettings(origins=_cors_origins(config.get("cors.origin"), environment))

        rate_limit = RateLimitSettings(
            window_ms=_as_int(config.get("rate_limit.window_ms"), "RATE_LIMIT_WINDOW_MS"),
            max_requests=_as_int(config.get("rate_limit.max"), "RATE_LIMIT_MAX"),
        )

        try:
            retry = RetryPolicy.from_options(config.get("database.retry", {}))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid database.retry settings: {e}") from e

        database = DatabaseSettings(
            url=config.get("database.url") or None,
            readiness_timeout=_as_float(config.get("database.readiness_timeout", 30.0), "database.readiness_timeout"),
            heartbeat_interval=_as_float(
                config.get("database.heartbeat_interval", 10.0), "database.heartbeat_interval"
            ),
            retry=retry,
        )

        log = LoggingSettings(
            level=str(config.get("logging.level", "INFO")).upper(),
            file=config.get("logging.file"),
            json_format=_as_bool(config.get("logging.json", environment == PRODUCTION)),
            console_type=str(config.get("logging.console_type", "rich")),
        )

        return cls(
            environment=environment,
            jwt_secret=str(config.get("auth.jwt_secret")),
            cors=cors,
            rate_limit=rate_limit,
            server=server,
            database=database,
            logging=log,
        )

    def to_dict(self, mask_secrets: bool = True) -> dict[str, Any]:
        """Plain-dict view, with secrets masked by default."""
        from dataclasses import asdict

        data = asdict(self)
        if mask_secrets:
            _mask(data)
        return data


def load_settings(
    project_dir: Path | None = None,
    env: str | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load config files and environment, then build validated settings."""
    return Settings.from_config(load_config(project_dir, env=env, environ=environ))


def _cors_origins(value: Any, environment: str) -> tuple[str, ...]:
    """Development accepts a comma separated list; other environments a single origin."""
    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip() for v in value)
    if environment == DEVELOPMENT:
        return tuple(origin.strip() for origin in str(value).split(",") if origin.strip())
    return (str(value),)


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _mask(data: dict[str, Any]) -> None:
    for key, value in data.items():
        if isinstance(value, dict):
            _mask(value)
        elif key in _SECRET_KEYS and value:
            data[key] = "****"
