"""Configuration module: frozen dataclass loaded from YAML and environment variables."""

import logging
import os
from dataclasses import dataclass, fields

import yaml

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
LOG_LEVELS = ("debug", "info", "warn", "error")


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class LoggerConfig:
    log_level: str = "info"
    environment: str = "development"
    ci: bool = False
    collector_url: str = "http://localhost:5000"
    endpoint: str = "/api/analytics/logs"
    request_timeout: float = 5.0
    flush_interval: float = 5.0
    max_buffer_size: int = 100
    auditor_cooldown: float = 2.0
    auditor_max_reports: int = 10
    auditor_render_delay: float = 0.1
    auditor_route_delay: float = 0.5
    scrub_nested: bool = False
    user_agent: str = f"action-logger/{VERSION}"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def console_mirror(self) -> bool:
        """Events are mirrored to the local console sink outside production."""
        return not self.is_production


# env var name -> (field name, converter)
_ENV_VARS = {
    "LOG_LEVEL": ("log_level", str),
    "APP_ENV": ("environment", str),
    "CI": ("ci", _parse_bool),
    "COLLECTOR_URL": ("collector_url", str),
    "COLLECTOR_ENDPOINT": ("endpoint", str),
    "REQUEST_TIMEOUT": ("request_timeout", float),
    "FLUSH_INTERVAL": ("flush_interval", float),
    "MAX_BUFFER_SIZE": ("max_buffer_size", int),
    "AUDITOR_COOLDOWN": ("auditor_cooldown", float),
    "AUDITOR_MAX_REPORTS": ("auditor_max_reports", int),
    "AUDITOR_RENDER_DELAY": ("auditor_render_delay", float),
    "AUDITOR_ROUTE_DELAY": ("auditor_route_delay", float),
    "SCRUB_NESTED": ("scrub_nested", _parse_bool),
    "USER_AGENT": ("user_agent", str),
}


def _load_yaml(path: str) -> dict:
    """Read a YAML override file. Missing files and bad YAML yield {}."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as exc:
        logger.warning("Invalid YAML in %s, using defaults: %s", path, exc)
        return {}

    if not isinstance(data, dict):
        return {}
    known = {f.name for f in fields(LoggerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(unknown))
    return {k: v for k, v in data.items() if k in known}


def _normalize_level(value: str) -> str:
    level = str(value).strip().lower()
    if level == "warning":
        level = "warn"
    if level not in LOG_LEVELS:
        logger.warning("Unknown log level %r, falling back to 'info'", value)
        return "info"
    return level


def load_config(config_path: str | None = None) -> LoggerConfig:
    """Build LoggerConfig from defaults <- YAML file <- env vars (highest priority).

    The YAML path defaults to the ``CONFIG_PATH`` environment variable.
    """
    kwargs: dict = {}

    path = config_path or os.environ.get("CONFIG_PATH")
    if path:
        kwargs.update(_load_yaml(path))

    for env_name, (field_name, convert) in _ENV_VARS.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            kwargs[field_name] = convert(raw)
        except ValueError:
            logger.warning("Ignoring invalid value for %s: %r", env_name, raw)

    for name in ("ci", "scrub_nested"):
        if name in kwargs:
            kwargs[name] = _parse_bool(kwargs[name])
    kwargs["log_level"] = _normalize_level(kwargs.get("log_level", LoggerConfig.log_level))

    return LoggerConfig(**kwargs)
