"""Configuration loading from an optional YAML file and environment variables.

Precedence (lowest to highest): dataclass defaults, YAML file, environment.
"""

import logging
import os
import secrets
from dataclasses import dataclass, field, fields

import yaml

logger = logging.getLogger(__name__)


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _parse_mode(value) -> int:
    """File mode from an int or an octal string such as "644" or "0o644"."""
    if isinstance(value, int):
        return value
    return int(str(value).strip(), 8)


@dataclass(frozen=True)
class Config:
    log_dir: str = "./logs"
    log_filename: str = "request-logs.log"
    query_log_filename: str = "db-queries.log"
    query_log_enabled: bool = False
    file_mode: int = 0o644
    window_seconds: int = 600
    host: str = "0.0.0.0"
    port: int = 5000
    secret_key: str = field(default_factory=lambda: secrets.token_hex(32))
    admin_token: str | None = None

    @property
    def log_path(self) -> str:
        return os.path.join(self.log_dir, self.log_filename)

    @property
    def query_log_path(self) -> str:
        return os.path.join(self.log_dir, self.query_log_filename)


_ENV_VARS = {
    "log_dir": "REQUEST_LOG_DIR",
    "log_filename": "REQUEST_LOG_FILENAME",
    "query_log_filename": "QUERY_LOG_FILENAME",
    "query_log_enabled": "QUERY_LOG_ENABLED",
    "file_mode": "REQUEST_LOG_FILE_MODE",
    "window_seconds": "STATS_WINDOW_SECONDS",
    "host": "HOST",
    "port": "PORT",
    "secret_key": "SECRET_KEY",
    "admin_token": "ADMIN_TOKEN",
}

_CONVERTERS = {
    "query_log_enabled": _parse_bool,
    "file_mode": _parse_mode,
    "window_seconds": int,
    "port": int,
}


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path or file missing."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, ignoring it", path)
        return {}
    logger.info("Loaded YAML config from %s", path)
    return data


def load_config(yaml_path: str | None = None) -> Config:
    """Build Config from defaults, an optional YAML file, and environment variables."""
    yaml_path = yaml_path or os.environ.get("CONFIG_PATH")
    values = {}
    known = {f.name for f in fields(Config)}

    for key, value in load_yaml_config(yaml_path).items():
        if key in known:
            values[key] = value
        else:
            logger.warning("Ignoring unknown config key %r", key)

    for key, env_name in _ENV_VARS.items():
        raw = os.environ.get(env_name)
        if raw is not None:
            values[key] = raw

    for key, convert in _CONVERTERS.items():
        if key in values:
            values[key] = convert(values[key])

    return Config(**values)
