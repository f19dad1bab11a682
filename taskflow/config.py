"""Configuration loading for the task service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

STORE_BACKENDS = {"memory", "json"}
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 18170
# Names understood by both the logging module and uvicorn.
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


@dataclass(frozen=True)
class AppConfig:
    store_backend: str = "memory"
    data_path: Path | None = None
    activity_log_path: Path | None = None
    log_level: str = "INFO"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        name = name.strip()
        if name != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _read_setting(dotenv_path: Path, key: str) -> str | None:
    raw_value = os.environ.get(key)
    if raw_value is None:
        raw_value = _read_dotenv_value(dotenv_path, key)
    if raw_value is None:
        return None
    raw_value = raw_value.strip()
    return raw_value or None


def _read_path(raw_value: str | None) -> Path | None:
    if raw_value is None:
        return None
    path = Path(raw_value).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path.resolve()


def _read_port(raw_value: str | None, *, key: str) -> int:
    if raw_value is None:
        return DEFAULT_PORT
    try:
        port = int(raw_value)
    except ValueError:
        raise ConfigError(f"{key} must be an integer.")
    if not 0 < port < 65536:
        raise ConfigError(f"{key} must be between 1 and 65535.")
    return port


def _read_log_level(raw_value: str | None, *, key: str) -> str:
    if raw_value is None:
        return "INFO"
    level = raw_value.upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"{key} must be one of: {', '.join(LOG_LEVELS)}.")
    return level


def load_config() -> AppConfig:
    """Load configuration from the environment, falling back to ./.env."""
    dotenv_path = Path.cwd() / ".env"

    store_key = "TASKFLOW_STORE"
    store_backend = (_read_setting(dotenv_path, store_key) or "memory").lower()
    if store_backend not in STORE_BACKENDS:
        raise ConfigError(
            f"{store_key} must be one of: {', '.join(sorted(STORE_BACKENDS))}."
        )

    data_key = "TASKFLOW_DATA_PATH"
    data_path = _read_path(_read_setting(dotenv_path, data_key))
    if store_backend == "json" and data_path is None:
        raise ConfigError(
            f"{data_key} is required when {store_key}=json; set it to the task data file."
        )

    activity_log_path = _read_path(_read_setting(dotenv_path, "TASKFLOW_ACTIVITY_LOG"))

    log_key = "TASKFLOW_LOG_LEVEL"
    log_level = _read_log_level(_read_setting(dotenv_path, log_key), key=log_key)

    host = _read_setting(dotenv_path, "TASKFLOW_HOST") or DEFAULT_HOST
    port_key = "TASKFLOW_PORT"
    port = _read_port(_read_setting(dotenv_path, port_key), key=port_key)

    return AppConfig(
        store_backend=store_backend,
        data_path=data_path,
        activity_log_path=activity_log_path,
        log_level=log_level,
        host=host,
        port=port,
    )
