from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .execution.config import (
    DEFAULT_REQUEST_GRACE_SECONDS,
    DEFAULT_SANDBOX_COMMAND,
    validate_sandbox_command,
)

DEFAULT_CODE_TIMEOUT_SECONDS = 5.0
DEFAULT_POLL_TIMEOUT_SECONDS = 30
DEFAULT_BACKEND = "local"
BACKENDS = {"local", "remote"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_ENV_KEYS = {
    "BOT_TOKEN": "bot_token",
    "CODE_TIMEOUT": "code_timeout_seconds",
    "EXECUTION_BACKEND": "backend",
    "EXECUTION_SERVICE_URL": "service_url",
    "SANDBOX_COMMAND": "sandbox_command",
    "LOG_LEVEL": "log_level",
}


def _read_config_toml(path: Path) -> dict[str, Any]:
    """Read a TOML config file and return its bot table.

    Example:
        ```python
        raw = _read_config_toml(Path("/etc/code-session-bot.toml"))
        ```
    """
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    bot_obj = raw.get("bot", raw)
    if not isinstance(bot_obj, dict):
        raise ValueError("Bot config must be a TOML table")
    return bot_obj


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect config overrides from environment variables.

    Example:
        ```python
        overrides = _env_overrides({"CODE_TIMEOUT": "10"})
        ```
    """
    out: dict[str, Any] = {}
    for env_key, field_name in _ENV_KEYS.items():
        value = env.get(env_key)
        if value is not None and value.strip():
            out[field_name] = value.strip()
    return out


def _positive_number(value: Any, field_name: str) -> float:
    """Validate and normalize a positive numeric config field.

    Example:
        ```python
        timeout = _positive_number("5", "code_timeout_seconds")
        ```
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Cannot parse '{field_name}': {value!r}") from None
    if number <= 0:
        raise ValueError(f"'{field_name}' must be positive")
    return number


@dataclass(slots=True)
class BotConfig:
    """Process-wide settings read once at startup.

    Example:
        ```python
        config = BotConfig(bot_token="123:abc", code_timeout_seconds=5)
        ```
    """

    bot_token: str | None = None
    code_timeout_seconds: float = DEFAULT_CODE_TIMEOUT_SECONDS
    backend: str = DEFAULT_BACKEND
    service_url: str | None = None
    sandbox_command: list[str] = field(default_factory=lambda: list(DEFAULT_SANDBOX_COMMAND))
    poll_timeout_seconds: int = DEFAULT_POLL_TIMEOUT_SECONDS
    request_grace_seconds: float = DEFAULT_REQUEST_GRACE_SECONDS
    log_level: str = "INFO"
    config_path: str | None = None

    def __post_init__(self) -> None:
        """Validate and normalize fields after dataclass initialization.

        Example:
            ```python
            BotConfig(backend="remote", service_url="http://localhost:8080")
            ```
        """
        self.code_timeout_seconds = _positive_number(self.code_timeout_seconds, "code_timeout_seconds")
        self.poll_timeout_seconds = int(_positive_number(self.poll_timeout_seconds, "poll_timeout_seconds"))
        self.request_grace_seconds = float(self.request_grace_seconds)
        if self.request_grace_seconds < 0:
            raise ValueError("'request_grace_seconds' must not be negative")
        self.backend = str(self.backend).strip().lower()
        if self.backend not in BACKENDS:
            raise ValueError("backend must be 'local' or 'remote'")
        if self.backend == "remote" and not self.service_url:
            raise ValueError("backend 'remote' requires 'service_url'")
        self.sandbox_command = validate_sandbox_command(self.sandbox_command)
        self.log_level = str(self.log_level).strip().upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"'log_level' must be one of {sorted(LOG_LEVELS)}")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], config_path: str | None = None) -> "BotConfig":
        """Create a config from a flat mapping of field values.

        Example:
            ```python
            config = BotConfig.from_mapping({"code_timeout_seconds": 3})
            ```
        """
        known = {name for name in cls.__dataclass_fields__ if name != "config_path"}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**dict(raw), config_path=config_path)

    @classmethod
    def from_file(cls, config_path: str) -> "BotConfig":
        """Create a config from a TOML file.

        Example:
            ```python
            config = BotConfig.from_file("/etc/code-session-bot.toml")
            ```
        """
        return cls.from_mapping(_read_config_toml(Path(config_path)), config_path=config_path)

    @classmethod
    def load(
        cls,
        config_path: str | None = None,
        env: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "BotConfig":
        """Resolve config from defaults, an optional file, env, then explicit overrides.

        Example:
            ```python
            config = BotConfig.load("/etc/code-session-bot.toml", code_timeout_seconds=10)
            ```
        """
        raw: dict[str, Any] = {}
        if config_path is not None:
            raw.update(_read_config_toml(Path(config_path)))
        raw.update(_env_overrides(os.environ if env is None else env))
        raw.update({key: value for key, value in overrides.items() if value is not None})
        return cls.from_mapping(raw, config_path=config_path)
