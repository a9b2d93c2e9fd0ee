from __future__ import annotations

from pathlib import Path

import pytest

from code_session_bot import BotConfig, LocalEngine, RemoteEngine
from code_session_bot.execution.config import DEFAULT_SANDBOX_COMMAND
from code_session_bot.execution.factory import build_engine


def test_defaults() -> None:
    config = BotConfig.load(env={})
    assert config.bot_token is None
    assert config.code_timeout_seconds == 5.0
    assert config.backend == "local"
    assert config.sandbox_command == list(DEFAULT_SANDBOX_COMMAND)
    assert config.log_level == "INFO"


def test_environment_overrides_defaults() -> None:
    config = BotConfig.load(
        env={
            "BOT_TOKEN": "123:abc",
            "CODE_TIMEOUT": "12",
            "EXECUTION_BACKEND": "remote",
            "EXECUTION_SERVICE_URL": "http://runner:8080",
            "SANDBOX_COMMAND": "firejail --quiet",
            "LOG_LEVEL": "debug",
        }
    )
    assert config.bot_token == "123:abc"
    assert config.code_timeout_seconds == 12.0
    assert config.backend == "remote"
    assert config.service_url == "http://runner:8080"
    assert config.sandbox_command == ["firejail", "--quiet"]
    assert config.log_level == "DEBUG"


def test_file_then_env_then_overrides(tmp_path: Path) -> None:
    path = tmp_path / "bot.toml"
    path.write_text(
        '[bot]\ncode_timeout_seconds = 3\nbackend = "local"\nsandbox_command = []\n',
        encoding="utf-8",
    )

    from_file = BotConfig.load(str(path), env={})
    assert from_file.code_timeout_seconds == 3.0
    assert from_file.sandbox_command == []
    assert from_file.config_path == str(path)

    layered = BotConfig.load(str(path), env={"CODE_TIMEOUT": "8"}, code_timeout_seconds=None)
    assert layered.code_timeout_seconds == 8.0

    explicit = BotConfig.load(str(path), env={"CODE_TIMEOUT": "8"}, code_timeout_seconds=1)
    assert explicit.code_timeout_seconds == 1.0


def test_remote_backend_requires_service_url() -> None:
    with pytest.raises(ValueError, match="service_url"):
        BotConfig(backend="remote")


@pytest.mark.parametrize("value", ["0", "-1", "soon"])
def test_invalid_timeout_is_rejected(value: str) -> None:
    with pytest.raises(ValueError, match="code_timeout_seconds"):
        BotConfig.load(env={"CODE_TIMEOUT": value})


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown config keys: max_memory"):
        BotConfig.from_mapping({"max_memory": 64})


def test_unknown_backend_is_rejected() -> None:
    with pytest.raises(ValueError, match="backend"):
        BotConfig(backend="docker")


def test_blank_environment_values_are_ignored() -> None:
    config = BotConfig.load(env={"CODE_TIMEOUT": "  ", "BOT_TOKEN": ""})
    assert config.code_timeout_seconds == 5.0
    assert config.bot_token is None


def test_build_engine_follows_backend() -> None:
    remote = build_engine(BotConfig(backend="remote", service_url="http://runner:8080/"))
    local = build_engine(BotConfig(sandbox_command=[]))

    assert isinstance(remote, RemoteEngine)
    assert remote.base_url == "http://runner:8080"
    assert isinstance(local, LocalEngine)
    assert local.sandbox_command == []


def test_build_engine_rejects_remote_without_service_url() -> None:
    config = BotConfig()
    config.backend = "remote"

    with pytest.raises(ValueError, match="service_url"):
        build_engine(config)
