from __future__ import annotations

from ..config import BotConfig
from .engine import ExecutionEngine
from .local_engine import LocalEngine
from .remote_engine import RemoteEngine


def build_engine(config: BotConfig) -> ExecutionEngine:
    """Create the execution backend selected by configuration.

    Example:
        ```python
        engine = build_engine(BotConfig(backend="remote", service_url="http://localhost:8080"))
        ```
    """
    if config.backend == "remote":
        if config.service_url is None:
            raise ValueError("backend 'remote' requires 'service_url'")
        return RemoteEngine(
            base_url=config.service_url,
            request_grace_seconds=config.request_grace_seconds,
        )
    return LocalEngine(sandbox_command=config.sandbox_command)
