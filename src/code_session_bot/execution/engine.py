from __future__ import annotations

from typing import Protocol

from .types import ExecutionOutcome, ExecutionRequest


class ExecutionEngine(Protocol):
    async def execute(self, request: ExecutionRequest, timeout_seconds: float) -> ExecutionOutcome:
        """Execute one request and return a classified outcome.

        Example:
            ```python
            outcome = await engine.execute(ExecutionRequest(Language.PYTHON, "print(1)"), timeout_seconds=5)
            ```
        """
        ...
