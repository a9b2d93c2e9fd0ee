from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import DEFAULT_REQUEST_GRACE_SECONDS
from .types import ExecutionOutcome, ExecutionRequest, OutcomeKind

logger = logging.getLogger(__name__)

_FAILURE_KINDS = {
    "compile": OutcomeKind.COMPILE,
    "runtime": OutcomeKind.RUNTIME,
    "timeout": OutcomeKind.TIMEOUT,
    "other": OutcomeKind.OTHER,
}


def parse_outcome(body: Any) -> ExecutionOutcome:
    """Convert a tagged outcome body from the execution service.

    Example:
        ```python
        out = parse_outcome({"status": "success", "output": "2"})
        ```
    """
    if not isinstance(body, dict):
        raise ValueError("Execution service returned a non-object body")
    status = body.get("status")
    if status == "success":
        output = body.get("output")
        if not isinstance(output, str):
            raise ValueError("'output' must be a string for a successful outcome")
        return ExecutionOutcome.success(output)
    kind = _FAILURE_KINDS.get(status) if isinstance(status, str) else None
    if kind is None:
        raise ValueError(f"Unknown outcome status: {status!r}")
    message = body.get("message")
    if message is not None and not isinstance(message, str):
        raise ValueError("'message' must be a string or null")
    if kind is OutcomeKind.TIMEOUT:
        return ExecutionOutcome.timeout()
    return ExecutionOutcome(kind, message or "")


class RemoteEngine:
    """Delegate execution to a remote service over HTTP.

    One `POST {base_url}/execute/{language}` per execution with body
    `{"code": ..., "stdin": ...}`.

    Example:
        ```python
        engine = RemoteEngine(base_url="http://runner.internal:8080")
        ```
    """

    def __init__(
        self,
        *,
        base_url: str,
        request_grace_seconds: float = DEFAULT_REQUEST_GRACE_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the engine with the service address.

        Example:
            ```python
            engine = RemoteEngine(base_url="http://localhost:8080", request_grace_seconds=2)
            ```
        """
        cleaned = base_url.strip().rstrip("/")
        if not cleaned:
            raise ValueError("RemoteEngine requires a non-empty 'base_url'")
        if not cleaned.startswith(("http://", "https://")):
            raise ValueError("'base_url' must start with http:// or https://")
        if request_grace_seconds < 0:
            raise ValueError("'request_grace_seconds' must not be negative")
        self._base_url = cleaned
        self._grace = float(request_grace_seconds)
        self._transport = transport

    @property
    def base_url(self) -> str:
        """Return the normalized service address.

        Example:
            ```python
            url = engine.base_url
            ```
        """
        return self._base_url

    def endpoint(self, request: ExecutionRequest) -> str:
        """Return the URL addressed for one request.

        Example:
            ```python
            url = engine.endpoint(ExecutionRequest(Language.PYTHON, "print(1)"))
            ```
        """
        return f"{self._base_url}/execute/{request.language.backend_id}"

    async def execute(self, request: ExecutionRequest, timeout_seconds: float) -> ExecutionOutcome:
        """Submit one request to the service and classify its reply.

        Example:
            ```python
            outcome = await engine.execute(ExecutionRequest(Language.PYTHON, "print(1)"), timeout_seconds=5)
            ```
        """
        url = self.endpoint(request)
        timeout = httpx.Timeout(float(timeout_seconds) + self._grace)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                resp = await client.post(url, json={"code": request.code, "stdin": request.stdin})
                resp.raise_for_status()
                body = resp.json()
        except httpx.TimeoutException:
            return ExecutionOutcome.other(
                f"Execution service did not answer within {float(timeout_seconds) + self._grace:g}s"
            )
        except httpx.HTTPStatusError as exc:
            return ExecutionOutcome.other(
                f"Execution service returned HTTP {exc.response.status_code}"
            )
        except httpx.HTTPError as exc:
            return ExecutionOutcome.other(f"Cannot reach execution service: {exc}")
        except ValueError as exc:
            return ExecutionOutcome.other(f"Execution service returned invalid JSON: {exc}")

        try:
            return parse_outcome(body)
        except ValueError as exc:
            logger.debug("malformed outcome from %s: %r", url, body)
            return ExecutionOutcome.other(f"Execution service returned a malformed outcome: {exc}")
