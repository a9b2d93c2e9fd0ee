from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from code_session_bot import ExecutionOutcome, ExecutionRequest, Language, OutcomeKind, RemoteEngine
from code_session_bot.execution.remote_engine import parse_outcome


def _engine(handler, grace: float = 5.0) -> RemoteEngine:
    return RemoteEngine(
        base_url="http://runner.test/",
        request_grace_seconds=grace,
        transport=httpx.MockTransport(handler),
    )


def _execute(engine: RemoteEngine, request: ExecutionRequest, timeout: float = 5) -> ExecutionOutcome:
    return asyncio.run(engine.execute(request, timeout))


def test_posts_code_and_stdin_to_language_endpoint() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "success", "output": "hi"})

    outcome = _execute(_engine(handler), ExecutionRequest(Language.PYTHON, "print(input())", "hi"))

    assert outcome == ExecutionOutcome.success("hi")
    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "http://runner.test/execute/python"
    assert json.loads(seen[0].content) == {"code": "print(input())", "stdin": "hi"}


def test_timeout_includes_grace_period() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.extensions["timeout"])
        return httpx.Response(200, json={"status": "success", "output": ""})

    _execute(_engine(handler, grace=2.5), ExecutionRequest(Language.BASH, "true"), timeout=5)

    assert seen[0]["read"] == 7.5


@pytest.mark.parametrize(
    ("body", "kind", "text"),
    [
        ({"status": "compile", "message": "error: x"}, OutcomeKind.COMPILE, "error: x"),
        ({"status": "runtime", "message": "boom"}, OutcomeKind.RUNTIME, "boom"),
        ({"status": "timeout", "message": None}, OutcomeKind.TIMEOUT, ""),
        ({"status": "other", "message": None}, OutcomeKind.OTHER, ""),
    ],
)
def test_failure_statuses_map_to_outcome_kinds(body: dict, kind: OutcomeKind, text: str) -> None:
    outcome = parse_outcome(body)
    assert outcome.kind is kind
    assert outcome.text == text


def test_malformed_bodies_are_rejected() -> None:
    for body in (["x"], {"status": "success"}, {"status": "exploded"}, {"status": "runtime", "message": 3}):
        with pytest.raises(ValueError):
            parse_outcome(body)


def test_http_error_status_becomes_other() -> None:
    outcome = _execute(
        _engine(lambda request: httpx.Response(503, text="unavailable")),
        ExecutionRequest(Language.CPP, "int main(){}"),
    )
    assert outcome.kind is OutcomeKind.OTHER
    assert "HTTP 503" in outcome.text


def test_invalid_json_becomes_other() -> None:
    outcome = _execute(
        _engine(lambda request: httpx.Response(200, text="<html>")),
        ExecutionRequest(Language.BASH, "echo"),
    )
    assert outcome.kind is OutcomeKind.OTHER
    assert "invalid JSON" in outcome.text


def test_malformed_outcome_becomes_other() -> None:
    outcome = _execute(
        _engine(lambda request: httpx.Response(200, json={"status": "weird"})),
        ExecutionRequest(Language.BASH, "echo"),
    )
    assert outcome.kind is OutcomeKind.OTHER
    assert "malformed outcome" in outcome.text


def test_unreachable_service_becomes_other() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outcome = _execute(_engine(handler), ExecutionRequest(Language.BASH, "echo"))
    assert outcome.kind is OutcomeKind.OTHER
    assert "Cannot reach execution service" in outcome.text


def test_request_timeout_becomes_other_not_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    outcome = _execute(_engine(handler, grace=1), ExecutionRequest(Language.BASH, "sleep 100"), timeout=2)
    assert outcome.kind is OutcomeKind.OTHER
    assert "within 3s" in outcome.text


def test_base_url_is_validated() -> None:
    with pytest.raises(ValueError, match="base_url"):
        RemoteEngine(base_url="  ")
    with pytest.raises(ValueError, match="http"):
        RemoteEngine(base_url="runner:8080")
    assert RemoteEngine(base_url="https://runner.test///").base_url == "https://runner.test"
