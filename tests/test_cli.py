from __future__ import annotations

import io
from pathlib import Path

import pytest

from code_session_bot import ExecutionOutcome, ExecutionRequest
from csb import cli


class _FakeEngine:
    requests: list[tuple[ExecutionRequest, float]] = []
    outcome = ExecutionOutcome.success("2")

    async def execute(self, request: ExecutionRequest, timeout_seconds: float) -> ExecutionOutcome:
        self.__class__.requests.append((request, timeout_seconds))
        return self.__class__.outcome


@pytest.fixture(autouse=True)
def _patch_engine(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeEngine.requests = []
    _FakeEngine.outcome = ExecutionOutcome.success("2")
    monkeypatch.setattr(cli, "build_engine", lambda config: _FakeEngine())
    for key in ("BOT_TOKEN", "CODE_TIMEOUT", "EXECUTION_BACKEND", "EXECUTION_SERVICE_URL", "SANDBOX_COMMAND"):
        monkeypatch.delenv(key, raising=False)


def test_cli_languages_table(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["languages"])
    output = capsys.readouterr().out
    assert code == 0
    assert "Supported Languages" in output
    for command in ("/cpp", "/bash", "/py", "/js"):
        assert command in output


def test_cli_run_prints_output(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["run", "py", "print(1+1)", "--timeout", "3"])
    output = capsys.readouterr().out
    assert code == 0
    assert "Output" in output
    request, timeout = _FakeEngine.requests[0]
    assert request.code == "print(1+1)"
    assert timeout == 3.0


def test_cli_run_reads_file_and_stdin(tmp_path: Path) -> None:
    source = tmp_path / "main.sh"
    source.write_text("cat\n", encoding="utf-8")

    code = cli.main(["run", "bash", "--file", str(source), "--stdin", "hi"])

    assert code == 0
    request, _ = _FakeEngine.requests[0]
    assert request.code == "cat\n"
    assert request.stdin == "hi"


def test_cli_run_failure_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    _FakeEngine.outcome = ExecutionOutcome.runtime_error("boom")
    code = cli.main(["run", "bash", "exit 1"])
    output = capsys.readouterr().out
    assert code == 1
    assert "Runtime Error" in output
    assert "boom" in output


def test_cli_run_unknown_language(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["run", "cobol", "DISPLAY 1"])
    output = capsys.readouterr().out
    assert code == 2
    assert "Unsupported language" in output
    assert _FakeEngine.requests == []


def test_cli_invalid_config_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["run", "py", "print(1)", "--backend", "remote"])
    output = capsys.readouterr().out
    assert code == 2
    assert "Invalid configuration" in output


def test_cli_serve_without_token(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["serve"])
    output = capsys.readouterr().out
    assert code == 2
    assert "BOT_TOKEN not set" in output


def test_cli_no_sandbox_clears_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = []
    monkeypatch.setattr(cli, "build_engine", lambda config: seen.append(config) or _FakeEngine())

    cli.main(["run", "bash", "true", "--no-sandbox"])

    assert seen[0].sandbox_command == []


def test_cli_subcommand_help(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["run", "--help"])
    output = capsys.readouterr().out
    assert exc.value.code == 0
    assert "Execute one snippet through the configured backend." in output


def test_cli_top_level_help_examples(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["--help"])
    output = capsys.readouterr().out
    assert exc.value.code == 0
    assert "Quick Examples:" in output
    assert "python -m csb languages" in output
    assert "Remote Examples:" in output


def test_cli_print_help_writes_to_requested_stream(capsys: pytest.CaptureFixture[str]) -> None:
    parser = cli.build_parser()
    buffer = io.StringIO()
    parser.print_help(file=buffer)
    output = capsys.readouterr().out
    assert output == ""
    help_text = buffer.getvalue()
    assert "Usage:" in help_text
    assert "code-session-bot CLI" in help_text
