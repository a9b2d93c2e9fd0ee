from __future__ import annotations

import argparse
import asyncio
import logging
from functools import partial
from pathlib import Path
from typing import Any, Never, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich_argparse import RawTextRichHelpFormatter

from code_session_bot import BotConfig, ExecutionOutcome, ExecutionRequest, Language, OutcomeKind
from code_session_bot.bot import run_bot
from code_session_bot.execution.engine import ExecutionEngine
from code_session_bot.execution.factory import build_engine
from code_session_bot.render import normalize_diagnostic

_CONSOLE = Console(no_color=False)

_OUTCOME_STYLES = {
    OutcomeKind.SUCCESS: ("Output", "green"),
    OutcomeKind.COMPILE: ("Compile Error", "red"),
    OutcomeKind.RUNTIME: ("Runtime Error", "red"),
    OutcomeKind.TIMEOUT: ("Timed out", "yellow"),
    OutcomeKind.OTHER: ("Environmental Error", "magenta"),
}


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that renders errors via Rich.

    Example:
        ```python
        parser = _RichArgumentParser(prog="python -m csb")
        ```
    """

    def error(self, message: str) -> Never:
        """Render parse errors with Rich and exit.

        Example:
            ```python
            # parser.error("invalid usage")
            ```
        """
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))
        self.print_help()
        raise SystemExit(2)


def _add_backend_options(parser: argparse.ArgumentParser) -> None:
    """Attach the execution backend flags shared by `serve` and `run`.

    Example:
        ```python
        _add_backend_options(run_cmd)
        ```
    """
    parser.add_argument(
        "--config",
        help="Path to a TOML config file ([bot] table or top-level keys).",
    )
    parser.add_argument(
        "--backend",
        choices=["local", "remote"],
        help="Execution backend (default: local, or EXECUTION_BACKEND).",
    )
    parser.add_argument(
        "--service-url",
        help=(
            "Base address of the remote execution service.\n"
            "Example: --service-url http://runner.internal:8080"
        ),
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Wall-clock execution bound in seconds (default: 5, or CODE_TIMEOUT).",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for code-session-bot.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="python -m csb",
        description=(
            "code-session-bot CLI\n"
            "Run the chat bot, or execute one snippet with the same backends."
        ),
        epilog=(
            "Quick Examples:\n"
            "  python -m csb languages\n"
            "  python -m csb run py 'print(input()[::-1])' --stdin hello\n"
            "  python -m csb run cpp --file main.cpp --timeout 10\n"
            "  BOT_TOKEN=123:abc python -m csb serve\n\n"
            "Remote Examples:\n"
            "  python -m csb serve --backend remote --service-url http://runner.internal:8080\n"
            "  python -m csb run bash 'uname -a' --backend remote --service-url http://localhost:8080"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    sub = parser.add_subparsers(
        dest="command",
        required=True,
        parser_class=_RichArgumentParser,
    )

    serve_cmd = sub.add_parser(
        "serve",
        help="Run the chat bot until interrupted.",
        description=(
            "Long-poll the chat service and answer code commands.\n"
            "The bot token is read from BOT_TOKEN or the config file."
        ),
        formatter_class=_HELP_FORMATTER,
    )
    _add_backend_options(serve_cmd)
    serve_cmd.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity (default: INFO, or LOG_LEVEL).",
    )

    run_cmd = sub.add_parser(
        "run",
        help="Execute one snippet and print the classified outcome.",
        description=(
            "Execute one snippet through the configured backend.\n"
            "Exit code is 0 on success and 1 for any failure kind."
        ),
        epilog=(
            "Examples:\n"
            "  python -m csb run py 'print(1+1)'\n"
            "  python -m csb run js 'console.log(input)' --stdin hi\n"
            "  python -m csb run bash 'cat' --stdin hi --no-sandbox"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    run_cmd.add_argument("language", help="Language id or command, e.g. py, python, cpp, bash, js.")
    run_cmd.add_argument("code", nargs="?", default=None, help="Source text (omit when using --file).")
    run_cmd.add_argument("--file", help="Read source text from this path.")
    run_cmd.add_argument("--stdin", default="", help="Text fed to the program as input.")
    run_cmd.add_argument(
        "--no-sandbox",
        action="store_true",
        help="Run the local backend without the sandbox prefix (trusted code only).",
    )
    _add_backend_options(run_cmd)

    sub.add_parser(
        "languages",
        help="List supported languages and their capabilities.",
        description="Show chat commands, backend ids, and per-language execution flags.",
        formatter_class=_HELP_FORMATTER,
    )
    return parser


def load_config(args: argparse.Namespace) -> BotConfig:
    """Resolve config from file, env, and command-line overrides.

    Example:
        ```python
        config = load_config(args)
        ```
    """
    overrides: dict[str, Any] = {
        "backend": args.backend,
        "service_url": args.service_url,
        "code_timeout_seconds": args.timeout,
    }
    if getattr(args, "log_level", None):
        overrides["log_level"] = args.log_level
    if getattr(args, "no_sandbox", False):
        overrides["sandbox_command"] = []
    return BotConfig.load(args.config, **overrides)


def _read_source(args: argparse.Namespace) -> str:
    """Return the snippet from `--file` or the positional argument.

    Example:
        ```python
        code = _read_source(args)
        ```
    """
    if args.file and args.code is not None:
        raise ValueError("Provide either CODE or --file, not both")
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    return args.code or ""


def _print_languages() -> None:
    """Render supported languages in a rich table.

    Example:
        ```python
        _print_languages()
        ```
    """
    table = Table(title="Supported Languages")
    table.add_column("Command", style="cyan")
    table.add_column("Backend ID", style="magenta")
    table.add_column("Compiled")
    table.add_column("Stdin")
    for language in Language:
        caps = language.capabilities
        table.add_row(
            language.command,
            language.backend_id,
            "yes" if caps.needs_compile else "no",
            "stream" if caps.feeds_stdin else "embedded",
        )
    _CONSOLE.print(table)


def _print_outcome(outcome: ExecutionOutcome, language: Language) -> None:
    """Render one execution outcome in a rich panel.

    Example:
        ```python
        _print_outcome(ExecutionOutcome.success("2"), Language.PYTHON)
        ```
    """
    title, style = _OUTCOME_STYLES[outcome.kind]
    if outcome.kind in (OutcomeKind.COMPILE, OutcomeKind.RUNTIME):
        body = normalize_diagnostic(language, outcome.text)
    elif outcome.kind is OutcomeKind.TIMEOUT:
        body = "Execution exceeded the configured timeout."
    else:
        body = outcome.text or "No output."
    _CONSOLE.print(Panel.fit(Text(body), title=title, border_style=style))


async def _run_once(engine: ExecutionEngine, request: ExecutionRequest, timeout: float) -> ExecutionOutcome:
    """Execute one request on `engine`.

    Example:
        ```python
        outcome = asyncio.run(_run_once(engine, request, 5))
        ```
    """
    return await engine.execute(request, timeout)


def _configure_logging(level: str) -> None:
    """Install the rich log handler on the root logger.

    Example:
        ```python
        _configure_logging("INFO")
        ```
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_CONSOLE, rich_tracebacks=True)],
        force=True,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `csb` CLI command handler.

    Example:
        ```python
        code = main(["languages"])
        ```
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.command == "languages":
        _print_languages()
        return 0

    try:
        config = load_config(args)
    except (OSError, ValueError) as exc:
        _CONSOLE.print(Panel.fit(f"Invalid configuration: {exc}", style="bold red"))
        return 2

    if args.command == "run":
        try:
            language = Language.from_id(args.language)
            code = _read_source(args)
        except (OSError, ValueError) as exc:
            _CONSOLE.print(Panel.fit(str(exc), style="bold red"))
            return 2
        engine = build_engine(config)
        request = ExecutionRequest(language=language, code=code, stdin=args.stdin)
        outcome = asyncio.run(_run_once(engine, request, config.code_timeout_seconds))
        _print_outcome(outcome, language)
        return 0 if outcome.ok else 1

    if args.command == "serve":
        _configure_logging(config.log_level)
        try:
            asyncio.run(run_bot(config))
        except ValueError as exc:
            _CONSOLE.print(Panel.fit(str(exc), style="bold red"))
            return 2
        except KeyboardInterrupt:
            _CONSOLE.print(Panel.fit("Stopped.", style="bold yellow"))
        return 0

    parser.error("Unhandled command")
    return 2
