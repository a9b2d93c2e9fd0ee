from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from ..languages import Language

DEFAULT_SANDBOX_COMMAND = ("firejail", "--quiet", "--overlay-tmpfs", "--private")
TEMP_DIR_PREFIX = "code-session-bot-"
SOURCE_STEM = "main"
BINARY_NAME = "main.out"
DEFAULT_REQUEST_GRACE_SECONDS = 5.0


def validate_sandbox_command(command: Any) -> list[str]:
    """Validate and normalize the sandbox command prefix.

    An empty list disables the isolation boundary entirely.

    Example:
        ```python
        prefix = validate_sandbox_command(["firejail", "--quiet"])
        ```
    """
    if command is None:
        return list(DEFAULT_SANDBOX_COMMAND)
    if isinstance(command, str):
        command = command.split()
    if not isinstance(command, (list, tuple)):
        raise ValueError("'sandbox_command' must be a list of strings")
    out: list[str] = []
    for item in command:
        if not isinstance(item, str) or not item.strip():
            raise ValueError("'sandbox_command' must contain only non-empty strings")
        out.append(item.strip())
    return out


def compile_command(source: Path, binary: Path) -> list[str]:
    """Return the toolchain invocation that compiles C++ source to `binary`.

    Example:
        ```python
        cmd = compile_command(Path("/tmp/x/main.cpp"), Path("/tmp/x/main.out"))
        ```
    """
    return ["g++", "-x", "c++", "-o", str(binary), str(source)]


def run_command(language: Language, source: Path, binary: Path, sandbox: Sequence[str]) -> list[str]:
    """Return the sandboxed command that runs one program.

    Example:
        ```python
        cmd = run_command(Language.PYTHON, Path("/tmp/x/main.py"), Path("/tmp/x/main.out"), ["firejail"])
        ```
    """
    match language:
        case Language.CPP:
            program = [str(binary)]
        case Language.BASH:
            program = ["bash", str(source)]
        case Language.PYTHON:
            program = ["python3", str(source)]
        case Language.JAVASCRIPT:
            program = ["node", str(source)]
    return [*sandbox, *program]
