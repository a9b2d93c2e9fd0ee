from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..languages import Language


@dataclass(frozen=True, slots=True)
class ExecutionRequest:
    """Normalized request sent to an execution engine.

    Example:
        ```python
        req = ExecutionRequest(language=Language.PYTHON, code="print(input())", stdin="hi")
        ```
    """

    language: Language
    code: str
    stdin: str = ""


class OutcomeKind(Enum):
    """Classification of one execution.

    Example:
        ```python
        kind = OutcomeKind.TIMEOUT
        ```
    """

    SUCCESS = "success"
    COMPILE = "compile"
    RUNTIME = "runtime"
    TIMEOUT = "timeout"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    """Normalized result returned by an execution engine.

    `text` is the program output for `SUCCESS` and the diagnostic for every
    failure kind (empty for `TIMEOUT`).

    Example:
        ```python
        out = ExecutionOutcome.success("2")
        ```
    """

    kind: OutcomeKind
    text: str = ""

    @property
    def ok(self) -> bool:
        """Return True when the program ran to completion without diagnostics.

        Example:
            ```python
            assert ExecutionOutcome.success("").ok
            ```
        """
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def success(cls, output: str) -> "ExecutionOutcome":
        """Build a successful outcome carrying program output.

        Example:
            ```python
            out = ExecutionOutcome.success("hello")
            ```
        """
        return cls(OutcomeKind.SUCCESS, output)

    @classmethod
    def compile_error(cls, message: str) -> "ExecutionOutcome":
        """Build an outcome for source the toolchain rejected.

        Example:
            ```python
            out = ExecutionOutcome.compile_error("error: 'x' was not declared")
            ```
        """
        return cls(OutcomeKind.COMPILE, message)

    @classmethod
    def runtime_error(cls, message: str) -> "ExecutionOutcome":
        """Build an outcome for a program that wrote to its error stream.

        Example:
            ```python
            out = ExecutionOutcome.runtime_error("ZeroDivisionError: division by zero")
            ```
        """
        return cls(OutcomeKind.RUNTIME, message)

    @classmethod
    def timeout(cls) -> "ExecutionOutcome":
        """Build an outcome for a program killed at the wall-clock bound.

        Example:
            ```python
            out = ExecutionOutcome.timeout()
            ```
        """
        return cls(OutcomeKind.TIMEOUT, "")

    @classmethod
    def other(cls, message: str) -> "ExecutionOutcome":
        """Build an outcome for an infrastructure failure.

        Example:
            ```python
            out = ExecutionOutcome.other("Cannot spawn runner process: No such file")
            ```
        """
        return cls(OutcomeKind.OTHER, message)
