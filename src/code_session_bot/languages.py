from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class LanguageCapabilities:
    """Per-language execution policy flags.

    Example:
        ```python
        caps = LanguageCapabilities(needs_compile=True, feeds_stdin=True, source_suffix=".cpp")
        ```
    """

    needs_compile: bool
    feeds_stdin: bool
    source_suffix: str


class Language(Enum):
    """Supported languages, declared in command-matching priority order.

    Example:
        ```python
        lang = Language.PYTHON
        ```
    """

    CPP = "cpp"
    BASH = "bash"
    PYTHON = "python"
    JAVASCRIPT = "javascript"

    @property
    def backend_id(self) -> str:
        """Return the stable identifier used when addressing a backend.

        Example:
            ```python
            assert Language.CPP.backend_id == "cpp"
            ```
        """
        return self.value

    @property
    def command(self) -> str:
        """Return the chat command that selects this language.

        Example:
            ```python
            assert Language.PYTHON.command == "/py"
            ```
        """
        return _COMMANDS[self]

    @property
    def capabilities(self) -> LanguageCapabilities:
        """Return the execution policy flags for this language.

        Example:
            ```python
            assert not Language.JAVASCRIPT.capabilities.feeds_stdin
            ```
        """
        return _CAPABILITIES[self]

    @classmethod
    def from_id(cls, backend_id: str) -> "Language":
        """Look up a language by backend id or command.

        Example:
            ```python
            lang = Language.from_id("py")
            ```
        """
        needle = backend_id.strip().lower().lstrip("/")
        for language in cls:
            if needle in {language.value, language.command.lstrip("/")}:
                return language
        raise ValueError(f"Unsupported language: {backend_id!r}")


_COMMANDS = {
    Language.CPP: "/cpp",
    Language.BASH: "/bash",
    Language.PYTHON: "/py",
    Language.JAVASCRIPT: "/js",
}

_CAPABILITIES = {
    Language.CPP: LanguageCapabilities(needs_compile=True, feeds_stdin=True, source_suffix=".cpp"),
    Language.BASH: LanguageCapabilities(needs_compile=False, feeds_stdin=True, source_suffix=".sh"),
    Language.PYTHON: LanguageCapabilities(needs_compile=False, feeds_stdin=True, source_suffix=".py"),
    Language.JAVASCRIPT: LanguageCapabilities(needs_compile=False, feeds_stdin=False, source_suffix=".js"),
}


def match_command(text: str) -> Language | None:
    """Return the first language whose command prefixes `text`.

    Example:
        ```python
        assert match_command("/py print(1)") is Language.PYTHON
        ```
    """
    for language in Language:
        if text.startswith(language.command):
            return language
    return None


def prepare_source(language: Language, code: str, stdin: str) -> str:
    """Return the source text to execute, embedding input where stdin is not fed.

    Example:
        ```python
        src = prepare_source(Language.JAVASCRIPT, "console.log(input)", "hi")
        ```
    """
    if language.capabilities.feeds_stdin:
        return code
    if language is Language.JAVASCRIPT:
        return f"const input = {json.dumps(stdin)};\n{code}"
    return code
