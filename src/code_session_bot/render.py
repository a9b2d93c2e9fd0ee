from __future__ import annotations

import html
import re
from dataclasses import dataclass

from .execution.types import ExecutionOutcome, OutcomeKind
from .languages import Language
from .transport import ParseMode

MAX_MESSAGE_CHARS = 4096
TRUNCATION_MARKER = "\n… (truncated)"
NO_OUTPUT_TEXT = "No output."
TIMEOUT_TEXT = "<i>Timed out.</i>"

_LABELS = {
    OutcomeKind.COMPILE: "Compile Error",
    OutcomeKind.RUNTIME: "Runtime Error",
    OutcomeKind.OTHER: "Environmental Error",
}

_PY_TEMP_FRAME = re.compile(r'File "(?:/[^"]*)?/main\.py"')
_NODE_TEMP_PATH = re.compile(r"(?:/[^\s:()]*)?/main\.js(?=:\d)")
_NODE_BANNER = re.compile(r"\n*^Node\.js v\d+(?:\.\d+)*\s*$", re.MULTILINE)


@dataclass(frozen=True, slots=True)
class RenderedReply:
    """Chat-ready text plus the parse mode it was written for.

    Example:
        ```python
        reply = RenderedReply("No output.", ParseMode.PLAIN)
        ```
    """

    text: str
    parse_mode: ParseMode


def normalize_diagnostic(language: Language, text: str) -> str:
    """Strip interpreter wrapper noise that only reveals sandbox internals.

    Example:
        ```python
        clean = normalize_diagnostic(Language.PYTHON, 'File "/tmp/code-session-bot-x/main.py", line 1')
        ```
    """
    match language:
        case Language.PYTHON:
            text = _PY_TEMP_FRAME.sub('File "<source>"', text)
        case Language.JAVASCRIPT:
            text = _NODE_BANNER.sub("", text)
            text = _NODE_TEMP_PATH.sub("<source>", text)
        case _:
            pass
    return text.strip()


def _fit(body: str, overhead: int) -> str:
    """Truncate `body` so that escaped body plus `overhead` fits one message.

    Example:
        ```python
        body = _fit("x" * 10000, overhead=11)
        ```
    """
    budget = MAX_MESSAGE_CHARS - overhead
    escaped = html.escape(body, quote=False)
    if len(escaped) <= budget:
        return escaped
    budget -= len(TRUNCATION_MARKER)
    pieces: list[str] = []
    used = 0
    for char in body:
        piece = html.escape(char, quote=False)
        if used + len(piece) > budget:
            break
        pieces.append(piece)
        used += len(piece)
    return "".join(pieces) + TRUNCATION_MARKER


def _labelled(label: str, body: str, *, preformatted: bool) -> str:
    """Render a bold label followed by an escaped body.

    Example:
        ```python
        text = _labelled("Runtime Error", "boom", preformatted=True)
        ```
    """
    head = f"<b>{label}</b>\n"
    if preformatted:
        return f"{head}<pre>{_fit(body, len(head) + len('<pre></pre>'))}</pre>"
    return head + _fit(body, len(head))


def render_outcome(outcome: ExecutionOutcome, language: Language) -> RenderedReply:
    """Render an execution outcome into a chat message.

    Example:
        ```python
        reply = render_outcome(ExecutionOutcome.success("2"), Language.PYTHON)
        ```
    """
    match outcome.kind:
        case OutcomeKind.SUCCESS if not outcome.text:
            return RenderedReply(NO_OUTPUT_TEXT, ParseMode.PLAIN)
        case OutcomeKind.SUCCESS:
            body = _fit(outcome.text, len("<pre></pre>"))
            return RenderedReply(f"<pre>{body}</pre>", ParseMode.HTML)
        case OutcomeKind.TIMEOUT:
            return RenderedReply(TIMEOUT_TEXT, ParseMode.HTML)
        case OutcomeKind.COMPILE | OutcomeKind.RUNTIME:
            body = normalize_diagnostic(language, outcome.text)
            return RenderedReply(_labelled(_LABELS[outcome.kind], body, preformatted=True), ParseMode.HTML)
        case OutcomeKind.OTHER:
            return RenderedReply(_labelled(_LABELS[outcome.kind], outcome.text, preformatted=False), ParseMode.HTML)
    raise ValueError(f"Unhandled outcome kind: {outcome.kind!r}")
