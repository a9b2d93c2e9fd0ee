from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .execution.types import ExecutionRequest
from .languages import match_command
from .sessions import RealSession, ReferenceSession, RepliedSession, SessionStore
from .transport import IncomingMessage

logger = logging.getLogger(__name__)

_FIRST_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class ResolvedRequest:
    """Execution request plus its place in the session chain.

    `lineage_root_id` is None for a fresh submission. `previous_reply_id` is
    set when this same message already produced a reply.

    Example:
        ```python
        resolved = ResolvedRequest(ExecutionRequest(Language.PYTHON, "print(1)"))
        ```
    """

    request: ExecutionRequest
    lineage_root_id: int | None = None
    previous_reply_id: int | None = None

    @property
    def is_rerun(self) -> bool:
        """Return True when the request re-runs code from an earlier message.

        Example:
            ```python
            assert not resolved.is_rerun
            ```
        """
        return self.lineage_root_id is not None


def parse_submission(text: str) -> ExecutionRequest | None:
    """Parse a fresh `/<lang> <code>` submission.

    Example:
        ```python
        req = parse_submission("/py print(1+1)")
        ```
    """
    language = match_command(text)
    if language is None:
        return None
    parts = _FIRST_WHITESPACE.split(text, maxsplit=1)
    code = parts[1] if len(parts) > 1 else ""
    return ExecutionRequest(language=language, code=code)


def _resolve_reply(
    message: IncomingMessage,
    reply_to_id: int,
    text: str,
    store: SessionStore,
) -> tuple[ExecutionRequest, int] | None:
    """Follow the session stored on the replied-to message, at most one hop.

    Example:
        ```python
        found = _resolve_reply(message, 11, "new stdin", store)
        ```
    """
    match store.get(message.chat_id, reply_to_id):
        case RealSession(language=language, code=code):
            root_id = reply_to_id
        case ReferenceSession(target_message_id=target_id):
            match store.get(message.chat_id, target_id):
                case RealSession(language=language, code=code):
                    root_id = target_id
                case _:
                    return None
        case _:
            return None
    return ExecutionRequest(language=language, code=code, stdin=text), root_id


def previous_reply(message: IncomingMessage, store: SessionStore) -> int | None:
    """Return the id of the bot reply this message already produced, if any.

    Example:
        ```python
        reply_id = previous_reply(message, store)
        ```
    """
    match store.get(message.chat_id, message.message_id):
        case RepliedSession(reply_message_id=reply_id):
            return reply_id
        case _:
            return None


def resolve(message: IncomingMessage, store: SessionStore) -> ResolvedRequest | None:
    """Turn an incoming message into an execution request, or None to ignore it.

    Example:
        ```python
        resolved = resolve(IncomingMessage(1, 10, "/bash echo hi"), store)
        ```
    """
    text = message.text
    if text is None:
        return None

    if message.reply_to_message_id is None:
        request = parse_submission(text)
        if request is None:
            return None
        logger.info(
            "%s from %s @ %s",
            request.language.command,
            message.sender_id,
            message.chat_id,
        )
        root_id = None
    else:
        found = _resolve_reply(message, message.reply_to_message_id, text, store)
        if found is None:
            return None
        request, root_id = found

    return ResolvedRequest(
        request=request,
        lineage_root_id=root_id,
        previous_reply_id=previous_reply(message, store),
    )
