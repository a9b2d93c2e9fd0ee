from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class ParseMode(Enum):
    """Rendering mode of an outgoing chat message.

    Example:
        ```python
        mode = ParseMode.HTML
        ```
    """

    PLAIN = "plain"
    HTML = "HTML"
    MARKDOWN = "Markdown"


class EventKind(Enum):
    """Kind of inbound chat event.

    Example:
        ```python
        kind = EventKind.EDITED
        ```
    """

    NEW = "new"
    EDITED = "edited"


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    """Chat message as seen by the dispatcher; ids are opaque.

    Example:
        ```python
        msg = IncomingMessage(chat_id=1, message_id=10, text="/py print(1)")
        ```
    """

    chat_id: int
    message_id: int
    text: str | None
    reply_to_message_id: int | None = None
    sender_id: int | None = None


@dataclass(frozen=True, slots=True)
class ChatEvent:
    """One inbound new-message or edited-message event.

    Example:
        ```python
        event = ChatEvent(EventKind.NEW, IncomingMessage(1, 10, "/bash echo hi"))
        ```
    """

    kind: EventKind
    message: IncomingMessage


@dataclass(frozen=True, slots=True)
class SentMessage:
    """Identity of a message the bot sent.

    Example:
        ```python
        sent = SentMessage(chat_id=1, message_id=11)
        ```
    """

    chat_id: int
    message_id: int


class TransportError(RuntimeError):
    """Raised when the chat service rejects or fails a request."""


class ChatTransport(Protocol):
    async def send_reply(
        self,
        chat_id: int,
        reply_to_message_id: int,
        text: str,
        parse_mode: ParseMode,
    ) -> SentMessage:
        """Send `text` as a reply to a message and return the new message id.

        Example:
            ```python
            sent = await transport.send_reply(1, 10, "No output.", ParseMode.PLAIN)
            ```
        """
        ...

    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        parse_mode: ParseMode,
    ) -> None:
        """Replace the text of a message the bot sent earlier.

        Example:
            ```python
            await transport.edit_message(1, 11, "<pre>3</pre>", ParseMode.HTML)
            ```
        """
        ...
