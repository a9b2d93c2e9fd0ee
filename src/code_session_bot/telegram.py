from __future__ import annotations

import logging
from typing import Any

import httpx

from .transport import ChatEvent, EventKind, IncomingMessage, ParseMode, SentMessage, TransportError

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.telegram.org"
_NOT_MODIFIED = "message is not modified"


def parse_message(raw: Any) -> IncomingMessage | None:
    """Convert a Bot API message object into an `IncomingMessage`.

    Example:
        ```python
        msg = parse_message({"message_id": 10, "chat": {"id": 1}, "text": "/py print(1)"})
        ```
    """
    if not isinstance(raw, dict):
        return None
    chat = raw.get("chat")
    message_id = raw.get("message_id")
    if not isinstance(chat, dict) or not isinstance(message_id, int):
        return None
    chat_id = chat.get("id")
    if not isinstance(chat_id, int):
        return None
    text = raw.get("text")
    reply_to = raw.get("reply_to_message")
    reply_to_id = reply_to.get("message_id") if isinstance(reply_to, dict) else None
    sender = raw.get("from")
    sender_id = sender.get("id") if isinstance(sender, dict) else None
    return IncomingMessage(
        chat_id=chat_id,
        message_id=message_id,
        text=text if isinstance(text, str) else None,
        reply_to_message_id=reply_to_id if isinstance(reply_to_id, int) else None,
        sender_id=sender_id if isinstance(sender_id, int) else None,
    )


def parse_update(update: Any) -> ChatEvent | None:
    """Convert a Bot API update into a chat event, ignoring other update kinds.

    Example:
        ```python
        event = parse_update({"update_id": 1, "edited_message": {...}})
        ```
    """
    if not isinstance(update, dict):
        return None
    for key, kind in (("message", EventKind.NEW), ("edited_message", EventKind.EDITED)):
        if key in update:
            message = parse_message(update[key])
            return ChatEvent(kind, message) if message is not None else None
    return None


class TelegramTransport:
    """Chat transport backed by the Telegram Bot API.

    Example:
        ```python
        async with httpx.AsyncClient() as client:
            transport = TelegramTransport(client, token="123:abc")
        ```
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        token: str,
        base_url: str = API_BASE_URL,
        poll_timeout_seconds: int = 30,
    ) -> None:
        """Bind the transport to an HTTP client and bot token.

        Example:
            ```python
            transport = TelegramTransport(client, token="123:abc", poll_timeout_seconds=10)
            ```
        """
        if not token.strip():
            raise ValueError("TelegramTransport requires a non-empty 'token'")
        self._client = client
        self._api_url = f"{base_url.rstrip('/')}/bot{token.strip()}"
        self._poll_timeout = int(poll_timeout_seconds)
        self._offset: int | None = None

    async def _call(self, method: str, payload: dict[str, Any], timeout: float | None = None) -> Any:
        """Invoke one Bot API method and return its `result`.

        Example:
            ```python
            me = await transport._call("getMe", {})
            ```
        """
        kwargs: dict[str, Any] = {"json": payload}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            resp = await self._client.post(f"{self._api_url}/{method}", **kwargs)
            body = resp.json()
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"{method} returned invalid JSON (HTTP {resp.status_code})") from exc
        if not isinstance(body, dict) or not body.get("ok"):
            description = body.get("description") if isinstance(body, dict) else None
            raise TransportError(f"{method} rejected: {description or f'HTTP {resp.status_code}'}")
        return body.get("result")

    async def get_updates(self) -> list[ChatEvent]:
        """Long-poll one batch of updates and advance the offset past it.

        Example:
            ```python
            events = await transport.get_updates()
            ```
        """
        payload: dict[str, Any] = {
            "timeout": self._poll_timeout,
            "allowed_updates": ["message", "edited_message"],
        }
        if self._offset is not None:
            payload["offset"] = self._offset
        result = await self._call("getUpdates", payload, timeout=self._poll_timeout + 10)
        events: list[ChatEvent] = []
        for update in result or []:
            update_id = update.get("update_id") if isinstance(update, dict) else None
            if isinstance(update_id, int):
                self._offset = max(self._offset or 0, update_id + 1)
            event = parse_update(update)
            if event is not None:
                events.append(event)
        return events

    async def send_reply(
        self,
        chat_id: int,
        reply_to_message_id: int,
        text: str,
        parse_mode: ParseMode,
    ) -> SentMessage:
        """Send `text` as a reply and return the new message identity.

        Example:
            ```python
            sent = await transport.send_reply(1, 10, "No output.", ParseMode.PLAIN)
            ```
        """
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
            "reply_to_message_id": reply_to_message_id,
        }
        if parse_mode is not ParseMode.PLAIN:
            payload["parse_mode"] = parse_mode.value
        result = await self._call("sendMessage", payload)
        sent = parse_message(result)
        if sent is None:
            raise TransportError("sendMessage returned no message")
        return SentMessage(chat_id=sent.chat_id, message_id=sent.message_id)

    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        parse_mode: ParseMode,
    ) -> None:
        """Replace the text of an earlier bot message.

        Example:
            ```python
            await transport.edit_message(1, 11, "<pre>4</pre>", ParseMode.HTML)
            ```
        """
        payload: dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "text": text}
        if parse_mode is not ParseMode.PLAIN:
            payload["parse_mode"] = parse_mode.value
        try:
            await self._call("editMessageText", payload)
        except TransportError as exc:
            if _NOT_MODIFIED not in str(exc):
                raise
            logger.debug("edit of %s @ %s left the message unchanged", message_id, chat_id)
