from __future__ import annotations

import logging
from collections import Counter

from .execution.engine import ExecutionEngine
from .execution.types import ExecutionOutcome, OutcomeKind
from .render import render_outcome
from .resolver import ResolvedRequest, resolve
from .sessions import RealSession, ReferenceSession, RepliedSession, Session, SessionStore
from .transport import ChatEvent, ChatTransport, EventKind, IncomingMessage, SentMessage

logger = logging.getLogger(__name__)


def chain_session(resolved: ResolvedRequest) -> Session:
    """Return the session to store on the bot reply for `resolved`.

    Example:
        ```python
        session = chain_session(resolved)
        ```
    """
    if resolved.lineage_root_id is not None:
        return ReferenceSession(target_message_id=resolved.lineage_root_id)
    return RealSession(language=resolved.request.language, code=resolved.request.code)


class Dispatcher:
    """Resolve chat events, execute code, and send or edit the reply.

    Session writes happen only after the transport accepted the reply, so a
    failed send never leaves a session pointing at a missing message.

    An edit can arrive while the new-message event for the same message is
    still executing. The edit then finds no reply pointer and is treated as a
    first-time execution, producing a second reply. This race is logged, not
    prevented.

    Example:
        ```python
        dispatcher = Dispatcher(transport=transport, engine=LocalEngine(), store=SessionStore(), timeout_seconds=5)
        ```
    """

    def __init__(
        self,
        *,
        transport: ChatTransport,
        engine: ExecutionEngine,
        store: SessionStore,
        timeout_seconds: float,
    ) -> None:
        """Wire the dispatcher to its collaborators.

        Example:
            ```python
            dispatcher = Dispatcher(transport=t, engine=e, store=s, timeout_seconds=5)
            ```
        """
        if timeout_seconds <= 0:
            raise ValueError("'timeout_seconds' must be positive")
        self._transport = transport
        self._engine = engine
        self._store = store
        self._timeout_seconds = float(timeout_seconds)
        self._in_flight: Counter[tuple[int, int]] = Counter()

    @property
    def store(self) -> SessionStore:
        """Return the session store this dispatcher writes to.

        Example:
            ```python
            store = dispatcher.store
            ```
        """
        return self._store

    async def handle(self, event: ChatEvent) -> SentMessage | None:
        """Route one inbound event to the new-message or edit path.

        Example:
            ```python
            await dispatcher.handle(ChatEvent(EventKind.NEW, message))
            ```
        """
        if event.kind is EventKind.EDITED:
            return await self.on_edited_message(event.message)
        return await self.on_new_message(event.message)

    async def on_new_message(self, message: IncomingMessage) -> SentMessage | None:
        """Execute a submission or re-run and reply with a new message.

        Example:
            ```python
            sent = await dispatcher.on_new_message(IncomingMessage(1, 10, "/py print(1+1)"))
            ```
        """
        resolved = resolve(message, self._store)
        if resolved is None:
            return None
        return await self._reply_new(message, resolved)

    async def on_edited_message(self, message: IncomingMessage) -> SentMessage | None:
        """Re-run an edited message, editing its earlier reply when one exists.

        Example:
            ```python
            sent = await dispatcher.on_edited_message(IncomingMessage(1, 10, "/py print(2+2)"))
            ```
        """
        resolved = resolve(message, self._store)
        if resolved is None:
            return None
        if resolved.previous_reply_id is None:
            if self._in_flight[(message.chat_id, message.message_id)]:
                logger.warning(
                    "edit of message %s @ %s arrived while its first execution is in flight; "
                    "a second reply will be sent",
                    message.message_id,
                    message.chat_id,
                )
            return await self._reply_new(message, resolved)

        outcome = await self._execute(resolved)
        reply = render_outcome(outcome, resolved.request.language)
        await self._transport.edit_message(
            message.chat_id,
            resolved.previous_reply_id,
            reply.text,
            reply.parse_mode,
        )
        self._store.put(message.chat_id, resolved.previous_reply_id, chain_session(resolved))
        return SentMessage(chat_id=message.chat_id, message_id=resolved.previous_reply_id)

    async def _reply_new(self, message: IncomingMessage, resolved: ResolvedRequest) -> SentMessage:
        """Execute, send a fresh reply, and record both sides of the chain.

        Example:
            ```python
            sent = await dispatcher._reply_new(message, resolved)
            ```
        """
        key = (message.chat_id, message.message_id)
        self._in_flight[key] += 1
        try:
            outcome = await self._execute(resolved)
            reply = render_outcome(outcome, resolved.request.language)
            sent = await self._transport.send_reply(
                message.chat_id,
                message.message_id,
                reply.text,
                reply.parse_mode,
            )
        finally:
            self._in_flight[key] -= 1
            if self._in_flight[key] <= 0:
                del self._in_flight[key]
        self._store.put(sent.chat_id, sent.message_id, chain_session(resolved))
        self._store.put(message.chat_id, message.message_id, RepliedSession(reply_message_id=sent.message_id))
        return sent

    async def _execute(self, resolved: ResolvedRequest) -> ExecutionOutcome:
        """Run the resolved request on the configured backend.

        Example:
            ```python
            outcome = await dispatcher._execute(resolved)
            ```
        """
        outcome = await self._engine.execute(resolved.request, self._timeout_seconds)
        if outcome.kind is OutcomeKind.OTHER:
            logger.warning(
                "execution backend failure for %s: %s",
                resolved.request.language.backend_id,
                outcome.text,
            )
        return outcome
