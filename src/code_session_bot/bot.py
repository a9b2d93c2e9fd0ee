from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

import httpx

from .config import BotConfig
from .dispatcher import Dispatcher
from .execution.factory import build_engine
from .sessions import SessionStore
from .telegram import TelegramTransport
from .transport import ChatEvent

logger = logging.getLogger(__name__)

POLL_ERROR_BACKOFF_SECONDS = 3.0


class BotRunner:
    """Pull events serially and handle each one in its own task.

    Example:
        ```python
        runner = BotRunner(dispatcher)
        ```
    """

    def __init__(self, dispatcher: Dispatcher) -> None:
        """Create a runner around a dispatcher.

        Example:
            ```python
            runner = BotRunner(dispatcher)
            ```
        """
        self._dispatcher = dispatcher
        self._tasks: set[asyncio.Task[None]] = set()

    async def handle_event(self, event: ChatEvent) -> None:
        """Handle one event, logging failures instead of raising them.

        Example:
            ```python
            await runner.handle_event(event)
            ```
        """
        try:
            await self._dispatcher.handle(event)
        except Exception:
            logger.exception(
                "Error processing %s message %s @ %s",
                event.kind.value,
                event.message.message_id,
                event.message.chat_id,
            )

    def submit(self, event: ChatEvent) -> asyncio.Task[None]:
        """Schedule one event without waiting for it.

        Example:
            ```python
            task = runner.submit(event)
            ```
        """
        task = asyncio.create_task(self.handle_event(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight event task.

        Example:
            ```python
            await runner.drain()
            ```
        """
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def run(self, events: AsyncIterator[ChatEvent]) -> None:
        """Consume an event stream until it ends, then drain in-flight work.

        Example:
            ```python
            await runner.run(_resilient_updates(transport))
            ```
        """
        try:
            async for event in events:
                self.submit(event)
        finally:
            await self.drain()


async def _resilient_updates(transport: TelegramTransport) -> AsyncIterator[ChatEvent]:
    """Yield updates forever, backing off and retrying on polling errors.

    Example:
        ```python
        async for event in _resilient_updates(transport):
            ...
        ```
    """
    while True:
        try:
            events = await transport.get_updates()
        except Exception:
            logger.exception("Error on update")
            await asyncio.sleep(POLL_ERROR_BACKOFF_SECONDS)
            continue
        for event in events:
            yield event


async def run_bot(config: BotConfig) -> None:
    """Run the bot until cancelled.

    Example:
        ```python
        asyncio.run(run_bot(BotConfig.load()))
        ```
    """
    if not config.bot_token:
        raise ValueError("BOT_TOKEN not set")
    engine = build_engine(config)
    store = SessionStore()
    async with httpx.AsyncClient() as client:
        transport = TelegramTransport(
            client,
            token=config.bot_token,
            poll_timeout_seconds=config.poll_timeout_seconds,
        )
        dispatcher = Dispatcher(
            transport=transport,
            engine=engine,
            store=store,
            timeout_seconds=config.code_timeout_seconds,
        )
        logger.info(
            "bot started: backend=%s timeout=%ss",
            config.backend,
            config.code_timeout_seconds,
        )
        await BotRunner(dispatcher).run(_resilient_updates(transport))
