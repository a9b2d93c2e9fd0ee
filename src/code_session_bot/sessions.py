from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, TypeAlias

from .languages import Language


@dataclass(frozen=True, slots=True)
class RealSession:
    """Code actually submitted by a user; terminal node of a chain.

    Example:
        ```python
        session = RealSession(language=Language.PYTHON, code="print(1)")
        ```
    """

    language: Language
    code: str


@dataclass(frozen=True, slots=True)
class ReferenceSession:
    """Points at the message in the same chat that holds the real session.

    Example:
        ```python
        session = ReferenceSession(target_message_id=42)
        ```
    """

    target_message_id: int


@dataclass(frozen=True, slots=True)
class RepliedSession:
    """Stored on a triggering message; points at the bot's reply to it.

    Example:
        ```python
        session = RepliedSession(reply_message_id=43)
        ```
    """

    reply_message_id: int


Session: TypeAlias = RealSession | ReferenceSession | RepliedSession


class _ReadWriteLock:
    """Many concurrent readers, one exclusive writer.

    Example:
        ```python
        lock = _ReadWriteLock()
        ```
    """

    def __init__(self) -> None:
        """Create an unlocked reader/writer lock.

        Example:
            ```python
            lock = _ReadWriteLock()
            ```
        """
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold a shared read lock for the duration of the block.

        Example:
            ```python
            with lock.read():
                ...
            ```
        """
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the exclusive write lock for the duration of the block.

        Example:
            ```python
            with lock.write():
                ...
            ```
        """
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class SessionStore:
    """In-memory map from (chat id, message id) to a session record.

    Entries live for the process lifetime. Every write replaces one whole
    immutable record.

    Example:
        ```python
        store = SessionStore()
        store.put(1, 10, RealSession(Language.BASH, "echo hi"))
        ```
    """

    def __init__(self) -> None:
        """Create an empty store.

        Example:
            ```python
            store = SessionStore()
            ```
        """
        self._lock = _ReadWriteLock()
        self._entries: dict[tuple[int, int], Session] = {}

    def get(self, chat_id: int, message_id: int) -> Session | None:
        """Return the session stored for a message, if any.

        Example:
            ```python
            session = store.get(1, 10)
            ```
        """
        with self._lock.read():
            return self._entries.get((chat_id, message_id))

    def put(self, chat_id: int, message_id: int, session: Session) -> None:
        """Store a session for a message, overwriting any previous entry.

        Example:
            ```python
            store.put(1, 11, ReferenceSession(target_message_id=10))
            ```
        """
        with self._lock.write():
            self._entries[(chat_id, message_id)] = session

    def __len__(self) -> int:
        """Return the number of stored entries.

        Example:
            ```python
            count = len(store)
            ```
        """
        with self._lock.read():
            return len(self._entries)
