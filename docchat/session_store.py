"""In-memory session store guarded by a single reader/writer lock.

The store is the only shared mutable state in the engine. Every mutation
takes the lock exclusively and either applies completely or raises before
touching the session; reads take it shared and return detached snapshots.
"""

import datetime
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace

from .config import config
from .errors import (
    DocumentAlreadyAttachedError,
    DocumentNotFoundError,
    SessionNotFoundError,
)
from .models import Document, Message, Session, new_id, utcnow

logger = config.get_logger(__name__)

Clock = Callable[[], datetime.datetime]


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers.

    Not re-entrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class SessionStore:
    """Source of truth for sessions, their documents and message history."""

    def __init__(self, clock: Clock = utcnow) -> None:
        """Initialize an empty store.

        Args:
            clock: Returns the current aware datetime; injectable for tests.
        """
        self._sessions: dict[str, Session] = {}
        self._lock = ReadWriteLock()
        self._clock = clock

    def _require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _touch(self, session: Session) -> None:
        # last_activity never moves backwards even if the clock does
        session.last_activity = max(session.last_activity, self._clock())

    def create(self, document: Document) -> Session:
        """Create a session with ``document`` as its sole member.

        Returns:
            A snapshot of the new session.
        """
        now = self._clock()
        session = Session(
            id=new_id(), documents=[document], created_at=now, last_activity=now
        )
        with self._lock.write_locked():
            self._sessions[session.id] = session
            snapshot = session.snapshot()
        logger.info("Created session %s with document %s", session.id, document.id)
        return snapshot

    def get(self, session_id: str) -> Session:
        """Fetch a session.

        Returns:
            A snapshot of the session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        with self._lock.read_locked():
            return self._require(session_id).snapshot()

    def add_message(self, session_id: str, message: Message) -> Message:
        """Append a message, assigning id and timestamp when absent.

        Returns:
            The stored message.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        with self._lock.write_locked():
            session = self._require(session_id)
            stored = replace(
                message,
                id=message.id or new_id(),
                timestamp=message.timestamp or self._clock(),
                citations=list(message.citations),
            )
            session.messages.append(stored)
            self._touch(session)
            return stored.copy()

    def add_document(self, session_id: str, document: Document) -> None:
        """Attach a document to an existing session.

        Raises:
            SessionNotFoundError: If the session does not exist.
            DocumentAlreadyAttachedError: If the document id is already attached.
        """
        with self._lock.write_locked():
            session = self._require(session_id)
            if document.id in session.document_ids:
                raise DocumentAlreadyAttachedError(document.id, session_id)
            session.documents.append(document)
            self._touch(session)
        logger.info("Added document %s to session %s", document.id, session_id)

    def remove_document(self, session_id: str, document_id: str) -> Document:
        """Detach exactly one document from a session.

        Returns:
            The detached document.

        Raises:
            SessionNotFoundError: If the session does not exist.
            DocumentNotFoundError: If the document is not attached.
        """
        with self._lock.write_locked():
            session = self._require(session_id)
            for position, document in enumerate(session.documents):
                if document.id == document_id:
                    del session.documents[position]
                    self._touch(session)
                    break
            else:
                raise DocumentNotFoundError(document_id, session_id)
        logger.info("Removed document %s from session %s", document_id, session_id)
        return document

    def list_documents(self, session_id: str) -> list[Document]:
        """List a session's documents in attachment order.

        Returns:
            The attached documents.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        with self._lock.read_locked():
            return list(self._require(session_id).documents)

    def clear_messages(self, session_id: str) -> None:
        """Empty the message history; attached documents are untouched.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        with self._lock.write_locked():
            session = self._require(session_id)
            session.messages = []
            self._touch(session)
        logger.info("Cleared messages of session %s", session_id)

    def delete(self, session_id: str) -> None:
        """Remove a session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        with self._lock.write_locked():
            self._require(session_id)
            del self._sessions[session_id]
        logger.info("Deleted session %s", session_id)

    def cleanup_inactive(self, idle: datetime.timedelta) -> int:
        """Evict every session idle for strictly longer than ``idle``.

        Returns:
            Number of sessions removed.
        """
        with self._lock.write_locked():
            threshold = self._clock() - idle
            expired = [
                session_id
                for session_id, session in self._sessions.items()
                if session.last_activity < threshold
            ]
            for session_id in expired:
                del self._sessions[session_id]
        return len(expired)

    def session_ids(self) -> list[str]:
        with self._lock.read_locked():
            return list(self._sessions)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock.read_locked():
            return session_id in self._sessions


class SessionJanitor:
    """Background thread that periodically evicts idle sessions."""

    def __init__(
        self,
        store: SessionStore,
        idle_seconds: float | None = None,
        interval_seconds: float | None = None,
    ) -> None:
        """Initialize the janitor.

        Args:
            store: The store to sweep.
            idle_seconds: Inactivity after which a session is evicted. If None,
                uses config.SESSION_IDLE_SECONDS.
            interval_seconds: Pause between sweeps. If None, uses
                config.SESSION_CLEANUP_INTERVAL_SECONDS.
        """
        self.store = store
        self.idle = datetime.timedelta(
            seconds=idle_seconds
            if idle_seconds is not None
            else config.SESSION_IDLE_SECONDS
        )
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else config.SESSION_CLEANUP_INTERVAL_SECONDS
        )
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="session-janitor", daemon=True
        )
        self._thread.start()
        logger.info(
            "Session cleanup scheduled every %ss (idle limit %s)",
            self.interval_seconds,
            self.idle,
        )

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def sweep(self) -> int:
        """Run one cleanup pass.

        Returns:
            Number of sessions removed.
        """
        removed = self.store.cleanup_inactive(self.idle)
        if removed:
            logger.info("Removed %d inactive sessions", removed)
        return removed

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.sweep()
            except Exception:
                logger.exception("Session cleanup failed")
