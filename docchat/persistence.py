"""Best-effort SQLite persistence for sessions, documents and messages."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

from docchat.config import config
from docchat.errors import PersistenceError

if TYPE_CHECKING:
    from docchat.models import Document, Message, Session

logger = config.get_logger(__name__)

TITLE_MAX_CHARS = 255


class SQLitePersistence:
    """Durable record of user sessions.

    The in-memory store stays the source of truth; rows here are written
    after the fact and never read back by the engine.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database and ensure the schema exists.

        Raises:
            PersistenceError: If the database cannot be created.
        """
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(exist_ok=True, parents=True)
        except OSError as e:
            msg = f"Cannot create database directory {self.db_path.parent}: {e}"
            raise PersistenceError(msg) from e
        self._create_tables()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _create_tables(self) -> None:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS sessions (
                        id TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        title TEXT,
                        created_at TEXT NOT NULL,
                        last_activity TEXT NOT NULL
                    )
                """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS documents (
                        id TEXT NOT NULL,
                        session_id TEXT NOT NULL,
                        filename TEXT NOT NULL,
                        file_path TEXT,
                        pages INTEGER DEFAULT 0,
                        chunks_count INTEGER DEFAULT 0,
                        uploaded_at TEXT NOT NULL,
                        PRIMARY KEY (id, session_id),
                        FOREIGN KEY (session_id) REFERENCES sessions (id)
                    )
                """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS chat_messages (
                        id TEXT PRIMARY KEY,
                        session_id TEXT NOT NULL,
                        role TEXT NOT NULL CHECK(role IN ('user','assistant')),
                        content TEXT NOT NULL,
                        citations TEXT,
                        created_at TEXT NOT NULL,
                        FOREIGN KEY (session_id) REFERENCES sessions (id)
                    )
                """)

                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_sessions_user_id "
                    "ON sessions(user_id)"
                )
                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_documents_session_id "
                    "ON documents(session_id)"
                )
                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_chat_messages_session_id "
                    "ON chat_messages(session_id)"
                )
                conn.commit()
        except sqlite3.Error as e:
            msg = f"Failed to initialize database {self.db_path}: {e}"
            raise PersistenceError(msg) from e

    def save_session(self, session: Session, user_id: str, title: str = "") -> None:
        """Insert a session or refresh its title and last activity.

        Raises:
            PersistenceError: If the write fails.
        """
        title = title or (session.documents[0].filename if session.documents else "")
        self._execute(
            """
            INSERT INTO sessions (id, user_id, title, created_at, last_activity)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET
                title = excluded.title,
                last_activity = excluded.last_activity
            """,
            (
                session.id,
                user_id,
                title[:TITLE_MAX_CHARS],
                session.created_at.isoformat(),
                session.last_activity.isoformat(),
            ),
        )

    def save_document(
        self, session_id: str, document: Document, file_path: str | None = None
    ) -> None:
        """Record a document attached to a session.

        Raises:
            PersistenceError: If the write fails.
        """
        self._execute(
            """
            INSERT INTO documents
                (id, session_id, filename, file_path, pages, chunks_count, uploaded_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (id, session_id) DO NOTHING
            """,
            (
                document.id,
                session_id,
                document.filename,
                file_path,
                document.page_count,
                len(document.chunks),
                document.created_at.isoformat(),
            ),
        )

    def save_message(self, session_id: str, message: Message) -> None:
        """Record a chat message; citations are stored as JSON.

        Raises:
            PersistenceError: If the write fails.
        """
        citations = (
            json.dumps([citation.to_dict() for citation in message.citations])
            if message.citations
            else None
        )
        self._execute(
            """
            INSERT INTO chat_messages
                (id, session_id, role, content, citations, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (id) DO NOTHING
            """,
            (
                message.id,
                session_id,
                message.role,
                message.content,
                citations,
                message.timestamp.isoformat() if message.timestamp else None,
            ),
        )

    def _execute(self, sql: str, params: tuple[object, ...]) -> None:
        try:
            with self._connect() as conn:
                conn.execute(sql, params)
                conn.commit()
        except sqlite3.Error as e:
            msg = f"Database write failed: {e}"
            raise PersistenceError(msg) from e
