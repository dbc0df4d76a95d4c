"""Data models for the document chat engine."""

import datetime
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Literal

import numpy as np

MessageRole = Literal["user", "assistant"]


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(tz=datetime.UTC)


def new_id() -> str:
    """Return a fresh random identifier."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Chunk:
    """Represents a bounded segment of a document's text."""

    id: str
    text: str
    index: int
    page_number: int = 1
    # Reserved for embedding-based retrieval; lexical ranking ignores it.
    embedding: np.ndarray | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class Document:
    """An extracted document and its ordered chunks.

    Documents are immutable once built and shared by reference between the
    sessions they are attached to.
    """

    id: str
    filename: str
    text: str
    page_count: int
    chunks: tuple[Chunk, ...]
    created_at: datetime.datetime = field(default_factory=utcnow)

    def summary(self) -> dict[str, Any]:
        """Describe the document without its full text.

        Returns:
            Mapping with id, filename, page and chunk counts.
        """
        return {
            "id": self.id,
            "filename": self.filename,
            "pages": self.page_count,
            "chunks": len(self.chunks),
        }


@dataclass(frozen=True)
class Citation:
    """A page reference attached to an assistant answer."""

    page: int
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"page": self.page, "text": self.text}


@dataclass
class Message:
    """A single chat message; id and timestamp are assigned on append if absent."""

    role: MessageRole
    content: str
    id: str = ""
    timestamp: datetime.datetime | None = None
    citations: list[Citation] = field(default_factory=list)

    def copy(self) -> "Message":
        """Return a copy that shares no mutable state with this message."""
        return replace(self, citations=list(self.citations))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "citations": [citation.to_dict() for citation in self.citations],
        }


@dataclass
class Session:
    """Conversation state: attached documents plus ordered message history."""

    id: str
    documents: list[Document] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)
    created_at: datetime.datetime = field(default_factory=utcnow)
    last_activity: datetime.datetime = field(default_factory=utcnow)

    @property
    def document_ids(self) -> list[str]:
        return [document.id for document in self.documents]

    def pooled_chunks(self) -> list[Chunk]:
        """Concatenate chunks in attachment order, then intra-document order.

        Returns:
            All chunks of all attached documents.
        """
        return [chunk for document in self.documents for chunk in document.chunks]

    def snapshot(self) -> "Session":
        """Copy the session so callers never observe later mutation.

        Documents are immutable and shared; messages are copied.

        Returns:
            A detached copy of this session.
        """
        return replace(
            self,
            documents=list(self.documents),
            messages=[message.copy() for message in self.messages],
        )


@dataclass(frozen=True)
class ExtractedText:
    """Whole-document text as returned by the extraction collaborator.

    ``page_offsets`` holds the character offset in ``text`` at which each page
    starts, in page order.
    """

    text: str
    page_count: int
    page_offsets: tuple[int, ...] = (0,)


@dataclass(frozen=True)
class AnswerResult:
    """Output of the answer-generation gateway."""

    answer: str
    grounded: bool


@dataclass(frozen=True)
class SummaryResult:
    """Summary of a session's documents."""

    summary: str
    key_takeaways: list[str]
    main_topics: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "key_takeaways": list(self.key_takeaways),
            "main_topics": list(self.main_topics),
        }


@dataclass(frozen=True)
class ChatResult:
    """Completed answer to a question, ready for direct or streamed delivery."""

    answer: str
    session_id: str
    grounded: bool
    citations: list[Citation]
    relevant_chunks: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "session_id": self.session_id,
            "grounded": self.grounded,
            "citations": [citation.to_dict() for citation in self.citations],
            "relevant_chunks": list(self.relevant_chunks),
        }
