"""DocChat - conversational question answering over uploaded documents."""

from .context import ContextAssembler, extract_citations
from .conversation import ChatEngine
from .document_processing import DocumentLoader, TextChunker, build_document
from .errors import (
    DocChatError,
    DocumentAlreadyAttachedError,
    DocumentNotFoundError,
    ExtractionError,
    NoDocumentsError,
    NotFoundError,
    PersistenceError,
    ProviderError,
    SessionNotFoundError,
    ValidationError,
)
from .models import (
    ChatResult,
    Chunk,
    Citation,
    Document,
    Message,
    Session,
    SummaryResult,
)
from .persistence import SQLitePersistence
from .providers import AnswerProvider, get_answer_provider
from .ranking import RelevanceRanker
from .session_store import SessionJanitor, SessionStore
from .streaming import StreamEvent, StreamingResponder, split_into_fragments

__all__ = [
    "AnswerProvider",
    "ChatEngine",
    "ChatResult",
    "Chunk",
    "Citation",
    "ContextAssembler",
    "DocChatError",
    "Document",
    "DocumentAlreadyAttachedError",
    "DocumentLoader",
    "DocumentNotFoundError",
    "ExtractionError",
    "Message",
    "NoDocumentsError",
    "NotFoundError",
    "PersistenceError",
    "ProviderError",
    "RelevanceRanker",
    "SQLitePersistence",
    "Session",
    "SessionJanitor",
    "SessionNotFoundError",
    "SessionStore",
    "StreamEvent",
    "StreamingResponder",
    "SummaryResult",
    "TextChunker",
    "ValidationError",
    "build_document",
    "extract_citations",
    "get_answer_provider",
    "split_into_fragments",
]
