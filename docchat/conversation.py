"""Chat engine: the operations exposed to front-ends."""

from collections.abc import Iterator
from pathlib import Path
from types import TracebackType
from typing import Any

from .config import config
from .context import ContextAssembler, extract_citations, truncate_preview
from .document_processing import DocumentLoader, TextChunker, build_document
from .errors import NoDocumentsError, PersistenceError, ValidationError
from .models import ChatResult, Document, Message, Session, SummaryResult
from .persistence import SQLitePersistence
from .providers import AnswerProvider, get_answer_provider
from .ranking import RelevanceRanker
from .session_store import SessionJanitor, SessionStore
from .streaming import StreamEvent, StreamingResponder

logger = config.get_logger(__name__)


def _require_text(value: str | None, field_name: str) -> str:
    if value is None or not value.strip():
        msg = f"{field_name} is required"
        raise ValidationError(msg)
    return value


class ChatEngine:
    """Document chat over sessions: upload, retrieve, answer, stream, summarize.

    Retrieval is lexical: a session's documents are pooled, ranked against
    the question and rendered into a page-tagged context for the answer
    provider. The provider is selected once at construction.
    """

    def __init__(  # noqa: PLR0913,PLR0917
        self,
        provider: AnswerProvider | None = None,
        store: SessionStore | None = None,
        ranker: RelevanceRanker | None = None,
        assembler: ContextAssembler | None = None,
        chunker: TextChunker | None = None,
        responder: StreamingResponder | None = None,
        persistence: SQLitePersistence | None = None,
        janitor: SessionJanitor | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            provider: Answer provider. If None, selected by get_answer_provider().
            store: Session store. If None, a new empty store is created.
            ranker: Relevance ranker. If None, uses configured top-K values.
            assembler: Context assembler. If None, uses the configured fallback size.
            chunker: Text chunker. If None, uses config.CHUNK_SIZE.
            responder: Streaming responder. If None, uses configured pacing.
            persistence: Durable store for user sessions. If None and
                config.PERSISTENCE_DB_PATH is set, a SQLite database is opened there.
            janitor: Inactivity sweeper. If None, one is created for the store;
                it only runs after start().
        """
        self.provider = provider if provider is not None else get_answer_provider()
        # SessionStore defines __len__, so an empty store is falsy
        self.store = store if store is not None else SessionStore()
        self.ranker = ranker if ranker is not None else RelevanceRanker()
        self.assembler = assembler if assembler is not None else ContextAssembler()
        self.chunker = chunker if chunker is not None else TextChunker()
        self.responder = responder if responder is not None else StreamingResponder()

        if persistence is None and config.PERSISTENCE_DB_PATH is not None:
            try:
                persistence = SQLitePersistence(config.PERSISTENCE_DB_PATH)
            except PersistenceError:
                logger.exception("Persistence disabled")
        self.persistence = persistence

        self.janitor = janitor if janitor is not None else SessionJanitor(self.store)

    # Lifecycle

    def start(self) -> None:
        """Start the periodic inactivity sweep."""
        self.janitor.start()

    def close(self) -> None:
        """Stop the periodic inactivity sweep."""
        self.janitor.stop()

    def __enter__(self) -> "ChatEngine":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def cleanup_inactive(self) -> int:
        """Run one inactivity sweep immediately.

        Returns:
            Number of sessions removed.
        """
        return self.janitor.sweep()

    # Persistence

    def _persist(self, user_id: str | None, operation: str, *args: Any) -> None:
        """Run a best-effort write for requests that carry a user id."""
        if not user_id or self.persistence is None:
            return
        try:
            getattr(self.persistence, operation)(*args)
        except PersistenceError:
            logger.exception("Failed to %s", operation)

    # Documents

    def load_document(
        self, file_path: Path | str, filename: str | None = None
    ) -> Document:
        """Extract and chunk a file into a Document.

        Returns:
            The new Document.

        Raises:
            ExtractionError: If no text can be extracted.
            ValueError: If the file type is not supported.
        """
        file_path = Path(file_path)
        extracted = DocumentLoader.load_document(file_path)
        return build_document(extracted, filename or file_path.name, self.chunker)

    def create_session(
        self, document: Document, user_id: str | None = None
    ) -> Session:
        """Start a session with ``document`` attached.

        Returns:
            A snapshot of the new session.
        """
        session = self.store.create(document)
        self._persist(user_id, "save_session", session, user_id)
        self._persist(user_id, "save_document", session.id, document)
        return session

    def upload_document(
        self,
        file_path: Path | str,
        filename: str | None = None,
        user_id: str | None = None,
    ) -> tuple[Session, Document]:
        """Extract a file and start a new session around it.

        Returns:
            The new session and its document.

        Raises:
            ExtractionError: If no text can be extracted.
            ValueError: If the file type is not supported.
        """
        document = self.load_document(file_path, filename)
        session = self.create_session(document, user_id=user_id)
        logger.info(
            "Uploaded %s (%d pages) into session %s",
            document.filename,
            document.page_count,
            session.id,
        )
        return session, document

    def add_document(
        self, session_id: str, document: Document, user_id: str | None = None
    ) -> None:
        """Attach an existing document to a session.

        Raises:
            ValidationError: If the session id is empty.
            SessionNotFoundError: If the session does not exist.
            DocumentAlreadyAttachedError: If the document is already attached.
        """
        _require_text(session_id, "session_id")
        self.store.add_document(session_id, document)
        self._persist(user_id, "save_document", session_id, document)

    def add_document_from_file(
        self,
        session_id: str,
        file_path: Path | str,
        filename: str | None = None,
        user_id: str | None = None,
    ) -> Document:
        """Extract a file and attach it to an existing session.

        Returns:
            The attached document.

        Raises:
            ValidationError: If the session id is empty.
            SessionNotFoundError: If the session does not exist.
            ExtractionError: If no text can be extracted.
        """
        _require_text(session_id, "session_id")
        # Fail fast before extracting
        self.store.get(session_id)
        document = self.load_document(file_path, filename)
        self.add_document(session_id, document, user_id=user_id)
        return document

    def remove_document(self, session_id: str, document_id: str) -> Document:
        """Detach one document from a session.

        Returns:
            The detached document.

        Raises:
            ValidationError: If an id is empty.
            SessionNotFoundError: If the session does not exist.
            DocumentNotFoundError: If the document is not attached.
        """
        _require_text(session_id, "session_id")
        _require_text(document_id, "document_id")
        return self.store.remove_document(session_id, document_id)

    def list_documents(self, session_id: str) -> list[Document]:
        _require_text(session_id, "session_id")
        return self.store.list_documents(session_id)

    # Conversation

    def ask_question(
        self, session_id: str, question: str, user_id: str | None = None
    ) -> ChatResult:
        """Answer a question from the session's documents.

        The question is appended to history before the provider is called and
        stays there if the provider fails; the answer is appended only on
        success.

        Returns:
            The answer, grounded flag, citations and relevant chunk previews.

        Raises:
            ValidationError: If the session id or question is empty.
            SessionNotFoundError: If the session does not exist.
            ProviderError: If answer generation fails.
        """
        _require_text(session_id, "session_id")
        _require_text(question, "question")

        user_message = self.store.add_message(
            session_id, Message(role="user", content=question)
        )
        session = self.store.get(session_id)
        self._persist(user_id, "save_session", session, user_id)
        self._persist(user_id, "save_message", session_id, user_message)

        history = self._history_before(session.messages, user_message.id)
        chunks = self.ranker.rank_documents(session.documents, question)
        context = self.assembler.build(chunks, session.documents)

        logger.info(
            "Answering question in session %s with %d chunks", session_id, len(chunks)
        )
        answer = self.provider.answer_question(context, question, history)

        citations = extract_citations(chunks)
        assistant_message = self.store.add_message(
            session_id,
            Message(role="assistant", content=answer.answer, citations=citations),
        )
        self._persist(user_id, "save_message", session_id, assistant_message)

        return ChatResult(
            answer=answer.answer,
            session_id=session_id,
            grounded=answer.grounded,
            citations=citations,
            relevant_chunks=[
                truncate_preview(chunk.text, config.CHUNK_PREVIEW_CHARS)
                for chunk in chunks
            ],
        )

    @staticmethod
    def _history_before(messages: list[Message], message_id: str) -> list[Message]:
        for position, message in enumerate(messages):
            if message.id == message_id:
                return messages[:position]
        return list(messages)

    def stream_answer(
        self, session_id: str, question: str, user_id: str | None = None
    ) -> Iterator[StreamEvent]:
        """Answer a question and re-emit the answer as paced events.

        Failures, including invalid input, are reported as a single error event.

        Yields:
            Token events then one done event, or one error event.
        """
        return self.responder.stream(
            lambda: self.ask_question(session_id, question, user_id=user_id)
        )

    def get_session(self, session_id: str) -> Session:
        """Fetch a snapshot of a session with its documents and messages.

        Raises:
            ValidationError: If the session id is empty.
            SessionNotFoundError: If the session does not exist.
        """
        _require_text(session_id, "session_id")
        return self.store.get(session_id)

    def get_history(self, session_id: str) -> list[Message]:
        return self.get_session(session_id).messages

    def clear_session(self, session_id: str) -> None:
        _require_text(session_id, "session_id")
        self.store.clear_messages(session_id)

    def delete_session(self, session_id: str) -> None:
        _require_text(session_id, "session_id")
        self.store.delete(session_id)

    def generate_summary(self, session_id: str) -> SummaryResult:
        """Summarize every document attached to a session.

        Returns:
            The summary with its key takeaways and main topics.

        Raises:
            ValidationError: If the session id is empty.
            SessionNotFoundError: If the session does not exist.
            NoDocumentsError: If the session has no documents.
            ProviderError: If summary generation fails.
        """
        documents = self.list_documents(session_id)
        if not documents:
            raise NoDocumentsError(session_id)

        if len(documents) == 1:
            full_text = documents[0].text
        else:
            full_text = "".join(
                f"=== {document.filename} ===\n{document.text}\n\n"
                for document in documents
            )

        logger.info(
            "Summarizing %d documents for session %s", len(documents), session_id
        )
        return self.provider.generate_summary(full_text)
