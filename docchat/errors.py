"""Exception hierarchy with stable error codes."""

from typing import Any


class DocChatError(Exception):
    """Base class for all errors surfaced by the chat engine."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        """Initialize the error with a human-readable message."""
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a structured payload.

        Returns:
            Mapping with the stable ``code`` and the ``message``.
        """
        return {"code": self.code, "message": self.message}


class NotFoundError(DocChatError):
    """A session or document id is absent."""

    code = "NOT_FOUND"


class SessionNotFoundError(NotFoundError):
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class DocumentNotFoundError(NotFoundError):
    code = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: str, session_id: str | None = None) -> None:
        message = f"Document not found: {document_id}"
        if session_id is not None:
            message = f"Document {document_id} not found in session {session_id}"
        super().__init__(message)
        self.document_id = document_id


class DocumentAlreadyAttachedError(DocChatError):
    code = "DOCUMENT_ALREADY_ATTACHED"

    def __init__(self, document_id: str, session_id: str) -> None:
        super().__init__(
            f"Document {document_id} is already attached to session {session_id}"
        )
        self.document_id = document_id


class ValidationError(DocChatError, ValueError):
    """Required input is missing or malformed."""

    code = "VALIDATION_ERROR"


class ProviderError(DocChatError):
    """The answer-generation backend failed or returned an unusable response."""

    code = "AI_SERVICE_ERROR"


class ExtractionError(DocChatError):
    """No text could be extracted from a document."""

    code = "PDF_PROCESSING_ERROR"


class PersistenceError(DocChatError):
    """A best-effort durable write failed."""

    code = "PERSISTENCE_ERROR"


class NoDocumentsError(NotFoundError):
    """A session has no attached documents to work on."""

    code = "DOCUMENT_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"No documents attached to session {session_id}")
        self.session_id = session_id
