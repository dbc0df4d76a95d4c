"""Test configuration and fixtures for DocChat tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock API responses and answer providers
- Document and chunk factories
- Session store fixtures
- Engine factories
"""

import datetime
from collections.abc import Sequence
from pathlib import Path
from unittest.mock import Mock, create_autospec, patch

import pytest

from docchat import (
    AnswerProvider,
    ChatEngine,
    Chunk,
    Document,
    SessionStore,
    StreamingResponder,
    TextChunker,
)
from docchat.models import AnswerResult, ExtractedText, SummaryResult, new_id
from docchat.providers import MockAnswerProvider


class TestConstants:
    """Centralized test constants to avoid repetition across test files."""

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_USER_ID = "user-123"

    # Text Chunking Configuration
    SMALL_CHUNK_SIZE = 40
    DEFAULT_CHUNK_SIZE = 2000

    # Sample content
    SAMPLE_TEXT = "Cats are mammals. Dogs are mammals too."
    SAMPLE_QUESTION = "Are dogs mammals?"
    GROUNDED_ANSWER = "Yes, dogs are mammals according to the document."
    NOT_FOUND_ANSWER = "I cannot find this information in the document."

    START_TIME = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.UTC)


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: datetime.datetime = TestConstants.START_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += datetime.timedelta(**kwargs)


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response.

    Args:
        content: The content for the chat completion response.

    Returns:
        Mock object representing OpenAI chat completion response.
    """
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


def make_document(
    texts: Sequence[str],
    filename: str = "doc.txt",
    pages: Sequence[int] | None = None,
) -> Document:
    """Build a Document whose chunks are exactly ``texts``.

    Returns:
        The document.
    """
    pages = pages or [1] * len(texts)
    chunks = tuple(
        Chunk(id=new_id(), text=text, index=index, page_number=page)
        for index, (text, page) in enumerate(zip(texts, pages, strict=True))
    )
    return Document(
        id=new_id(),
        filename=filename,
        text=" ".join(texts),
        page_count=max(pages, default=1),
        chunks=chunks,
    )


@pytest.fixture
def document_factory():
    """Factory fixture that creates documents from explicit chunk texts."""
    return make_document


@pytest.fixture
def sample_document():
    """Single-chunk document holding the cats-and-dogs sample text."""
    return make_document([TestConstants.SAMPLE_TEXT], filename="animals.txt")


@pytest.fixture
def three_page_document():
    """Three chunks on three pages about unrelated topics."""
    return make_document(
        [
            "The quarterly revenue grew by twelve percent.",
            "Operating costs were reduced through automation.",
            "The board approved a new dividend policy.",
        ],
        filename="report.pdf",
        pages=[1, 2, 3],
    )


@pytest.fixture
def extracted_text_factory():
    """Factory for ExtractedText with page offsets derived from page texts."""

    def _create(pages: Sequence[str], separator: str = "\n\n") -> ExtractedText:
        offsets = []
        length = 0
        for page in pages:
            offsets.append(length)
            length += len(page) + len(separator)
        text = "".join(page + separator for page in pages)
        return ExtractedText(
            text=text, page_count=len(pages), page_offsets=tuple(offsets)
        )

    return _create


@pytest.fixture
def text_chunker_factory():
    """Factory fixture that creates ``TextChunker`` instances on demand."""
    presets = {
        "small": TestConstants.SMALL_CHUNK_SIZE,
        "default": TestConstants.DEFAULT_CHUNK_SIZE,
    }

    def _create_chunker(name: str = "default", *, chunk_size: int | None = None):  # noqa: ANN202
        if chunk_size is None:
            try:
                chunk_size = presets[name]
            except KeyError as exc:
                msg = f"Unknown text chunker preset: {name}"
                raise ValueError(msg) from exc
        return TextChunker(chunk_size=chunk_size)

    return _create_chunker


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def session_store(fake_clock):
    """Empty session store driven by a fake clock."""
    return SessionStore(clock=fake_clock)


@pytest.fixture
def answer_provider_factory():
    """Factory for autospecced answer providers with canned results."""

    def _create_provider(  # noqa: ANN202
        answer: str = TestConstants.GROUNDED_ANSWER,
        grounded: bool = True,  # noqa: FBT001, FBT002
        side_effect=None,
    ):
        provider = create_autospec(AnswerProvider, instance=True)
        provider.name = "stub"
        if side_effect is not None:
            provider.answer_question.side_effect = side_effect
        else:
            provider.answer_question.return_value = AnswerResult(
                answer=answer, grounded=grounded
            )
        provider.generate_summary.return_value = SummaryResult(
            summary="A short summary.",
            key_takeaways=["First takeaway"],
            main_topics=["Animals"],
        )
        return provider

    return _create_provider


@pytest.fixture
def mock_answer_provider():
    """Offline deterministic provider."""
    return MockAnswerProvider()


@pytest.fixture
def chat_engine_factory(session_store):
    """Factory for ChatEngine instances with instant streaming and no persistence."""

    def _create_engine(provider=None, persistence=None, **kwargs):  # noqa: ANN202
        with patch("docchat.conversation.config.PERSISTENCE_DB_PATH", None):
            return ChatEngine(
                provider=provider or MockAnswerProvider(),
                store=kwargs.pop("store", session_store),
                responder=kwargs.pop("responder", StreamingResponder(delay=0)),
                persistence=persistence,
                **kwargs,
            )

    return _create_engine


@pytest.fixture
def sample_txt_path(tmp_path) -> Path:
    """TXT file containing the sample text."""
    path = tmp_path / "animals.txt"
    path.write_text(TestConstants.SAMPLE_TEXT, encoding="utf-8")
    return path
