"""Context assembly and citation extraction for retrieved chunks."""

from collections.abc import Sequence

from .config import config
from .models import Chunk, Citation, Document

logger = config.get_logger(__name__)

CONTEXT_HEADER = "Document Context:"
TRUNCATION_MARKER = "\n... [truncated]"
PREVIEW_ELLIPSIS = "..."


def truncate_preview(text: str, max_chars: int) -> str:
    """Cap text at ``max_chars`` characters, appending an ellipsis when cut.

    Returns:
        The original text or its truncated preview.
    """
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + PREVIEW_ELLIPSIS


class ContextAssembler:
    """Renders selected chunks into the context string passed to the model."""

    def __init__(self, fallback_max_chars: int | None = None) -> None:
        """Initialize the assembler.

        Args:
            fallback_max_chars: Character ceiling for the raw-text fallback. If
                None, uses config.CONTEXT_FALLBACK_MAX_CHARS.
        """
        self.fallback_max_chars = (
            fallback_max_chars
            if fallback_max_chars is not None
            else config.CONTEXT_FALLBACK_MAX_CHARS
        )

    @staticmethod
    def assemble(chunks: Sequence[Chunk]) -> str:
        """Build a page-tagged context from the selected chunks.

        Returns:
            The context string, or an empty string when there are no chunks.
        """
        if not chunks:
            return ""

        blocks = [f"{CONTEXT_HEADER}\n"]
        blocks.extend(
            f"[Chunk {i} - Page {chunk.page_number or 1}]\n{chunk.text}\n"
            for i, chunk in enumerate(chunks, start=1)
        )
        return "\n".join(blocks) + "\n"

    def raw_fallback(self, documents: Sequence[Document]) -> str:
        """Concatenate full document texts, each headed by its filename.

        Returns:
            The raw context, truncated to ``fallback_max_chars``.
        """
        full_text = "".join(
            f"--- {document.filename} ---\n{document.text}\n\n"
            for document in documents
        )
        if len(full_text) > self.fallback_max_chars:
            full_text = full_text[: self.fallback_max_chars] + TRUNCATION_MARKER
        return f"{CONTEXT_HEADER}\n\n{full_text}"

    def build(self, chunks: Sequence[Chunk], documents: Sequence[Document]) -> str:
        """Assemble chunks, falling back to raw document text when none were selected.

        Returns:
            The context string for answer generation.
        """
        context = self.assemble(chunks)
        if context:
            return context

        logger.warning("No chunks selected; falling back to raw document text")
        return self.raw_fallback(documents)


def extract_citations(
    chunks: Sequence[Chunk], preview_chars: int | None = None
) -> list[Citation]:
    """Derive one citation per page from the chunks used for an answer.

    The first chunk seen for a page provides its preview.

    Returns:
        Citations in order of first appearance, unique by page.
    """
    if preview_chars is None:
        preview_chars = config.CITATION_PREVIEW_CHARS

    citations: list[Citation] = []
    seen_pages: set[int] = set()
    for chunk in chunks:
        page = chunk.page_number or 1
        if page in seen_pages:
            continue
        seen_pages.add(page)
        citations.append(
            Citation(page=page, text=truncate_preview(chunk.text, preview_chars))
        )
    return citations
