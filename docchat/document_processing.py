"""Document loading and text chunking functionality."""

import bisect
import re
from pathlib import Path

import pypdf
from pypdf.errors import PyPdfError

from .config import config
from .errors import ExtractionError
from .models import Chunk, Document, ExtractedText, new_id

logger = config.get_logger(__name__)

_TOKEN_PATTERN = re.compile(r"\S+")
PAGE_SEPARATOR = "\n\n"


class DocumentLoader:
    """Extracts whole-document text and page boundaries from PDF and TXT files."""

    @staticmethod
    def load_pdf(file_path: Path) -> ExtractedText:
        """Load text content from a PDF file.

        Pages whose text cannot be extracted are skipped.

        Returns:
            The extracted text together with page count and page offsets.

        Raises:
            ExtractionError: If the PDF cannot be opened or yields no text.
        """
        parts: list[str] = []
        offsets: list[int] = []
        length = 0

        try:
            with file_path.open("rb") as file:
                pdf_reader = pypdf.PdfReader(file)
                page_count = len(pdf_reader.pages)
                for page_num, page in enumerate(pdf_reader.pages):
                    offsets.append(length)
                    try:
                        page_text = page.extract_text() or ""
                    except Exception:  # noqa: BLE001
                        logger.warning(
                            "Skipping page %d of %s: text extraction failed",
                            page_num + 1,
                            file_path.name,
                        )
                        continue
                    if not page_text.strip():
                        continue
                    parts.extend((page_text, PAGE_SEPARATOR))
                    length += len(page_text) + len(PAGE_SEPARATOR)
        except (PyPdfError, OSError) as e:
            logger.exception("Error loading PDF %s", file_path)
            msg = f"Failed to open PDF: {e}"
            raise ExtractionError(msg) from e

        text = "".join(parts)
        if not text.strip():
            msg = "No text could be extracted from PDF"
            raise ExtractionError(msg)

        logger.info("Extracted %d characters from %d pages", len(text), page_count)
        return ExtractedText(
            text=text, page_count=page_count, page_offsets=tuple(offsets)
        )

    @staticmethod
    def load_txt(file_path: Path) -> ExtractedText:
        """Load text content from a TXT file.

        Returns:
            The file content as a single page.

        Raises:
            ExtractionError: If the file cannot be read as UTF-8 or holds no text.
        """
        try:
            with file_path.open(encoding="utf-8") as file:
                text = file.read()
            logger.info("Successfully loaded TXT file")
        except (OSError, UnicodeDecodeError) as e:
            logger.exception("Error loading TXT %s", file_path)
            msg = f"Failed to read text file: {e}"
            raise ExtractionError(msg) from e

        if not text.strip():
            msg = "No text could be extracted from file"
            raise ExtractionError(msg)
        return ExtractedText(text=text, page_count=1)

    @classmethod
    def load_document(cls, file_path: Path) -> ExtractedText:
        """Load document based on file extension.

        Args:
            file_path: Path to the document file.

        Returns:
            The extracted text, page count and page offsets.

        Raises:
            ValueError: If the file type is not supported.
        """
        file_ext = file_path.suffix.lower()
        if file_ext == ".pdf":
            return cls.load_pdf(file_path)
        if file_ext == ".txt":
            return cls.load_txt(file_path)
        msg = f"Unsupported file type: {file_ext}"
        raise ValueError(msg)


class TextChunker:
    """Splits text into word-aligned chunks of bounded character length."""

    def __init__(self, chunk_size: int | None = None) -> None:
        """Initialize the TextChunker.

        Args:
            chunk_size: Maximum characters per chunk. If None, uses
                config.CHUNK_SIZE.
        """
        self.chunk_size = chunk_size if chunk_size is not None else config.CHUNK_SIZE
        if self.chunk_size <= 0:
            msg = f"chunk_size must be positive, got {self.chunk_size}"
            raise ValueError(msg)

    def split_with_offsets(self, text: str) -> list[tuple[str, int]]:
        """Split text into chunks, keeping the offset of each chunk's first token.

        Text that already fits is returned verbatim as a single chunk. Otherwise
        whitespace-delimited tokens are joined by single spaces until the next
        token would overflow; a token longer than ``chunk_size`` becomes its
        own oversized chunk.

        Returns:
            A list of ``(chunk_text, start_offset)`` pairs in text order.
        """
        first_token = _TOKEN_PATTERN.search(text)
        if first_token is None:
            return []

        if len(text) <= self.chunk_size:
            return [(text, first_token.start())]

        chunks: list[tuple[str, int]] = []
        buffer: list[str] = []
        buffer_len = 0
        buffer_start = 0

        for match in _TOKEN_PATTERN.finditer(text):
            token = match.group()
            if buffer and buffer_len + 1 + len(token) > self.chunk_size:
                chunks.append((" ".join(buffer), buffer_start))
                buffer = []
                buffer_len = 0

            if not buffer:
                buffer_start = match.start()
                buffer_len = len(token)
            else:
                buffer_len += 1 + len(token)
            buffer.append(token)

        if buffer:
            chunks.append((" ".join(buffer), buffer_start))

        return chunks

    def split(self, text: str) -> list[str]:
        """Split text into ordered chunk texts.

        Returns:
            The chunk texts in extraction order.
        """
        return [chunk_text for chunk_text, _ in self.split_with_offsets(text)]


def page_for_offset(page_offsets: tuple[int, ...], offset: int) -> int:
    """Map a character offset to its 1-based page number.

    Returns:
        The page whose start offset is the last one at or before ``offset``.
    """
    return max(1, bisect.bisect_right(page_offsets, offset))


def build_document(
    extracted: ExtractedText,
    filename: str,
    chunker: TextChunker | None = None,
) -> Document:
    """Chunk extracted text into an immutable Document.

    Each chunk is attributed to the page on which its first token starts.

    Returns:
        The new Document.

    Raises:
        ExtractionError: If the extracted text is empty.
    """
    chunker = chunker or TextChunker()
    pieces = chunker.split_with_offsets(extracted.text)
    if not pieces:
        msg = f"No text could be extracted from {filename}"
        raise ExtractionError(msg)

    chunks = tuple(
        Chunk(
            id=new_id(),
            text=chunk_text,
            index=index,
            page_number=page_for_offset(extracted.page_offsets, offset),
        )
        for index, (chunk_text, offset) in enumerate(pieces)
    )
    document = Document(
        id=new_id(),
        filename=filename,
        text=extracted.text,
        page_count=extracted.page_count,
        chunks=chunks,
    )
    logger.info("Document %s split into %d chunks", filename, len(chunks))
    return document
