"""Shared interface and prompt helpers for answer-generation providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from docchat.config import config
from docchat.models import AnswerResult, SummaryResult

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docchat.models import Message

# Kept verbatim: changing the list changes which answers are flagged.
NOT_FOUND_PHRASES: tuple[str, ...] = (
    "cannot find",
    "not in the document",
    "not found",
    "not available",
)

NOT_FOUND_ANSWER = "I cannot find this information in the document."

ANSWER_SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based ONLY on the "
    "provided document context. If the answer is not in the context, say "
    f"'{NOT_FOUND_ANSWER}'"
)

MIN_TAKEAWAY_LENGTH = 20
MIN_TOPIC_WORD_LENGTH = 3
MAX_FALLBACK_ITEMS = 3


def is_grounded(answer: str) -> bool:
    """Decide whether an answer claims support from the document.

    This is a textual heuristic: any "not found" phrase marks the answer as
    ungrounded.

    Returns:
        False if the answer contains a "not found" phrase, True otherwise.
    """
    answer_lower = answer.lower()
    return not any(phrase in answer_lower for phrase in NOT_FOUND_PHRASES)


def format_history(history: Sequence[Message]) -> list[str]:
    """Render messages as ``User:`` / ``Assistant:`` lines.

    Returns:
        One line per message, in order.
    """
    lines = []
    for message in history:
        if message.role == "user":
            lines.append(f"User: {message.content}")
        elif message.role == "assistant":
            lines.append(f"Assistant: {message.content}")
    return lines


def build_question_prompt(context: str, question: str, history_lines: list[str]) -> str:
    """Build the grounded question-answering prompt.

    Returns:
        The prompt text: context, recent conversation, question, instructions.
    """
    parts = [context, ""]
    if history_lines:
        parts.append("Previous conversation:")
        parts.extend(f"- {line}" for line in history_lines)
        parts.append("")
    parts.extend([
        f"Question: {question}",
        "",
        "Answer the question based ONLY on the document context above. If the "
        f"answer is not in the context, respond with: '{NOT_FOUND_ANSWER}'",
    ])
    return "\n".join(parts)


def truncate_text(text: str, max_chars: int, marker: str) -> str:
    """Hard-truncate text, appending ``marker`` when cut.

    Returns:
        The text, at most ``max_chars`` characters plus the marker.
    """
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + marker


def extract_takeaways(summary: str) -> list[str]:
    """Pull bullet lines out of a summary.

    Falls back to the first sentences when the summary has no bullets.

    Returns:
        The takeaways in summary order.
    """
    takeaways = []
    for raw_line in summary.splitlines():
        line = raw_line.strip()
        if line.startswith(("•", "-")):
            takeaway = line.removeprefix("•").removeprefix("-").strip()
            if takeaway:
                takeaways.append(takeaway)

    if not takeaways:
        for raw_sentence in summary.split(".")[:MAX_FALLBACK_ITEMS]:
            sentence = raw_sentence.strip()
            if len(sentence) > MIN_TAKEAWAY_LENGTH:
                takeaways.append(sentence + ".")

    return takeaways


def extract_topics(summary: str) -> list[str]:
    """Pull topic labels out of a summary.

    Lines mentioning a topic or theme contribute the text after their first
    colon; otherwise the first capitalised words are used.

    Returns:
        The topics in summary order.
    """
    topics = []
    for raw_line in summary.splitlines():
        line = raw_line.strip().lower()
        if "topic" in line or "theme" in line:
            parts = line.split(":")
            if len(parts) > 1:
                topic = parts[1].strip()
                if topic:
                    topics.append(topic)

    if not topics:
        for raw_word in summary.split():
            word = raw_word.strip(".,!?;:")
            if len(word) > MIN_TOPIC_WORD_LENGTH and word[0].isupper():
                topics.append(word)
                if len(topics) >= MAX_FALLBACK_ITEMS:
                    break

    return topics


class AnswerProvider(ABC):
    """Common interface exposed by answer-generation backends.

    Subclasses supply the raw completions; this class applies history
    truncation, summary truncation and the grounded heuristic uniformly.
    """

    name = "base"
    summary_max_chars = 8000
    summary_truncation_marker = "..."

    def __init__(self, history_messages: int | None = None) -> None:
        """Initialize the provider.

        Args:
            history_messages: Prior messages included in the prompt. If None,
                uses config.HISTORY_MESSAGES.
        """
        self.history_messages = (
            history_messages
            if history_messages is not None
            else config.HISTORY_MESSAGES
        )

    @abstractmethod
    def complete_answer(
        self, context: str, question: str, history: Sequence[Message]
    ) -> str:
        """Return the raw answer text for a question."""

    @abstractmethod
    def complete_summary(self, text: str) -> str:
        """Return the raw summary for already-truncated document text."""

    def recent_history(self, history: Sequence[Message]) -> list[Message]:
        """Keep only the most recent ``history_messages`` messages.

        Returns:
            The tail of the history.
        """
        if self.history_messages <= 0:
            return []
        return list(history[-self.history_messages :])

    def answer_question(
        self, context: str, question: str, history: Sequence[Message]
    ) -> AnswerResult:
        """Answer a question from the given context and prior conversation.

        Args:
            context: Assembled document context.
            question: The current question.
            history: Prior messages, excluding the current question.

        Returns:
            The answer and its grounded flag.

        Raises:
            ProviderError: If the backend fails.
        """
        answer = self.complete_answer(context, question, self.recent_history(history))
        return AnswerResult(answer=answer, grounded=is_grounded(answer))

    def generate_summary(self, full_text: str) -> SummaryResult:
        """Summarize document text.

        Returns:
            The summary with its key takeaways and main topics.

        Raises:
            ProviderError: If the backend fails.
        """
        text = truncate_text(
            full_text, self.summary_max_chars, self.summary_truncation_marker
        )
        summary = self.complete_summary(text)
        return SummaryResult(
            summary=summary,
            key_takeaways=extract_takeaways(summary),
            main_topics=extract_topics(summary),
        )
