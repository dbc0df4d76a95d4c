"""Offline answer provider that responds deterministically without a network."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docchat.models import AnswerResult, SummaryResult
from docchat.providers.base import NOT_FOUND_ANSWER, AnswerProvider

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docchat.models import Message

MIN_KEYWORD_LENGTH = 3
MOCK_NOTE = "[Mock response - connect to a real AI service for actual answers.]"


class MockAnswerProvider(AnswerProvider):
    """Deterministic stand-in used when no network provider is configured.

    The answer is grounded when a question keyword occurs in the context;
    the flag comes from that match, not from the reply text.
    """

    name = "mock"

    @staticmethod
    def keyword_matches(context: str, question: str) -> list[str]:
        context_lower = context.lower()
        return [
            word
            for word in question.lower().split()
            if len(word) > MIN_KEYWORD_LENGTH and word in context_lower
        ]

    def answer_question(
        self, context: str, question: str, history: Sequence[Message]
    ) -> AnswerResult:
        answer = self.complete_answer(context, question, self.recent_history(history))
        return AnswerResult(
            answer=answer, grounded=bool(self.keyword_matches(context, question))
        )

    def complete_answer(
        self, context: str, question: str, history: Sequence[Message]
    ) -> str:
        del history  # The mock ignores prior turns.
        if self.keyword_matches(context, question):
            return (
                f"Based on the document, {question.rstrip('?.! ')}. The document "
                f"mentions relevant information about this topic. {MOCK_NOTE}"
            )
        return f"{NOT_FOUND_ANSWER} {MOCK_NOTE}"

    def complete_summary(self, text: str) -> str:
        word_count = len(text.split())
        return (
            "Summary:\n"
            f"This document contains approximately {word_count} words covering "
            "various topics.\n\n"
            "Key Takeaways:\n"
            "• This is a mock summary generated for development/testing purposes\n"
            "• Connect to a real AI service for actual summaries\n"
            "• The document appears to contain structured information\n\n"
            "Main Topics:\n"
            "• Document Analysis\n"
            "• Information Extraction\n"
            "• Mock Data Processing"
        )

    def generate_summary(self, full_text: str) -> SummaryResult:
        word_count = len(full_text.split())
        return SummaryResult(
            summary=self.complete_summary(full_text),
            key_takeaways=[
                "This is a mock summary - connect to real AI for actual content",
                "Document contains structured information",
                f"Approximately {word_count} words processed",
            ],
            main_topics=[
                "Document Analysis",
                "Information Extraction",
                "Mock Processing",
            ],
        )
