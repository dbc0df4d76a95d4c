"""OpenAI-compatible chat completion providers (OpenAI and Groq)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from openai import OpenAI, OpenAIError

from docchat.config import config
from docchat.errors import ProviderError
from docchat.providers.base import (
    ANSWER_SYSTEM_PROMPT,
    AnswerProvider,
    build_question_prompt,
    format_history,
    truncate_text,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docchat.models import Message

logger = config.get_logger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates concise summaries in bullet point "
    "format."
)

SUMMARY_PROMPT_TEMPLATE = """Please provide a comprehensive summary of the following document in bullet point format.

Include:
1. Main topics and themes
2. Key takeaways
3. Important details

Document:
{text}

Format your response as:
- Summary: [brief overview]
- Key Takeaways:
  • [takeaway 1]
  • [takeaway 2]
- Main Topics:
  • [topic 1]
  • [topic 2]"""  # noqa: E501


class OpenAIAnswerProvider(AnswerProvider):
    """Answers through the OpenAI chat completions API.

    One blocking request per call with a fixed timeout and no retries.
    """

    name = "openai"
    summary_max_chars = 8000
    summary_truncation_marker = "..."

    def __init__(  # noqa: PLR0913
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        history_messages: int | None = None,
    ) -> None:
        """Initialize the provider and its API client.

        Args:
            api_key: API key. If None, reads OPENAI_API_KEY.
            model: Chat model name. If None, uses config.CHAT_MODEL.
            base_url: API base URL. If None, uses config.OPENAI_BASE_URL.
            timeout: Request timeout in seconds. If None, uses
                config.LLM_TIMEOUT_SECONDS.
            history_messages: Prior messages included in the prompt.
        """
        super().__init__(history_messages=history_messages)
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key or self._default_api_key(),
            base_url=base_url or self._default_base_url(),
            timeout=timeout if timeout is not None else config.LLM_TIMEOUT_SECONDS,
            max_retries=0,
            default_headers=default_headers or None,
        )
        self.model = model or self._default_model()

    @staticmethod
    def _default_api_key() -> str:
        return config.get_openai_api_key()

    @staticmethod
    def _default_base_url() -> str | None:
        return config.OPENAI_BASE_URL

    @staticmethod
    def _default_model() -> str:
        return config.CHAT_MODEL

    def build_answer_messages(
        self, context: str, question: str, history: Sequence[Message]
    ) -> list[dict[str, Any]]:
        """Build chat messages for a question.

        Returns:
            The system and user messages.
        """
        prompt = build_question_prompt(context, question, format_history(history))
        return [
            {"role": "system", "content": ANSWER_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    def build_summary_messages(self, text: str) -> list[dict[str, Any]]:  # noqa: PLR6301
        """Build chat messages for a summary.

        Returns:
            The system and user messages.
        """
        return [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": SUMMARY_PROMPT_TEMPLATE.format(text=text)},
        ]

    def _chat(
        self, messages: list[dict[str, Any]], max_tokens: int, temperature: float
    ) -> str:
        """Send one chat completion request.

        Returns:
            The stripped content of the first choice.

        Raises:
            ProviderError: On transport or API failure, or an unusable payload.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as e:
            logger.exception("%s request failed", self.name)
            msg = f"Failed to get AI response: {e}"
            raise ProviderError(msg) from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            msg = f"Unparsable response from {self.name}"
            raise ProviderError(msg) from e

        if not content or not content.strip():
            logger.warning("%s returned an empty response", self.name)
            msg = f"No response from {self.name}"
            raise ProviderError(msg)
        return content.strip()

    def complete_answer(
        self, context: str, question: str, history: Sequence[Message]
    ) -> str:
        messages = self.build_answer_messages(context, question, history)
        return self._chat(messages, config.CHAT_MAX_TOKENS, config.CHAT_TEMPERATURE)

    def complete_summary(self, text: str) -> str:
        messages = self.build_summary_messages(text)
        return self._chat(
            messages, config.SUMMARY_MAX_TOKENS, config.SUMMARY_TEMPERATURE
        )


class GroqAnswerProvider(OpenAIAnswerProvider):
    """Answers through Groq's OpenAI-compatible endpoint.

    The document context goes into the system message and prior turns are
    sent as separate chat messages.
    """

    name = "groq"
    summary_max_chars = 12000
    summary_truncation_marker = "... [content truncated]"
    context_max_chars = 100000
    context_truncation_marker = "\n... [content truncated due to length]"

    @staticmethod
    def _default_api_key() -> str:
        return config.get_groq_api_key()

    @staticmethod
    def _default_base_url() -> str | None:
        return config.GROQ_BASE_URL

    @staticmethod
    def _default_model() -> str:
        return config.GROQ_MODEL

    def build_answer_messages(
        self, context: str, question: str, history: Sequence[Message]
    ) -> list[dict[str, Any]]:
        context = truncate_text(
            context, self.context_max_chars, self.context_truncation_marker
        )
        system_prompt = (
            "You are an AI assistant helping users understand and analyze PDF "
            "documents.\n\n"
            "Here is the content of the PDF document:\n\n"
            f"{context}\n\n"
            "Please answer questions about this document accurately and helpfully. "
            "Maintain context from previous messages in this conversation. If the "
            "answer is not found in the document, clearly state that the "
            "information is not available in the provided PDF."
        )
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend(
            {
                "role": "assistant" if message.role == "assistant" else "user",
                "content": message.content,
            }
            for message in history
        )
        messages.append({"role": "user", "content": question})
        return messages

    def build_summary_messages(self, text: str) -> list[dict[str, Any]]:
        return [
            {
                "role": "system",
                "content": (
                    "You are an AI assistant that creates concise, informative "
                    "summaries of PDF documents. Focus on the main points, key "
                    "findings, and important details."
                ),
            },
            {
                "role": "user",
                "content": (
                    "Please provide a comprehensive summary of the following PDF "
                    f"content:\n\n{text}"
                ),
            },
        ]
