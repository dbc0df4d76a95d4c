"""Answer-generation providers and startup selection."""

from __future__ import annotations

from typing import Literal

from docchat.config import config

from .base import AnswerProvider, is_grounded
from .mock import MockAnswerProvider
from .openai_provider import GroqAnswerProvider, OpenAIAnswerProvider

logger = config.get_logger(__name__)

ProviderName = Literal["groq", "openai", "mock"]


def get_answer_provider(name: str | None = None) -> AnswerProvider:
    """Select the answer provider once, from explicit choice or available keys.

    Without an explicit choice the priority is Groq, then OpenAI, then the
    offline mock.

    Returns:
        The configured provider instance.

    Raises:
        ValueError: If an unsupported provider is requested, or a network
            provider is requested without its API key.
    """
    choice = (name if name is not None else config.ANSWER_PROVIDER).strip().lower()

    if not choice:
        if config.get_groq_api_key():
            choice = "groq"
        elif config.get_openai_api_key():
            choice = "openai"
        else:
            choice = "mock"

    provider: AnswerProvider
    if choice == "groq":
        if not config.get_groq_api_key():
            msg = "GROQ_API_KEY is required for the groq answer provider"
            raise ValueError(msg)
        provider = GroqAnswerProvider()
    elif choice == "openai":
        if not config.get_openai_api_key():
            msg = "OPENAI_API_KEY is required for the openai answer provider"
            raise ValueError(msg)
        provider = OpenAIAnswerProvider()
    elif choice == "mock":
        provider = MockAnswerProvider()
    else:
        msg = f"Unsupported answer provider: {choice}"
        raise ValueError(msg)

    logger.info("Using %s answer provider", provider.name)
    return provider


__all__ = [
    "AnswerProvider",
    "GroqAnswerProvider",
    "MockAnswerProvider",
    "OpenAIAnswerProvider",
    "ProviderName",
    "get_answer_provider",
    "is_grounded",
]
