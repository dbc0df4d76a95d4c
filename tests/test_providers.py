"""Tests for answer providers and provider selection."""

import os
from unittest.mock import patch

import pytest
from conftest import TestConstants, create_mock_chat_response
from openai import OpenAIError

from docchat import Message, ProviderError
from docchat.providers import (
    AnswerProvider,
    GroqAnswerProvider,
    MockAnswerProvider,
    OpenAIAnswerProvider,
    get_answer_provider,
    is_grounded,
)
from docchat.providers.base import (
    build_question_prompt,
    extract_takeaways,
    extract_topics,
    format_history,
    truncate_text,
)


def _history(count: int) -> list[Message]:
    return [
        Message(role="user" if i % 2 == 0 else "assistant", content=f"turn {i}")
        for i in range(count)
    ]


class CannedAnswerProvider(AnswerProvider):
    """Concrete provider returning a fixed reply, for the shared base logic."""

    name = "canned"

    def __init__(self, reply: str = "An answer.", **kwargs) -> None:  # noqa: ANN003
        super().__init__(**kwargs)
        self.reply = reply

    def complete_answer(self, context, question, history):  # noqa: ANN001, ANN201
        return self.reply

    def complete_summary(self, text):  # noqa: ANN001, ANN201
        return text


@pytest.fixture
def openai_provider():
    return OpenAIAnswerProvider(api_key=TestConstants.TEST_API_KEY, model="gpt-test")


@pytest.fixture
def groq_provider():
    return GroqAnswerProvider(api_key=TestConstants.TEST_API_KEY)


@pytest.mark.parametrize(
    ("answer", "expected"),
    [
        (TestConstants.NOT_FOUND_ANSWER, False),
        ("That is NOT IN THE DOCUMENT.", False),
        ("The figure was not found in the tables.", False),
        ("This detail is not available in the provided PDF.", False),
        (TestConstants.GROUNDED_ANSWER, True),
        ("Revenue grew twelve percent.", True),
    ],
)
def test_is_grounded(answer, expected):
    assert is_grounded(answer) is expected


def test_format_history_renders_roles():
    assert format_history(_history(2)) == ["User: turn 0", "Assistant: turn 1"]


def test_question_prompt_includes_history_block():
    prompt = build_question_prompt("CTX", "Why?", ["User: hi", "Assistant: hello"])

    assert prompt.startswith("CTX\n\nPrevious conversation:\n- User: hi\n")
    assert "- Assistant: hello\n\nQuestion: Why?\n\n" in prompt
    assert prompt.endswith(f"respond with: '{TestConstants.NOT_FOUND_ANSWER}'")


def test_question_prompt_without_history():
    prompt = build_question_prompt("CTX", "Why?", [])

    assert "Previous conversation" not in prompt
    assert prompt.startswith("CTX\n\nQuestion: Why?")


def test_truncate_text():
    assert truncate_text("abcdef", 10, "...") == "abcdef"
    assert truncate_text("abcdef", 3, "...") == "abc..."


def test_recent_history_keeps_last_messages(mock_answer_provider):
    recent = mock_answer_provider.recent_history(_history(7))

    assert [m.content for m in recent] == ["turn 3", "turn 4", "turn 5", "turn 6"]


def test_recent_history_disabled_with_zero():
    provider = MockAnswerProvider(history_messages=0)

    assert provider.recent_history(_history(3)) == []


def test_answer_question_sends_truncated_history():
    provider = CannedAnswerProvider()
    with patch.object(
        provider, "complete_answer", wraps=provider.complete_answer
    ) as mock_complete:
        result = provider.answer_question("CTX", "Q?", _history(6))

    _, _, history = mock_complete.call_args.args
    assert [m.content for m in history] == ["turn 2", "turn 3", "turn 4", "turn 5"]
    assert result.answer == "An answer."
    assert result.grounded is True


def test_answer_question_flags_not_found():
    provider = CannedAnswerProvider(reply=TestConstants.NOT_FOUND_ANSWER)

    result = provider.answer_question("CTX", "Q?", [])

    assert result.grounded is False


def test_extract_takeaways_from_bullets():
    summary = "Summary:\nOverview.\n• First point\n- Second point\n-\n"

    assert extract_takeaways(summary) == ["First point", "Second point"]


def test_extract_takeaways_falls_back_to_sentences():
    summary = (
        "The report covers quarterly revenue growth. Short one. "
        "Costs fell because of automation work. Extra sentence here that is long."
    )

    assert extract_takeaways(summary) == [
        "The report covers quarterly revenue growth.",
        "Costs fell because of automation work.",
    ]


def test_extract_topics_from_labelled_lines():
    summary = "Main Topics: finance and growth\nTheme: automation\nOther line"

    assert extract_topics(summary) == ["finance and growth", "automation"]


def test_extract_topics_falls_back_to_capitalised_words():
    summary = "The Revenue of Acme grew while Costs dropped and Europe expanded."

    assert extract_topics(summary) == ["Revenue", "Acme", "Costs"]


def test_openai_client_configuration(openai_provider):
    assert openai_provider.client.api_key == TestConstants.TEST_API_KEY
    assert openai_provider.client.max_retries == 0
    assert openai_provider.client.timeout == 60
    assert openai_provider.model == "gpt-test"


def test_openai_api_key_from_env():
    with patch.dict(os.environ, {"OPENAI_API_KEY": "env-key"}):
        provider = OpenAIAnswerProvider()

    assert provider.client.api_key == "env-key"


def test_openai_answer_request(openai_provider):
    with patch.object(
        openai_provider.client.chat.completions,
        "create",
        return_value=create_mock_chat_response("  Dogs are mammals.  "),
    ) as mock_create:
        result = openai_provider.answer_question(
            "Document Context:\n\nDogs are mammals.",
            TestConstants.SAMPLE_QUESTION,
            _history(2),
        )

    assert result.answer == "Dogs are mammals."
    assert result.grounded is True
    kwargs = mock_create.call_args.kwargs
    assert kwargs["model"] == "gpt-test"
    assert kwargs["max_tokens"] == 1000
    assert kwargs["temperature"] == 0.7
    system, user = kwargs["messages"]
    assert system["role"] == "system"
    assert "ONLY" in system["content"]
    assert "- User: turn 0" in user["content"]
    assert f"Question: {TestConstants.SAMPLE_QUESTION}" in user["content"]


def test_openai_transport_error_becomes_provider_error(openai_provider):
    with (
        patch.object(
            openai_provider.client.chat.completions,
            "create",
            side_effect=OpenAIError("connection reset"),
        ),
        pytest.raises(ProviderError, match="connection reset") as exc_info,
    ):
        openai_provider.answer_question("CTX", "Q?", [])

    assert exc_info.value.code == "AI_SERVICE_ERROR"
    assert isinstance(exc_info.value.__cause__, OpenAIError)


@pytest.mark.parametrize("content", [None, "", "   "])
def test_openai_empty_response_is_provider_error(openai_provider, content):
    with (
        patch.object(
            openai_provider.client.chat.completions,
            "create",
            return_value=create_mock_chat_response(content),
        ),
        pytest.raises(ProviderError, match="No response from openai"),
    ):
        openai_provider.answer_question("CTX", "Q?", [])


def test_openai_unparsable_response_is_provider_error(openai_provider):
    with (
        patch.object(
            openai_provider.client.chat.completions, "create", return_value=object()
        ),
        pytest.raises(ProviderError, match="Unparsable response"),
    ):
        openai_provider.answer_question("CTX", "Q?", [])


def test_openai_summary_truncates_at_8000(openai_provider):
    summary_text = "Summary:\n• Revenue grew\n• Costs fell\nMain topics: finance"
    with patch.object(
        openai_provider.client.chat.completions,
        "create",
        return_value=create_mock_chat_response(summary_text),
    ) as mock_create:
        result = openai_provider.generate_summary("w" * 9000)

    user_content = mock_create.call_args.kwargs["messages"][1]["content"]
    assert "w" * 8000 + "..." in user_content
    assert "w" * 8001 not in user_content
    assert mock_create.call_args.kwargs["max_tokens"] == 500
    assert result.summary == summary_text
    assert result.key_takeaways == ["Revenue grew", "Costs fell"]
    assert result.main_topics == ["finance"]


def test_groq_defaults(groq_provider):
    assert str(groq_provider.client.base_url).rstrip("/") == (
        "https://api.groq.com/openai/v1"
    )
    assert groq_provider.model == "llama-3.3-70b-versatile"


def test_groq_sends_history_as_chat_messages(groq_provider):
    messages = groq_provider.build_answer_messages("CTX", "Q?", _history(2))

    assert messages[0]["role"] == "system"
    assert "CTX" in messages[0]["content"]
    assert messages[1:] == [
        {"role": "user", "content": "turn 0"},
        {"role": "assistant", "content": "turn 1"},
        {"role": "user", "content": "Q?"},
    ]


def test_groq_caps_context(groq_provider):
    messages = groq_provider.build_answer_messages("c" * 100_050, "Q?", [])

    system = messages[0]["content"]
    assert "c" * 100_000 + "\n... [content truncated due to length]" in system
    assert "c" * 100_001 not in system


def test_groq_summary_truncates_at_12000(groq_provider):
    with patch.object(
        groq_provider, "complete_summary", return_value="Fine."
    ) as mock_complete:
        groq_provider.generate_summary("z" * 13000)

    (text,) = mock_complete.call_args.args
    assert text == "z" * 12000 + "... [content truncated]"


def test_mock_answers_when_keywords_match(mock_answer_provider):
    result = mock_answer_provider.answer_question(
        TestConstants.SAMPLE_TEXT, TestConstants.SAMPLE_QUESTION, []
    )

    assert result.answer.startswith("Based on the document, Are dogs mammals.")
    assert result.grounded is True


def test_mock_grounding_follows_keyword_match(mock_answer_provider):
    result = mock_answer_provider.answer_question(
        "The premium plan costs ten dollars a month.",
        "Why is the premium plan not available?",
        [],
    )

    assert "not available" in result.answer
    assert result.grounded is True


def test_mock_reports_not_found(mock_answer_provider):
    result = mock_answer_provider.answer_question(
        TestConstants.SAMPLE_TEXT, "What about quantum physics?", []
    )

    assert result.answer.startswith(TestConstants.NOT_FOUND_ANSWER)
    assert result.grounded is False


def test_mock_summary_is_deterministic(mock_answer_provider):
    result = mock_answer_provider.generate_summary("one two three four")

    assert "approximately 4 words" in result.summary
    assert "Approximately 4 words processed" in result.key_takeaways
    assert result.main_topics == [
        "Document Analysis",
        "Information Extraction",
        "Mock Processing",
    ]


@pytest.mark.parametrize(
    ("env", "expected_type"),
    [
        ({"GROQ_API_KEY": "g", "OPENAI_API_KEY": "o"}, GroqAnswerProvider),
        ({"OPENAI_API_KEY": "o"}, OpenAIAnswerProvider),
        ({}, MockAnswerProvider),
    ],
)
def test_provider_priority(env, expected_type):
    with (
        patch.dict(os.environ, env, clear=True),
        patch("docchat.providers.config.ANSWER_PROVIDER", ""),
    ):
        provider = get_answer_provider()

    assert type(provider) is expected_type


def test_explicit_provider_overrides_keys():
    with patch.dict(os.environ, {"GROQ_API_KEY": "g"}, clear=True):
        assert isinstance(get_answer_provider("mock"), MockAnswerProvider)


def test_configured_provider_is_used():
    with (
        patch.dict(os.environ, {"GROQ_API_KEY": "g", "OPENAI_API_KEY": "o"}),
        patch("docchat.providers.config.ANSWER_PROVIDER", "openai"),
    ):
        assert type(get_answer_provider()) is OpenAIAnswerProvider


def test_network_provider_without_key_is_rejected():
    with (
        patch.dict(os.environ, {}, clear=True),
        pytest.raises(ValueError, match="GROQ_API_KEY is required"),
    ):
        get_answer_provider("groq")


def test_unknown_provider_is_rejected():
    with pytest.raises(ValueError, match="Unsupported answer provider"):
        get_answer_provider("carrier-pigeon")
