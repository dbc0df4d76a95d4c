"""Paced re-delivery of completed answers as token events."""

import json
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Literal

from .config import config
from .errors import DocChatError
from .models import ChatResult

logger = config.get_logger(__name__)

EventKind = Literal["token", "done", "error"]

_SEPARATORS = frozenset({" ", "\n"})


@dataclass(frozen=True)
class StreamEvent:
    """One event on the answer stream."""

    kind: EventKind
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.kind != "token"

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.kind, "data": dict(self.data)}

    def to_sse(self) -> str:
        """Frame the event for a ``text/event-stream`` response.

        Returns:
            ``event: <kind>`` and ``data: <json>`` lines followed by a blank line.
        """
        return f"event: {self.kind}\ndata: {json.dumps(self.data)}\n\n"


def split_into_fragments(text: str, words_per_event: int = 3) -> list[str]:
    """Group an answer into small multi-word fragments.

    Single spaces and newlines are kept as separate pieces so joining the
    fragments reproduces ``text`` exactly; a fragment closes once it holds
    ``words_per_event`` words.

    Returns:
        The fragments in order.
    """
    pieces: list[str] = []
    word = ""
    for char in text:
        if char in _SEPARATORS:
            if word:
                pieces.append(word)
                word = ""
            pieces.append(char)
        else:
            word += char
    if word:
        pieces.append(word)

    fragments: list[str] = []
    fragment = ""
    word_count = 0
    for piece in pieces:
        fragment += piece
        if piece not in _SEPARATORS:
            word_count += 1
        if word_count >= words_per_event:
            fragments.append(fragment)
            fragment = ""
            word_count = 0
    if fragment:
        fragments.append(fragment)
    return fragments


def error_event(error: DocChatError) -> StreamEvent:
    return StreamEvent("error", error.to_dict())


class StreamingResponder:
    """Re-emits a finished answer as paced token events plus one terminal event.

    Pacing blocks the calling thread for the whole emission and does not
    stop early when the consumer goes away.
    """

    def __init__(
        self,
        delay: float | None = None,
        words_per_event: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the responder.

        Args:
            delay: Seconds between token events. If None, uses
                config.STREAM_TOKEN_DELAY_SECONDS.
            words_per_event: Words per token event. If None, uses
                config.STREAM_WORDS_PER_EVENT.
            sleep: Pause function; injectable for tests.
        """
        self.delay = delay if delay is not None else config.STREAM_TOKEN_DELAY_SECONDS
        self.words_per_event = (
            words_per_event
            if words_per_event is not None
            else config.STREAM_WORDS_PER_EVENT
        )
        self._sleep = sleep

    def events(self, result: ChatResult) -> Iterator[StreamEvent]:
        """Emit token events for ``result.answer`` followed by ``done``.

        Yields:
            Token events, then exactly one done event.
        """
        fragments = split_into_fragments(result.answer, self.words_per_event)
        for fragment in fragments:
            yield StreamEvent("token", {"content": fragment})
            if self.delay > 0:
                self._sleep(self.delay)

        logger.debug(
            "Streamed %d fragments for session %s", len(fragments), result.session_id
        )
        yield StreamEvent(
            "done",
            {
                "answer": result.answer,
                "session_id": result.session_id,
                "grounded": result.grounded,
                "citations": [citation.to_dict() for citation in result.citations],
            },
        )

    def stream(self, produce: Callable[[], ChatResult]) -> Iterator[StreamEvent]:
        """Produce an answer and stream it, reporting failures as one error event.

        Yields:
            Token events and a done event, or a single error event.
        """
        try:
            result = produce()
        except DocChatError as e:
            logger.warning("Answer failed before streaming: %s", e.message)
            yield error_event(e)
            return
        except Exception as e:
            logger.exception("Unexpected failure while producing answer")
            yield StreamEvent("error", {"code": "PROCESSING_ERROR", "message": str(e)})
            return

        yield from self.events(result)
