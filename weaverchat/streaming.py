"""
WeaverChat - Server-Sent Events decoding and canonical stream events.

Provider responses arrive as an SSE byte stream. ``SSEDecoder`` turns raw
chunks into ``data:`` frames, tolerating lines and multi-byte characters
split across chunk boundaries. ``EventStream`` feeds those frames through a
provider normalizer to produce vendor-independent ``StreamEvent`` objects.
"""

import codecs
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from .adapters.base import FrameNormalizer

logger = logging.getLogger("weaverchat.streaming")

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class EventType(str, Enum):
    """Canonical events every provider stream is normalized into."""

    TOKEN_DELTA = "token_delta"
    TOOL_CALL_START = "tool_call_start"
    TOOL_CALL_ARGUMENT_DELTA = "tool_call_argument_delta"
    TOOL_CALL_COMPLETE = "tool_call_complete"
    TURN_COMPLETE = "turn_complete"
    TURN_ERROR = "turn_error"


@dataclass(frozen=True)
class StreamEvent:
    """A vendor-independent stream event.

    ``key`` identifies the tool call an event belongs to within a turn
    (the vendor's call index, or the single open call for vendors that
    stream one call at a time). ``text`` carries token text, argument
    fragments, or the error message of a ``TURN_ERROR``.
    """

    type: EventType
    text: str = ""
    key: Optional[Union[int, str]] = None
    call_id: str = ""
    name: str = ""

    @classmethod
    def token(cls, text: str) -> "StreamEvent":
        return cls(EventType.TOKEN_DELTA, text=text)

    @classmethod
    def tool_start(cls, key: Union[int, str], call_id: str = "", name: str = "") -> "StreamEvent":
        return cls(EventType.TOOL_CALL_START, key=key, call_id=call_id, name=name)

    @classmethod
    def tool_arguments(cls, key: Union[int, str], fragment: str) -> "StreamEvent":
        return cls(EventType.TOOL_CALL_ARGUMENT_DELTA, text=fragment, key=key)

    @classmethod
    def tool_complete(cls, key: Union[int, str]) -> "StreamEvent":
        return cls(EventType.TOOL_CALL_COMPLETE, key=key)

    @classmethod
    def turn_complete(cls) -> "StreamEvent":
        return cls(EventType.TURN_COMPLETE)

    @classmethod
    def turn_error(cls, message: str) -> "StreamEvent":
        return cls(EventType.TURN_ERROR, text=message)


class SSEDecoder:
    """Incremental decoder from raw SSE bytes to ``data:`` frame payloads.

    Usage:
        ```python
        decoder = SSEDecoder()
        for chunk in chunks:
            for payload in decoder.feed(chunk):
                handle(payload)
        for payload in decoder.flush():
            handle(payload)
        ```
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Consume a chunk and return the payloads of every completed line."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return [p for p in (self._parse_line(line) for line in lines) if p is not None]

    def flush(self) -> list[str]:
        """Finish the stream, returning a trailing unterminated line if any."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        payload = self._parse_line(rest)
        return [payload] if payload is not None else []

    @staticmethod
    def _parse_line(line: str) -> Optional[str]:
        line = line.strip()
        if not line or not line.startswith(DATA_PREFIX):
            return None
        payload = line[len(DATA_PREFIX):].lstrip(" ")
        if payload == DONE_SENTINEL:
            return None
        return payload


def decode_payload(payload: str) -> Optional[dict[str, Any]]:
    """Parse a frame payload, returning ``None`` for anything but a JSON object."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed stream frame: %.200s", payload)
        return None
    if not isinstance(data, dict):
        logger.debug("Skipping non-object stream frame: %.200s", payload)
        return None
    return data


class EventStream:
    """Decoder and normalizer for one turn, producing canonical events.

    The same byte stream produces the same event sequence no matter how it
    is split into chunks.
    """

    def __init__(self, normalizer: "FrameNormalizer") -> None:
        self._decoder = SSEDecoder()
        self._normalizer = normalizer
        self._closed = False

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        return self._normalize(self._decoder.feed(chunk))

    def close(self) -> list[StreamEvent]:
        """End the stream: flush, complete open tool calls, then ``TURN_COMPLETE``."""
        if self._closed:
            return []
        self._closed = True
        events = self._normalize(self._decoder.flush())
        events.extend(self._normalizer.finish())
        events.append(StreamEvent.turn_complete())
        return events

    def _normalize(self, payloads: list[str]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for payload in payloads:
            data = decode_payload(payload)
            if data is not None:
                events.extend(self._normalizer.normalize(data))
        return events
