"""
WeaverChat - Tool-call accumulation across stream fragments.

Vendors stream a tool call as a start marker followed by JSON argument
fragments. The accumulator owns the partial calls of a single turn and
emits a finished ``ToolCall`` once a call completes with arguments that
parse as a JSON object. Calls whose arguments do not parse are dropped.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Union

from .models import ToolCall

logger = logging.getLogger("weaverchat.accumulator")

CallKey = Union[int, str]


@dataclass
class _PartialCall:
    id: str = ""
    name: str = ""
    fragments: list[str] = field(default_factory=list)

    @property
    def arguments_text(self) -> str:
        return "".join(self.fragments)


class ToolCallAccumulator:
    """Turn-scoped assembly of streamed tool calls.

    Create one per turn and discard it when the turn ends.
    """

    def __init__(self) -> None:
        self._calls: dict[CallKey, _PartialCall] = {}

    def __len__(self) -> int:
        return len(self._calls)

    def __contains__(self, key: CallKey) -> bool:
        return key in self._calls

    def start(self, key: CallKey, call_id: str = "", name: str = "") -> None:
        """Register a call, or fill in an id/name that arrived late."""
        partial = self._calls.get(key)
        if partial is None:
            partial = self._calls[key] = _PartialCall()
            logger.debug("Tool call %r started", key)
        if call_id:
            partial.id = call_id
        if name:
            partial.name = name

    def append(self, key: CallKey, fragment: str) -> None:
        """Append an argument fragment in arrival order."""
        if key not in self._calls:
            self.start(key)
        self._calls[key].fragments.append(fragment)

    def arguments_text(self, key: CallKey) -> str:
        partial = self._calls.get(key)
        return partial.arguments_text if partial else ""

    def complete(self, key: CallKey) -> Optional[ToolCall]:
        """Finalize a call, returning a pending ``ToolCall`` or ``None`` if dropped."""
        partial = self._calls.pop(key, None)
        if partial is None:
            return None

        if not partial.name:
            logger.warning("Dropping tool call %r: no tool name was streamed", key)
            return None

        text = partial.arguments_text.strip() or "{}"
        try:
            arguments = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(
                "Dropping tool call %s (%s): arguments are not valid JSON: %.200s",
                partial.name,
                partial.id or key,
                text,
            )
            return None
        if not isinstance(arguments, dict):
            logger.warning(
                "Dropping tool call %s (%s): arguments are not a JSON object",
                partial.name,
                partial.id or key,
            )
            return None

        return ToolCall(
            id=partial.id or f"call_{uuid.uuid4().hex}",
            name=partial.name,
            arguments=arguments,
        )
