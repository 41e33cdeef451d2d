"""
WeaverChat - Streaming agent loop.

Drives the send -> stream -> execute tools -> resend cycle:

    IDLE -> SENDING -> STREAMING -> EXECUTING_TOOLS -> SENDING ...
                                 -> DONE | ERRORED | CANCELLED

Tokens are forwarded to the caller as they arrive. Tool calls collected
during a turn are executed one at a time, in the order the model produced
them, and their results are appended as ``tool`` messages before the next
turn is sent.

Usage:
    ```python
    from weaverchat import ChatConfig, ChatSession, LocalToolCatalog, StreamCallbacks, define_tool

    @define_tool(description="Add two numbers.", parameters={...})
    def add(a: float, b: float) -> float:
        return a + b

    session = ChatSession(ChatConfig(model="gpt-4o", api_key="..."), LocalToolCatalog([add]))
    await session.send(
        "What's 2+2?",
        StreamCallbacks(on_token=lambda t: print(t, end="", flush=True)),
    )
    ```
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import httpx

from .accumulator import ToolCallAccumulator
from .adapters import ProviderAdapter, ProviderRequest, extract_error_message, get_adapter
from .config import ChatConfig
from .exceptions import (
    AuthenticationError,
    InvalidStateError,
    MaxTurnsExceededError,
    ProviderError,
    TransportError,
    TurnCancelledError,
)
from .models import ChatMessage, MessageRole, ToolCall
from .streaming import EventStream, EventType, StreamEvent
from .tools import ToolCatalog, ToolExecutor

logger = logging.getLogger("weaverchat.agent")


class LoopState(str, Enum):
    """State of the agent loop."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"


ACTIVE_STATES = frozenset({LoopState.SENDING, LoopState.STREAMING, LoopState.EXECUTING_TOOLS})


@dataclass
class StreamCallbacks:
    """Hooks the UI layer receives while a conversation runs.

    Attributes:
        on_token: Called with each text fragment, in arrival order.
        on_tool_call: Called with each finalized tool call, before it runs.
        on_complete: Called once when the model answers without tool calls.
        on_error: Called at most once when the loop stops on an error.
    """

    on_token: Optional[Callable[[str], None]] = None
    on_tool_call: Optional[Callable[[ToolCall], None]] = None
    on_complete: Optional[Callable[[], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None


class _TurnState:
    """Everything owned by a single streamed turn."""

    def __init__(self, assistant: ChatMessage, stream: EventStream) -> None:
        self.assistant = assistant
        self.stream = stream
        self.accumulator = ToolCallAccumulator()
        self.pending: list[ToolCall] = []


class AgentLoop:
    """Runs the tool-using conversation loop against one provider.

    The loop owns and mutates the message list passed to :meth:`run` for
    the duration of the call.
    """

    def __init__(
        self,
        config: ChatConfig,
        catalog: Optional[ToolCatalog] = None,
        client: Optional[httpx.AsyncClient] = None,
        adapter: Optional[ProviderAdapter] = None,
    ) -> None:
        self._config = config
        self._catalog = catalog
        self._client = client
        self._adapter = adapter or get_adapter(config)
        self._executor = ToolExecutor(catalog, timeout=config.tool_timeout)
        self._state = LoopState.IDLE
        self._turns = 0

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state in ACTIVE_STATES

    @property
    def turns(self) -> int:
        """Number of requests sent by the current or last run."""
        return self._turns

    @property
    def adapter(self) -> ProviderAdapter:
        return self._adapter

    async def run(
        self,
        messages: list[ChatMessage],
        callbacks: Optional[StreamCallbacks] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> list[ChatMessage]:
        """Run turns until the model stops calling tools.

        Args:
            messages: Conversation so far; new assistant and tool messages
                are appended in place.
            callbacks: UI hooks.
            cancel_event: When set, the loop stops at the next chunk, tool
                or request boundary with a :class:`TurnCancelledError`.

        Returns:
            The same ``messages`` list.
        """
        if self.is_busy:
            raise InvalidStateError("A conversation turn is already in progress")
        self._state = LoopState.SENDING
        self._turns = 0
        callbacks = callbacks or StreamCallbacks()
        assistant: Optional[ChatMessage] = None
        client = self._client or httpx.AsyncClient(timeout=self._timeout())

        try:
            tools = self._catalog.definitions() if self._catalog else []
            while True:
                self._check_cancelled(cancel_event)
                if self._turns >= self._config.max_turns:
                    raise MaxTurnsExceededError(self._config.max_turns)
                self._turns += 1

                request = self._adapter.build_request(messages, tools)
                assistant = ChatMessage.assistant(streaming=True)
                messages.append(assistant)

                pending = await self._stream_turn(
                    client, request, assistant, callbacks, cancel_event
                )
                assistant.finish_streaming()

                if not pending:
                    self._state = LoopState.DONE
                    logger.info("Conversation finished after %d turn(s)", self._turns)
                    self._invoke(callbacks.on_complete)
                    return messages

                self._state = LoopState.EXECUTING_TOOLS
                for tool_call in pending:
                    self._check_cancelled(cancel_event)
                    content = await self._executor.execute(tool_call)
                    messages.append(ChatMessage.tool_result(tool_call.id, content))
                self._state = LoopState.SENDING

        except asyncio.CancelledError:
            self._state = LoopState.CANCELLED
            if assistant is not None and assistant.is_streaming:
                assistant.finish_streaming(error="Cancelled")
            self._answer_unanswered(messages, assistant, "Cancelled")
            raise
        except Exception as e:
            error = self._wrap_error(e)
            self._state = (
                LoopState.CANCELLED
                if isinstance(error, TurnCancelledError)
                else LoopState.ERRORED
            )
            message = getattr(error, "message", None) or str(error) or type(error).__name__
            if assistant is not None and assistant.is_streaming:
                assistant.finish_streaming(error=message)
            self._answer_unanswered(messages, assistant, message)
            logger.warning("Conversation stopped on turn %d: %s", self._turns, message)
            self._invoke(callbacks.on_error, error)
            return messages
        finally:
            if self._client is None:
                await client.aclose()

    async def _stream_turn(
        self,
        client: httpx.AsyncClient,
        request: ProviderRequest,
        assistant: ChatMessage,
        callbacks: StreamCallbacks,
        cancel_event: Optional[asyncio.Event],
    ) -> list[ToolCall]:
        """Send one request and consume its stream; return the finalized tool calls."""
        self._state = LoopState.SENDING
        logger.info(
            "Turn %d: sending %d messages to %s",
            self._turns,
            len(request.payload.get("messages") or request.payload.get("contents") or []),
            self._adapter.provider.id,
        )

        async with client.stream(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
            timeout=self._timeout(),
        ) as response:
            if not response.is_success:
                await response.aread()
                raise self._provider_error(response)

            self._state = LoopState.STREAMING
            turn = _TurnState(assistant, EventStream(self._adapter.create_normalizer()))
            async for chunk in response.aiter_bytes():
                self._check_cancelled(cancel_event)
                for event in turn.stream.feed(chunk):
                    self._handle_event(event, turn, callbacks)
            for event in turn.stream.close():
                self._handle_event(event, turn, callbacks)

        if len(turn.accumulator):
            logger.debug("Discarding %d unfinished tool call(s)", len(turn.accumulator))
        return turn.pending

    def _handle_event(
        self, event: StreamEvent, turn: _TurnState, callbacks: StreamCallbacks
    ) -> None:
        if event.type == EventType.TOKEN_DELTA:
            turn.assistant.append_content(event.text)
            self._invoke(callbacks.on_token, event.text)
        elif event.type == EventType.TOOL_CALL_START:
            turn.accumulator.start(event.key, event.call_id, event.name)
        elif event.type == EventType.TOOL_CALL_ARGUMENT_DELTA:
            turn.accumulator.append(event.key, event.text)
        elif event.type == EventType.TOOL_CALL_COMPLETE:
            tool_call = turn.accumulator.complete(event.key)
            if tool_call is not None:
                turn.assistant.add_tool_call(tool_call)
                turn.pending.append(tool_call)
                self._invoke(callbacks.on_tool_call, tool_call)
        elif event.type == EventType.TURN_ERROR:
            raise ProviderError(event.text)
        elif event.type == EventType.TURN_COMPLETE:
            logger.debug(
                "Turn %d complete: %d chars, %d tool call(s)",
                self._turns,
                len(turn.assistant.content),
                len(turn.pending),
            )

    @staticmethod
    def _answer_unanswered(
        messages: list[ChatMessage], assistant: Optional[ChatMessage], reason: str
    ) -> None:
        """Close every tool call of ``assistant`` that has no tool message yet.

        Providers reject a history holding a tool call without a result, so
        each one is failed with ``reason`` and answered with ``{"error": ...}``.
        """
        if assistant is None or not assistant.tool_calls:
            return
        answered = {m.tool_call_id for m in messages if m.role == MessageRole.TOOL}
        for tool_call in assistant.tool_calls:
            if tool_call.id in answered:
                continue
            if not tool_call.is_finished:
                tool_call.fail(reason)
            logger.debug("Tool call %s closed without running: %s", tool_call.id, reason)
            messages.append(
                ChatMessage.tool_result(tool_call.id, json.dumps({"error": reason}))
            )

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._config.connect_timeout,
            read=self._config.read_timeout,
            write=self._config.connect_timeout,
            pool=self._config.connect_timeout,
        )

    def _provider_error(self, response: httpx.Response) -> ProviderError:
        message = extract_error_message(response)
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text or None
        error_cls = AuthenticationError if response.status_code in (401, 403) else ProviderError
        return error_cls(message, status_code=response.status_code, response=body)

    def _wrap_error(self, error: Exception) -> Exception:
        if isinstance(error, httpx.TimeoutException):
            return TransportError(
                f"Timed out waiting for {self._adapter.provider.name}: {error}"
            )
        if isinstance(error, httpx.TransportError):
            return TransportError(
                f"Could not reach {self._adapter.provider.name}: {error}"
            )
        return error

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise TurnCancelledError("Cancelled by caller")

    @staticmethod
    def _invoke(callback: Optional[Callable[..., None]], *args: Any) -> None:
        """Invoke a UI callback, never letting it break the loop."""
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Callback %r raised", callback)


class ChatSession:
    """A conversation: the message history plus the loop that extends it.

    The UI appends user messages through :meth:`send` only while the loop
    is idle; everything else is appended by the loop.
    """

    def __init__(
        self,
        config: ChatConfig,
        catalog: Optional[ToolCatalog] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config
        self.messages: list[ChatMessage] = []
        self._loop = AgentLoop(config, catalog=catalog, client=client)

    @property
    def state(self) -> LoopState:
        return self._loop.state

    @property
    def loop(self) -> AgentLoop:
        return self._loop

    async def send(
        self,
        text: str,
        callbacks: Optional[StreamCallbacks] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Optional[ChatMessage]:
        """Append a user message, run the loop, and return the last assistant message."""
        if self._loop.is_busy:
            raise InvalidStateError("Cannot send while the assistant is responding")
        self.messages.append(ChatMessage.user(text))
        await self._loop.run(self.messages, callbacks, cancel_event)
        return self.last_assistant_message()

    def last_assistant_message(self) -> Optional[ChatMessage]:
        for message in reversed(self.messages):
            if message.role == MessageRole.ASSISTANT:
                return message
        return None

    def clear(self) -> None:
        if self._loop.is_busy:
            raise InvalidStateError("Cannot clear while the assistant is responding")
        self.messages.clear()
