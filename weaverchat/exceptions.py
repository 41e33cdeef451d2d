"""
WeaverChat - Custom exceptions for error handling.
"""

from typing import Any, Optional


class WeaverChatError(Exception):
    """Base exception for all WeaverChat errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class ProviderError(WeaverChatError):
    """Raised when a provider rejects a request or reports an error mid-stream."""

    pass


class AuthenticationError(ProviderError):
    """Raised when the provider refuses the API key (401/403)."""

    pass


class TransportError(WeaverChatError):
    """Raised when the connection to a provider fails or times out."""

    pass


class InvalidStateError(WeaverChatError):
    """Raised when a message or tool call is mutated against its lifecycle."""

    pass


class ToolNotFoundError(WeaverChatError):
    """Raised when a tool name is not part of the active tool set."""

    def __init__(self, tool_name: str, **kwargs: Any) -> None:
        super().__init__(f'Tool "{tool_name}" not found', **kwargs)
        self.tool_name = tool_name


class ToolInvocationError(WeaverChatError):
    """Raised when the tool backend fails to execute a tool."""

    pass


class MaxTurnsExceededError(WeaverChatError):
    """Raised when the tool loop keeps requesting tools past the turn limit."""

    def __init__(self, max_turns: int, **kwargs: Any) -> None:
        super().__init__(
            f"Tool loop stopped after {max_turns} turns without a final answer",
            **kwargs,
        )
        self.max_turns = max_turns


class TurnCancelledError(WeaverChatError):
    """Raised when the caller cancels an in-flight turn."""

    pass
