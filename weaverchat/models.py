"""
WeaverChat - Canonical, vendor-independent conversation models.

Every provider adapter reads and writes these types; nothing outside the
adapters knows about vendor wire formats.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from .exceptions import InvalidStateError


class MessageRole(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCallStatus(str, Enum):
    """Lifecycle of a tool call: pending -> running -> success | error."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


_ALLOWED_TRANSITIONS: dict[ToolCallStatus, frozenset[ToolCallStatus]] = {
    ToolCallStatus.PENDING: frozenset({ToolCallStatus.RUNNING, ToolCallStatus.ERROR}),
    ToolCallStatus.RUNNING: frozenset({ToolCallStatus.SUCCESS, ToolCallStatus.ERROR}),
    ToolCallStatus.SUCCESS: frozenset(),
    ToolCallStatus.ERROR: frozenset(),
}


def _generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


@dataclass
class ToolCall:
    """A model-requested invocation of a tool.

    Status only moves forward (``pending -> running -> success | error``,
    or ``pending -> error`` when the tool cannot be resolved), and the
    arguments are frozen as soon as the call leaves ``pending``: they are
    swapped for a read-only mapping and may no longer be reassigned.
    """

    id: str
    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: Optional[Any] = None
    error: Optional[str] = None
    execution_time_ms: Optional[int] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "status":
            value = ToolCallStatus(value)
        current = self.__dict__.get("status")
        if current is not None:
            if name == "arguments" and current != ToolCallStatus.PENDING:
                raise InvalidStateError(
                    f"Arguments of tool call {self.id} are frozen once it is {current.value}"
                )
            if name == "status":
                if value != current and value not in _ALLOWED_TRANSITIONS[current]:
                    raise InvalidStateError(
                        f"Tool call {self.id} cannot move from {current.value} to {value.value}"
                    )
        super().__setattr__(name, value)
        if name == "status" and value != ToolCallStatus.PENDING:
            arguments = self.__dict__.get("arguments")
            if arguments is not None and not isinstance(arguments, MappingProxyType):
                super().__setattr__("arguments", MappingProxyType(dict(arguments)))

    @property
    def is_finished(self) -> bool:
        return self.status in (ToolCallStatus.SUCCESS, ToolCallStatus.ERROR)

    def start(self) -> None:
        self.status = ToolCallStatus.RUNNING

    def succeed(self, result: Any, execution_time_ms: Optional[int] = None) -> None:
        self.status = ToolCallStatus.SUCCESS
        self.result = result
        self.execution_time_ms = execution_time_ms

    def fail(self, error: str, execution_time_ms: Optional[int] = None) -> None:
        self.status = ToolCallStatus.ERROR
        self.error = error
        self.execution_time_ms = execution_time_ms

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "arguments": dict(self.arguments),
            "status": self.status.value,
        }
        if self.result is not None:
            result["result"] = self.result
        if self.error is not None:
            result["error"] = self.error
        if self.execution_time_ms is not None:
            result["execution_time_ms"] = self.execution_time_ms
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolCall":
        return cls(
            id=data["id"],
            name=data["name"],
            arguments=data.get("arguments", {}),
            status=ToolCallStatus(data.get("status", "pending")),
            result=data.get("result"),
            error=data.get("error"),
            execution_time_ms=data.get("execution_time_ms"),
        )


@dataclass
class ChatMessage:
    """One message of a conversation.

    While ``is_streaming`` is true the content may only grow and tool calls
    may only be appended; once streaming ends the message is read-only.
    """

    role: MessageRole
    content: str = ""
    id: str = field(default_factory=lambda: _generate_id("msg"))
    timestamp: datetime = field(default_factory=datetime.now)
    is_streaming: bool = False
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        self.role = MessageRole(self.role)
        if self.role == MessageRole.TOOL and not self.tool_call_id:
            raise InvalidStateError("Tool messages must reference a tool call id")

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str = "", streaming: bool = False) -> "ChatMessage":
        return cls(role=MessageRole.ASSISTANT, content=content, is_streaming=streaming)

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> "ChatMessage":
        return cls(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id)

    def _require_streaming(self) -> None:
        if not self.is_streaming:
            raise InvalidStateError(f"Message {self.id} is no longer streaming")

    def append_content(self, text: str) -> None:
        self._require_streaming()
        self.content += text

    def add_tool_call(self, tool_call: ToolCall) -> None:
        self._require_streaming()
        self.tool_calls.append(tool_call)

    def finish_streaming(self, error: Optional[str] = None) -> None:
        if error is not None:
            self.error = error
        self.is_streaming = False

    def get_tool_call(self, tool_call_id: str) -> Optional[ToolCall]:
        for tool_call in self.tool_calls:
            if tool_call.id == tool_call_id:
                return tool_call
        return None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "is_streaming": self.is_streaming,
            "tool_calls": [tc.to_dict() for tc in self.tool_calls],
        }
        if self.tool_call_id:
            result["tool_call_id"] = self.tool_call_id
        if self.error:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatMessage":
        timestamp = data.get("timestamp")
        return cls(
            id=data.get("id") or _generate_id("msg"),
            role=MessageRole(data["role"]),
            content=data.get("content", ""),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
            is_streaming=data.get("is_streaming", False),
            tool_calls=[ToolCall.from_dict(tc) for tc in data.get("tool_calls", [])],
            tool_call_id=data.get("tool_call_id"),
            error=data.get("error"),
        )


PRIMITIVE_TYPES = frozenset({"string", "number", "integer", "boolean"})
_FORMATTED_STRING_TYPES = {"date": "date", "datetime": "date-time"}


@dataclass
class ToolParameter:
    """A single named, typed tool parameter as stored in the tool catalog."""

    name: str
    type: str = "string"
    required: bool = False
    description: str = ""
    default: Optional[Any] = None
    format: Optional[str] = None

    def to_schema(self) -> dict[str, Any]:
        if self.type in PRIMITIVE_TYPES:
            schema: dict[str, Any] = {"type": self.type}
        else:
            schema = {"type": "string"}
            fmt = self.format or _FORMATTED_STRING_TYPES.get(self.type)
            if fmt:
                schema["format"] = fmt
        schema["description"] = self.description or self.name
        if self.default is not None:
            schema["default"] = self.default
        return schema

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolParameter":
        return cls(
            name=data["name"],
            type=data.get("type", "string"),
            required=bool(data.get("required", False)),
            description=data.get("description", ""),
            default=data.get("default"),
            format=data.get("format"),
        )


@dataclass
class ToolDefinition:
    """A tool the model may call, independent of any vendor schema shape."""

    name: str
    description: str = ""
    parameters: list[ToolParameter] = field(default_factory=list)
    tool_id: Optional[str] = None

    def input_schema(self) -> dict[str, Any]:
        """Return the parameters as a JSON-schema object."""
        return {
            "type": "object",
            "properties": {p.name: p.to_schema() for p in self.parameters},
            "required": [p.name for p in self.parameters if p.required],
        }

    def to_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema(),
            },
        }

    def to_anthropic_tool(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolDefinition":
        """Build a definition from a tool catalog record."""
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            parameters=[ToolParameter.from_dict(p) for p in data.get("parameters") or []],
            tool_id=data.get("id"),
        )

    @classmethod
    def from_json_schema(
        cls, name: str, description: str, schema: Optional[dict[str, Any]] = None
    ) -> "ToolDefinition":
        """Build a definition from a JSON-schema ``object`` with flat properties."""
        schema = schema or {}
        required = set(schema.get("required", []))
        parameters = []
        for param_name, prop in schema.get("properties", {}).items():
            param_type = prop.get("type", "string")
            if param_type not in PRIMITIVE_TYPES:
                param_type = "string"
            parameters.append(
                ToolParameter(
                    name=param_name,
                    type=param_type,
                    required=param_name in required,
                    description=prop.get("description", ""),
                    default=prop.get("default"),
                    format=prop.get("format"),
                )
            )
        return cls(name=name, description=description, parameters=parameters)


@dataclass
class LocalTool:
    """A tool definition paired with an in-process handler."""

    definition: ToolDefinition
    handler: Callable[..., Any]

    @property
    def name(self) -> str:
        return self.definition.name


def define_tool(
    name: Optional[str] = None,
    description: str = "",
    parameters: Optional[dict[str, Any]] = None,
) -> Callable[[Callable[..., Any]], LocalTool]:
    """Decorator that turns a function into a :class:`LocalTool`.

    The function name is used as the tool name unless *name* is given, and
    its docstring stands in for a missing description.

    Usage::

        @define_tool(description="Add two numbers.", parameters={
            "type": "object",
            "properties": {
                "a": {"type": "number"},
                "b": {"type": "number"},
            },
            "required": ["a", "b"],
        })
        def add(a: float, b: float) -> float:
            return a + b
    """

    def decorator(func: Callable[..., Any]) -> LocalTool:
        tool_name = name or func.__name__
        definition = ToolDefinition.from_json_schema(
            tool_name,
            description or (func.__doc__ or "").strip() or f"Tool: {tool_name}",
            parameters,
        )
        return LocalTool(definition=definition, handler=func)

    return decorator
