"""
Tests for the canonical conversation models.

Covers:
  - ToolCall status lifecycle and argument freezing
  - ChatMessage streaming rules and serialization
  - Tool parameter / definition schema conversion
  - define_tool decorator
"""

from datetime import datetime

import pytest

from weaverchat.exceptions import InvalidStateError
from weaverchat.models import (
    ChatMessage,
    LocalTool,
    MessageRole,
    ToolCall,
    ToolCallStatus,
    ToolDefinition,
    ToolParameter,
    define_tool,
)

# ---------------------------------------------------------------------------
# ToolCall
# ---------------------------------------------------------------------------


class TestToolCallLifecycle:
    def test_new_call_is_pending(self):
        tc = ToolCall(id="call_1", name="get_weather", arguments={"city": "Paris"})
        assert tc.status == ToolCallStatus.PENDING
        assert tc.is_finished is False

    def test_pending_running_success(self):
        tc = ToolCall(id="call_1", name="get_weather")
        tc.start()
        assert tc.status == ToolCallStatus.RUNNING
        tc.succeed({"temp": 20}, 12)
        assert tc.status == ToolCallStatus.SUCCESS
        assert tc.result == {"temp": 20}
        assert tc.execution_time_ms == 12
        assert tc.is_finished is True

    def test_pending_to_error_is_allowed(self):
        tc = ToolCall(id="call_1", name="missing")
        tc.fail('Tool "missing" not found')
        assert tc.status == ToolCallStatus.ERROR
        assert tc.error == 'Tool "missing" not found'

    def test_running_to_error(self):
        tc = ToolCall(id="call_1", name="x")
        tc.start()
        tc.fail("boom", 5)
        assert tc.status == ToolCallStatus.ERROR
        assert tc.execution_time_ms == 5

    def test_pending_cannot_jump_to_success(self):
        tc = ToolCall(id="call_1", name="x")
        with pytest.raises(InvalidStateError):
            tc.succeed("done")

    def test_finished_call_cannot_restart(self):
        tc = ToolCall(id="call_1", name="x")
        tc.start()
        tc.succeed("ok")
        with pytest.raises(InvalidStateError):
            tc.start()

    def test_error_is_terminal(self):
        tc = ToolCall(id="call_1", name="x")
        tc.fail("nope")
        with pytest.raises(InvalidStateError):
            tc.status = ToolCallStatus.RUNNING

    def test_status_string_is_coerced(self):
        tc = ToolCall(id="call_1", name="x", status="pending")
        assert tc.status is ToolCallStatus.PENDING
        tc.status = "running"
        assert tc.status is ToolCallStatus.RUNNING

    def test_arguments_frozen_after_start(self):
        tc = ToolCall(id="call_1", name="x", arguments={"a": 1})
        tc.arguments = {"a": 2}
        tc.start()
        with pytest.raises(InvalidStateError):
            tc.arguments = {"a": 3}
        with pytest.raises(TypeError):
            tc.arguments["a"] = 99
        with pytest.raises(TypeError):
            del tc.arguments["a"]
        assert tc.arguments == {"a": 2}

    def test_arguments_frozen_when_failed_before_running(self):
        source = {"a": 1}
        tc = ToolCall(id="call_1", name="x", arguments=source)
        tc.fail("no such tool")
        source["a"] = 2
        assert tc.arguments == {"a": 1}
        with pytest.raises(TypeError):
            tc.arguments["b"] = 2

    def test_finished_call_from_dict_is_frozen(self):
        tc = ToolCall.from_dict(
            {"id": "call_1", "name": "x", "arguments": {"a": 1}, "status": "success"}
        )
        with pytest.raises(TypeError):
            tc.arguments["a"] = 2

    def test_to_dict_and_back(self):
        tc = ToolCall(id="call_1", name="x", arguments={"a": 1})
        tc.start()
        tc.succeed([1, 2], 7)
        data = tc.to_dict()
        assert data == {
            "id": "call_1",
            "name": "x",
            "arguments": {"a": 1},
            "status": "success",
            "result": [1, 2],
            "execution_time_ms": 7,
        }
        restored = ToolCall.from_dict(data)
        assert restored.status == ToolCallStatus.SUCCESS
        assert restored.result == [1, 2]


# ---------------------------------------------------------------------------
# ChatMessage
# ---------------------------------------------------------------------------


class TestChatMessage:
    def test_ids_are_unique(self):
        a = ChatMessage.user("hi")
        b = ChatMessage.user("hi")
        assert a.id != b.id
        assert a.id.startswith("msg_")
        assert isinstance(a.timestamp, datetime)

    def test_tool_message_requires_call_id(self):
        with pytest.raises(InvalidStateError):
            ChatMessage(role=MessageRole.TOOL, content="{}")

    def test_tool_result_factory(self):
        msg = ChatMessage.tool_result("call_1", '{"temp": 20}')
        assert msg.role == MessageRole.TOOL
        assert msg.tool_call_id == "call_1"

    def test_streaming_message_grows(self):
        msg = ChatMessage.assistant(streaming=True)
        msg.append_content("Hel")
        msg.append_content("lo")
        msg.add_tool_call(ToolCall(id="call_1", name="x"))
        assert msg.content == "Hello"
        assert len(msg.tool_calls) == 1

    def test_finished_message_is_read_only(self):
        msg = ChatMessage.assistant(streaming=True)
        msg.append_content("done")
        msg.finish_streaming()
        assert msg.is_streaming is False
        with pytest.raises(InvalidStateError):
            msg.append_content("more")
        with pytest.raises(InvalidStateError):
            msg.add_tool_call(ToolCall(id="call_1", name="x"))

    def test_finish_with_error(self):
        msg = ChatMessage.assistant(streaming=True)
        msg.finish_streaming(error="invalid api key")
        assert msg.error == "invalid api key"

    def test_get_tool_call(self):
        msg = ChatMessage.assistant(streaming=True)
        tc = ToolCall(id="call_1", name="x")
        msg.add_tool_call(tc)
        assert msg.get_tool_call("call_1") is tc
        assert msg.get_tool_call("call_2") is None

    def test_round_trip(self):
        msg = ChatMessage.assistant(streaming=True)
        msg.append_content("hi")
        msg.add_tool_call(ToolCall(id="call_1", name="x", arguments={"q": "y"}))
        msg.finish_streaming()

        restored = ChatMessage.from_dict(msg.to_dict())
        assert restored.id == msg.id
        assert restored.role == MessageRole.ASSISTANT
        assert restored.timestamp == msg.timestamp
        assert restored.tool_calls[0].arguments == {"q": "y"}


# ---------------------------------------------------------------------------
# Tool schemas
# ---------------------------------------------------------------------------


class TestToolParameter:
    def test_primitive_types_pass_through(self):
        for type_name in ("string", "number", "integer", "boolean"):
            schema = ToolParameter(name="p", type=type_name, description="d").to_schema()
            assert schema == {"type": type_name, "description": "d"}

    def test_date_becomes_formatted_string(self):
        schema = ToolParameter(name="since", type="date").to_schema()
        assert schema == {"type": "string", "format": "date", "description": "since"}

    def test_datetime_becomes_date_time_string(self):
        schema = ToolParameter(name="at", type="datetime").to_schema()
        assert schema["type"] == "string"
        assert schema["format"] == "date-time"

    def test_description_falls_back_to_name(self):
        assert ToolParameter(name="city").to_schema()["description"] == "city"

    def test_default_is_kept(self):
        schema = ToolParameter(name="limit", type="integer", default=10).to_schema()
        assert schema["default"] == 10


class TestToolDefinition:
    @pytest.fixture
    def definition(self):
        return ToolDefinition(
            name="get_weather",
            description="Current weather",
            parameters=[
                ToolParameter(name="city", type="string", required=True),
                ToolParameter(name="units", type="string"),
            ],
        )

    def test_input_schema(self, definition):
        schema = definition.input_schema()
        assert schema["type"] == "object"
        assert set(schema["properties"]) == {"city", "units"}
        assert schema["required"] == ["city"]

    def test_openai_shape(self, definition):
        tool = definition.to_openai_tool()
        assert tool["type"] == "function"
        assert tool["function"]["name"] == "get_weather"
        assert tool["function"]["parameters"]["required"] == ["city"]

    def test_anthropic_shape(self, definition):
        tool = definition.to_anthropic_tool()
        assert tool["name"] == "get_weather"
        assert "input_schema" in tool
        assert "parameters" not in tool

    def test_from_catalog_record(self):
        definition = ToolDefinition.from_dict(
            {
                "id": "tool-123",
                "name": "get_orders",
                "description": "List orders",
                "parameters": [{"name": "since", "type": "date", "required": True}],
            }
        )
        assert definition.tool_id == "tool-123"
        assert definition.parameters[0].required is True
        assert definition.input_schema()["properties"]["since"]["format"] == "date"

    def test_from_json_schema(self):
        definition = ToolDefinition.from_json_schema(
            "add",
            "Add",
            {
                "type": "object",
                "properties": {"a": {"type": "number"}, "tags": {"type": "array"}},
                "required": ["a"],
            },
        )
        params = {p.name: p for p in definition.parameters}
        assert params["a"].required is True
        assert params["tags"].type == "string"


class TestDefineTool:
    def test_uses_function_name_and_docstring(self):
        @define_tool(parameters={"type": "object", "properties": {"city": {"type": "string"}}})
        def get_weather(city: str) -> dict:
            """Look up the weather."""
            return {"city": city}

        assert isinstance(get_weather, LocalTool)
        assert get_weather.name == "get_weather"
        assert get_weather.definition.description == "Look up the weather."
        assert get_weather.handler("Paris") == {"city": "Paris"}

    def test_explicit_name(self):
        @define_tool(name="sum", description="Sum numbers")
        def add(a, b):
            return a + b

        assert add.name == "sum"
        assert add.definition.parameters == []
