#!/usr/bin/env python3
"""
WeaverChat - Local Tools Example

Streams a conversation in which the model may call two in-process tools.

Prerequisites:
    pip install weaverchat

Usage:
    export WEAVERCHAT_MODEL=gpt-4o            # or claude-sonnet-4-20250514, deepseek-chat, ...
    export WEAVERCHAT_API_KEY=sk-...
    python local_tools.py "What's 17 * 23, and what time is it in UTC?"
"""

import asyncio
import sys
from datetime import datetime, timezone

from weaverchat import (
    ChatConfig,
    ChatSession,
    LocalToolCatalog,
    LoopState,
    StreamCallbacks,
    define_tool,
)


@define_tool(
    description="Multiply two numbers.",
    parameters={
        "type": "object",
        "properties": {
            "a": {"type": "number", "description": "First factor"},
            "b": {"type": "number", "description": "Second factor"},
        },
        "required": ["a", "b"],
    },
)
def multiply(a: float, b: float) -> float:
    return a * b


@define_tool(description="Current time in UTC, ISO 8601.")
async def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def main(question: str) -> int:
    config = ChatConfig.from_env()
    session = ChatSession(config, catalog=LocalToolCatalog([multiply, utc_now]))

    callbacks = StreamCallbacks(
        on_token=lambda text: print(text, end="", flush=True),
        on_tool_call=lambda call: print(f"\n[calling {call.name} {call.arguments}]"),
        on_error=lambda error: print(f"\nError: {error}", file=sys.stderr),
    )

    print(f"Model: {config.model} ({config.provider_config.name})\n")
    await session.send(question, callbacks)
    print()

    # Show how each tool call ended up
    for message in session.messages:
        for call in message.tool_calls:
            print(f"  {call.name}: {call.status.value} in {call.execution_time_ms}ms -> {call.result}")

    return 0 if session.state == LoopState.DONE else 1


if __name__ == "__main__":
    question = " ".join(sys.argv[1:]) or "What's 17 * 23?"
    sys.exit(asyncio.run(main(question)))
