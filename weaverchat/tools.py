"""
WeaverChat - Tool catalogs and tool execution.

A ``ToolCatalog`` is the narrow contract the agent loop needs from the tool
backend: the definitions of the currently active tools and
``invoke(name, arguments)``. ``ToolExecutor`` runs one ``ToolCall`` against
a catalog, records its status on the call, and serializes the outcome so
the model sees it either way.
"""

import asyncio
import inspect
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from .exceptions import ToolInvocationError, ToolNotFoundError
from .models import LocalTool, ToolCall, ToolDefinition

logger = logging.getLogger("weaverchat.tools")


class ToolCatalog(ABC):
    """The active tool set offered to the model."""

    @abstractmethod
    def definitions(self) -> list[ToolDefinition]:
        """Definitions of every active tool."""

    def get(self, name: str) -> Optional[ToolDefinition]:
        for definition in self.definitions():
            if definition.name == name:
                return definition
        return None

    @abstractmethod
    async def invoke(self, name: str, arguments: dict[str, Any]) -> Any:
        """Execute a tool and return a JSON-serializable result.

        Raises:
            ToolNotFoundError: The tool is not in the active set.
            ToolInvocationError: The backend failed to run the tool.
        """


class LocalToolCatalog(ToolCatalog):
    """Catalog of in-process tools built with :func:`define_tool`."""

    def __init__(self, tools: Optional[list[LocalTool]] = None) -> None:
        self._tools: dict[str, LocalTool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: LocalTool) -> None:
        self._tools[tool.name] = tool

    def definitions(self) -> list[ToolDefinition]:
        return [tool.definition for tool in self._tools.values()]

    async def invoke(self, name: str, arguments: dict[str, Any]) -> Any:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        if inspect.iscoroutinefunction(tool.handler):
            return await tool.handler(**arguments)
        return tool.handler(**arguments)


class HttpToolCatalog(ToolCatalog):
    """Catalog backed by the tool management API.

    ``refresh()`` loads ``GET /v1/tools`` and keeps the active tools
    (optionally only those published on one server). ``invoke`` runs a
    tool through ``POST /v1/tools/{id}/test``.

    Example:
        ```python
        async with HttpToolCatalog("http://localhost:8080/api", api_key="...") as catalog:
            await catalog.refresh()
            result = await catalog.invoke("get_orders", {"limit": 5})
        ```
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        server_id: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.server_id = server_id
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = headers
        self._tools: dict[str, ToolDefinition] = {}

    def definitions(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    async def refresh(self) -> list[ToolDefinition]:
        """Reload the active tool set from the backend."""
        response = await self._client.get(f"{self.base_url}/v1/tools", headers=self._headers)
        data = self._handle_response(response)
        records = data if isinstance(data, list) else []

        tools: dict[str, ToolDefinition] = {}
        for record in records:
            if record.get("status") != "active":
                continue
            if self.server_id and record.get("mcp_server_id") != self.server_id:
                continue
            definition = ToolDefinition.from_dict(record)
            tools[definition.name] = definition
        self._tools = tools
        logger.info("Loaded %d active tools from %s", len(tools), self.base_url)
        return self.definitions()

    async def invoke(self, name: str, arguments: dict[str, Any]) -> Any:
        definition = self._tools.get(name)
        if definition is None:
            raise ToolNotFoundError(name)
        response = await self._client.post(
            f"{self.base_url}/v1/tools/{definition.tool_id or name}/test",
            headers=self._headers,
            json={"parameters": arguments},
        )
        result = self._handle_response(response)
        if isinstance(result, dict) and result.get("success") is False:
            raise ToolInvocationError(
                result.get("message") or f"Tool {name} failed",
                response=result,
            )
        return result

    def _handle_response(self, response: httpx.Response) -> Any:
        """Unwrap the ``{"data": ...}`` envelope or raise ``ToolInvocationError``."""
        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}

        if response.status_code >= 400:
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("error")
            raise ToolInvocationError(
                str(message or f"Request failed with status {response.status_code}"),
                status_code=response.status_code,
                response=body or None,
            )

        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpToolCatalog":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


class ToolExecutor:
    """Runs tool calls one at a time against a catalog.

    Failures never propagate: a missing tool, a backend error or a timeout
    marks the call as ``error`` and is serialized as ``{"error": ...}``.
    """

    def __init__(self, catalog: Optional[ToolCatalog], timeout: Optional[float] = None) -> None:
        self._catalog = catalog
        self._timeout = timeout

    async def execute(self, tool_call: ToolCall) -> str:
        """Execute ``tool_call`` and return the content for its tool message."""
        if self._catalog is None or self._catalog.get(tool_call.name) is None:
            message = str(ToolNotFoundError(tool_call.name))
            logger.warning("Tool call %s rejected: %s", tool_call.id, message)
            tool_call.fail(message)
            return json.dumps({"error": message})

        tool_call.start()
        logger.info("Running tool %s (%s)", tool_call.name, tool_call.id)
        t0 = time.monotonic()
        try:
            result = await asyncio.wait_for(self._invoke(tool_call), timeout=self._timeout)
        except asyncio.TimeoutError:
            message = f"Tool {tool_call.name} timed out after {self._timeout}s"
            tool_call.fail(message, _elapsed_ms(t0))
            logger.warning(message)
            return json.dumps({"error": message})
        except Exception as e:
            message = str(e) or type(e).__name__
            tool_call.fail(message, _elapsed_ms(t0))
            logger.warning("Tool %s failed: %s", tool_call.name, message)
            return json.dumps({"error": message})

        tool_call.succeed(result, _elapsed_ms(t0))
        logger.info(
            "Tool %s finished in %dms", tool_call.name, tool_call.execution_time_ms or 0
        )
        return json.dumps(result, default=str)

    async def _invoke(self, tool_call: ToolCall) -> Any:
        # A TimeoutError raised by the tool itself is an ordinary failure.
        try:
            return await self._catalog.invoke(tool_call.name, dict(tool_call.arguments))
        except asyncio.TimeoutError as e:
            raise ToolInvocationError(str(e) or type(e).__name__) from e


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
