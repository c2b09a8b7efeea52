"""Transport-independent JSON-RPC dispatch.

Every transport hands raw envelopes to :class:`Dispatcher` and writes back
whatever it returns, so stdio, SSE and HTTP clients observe the same tool
list, the same call results and the same error codes.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping

from mcp.types import (
    INTERNAL_ERROR,
    CallToolResult,
    Implementation,
    InitializeResult,
    ServerCapabilities,
    TextContent,
    ToolsCapability,
)

from .config import Settings
from .errors import (
    EmptyResultError,
    GatewayError,
    InvalidArgumentError,
    InvalidRequestError,
    MethodNotFoundError,
)
from .registry import ToolRegistry, ToolResult

logger = logging.getLogger("universal-mcp-dispatch")

JSONRPC_VERSION = "2.0"

Envelope = Dict[str, Any]


def result_envelope(request_id: Any, result: Any) -> Envelope:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_envelope(request_id: Any, code: int, message: str) -> Envelope:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": {"code": code, "message": message},
    }


def result_text(result: ToolResult) -> str:
    """Join every text item of a tool result with a single space."""
    return " ".join(
        item.text for item in result or () if getattr(item, "type", None) == "text"
    )


class Dispatcher:
    def __init__(self, registry: ToolRegistry, settings: Settings | None = None):
        self.registry = registry
        self.settings = settings or Settings()
        self._methods: Dict[str, Callable[[Mapping[str, Any]], Awaitable[Any]]] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    async def dispatch(self, envelope: Any) -> Envelope | None:
        """Handle one inbound envelope.

        Returns the outbound envelope, or ``None`` for notifications, which
        get no response. Never raises: failures become error envelopes.
        """
        if not isinstance(envelope, Mapping):
            logger.warning(f"Rejected non-object message: {envelope!r}")
            return error_envelope(None, InvalidRequestError.code, "Invalid request: expected a JSON object")

        request_id = envelope.get("id")
        method = envelope.get("method")

        if not isinstance(method, str) or not method:
            logger.warning(f"Rejected message without method (id={request_id!r})")
            return error_envelope(request_id, InvalidRequestError.code, "Invalid request: missing method")

        if "id" not in envelope and method.startswith("notifications/"):
            logger.info(f"Notification received: {method}")
            return None

        params = envelope.get("params")
        if params is None:
            params = {}

        started = time.perf_counter()
        logger.info(f"Dispatch {method} (id={request_id!r})")
        try:
            handler = self._methods.get(method)
            if handler is None:
                raise MethodNotFoundError(f"Method not found: {method}")
            if not isinstance(params, Mapping):
                raise InvalidArgumentError(f"Invalid params for {method}: expected an object")
            result = await handler(params)
        except GatewayError as e:
            logger.warning(f"Dispatch {method} (id={request_id!r}) failed: [{e.error.code}] {e.message}")
            return error_envelope(request_id, e.error.code, e.message)
        except Exception as e:
            logger.exception(f"Dispatch {method} (id={request_id!r}) raised an unexpected error")
            return error_envelope(request_id, INTERNAL_ERROR, str(e) or type(e).__name__)

        elapsed = (time.perf_counter() - started) * 1000
        logger.info(f"Dispatch {method} (id={request_id!r}) succeeded in {elapsed:.1f}ms")
        return result_envelope(request_id, result)

    # --- Methods ---

    async def _initialize(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        client = params.get("clientInfo") or {}
        if isinstance(client, Mapping) and client.get("name"):
            logger.info(f"Client connected: {client.get('name')} {client.get('version', '')}".rstrip())
        result = InitializeResult(
            protocolVersion=self.settings.protocol_version,
            capabilities=ServerCapabilities(tools=ToolsCapability()),
            serverInfo=Implementation(
                name=self.settings.server_name,
                version=self.settings.server_version,
            ),
        )
        return result.model_dump(by_alias=True, exclude_none=True)

    async def _ping(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        return {}

    async def _list_tools(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        tools = [descriptor.as_dict() for descriptor in self.registry.list()]
        logger.debug(f"Returning tools: {[t['name'] for t in tools]}")
        return {"tools": tools}

    async def _call_tool(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidArgumentError("Missing required parameter: name")
        if "arguments" not in params:
            raise InvalidArgumentError("Missing required parameter: arguments")

        tool = self.registry.lookup(name)
        arguments = tool.validate(params["arguments"])
        logger.info(f"Calling tool {name} with args: {arguments}")

        text = result_text(await tool.handler(**arguments))
        if not text:
            raise EmptyResultError(f"Tool {name} returned no text content")

        logger.info(f"Tool {name} result text: {text}")
        result = CallToolResult(content=[TextContent(type="text", text=text)], isError=False)
        return result.model_dump(by_alias=True, exclude_none=True)
