"""Stdio transport: newline-delimited JSON-RPC on stdin/stdout.

Line framing and message parsing come from the MCP SDK. stdout carries
protocol frames only, so nothing in this process may log to it while this
transport is active.
"""

import logging

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp.server.stdio import stdio_server
from mcp.shared.message import SessionMessage
from mcp.types import JSONRPCError, JSONRPCMessage, JSONRPCNotification, JSONRPCRequest, JSONRPCResponse

from .dispatch import Dispatcher

logger = logging.getLogger("universal-mcp-stdio")


async def _answer(
    dispatcher: Dispatcher,
    request: JSONRPCRequest | JSONRPCNotification,
    write_stream: MemoryObjectSendStream,
) -> None:
    envelope = request.model_dump(by_alias=True, exclude_none=True)
    response = await dispatcher.dispatch(envelope)
    if response is None:
        return
    if response.get("id") is None:
        # id-less requests arrive as notifications; a response frame needs a non-null id
        logger.warning(f"Dropping response to id-less request {envelope.get('method')}: {response}")
        return
    await write_stream.send(SessionMessage(JSONRPCMessage.model_validate(response)))


async def serve_streams(
    dispatcher: Dispatcher,
    read_stream: MemoryObjectReceiveStream,
    write_stream: MemoryObjectSendStream,
) -> None:
    """Dispatch every request read from ``read_stream`` until it is exhausted.

    Each request runs in its own task so a slow tool call does not hold up
    the ones behind it. Responses are written in completion order.
    """
    async with read_stream, write_stream:
        async with anyio.create_task_group() as tg:
            async for message in read_stream:
                if isinstance(message, Exception):
                    logger.warning(f"Discarding unparseable message: {message}")
                    continue
                root = message.message.root
                if isinstance(root, (JSONRPCResponse, JSONRPCError)):
                    logger.debug(f"Ignoring client response for id={root.id!r}")
                    continue
                tg.start_soon(_answer, dispatcher, root, write_stream)
    logger.info("STDIO input closed")


async def serve_stdio(dispatcher: Dispatcher) -> None:
    logger.info("Starting MCP server in STDIO mode...")
    async with stdio_server() as (read_stream, write_stream):
        logger.info("MCP server connected via STDIO and ready!")
        await serve_streams(dispatcher, read_stream, write_stream)
