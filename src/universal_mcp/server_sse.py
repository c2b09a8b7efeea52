"""SSE transport.

``GET /sse`` opens a long-lived event stream. Its first event (``endpoint``)
tells the client where to POST JSON-RPC messages; responses come back on the
stream as ``message`` events. A keep-alive task emits a ``ping`` event on a
fixed interval and is cancelled together with the stream when the client goes
away, which also drops the session.
"""

import json
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Dict, List
from uuid import UUID

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream
from sse_starlette import EventSourceResponse
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from .dispatch import Dispatcher, error_envelope
from .errors import ParseError
from .session_store import SessionEntry, SessionStore

logger = logging.getLogger("universal-mcp-sse")

# sse-starlette sends its own ": ping" comment on this interval; the ping
# event from keep_alive is the only keep-alive the client should see.
_COMMENT_PING_INTERVAL = 24 * 60 * 60


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SseTransport:
    def __init__(
        self,
        dispatcher: Dispatcher,
        sessions: SessionStore | None = None,
        endpoint: str = "/messages/",
        ping_interval: float = 30.0,
        buffer_size: int = 64,
    ):
        self.dispatcher = dispatcher
        self.sessions = sessions if sessions is not None else SessionStore()
        self.endpoint = endpoint
        self.ping_interval = ping_interval
        self.buffer_size = buffer_size

    def routes(self) -> List[Route]:
        return [
            Route("/sse", endpoint=self.handle_sse, methods=["GET"]),
            Route(self.endpoint, endpoint=self.handle_post_message, methods=["POST"]),
        ]

    async def open_session(self) -> tuple[SessionEntry, MemoryObjectReceiveStream]:
        """Register a new session and queue its ``endpoint`` event."""
        send_stream, receive_stream = anyio.create_memory_object_stream(max_buffer_size=self.buffer_size)
        entry = await self.sessions.open(send_stream)
        send_stream.send_nowait(
            {"event": "endpoint", "data": f"{self.endpoint}?session_id={entry.session_id.hex}"}
        )
        return entry, receive_stream

    async def handle_sse(self, request: Request) -> EventSourceResponse:
        client = request.client.host if request.client else "unknown"
        logger.info(f"New SSE connection from {client}")
        entry, receive_stream = await self.open_session()
        return EventSourceResponse(
            receive_stream,
            data_sender_callable=partial(self.keep_alive, entry, receive_stream),
            ping=_COMMENT_PING_INTERVAL,
        )

    async def keep_alive(self, entry: SessionEntry, receive_stream: MemoryObjectReceiveStream) -> None:
        """Emit ``ping`` events until cancelled, then release the session.

        sse-starlette runs this next to the response body and cancels it as
        soon as the client disconnects or the stream errors.
        """
        try:
            while True:
                await anyio.sleep(self.ping_interval)
                ping = {"type": "ping", "timestamp": _now()}
                await entry.stream.send({"event": "ping", "data": json.dumps(ping)})
                entry.pings_sent += 1
                logger.debug(f"Ping sent to SSE session {entry.session_id.hex}")
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.info(f"SSE stream for session {entry.session_id.hex} is gone")
        finally:
            with anyio.CancelScope(shield=True):
                await self.sessions.close(entry.session_id)
                await receive_stream.aclose()
            logger.info(f"SSE keep-alive released for session {entry.session_id.hex}")

    async def handle_post_message(self, request: Request) -> Response:
        raw_session_id = request.query_params.get("session_id")
        if not raw_session_id:
            return JSONResponse({"error": "session_id is required"}, status_code=400)
        try:
            session_id = UUID(hex=raw_session_id)
        except ValueError:
            return JSONResponse({"error": f"Invalid session ID: {raw_session_id}"}, status_code=400)

        entry = self.sessions.get(session_id)
        if entry is None:
            logger.warning(f"Message for unknown SSE session: {raw_session_id}")
            return JSONResponse({"error": "Could not find session"}, status_code=404)

        try:
            body = await request.json()
        except ValueError as e:
            logger.warning(f"Unparseable SSE message for session {raw_session_id}: {e}")
            return JSONResponse(error_envelope(None, ParseError.code, "Parse error"), status_code=400)

        return Response("Accepted", status_code=202, background=BackgroundTask(self._relay, entry, body))

    async def _relay(self, entry: SessionEntry, body: Any) -> None:
        response = await self.dispatcher.dispatch(body)
        if response is None:
            return
        await self.send(entry, response)

    async def send(self, entry: SessionEntry, message: Dict[str, Any]) -> None:
        try:
            await entry.stream.send({"event": "message", "data": json.dumps(message)})
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.warning(f"Dropped response for closed SSE session {entry.session_id.hex}")
