"""HTTP transport at ``POST /mcp``.

One JSON-RPC envelope in, one envelope out, answered synchronously as
``application/json``. This is the request/response subset of Streamable HTTP:
no event-stream upgrade and no ``Mcp-Session-Id`` bookkeeping.
"""

import logging

from mcp.types import INVALID_PARAMS, INVALID_REQUEST, METHOD_NOT_FOUND, PARSE_ERROR
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from .dispatch import Dispatcher, error_envelope
from .errors import ParseError

logger = logging.getLogger("universal-mcp-http")

# Errors caused by the request itself; everything else is reported as a 500.
_CLIENT_ERROR_CODES = {PARSE_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND, INVALID_PARAMS}


def status_for(envelope: dict) -> int:
    error = envelope.get("error")
    if error is None:
        return 200
    return 400 if error.get("code") in _CLIENT_ERROR_CODES else 500


class HttpTransport:
    def __init__(self, dispatcher: Dispatcher, path: str = "/mcp"):
        self.dispatcher = dispatcher
        self.path = path

    def routes(self) -> list[Route]:
        return [Route(self.path, endpoint=self.handle_request, methods=["POST"])]

    async def handle_request(self, request: Request) -> Response:
        try:
            body = await request.json()
        except ValueError as e:
            logger.warning(f"MCP HTTP request with unparseable body: {e}")
            return JSONResponse(error_envelope(None, ParseError.code, "Parse error"), status_code=400)

        logger.info(f"MCP HTTP request: {body}")
        response = await self.dispatcher.dispatch(body)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(response, status_code=status_for(response))
