"""JSON-RPC error taxonomy shared by the dispatcher and every transport."""

from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ErrorData,
)


class DuplicateToolError(ValueError):
    """Raised at startup when a tool name is registered twice."""


class GatewayError(McpError):
    """A failure that is reported to the client as a JSON-RPC error."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(ErrorData(code=self.code, message=message))

    @property
    def message(self) -> str:
        return self.error.message


class ParseError(GatewayError):
    code = PARSE_ERROR


class InvalidRequestError(GatewayError):
    code = INVALID_REQUEST


class MethodNotFoundError(GatewayError):
    code = METHOD_NOT_FOUND


class InvalidArgumentError(GatewayError):
    code = INVALID_PARAMS


class ToolNotFoundError(GatewayError):
    code = INTERNAL_ERROR


class EmptyResultError(GatewayError):
    code = INTERNAL_ERROR
