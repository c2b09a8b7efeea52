from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Mapping

from mcp.types import TextContent
from pydantic import BaseModel, ValidationError

from .errors import DuplicateToolError, InvalidArgumentError, ToolNotFoundError

logger = logging.getLogger("universal-mcp-tools")

ToolResult = List[TextContent]
ToolHandler = Callable[..., Awaitable[ToolResult]]


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


@dataclass(frozen=True)
class ToolDescriptor:
    """Name, description and argument model of a tool.

    The JSON schema advertised through ``tools/list`` is generated from the
    pydantic ``arguments`` model, so the declared schema and the validation
    applied on ``tools/call`` cannot drift apart.
    """

    name: str
    description: str
    arguments: type[BaseModel]
    sample_arguments: Mapping[str, Any] = field(default_factory=dict)

    @property
    def input_schema(self) -> Dict[str, Any]:
        schema = self.arguments.model_json_schema()
        schema.pop("title", None)
        return schema

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class RegisteredTool:
    descriptor: ToolDescriptor
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.descriptor.name

    def validate(self, arguments: Any) -> Dict[str, Any]:
        """Validate and coerce raw arguments against the descriptor's model."""
        if not isinstance(arguments, Mapping):
            raise InvalidArgumentError(f"Arguments for tool {self.name} must be an object")
        try:
            model = self.descriptor.arguments.model_validate(dict(arguments))
        except ValidationError as exc:
            raise InvalidArgumentError(
                f"Invalid arguments for tool {self.name}: {_describe_validation_error(exc)}"
            ) from exc
        return model.model_dump()

    async def call(self, arguments: Any) -> ToolResult:
        return await self.handler(**self.validate(arguments))


class ToolRegistry:
    """Tools keyed by name, enumerated in registration order."""

    def __init__(self):
        self._tools: Dict[str, RegisteredTool] = {}

    def register(self, descriptor: ToolDescriptor, handler: ToolHandler) -> RegisteredTool:
        if descriptor.name in self._tools:
            raise DuplicateToolError(f"Tool already registered: {descriptor.name}")
        entry = RegisteredTool(descriptor, handler)
        self._tools[descriptor.name] = entry
        logger.debug(f"Registered tool: {descriptor.name}")
        return entry

    def lookup(self, name: str) -> RegisteredTool:
        entry = self._tools.get(name)
        if entry is None:
            raise ToolNotFoundError(f"Unknown tool: {name}")
        return entry

    def list(self) -> List[ToolDescriptor]:
        return [entry.descriptor for entry in self._tools.values()]

    def names(self) -> List[str]:
        return [*self._tools]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[RegisteredTool]:
        return iter(self._tools.values())
