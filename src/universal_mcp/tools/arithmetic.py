from __future__ import annotations

import logging
import math

from mcp.types import TextContent
from pydantic import BaseModel, Field

logger = logging.getLogger("universal-mcp-tools")


class AddArguments(BaseModel):
    # strict: JSON numbers only, no booleans or numeric strings
    a: float = Field(strict=True, description="First number")
    b: float = Field(strict=True, description="Second number")


def format_number(value: float) -> str:
    """Render a float the way JSON clients expect to read it back.

    Integral values lose the trailing ``.0`` (``5.0`` -> ``"5"``); everything
    else keeps Python's shortest round-trip repr.
    """
    value = float(value)
    if math.isfinite(value) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


async def add(a: float, b: float) -> list[TextContent]:
    """Add two numbers."""
    logger.info(f"Executing add: {a} + {b}")
    return [TextContent(type="text", text=format_number(float(a) + float(b)))]
