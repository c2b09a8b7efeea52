from __future__ import annotations

import logging
from urllib.parse import quote

import anyio
import httpx
from mcp.types import TextContent
from pydantic import BaseModel, Field

logger = logging.getLogger("universal-mcp-tools")

FALLBACK_TEMPLATE = "Unable to fetch weather for {city}. Please try again later."


class WeatherArguments(BaseModel):
    city: str = Field(min_length=1, description="City name")


class WeatherService:
    """Current-conditions lookup against a wttr.in style text endpoint.

    Upstream failures (network errors, timeouts, non-2xx answers) are not
    raised: the caller gets a readable fallback sentence instead, so JSON-RPC
    errors stay reserved for protocol problems.
    """

    def __init__(
        self,
        base_url: str = "https://wttr.in",
        response_format: str = "%C %t",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.response_format = response_format
        self.timeout = timeout
        # Only set by tests
        self._transport = transport

    def url_for(self, city: str) -> str:
        return f"{self.base_url}/{quote(city, safe='')}"

    async def __call__(self, city: str) -> list[TextContent]:
        logger.info(f"Fetching weather for: {city}")
        try:
            # httpx limits each phase separately; the deadline covers the whole call
            with anyio.fail_after(self.timeout):
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.get(
                        self.url_for(city),
                        params={"format": self.response_format},
                    )
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Weather API error for {city}: HTTP {e.response.status_code}")
            return [TextContent(type="text", text=FALLBACK_TEMPLATE.format(city=city))]
        except TimeoutError:
            logger.warning(f"Weather API error for {city}: no answer within {self.timeout}s")
            return [TextContent(type="text", text=FALLBACK_TEMPLATE.format(city=city))]
        except httpx.HTTPError as e:
            logger.warning(f"Weather API error for {city}: {type(e).__name__}: {e}")
            return [TextContent(type="text", text=FALLBACK_TEMPLATE.format(city=city))]

        logger.info(f"Weather API response for {city}: {response.text}")
        return [TextContent(type="text", text=response.text)]
