"""The tools this server ships with, registered once at startup."""

from __future__ import annotations

import httpx

from ..config import Settings
from ..registry import ToolDescriptor, ToolRegistry
from .arithmetic import AddArguments, add
from .weather import WeatherArguments, WeatherService

ADD = ToolDescriptor(
    name="add",
    description="Add two numbers together",
    arguments=AddArguments,
    sample_arguments={"a": 5, "b": 3},
)

WEATHER = ToolDescriptor(
    name="weather",
    description="Get current weather for a city",
    arguments=WeatherArguments,
    sample_arguments={"city": "London"},
)


def build_registry(
    settings: Settings | None = None,
    weather_transport: httpx.AsyncBaseTransport | None = None,
) -> ToolRegistry:
    settings = settings or Settings()
    registry = ToolRegistry()
    registry.register(ADD, add)
    registry.register(
        WEATHER,
        WeatherService(
            base_url=settings.weather_url,
            response_format=settings.weather_format,
            timeout=settings.weather_timeout,
            transport=weather_transport,
        ),
    )
    return registry
