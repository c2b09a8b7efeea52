import time
import unittest

import anyio
import httpx

from universal_mcp.config import Settings
from universal_mcp.tools.arithmetic import add, format_number
from universal_mcp.tools.catalog import build_registry
from universal_mcp.tools.weather import WeatherService

FALLBACK = "Unable to fetch weather for London. Please try again later."


class TestAdd(unittest.IsolatedAsyncioTestCase):
    async def test_add_is_commutative(self):
        first = await add(2, 3)
        second = await add(3, 2)

        self.assertEqual(first[0].text, "5")
        self.assertEqual(second[0].text, "5")

    async def test_add_accepts_plain_ints(self):
        result = await add(40, 2)
        self.assertEqual(result[0].text, "42")

    async def test_add_uses_float_addition(self):
        result = await add(0.1, 0.2)
        self.assertEqual(result[0].text, "0.30000000000000004")

        result = await add(-1.5, 0.25)
        self.assertEqual(result[0].text, "-1.25")

    def test_format_number(self):
        self.assertEqual(format_number(8.0), "8")
        self.assertEqual(format_number(8), "8")
        self.assertEqual(format_number(-0.0), "0")
        self.assertEqual(format_number(2.5), "2.5")
        self.assertEqual(format_number(1e21), "1e+21")


class TestWeather(unittest.IsolatedAsyncioTestCase):
    def service(self, handler) -> WeatherService:
        return WeatherService(transport=httpx.MockTransport(handler))

    async def test_returns_raw_body(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="Partly cloudy +15°C")

        result = await self.service(handler)("London")

        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].text, "Partly cloudy +15°C")
        self.assertEqual(seen[0].url.host, "wttr.in")
        self.assertEqual(seen[0].url.path, "/London")
        self.assertEqual(seen[0].url.params["format"], "%C %t")

    async def test_timeout_degrades_to_text(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = await self.service(handler)("London")

        self.assertEqual([item.text for item in result], [FALLBACK])

    async def test_slow_body_is_cut_off_at_the_deadline(self):
        async def trickle():
            for byte in b"Sunny+9C":
                await anyio.sleep(0.1)
                yield bytes([byte])

        service = WeatherService(
            timeout=0.25,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=trickle())),
        )

        started = time.monotonic()
        result = await service("London")

        self.assertEqual(result[0].text, FALLBACK)
        self.assertLess(time.monotonic() - started, 0.7)

    async def test_connection_error_degrades_to_text(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("name resolution failed", request=request)

        result = await self.service(handler)("London")

        self.assertEqual(result[0].text, FALLBACK)

    async def test_non_2xx_degrades_to_text(self):
        result = await self.service(lambda request: httpx.Response(503, text="busy"))("London")

        self.assertEqual(result[0].text, FALLBACK)

    def test_city_is_quoted_into_path(self):
        service = WeatherService(base_url="https://weather.example/")

        self.assertEqual(service.url_for("New York"), "https://weather.example/New%20York")
        self.assertEqual(service.url_for("a/b"), "https://weather.example/a%2Fb")


class TestCatalog(unittest.TestCase):
    def test_registers_add_then_weather(self):
        registry = build_registry()

        self.assertEqual(registry.names(), ["add", "weather"])

    def test_weather_uses_settings(self):
        settings = Settings(weather_url="http://localhost:9999", weather_timeout=1.5, weather_format="%t")

        service = build_registry(settings).lookup("weather").handler

        self.assertEqual(service.base_url, "http://localhost:9999")
        self.assertEqual(service.timeout, 1.5)
        self.assertEqual(service.response_format, "%t")

    def test_default_weather_timeout_is_five_seconds(self):
        service = build_registry().lookup("weather").handler

        self.assertEqual(service.timeout, 5.0)

    def test_schemas(self):
        schemas = {d.name: d.input_schema for d in build_registry().list()}

        self.assertEqual(schemas["add"]["properties"]["a"]["type"], "number")
        self.assertEqual(schemas["add"]["properties"]["b"]["type"], "number")
        self.assertEqual(sorted(schemas["add"]["required"]), ["a", "b"])
        self.assertEqual(schemas["weather"]["properties"]["city"]["type"], "string")
        self.assertEqual(schemas["weather"]["required"], ["city"])


if __name__ == "__main__":
    unittest.main()
