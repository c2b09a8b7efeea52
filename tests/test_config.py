import unittest

from universal_mcp.config import Settings


class TestSettings(unittest.TestCase):
    def test_defaults_to_local_stdio(self):
        settings = Settings.from_env([], {})

        self.assertFalse(settings.remote)
        self.assertEqual(settings.mode, "local")
        self.assertEqual(settings.port, 3000)
        self.assertEqual(settings.weather_timeout, 5.0)
        self.assertEqual(settings.sse_ping_interval, 30.0)

    def test_port_variable_implies_remote(self):
        settings = Settings.from_env([], {"PORT": "8080"})

        self.assertTrue(settings.remote)
        self.assertEqual(settings.port, 8080)

    def test_mode_variable(self):
        self.assertTrue(Settings.from_env([], {"MCP_MODE": "remote"}).remote)
        self.assertTrue(Settings.from_env([], {"MCP_MODE": " Remote "}).remote)
        self.assertFalse(Settings.from_env([], {"MCP_MODE": "local"}).remote)
        self.assertTrue(Settings.from_env([], {"MCP_REMOTE": "yes"}).remote)

    def test_flags_override_environment(self):
        settings = Settings.from_env(
            ["--remote", "--port", "9000", "--host", "127.0.0.1", "--log-level", "debug"],
            {"PORT": "8080", "HOST": "0.0.0.0"},
        )

        self.assertTrue(settings.remote)
        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.host, "127.0.0.1")
        self.assertEqual(settings.log_level, "DEBUG")

    def test_weather_settings(self):
        settings = Settings.from_env(
            [],
            {"WEATHER_API_URL": "http://localhost:8001/", "WEATHER_TIMEOUT": "2.5", "WEATHER_FORMAT": "%t"},
        )

        self.assertEqual(settings.weather_url, "http://localhost:8001")
        self.assertEqual(settings.weather_timeout, 2.5)
        self.assertEqual(settings.weather_format, "%t")

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            Settings.from_env([], {"WEATHER_TIMEOUT": "soon"})
        with self.assertRaises(ValueError):
            Settings.from_env([], {"PORT": "http"})
        with self.assertRaises(ValueError):
            Settings.from_env(["--port", "70000"], {})
        with self.assertRaises(ValueError):
            Settings.from_env([], {"LOG_LEVEL": "chatty"})


if __name__ == "__main__":
    unittest.main()
