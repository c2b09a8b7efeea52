from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Sequence


def _env_truthy(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    value = environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    value = environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, resolved once at startup."""

    remote: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    server_name: str = "Universal MCP Server"
    server_version: str = "1.0.0"
    protocol_version: str = "2024-11-05"
    weather_url: str = "https://wttr.in"
    weather_format: str = "%C %t"
    weather_timeout: float = 5.0
    sse_ping_interval: float = 30.0
    log_level: str = "INFO"

    @property
    def mode(self) -> str:
        return "remote" if self.remote else "local"

    @classmethod
    def from_env(
        cls,
        argv: Sequence[str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "Settings":
        """Build settings from environment variables, overridden by CLI flags.

        Remote (HTTP) mode is selected by ``--remote``, by ``MCP_MODE=remote``
        or simply by ``PORT`` being set, which is how most hosting platforms
        announce a networked deployment.
        """
        environ = os.environ if environ is None else environ

        parser = argparse.ArgumentParser(
            prog="universal-mcp",
            description="MCP server exposing add and weather tools",
        )
        parser.add_argument(
            "--remote",
            action="store_true",
            help="Serve over HTTP (SSE + /mcp) instead of stdio",
        )
        parser.add_argument("--host", default=None, help="Listen address (default: 0.0.0.0)")
        parser.add_argument("--port", type=int, default=None, help="Listen port (default: 3000)")
        parser.add_argument("--log-level", default=None, help="Logging level (default: INFO)")
        args = parser.parse_args(argv)

        remote = (
            args.remote
            or bool(environ.get("PORT"))
            or environ.get("MCP_MODE", "").strip().lower() == "remote"
            or _env_truthy(environ, "MCP_REMOTE")
        )

        port = args.port if args.port is not None else _env_int(environ, "PORT", cls.port)
        if not 0 < port < 65536:
            raise ValueError(f"Port out of range: {port}")

        log_level = (args.log_level or environ.get("LOG_LEVEL", cls.log_level)).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"Unknown log level: {log_level}")

        return cls(
            remote=remote,
            host=args.host or environ.get("HOST", cls.host),
            port=port,
            server_name=environ.get("MCP_SERVER_NAME", cls.server_name),
            server_version=environ.get("MCP_SERVER_VERSION", cls.server_version),
            weather_url=environ.get("WEATHER_API_URL", cls.weather_url).rstrip("/"),
            weather_format=environ.get("WEATHER_FORMAT", cls.weather_format),
            weather_timeout=_env_float(environ, "WEATHER_TIMEOUT", cls.weather_timeout),
            sse_ping_interval=_env_float(environ, "SSE_PING_INTERVAL", cls.sse_ping_interval),
            log_level=log_level,
        )
