"""Combined HTTP server.

Exposes every networked transport from a single ASGI app:
- SSE at /sse (with /messages/)
- request/response JSON-RPC at /mcp

plus the operational endpoints /health and /test-tools. All responses allow
cross-origin access so browser-based agents can call the server directly.
"""

import asyncio
import logging
import resource
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .config import Settings
from .dispatch import Dispatcher
from .registry import ToolRegistry
from .server_http import HttpTransport
from .server_sse import SseTransport
from .session_store import SessionStore

logger = logging.getLogger("universal-mcp")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def memory_usage() -> Dict[str, Any]:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    max_rss = usage.ru_maxrss if sys.platform == "darwin" else usage.ru_maxrss * 1024
    return {
        "maxRss": max_rss,
        "userTime": round(usage.ru_utime, 3),
        "systemTime": round(usage.ru_stime, 3),
    }


def log_async_failure(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """Loop exception handler: record failures nobody awaited, keep serving."""
    exc = context.get("exception")
    message = context.get("message", "Unhandled asynchronous failure")
    if exc is not None:
        logger.error(f"Unhandled asynchronous failure: {message}", exc_info=exc)
    else:
        logger.error(f"Unhandled asynchronous failure: {message}")


async def run_self_test(registry: ToolRegistry) -> Dict[str, Any]:
    """Call every tool with its sample arguments and report per-tool outcome."""
    results: Dict[str, Any] = {}
    for tool in registry:
        try:
            result = await tool.call(dict(tool.descriptor.sample_arguments))
            results[tool.name] = {
                "success": True,
                "result": {"content": [item.model_dump(by_alias=True, exclude_none=True) for item in result]},
            }
        except Exception as e:
            logger.warning(f"Self-test of tool {tool.name} failed: {e}")
            results[tool.name] = {"success": False, "error": str(e) or type(e).__name__}
    return results


def create_app(
    registry: ToolRegistry,
    settings: Settings | None = None,
    dispatcher: Dispatcher | None = None,
) -> Starlette:
    settings = settings or Settings(remote=True)
    dispatcher = dispatcher or Dispatcher(registry, settings)
    sessions = SessionStore()
    sse = SseTransport(dispatcher, sessions, ping_interval=settings.sse_ping_interval)
    http = HttpTransport(dispatcher)
    started = time.monotonic()

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({
            "status": "healthy",
            "mode": "remote",
            "server": settings.server_name,
            "version": settings.server_version,
            "timestamp": _now(),
            "uptime": round(time.monotonic() - started, 3),
            "memory": memory_usage(),
            "tools": registry.names(),
            "sseSessions": len(sessions),
        })

    async def test_tools(request: Request) -> JSONResponse:
        try:
            test_results = await run_self_test(registry)
            return JSONResponse({
                "mode": "remote",
                "timestamp": _now(),
                "tools": registry.names(),
                "testResults": test_results,
            })
        except Exception as e:
            logger.exception("Self-test endpoint failed")
            return JSONResponse({"error": str(e), "timestamp": _now()}, status_code=500)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        asyncio.get_running_loop().set_exception_handler(log_async_failure)
        base = f"http://localhost:{settings.port}"
        logger.info(f"Universal MCP Server running in HTTP mode on port {settings.port}")
        logger.info(f"SSE endpoint: {base}/sse")
        logger.info(f"Health check: {base}/health")
        logger.info(f"MCP HTTP endpoint: {base}{http.path}")
        logger.info(f"Test tools: {base}/test-tools")
        logger.info("Available tools:")
        for descriptor in registry.list():
            logger.info(f"  - {descriptor.name}: {descriptor.description}")
        try:
            yield
        finally:
            logger.info("Shutting down gracefully")
            await sessions.close_all()

    app = Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/test-tools", test_tools, methods=["GET"]),
            *http.routes(),
            *sse.routes(),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
                allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization", "Cache-Control"],
            ),
        ],
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.sessions = sessions
    app.state.sse = sse
    return app
