"""Process entry point: pick one transport and run it until told to stop.

Local mode (default) speaks MCP over stdio for desktop clients. Remote mode
serves SSE, /mcp and the operational endpoints over HTTP with uvicorn.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from typing import Sequence

import anyio
import uvicorn

from .config import Settings
from .dispatch import Dispatcher
from .registry import ToolRegistry
from .server_all import create_app, log_async_failure
from .server_stdio import serve_stdio
from .tools.catalog import build_registry

logger = logging.getLogger("universal-mcp")


def configure_logging(settings: Settings) -> None:
    # stdout is the protocol channel in stdio mode
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout if settings.remote else sys.stderr,
        force=True,
    )


def _log_uncaught(exc_type, exc, tb) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logger.critical("Uncaught exception, terminating", exc_info=(exc_type, exc, tb))


def install_exception_hooks() -> None:
    sys.excepthook = _log_uncaught


def _exit_on_signal(signum, frame) -> None:
    logger.info(f"{signal.Signals(signum).name} received, shutting down gracefully")
    logging.shutdown()
    os._exit(0)


def _interrupt_on_signal(signum, frame) -> None:
    logger.info(f"{signal.Signals(signum).name} received, shutting down gracefully")
    raise KeyboardInterrupt


def install_signal_handlers(remote: bool) -> None:
    """Make SIGINT and SIGTERM end the process with status 0.

    Local mode reads stdin in a worker thread that no cancel scope can reach,
    so the handler exits the process directly. uvicorn restores these handlers
    after its graceful shutdown and re-raises the signal it caught into them,
    where it becomes a ``KeyboardInterrupt`` that ``main`` turns into 0.
    """
    handler = _interrupt_on_signal if remote else _exit_on_signal
    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, handler)


async def run_stdio(dispatcher: Dispatcher) -> None:
    asyncio.get_running_loop().set_exception_handler(log_async_failure)
    await serve_stdio(dispatcher)


def run_http(registry: ToolRegistry, settings: Settings) -> None:
    logger.info(f"Starting MCP server in HTTP mode on {settings.host}:{settings.port}...")
    app = create_app(registry, settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = Settings.from_env(argv)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(settings)
    install_exception_hooks()
    install_signal_handlers(settings.remote)

    try:
        registry = build_registry(settings)
        logger.info("Starting Universal MCP Server...")
        logger.info(f"Mode: {'REMOTE (HTTP)' if settings.remote else 'LOCAL (STDIO)'}")
        logger.info(f"Available tools: {', '.join(registry.names())}")

        if settings.remote:
            run_http(registry, settings)
        else:
            anyio.run(run_stdio, Dispatcher(registry, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down gracefully")
    except Exception:
        logger.exception("Unhandled startup error")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
