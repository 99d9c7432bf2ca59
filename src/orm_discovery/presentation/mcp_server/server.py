"""
ORM Discovery MCP Server

Model Context Protocol server for the O'Reilly Learning platform.

Features:
- Catalogue search with endpoint fallback
- Book details, table of contents and parsed chapter content
- O'Reilly Answers questions
- Research history exposed as resources

Architecture:
- instructions.py: SERVER_INSTRUCTIONS for AI agents
- tools/: Tool implementations by category
- resources.py: Research history resources
- container: DI container (dependency-injector) for service lifecycle
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any, cast

from mcp.server.fastmcp import FastMCP

from orm_discovery import __version__
from orm_discovery.config import Settings, configure_logging
from orm_discovery.container import ApplicationContainer
from orm_discovery.shared.exceptions import ConfigurationError

from .instructions import SERVER_INSTRUCTIONS
from .resources import register_history_resources
from .tools import register_all_tools

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Sequence

    from orm_discovery.application.history import HistoryStore
    from orm_discovery.infrastructure.auth import SessionManager
    from orm_discovery.infrastructure.http import PlatformHTTPClient
    from orm_discovery.infrastructure.oreilly import ContentClient

logger = logging.getLogger(__name__)

TRANSPORTS = ("stdio", "sse", "streamable-http")

# ── Module-level DI container ──────────────────────────────────────────────
_container: ApplicationContainer | None = None


def get_container() -> ApplicationContainer:
    """Get the application DI container.

    Raises:
        RuntimeError: If ``create_server()`` has not been called yet.
    """
    if _container is None:
        msg = "Container not initialized. Call create_server() first."
        raise RuntimeError(msg)
    return _container


async def close_services(container: ApplicationContainer) -> None:
    """Close the session (browser) and HTTP client. Safe to call repeatedly."""
    session = cast("SessionManager", container.session_manager())
    http_client = cast("PlatformHTTPClient", container.http_client())
    await session.close()
    await http_client.close()


def _make_lifespan(
    container: ApplicationContainer,
) -> Callable[[FastMCP[Any]], AbstractAsyncContextManager[ApplicationContainer]]:
    """Create a FastMCP lifespan handler bound to *container*."""

    @asynccontextmanager
    async def _lifespan(server: FastMCP[Any]) -> AsyncIterator[ApplicationContainer]:
        logger.info("Lifecycle: startup - resources ready")
        try:
            yield container
        finally:
            await close_services(container)
            logger.info("Lifecycle: shutdown - session and HTTP client closed")

    return _lifespan


def create_server(
    settings: Settings | None = None,
    *,
    container: ApplicationContainer | None = None,
    name: str = "orm-discovery",
) -> FastMCP:
    """
    Create and configure the ORM Discovery MCP server.

    Args:
        settings: Runtime settings. Default: ``Settings.from_env()``.
        container: Pre-built container (tests override providers on it).
        name: Server name.

    Returns:
        Configured FastMCP server instance.
    """
    global _container
    logger.info(f"Initializing ORM Discovery MCP Server {__version__}...")

    settings = settings or Settings.from_env()
    if container is None:
        container = ApplicationContainer()
        container.config.from_dict(settings.as_container_config())
    _container = container

    if not settings.has_credentials:
        logger.warning("OREILLY_USER_ID / OREILLY_PASSWORD not set: only cached cookies can be used")

    content_client = cast("ContentClient", container.content_client())
    history_store = cast("HistoryStore", container.history_store())

    mcp = FastMCP(
        name,
        instructions=SERVER_INSTRUCTIONS,
        lifespan=_make_lifespan(container),
    )

    tools = register_all_tools(mcp, content_client)
    resources = register_history_resources(mcp, history_store)
    logger.info(f"Registration complete: {len(tools)} tools, {len(resources)} resources")

    return mcp


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="orm-discovery-mcp",
        description="MCP server for the O'Reilly Learning platform",
    )
    parser.add_argument("--debug", action="store_true", help="verbose logging, keep the login browser open")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], type=str.upper)
    parser.add_argument("--transport", choices=TRANSPORTS, default="stdio")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def _forward_sigterm(signum: int, frame: object) -> None:
    # Route SIGTERM through the SIGINT path so the event loop cancels cleanly
    # and the lifespan shutdown runs.
    signal.raise_signal(signal.SIGINT)


def main(argv: Sequence[str] | None = None) -> None:
    """Run the MCP server."""
    args = _parse_args(argv)

    try:
        settings = Settings.from_env().with_overrides(debug=args.debug, log_level=args.log_level)
        settings.ensure_directories()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Invalid configuration: {e}")
        raise SystemExit(2) from e

    configure_logging(settings)
    logger.info(f"Cache dir: {settings.cache_dir}, state dir: {settings.state_dir}")

    server = create_server(settings)
    signal.signal(signal.SIGTERM, _forward_sigterm)

    try:
        server.run(transport=args.transport)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        # Idempotent: a no-op when the lifespan already closed everything.
        asyncio.run(close_services(get_container()))


if __name__ == "__main__":
    main()
