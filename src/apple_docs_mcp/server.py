"""Apple Docs MCP Server - Main server definition."""

import asyncio
import sys
from contextlib import asynccontextmanager
from importlib.metadata import version

from loguru import logger
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from apple_docs_mcp.cache import DocumentCache
from apple_docs_mcp.client import DocsClient
from apple_docs_mcp.config import settings
from apple_docs_mcp.errors import DocsError, NotSelectedError
from apple_docs_mcp.fetcher import DocsFetcher
from apple_docs_mcp.formatters import (
    format_current,
    format_discovery,
    format_error,
    format_no_technology,
    format_search_results,
    format_selection,
    format_symbol,
)
from apple_docs_mcp.models import SearchFilters
from apple_docs_mcp.search import SearchOrchestrator, get_symbol
from apple_docs_mcp.state import SessionContext
from apple_docs_mcp.technologies import choose_technology as _choose_technology
from apple_docs_mcp.technologies import discover_technologies as _discover

# Configure logging
logger.remove()
logger.add(sys.stderr, level=settings.log_level)

# Grace period (seconds) given to a cancelled task before it is abandoned.
_CANCEL_GRACE_PERIOD = 5.0

# Module-level state (set during lifespan)
_context: SessionContext | None = None
_orchestrator: SearchOrchestrator | None = None


def create_context() -> SessionContext:
    """Build cache, fetcher, client and an empty session from ``settings``."""
    cache = DocumentCache(settings.get_cache_dir())
    client = DocsClient(cache, DocsFetcher())
    return SessionContext(client)


def _get_context() -> SessionContext:
    global _context
    if _context is None:
        _context = create_context()
    return _context


def _get_orchestrator() -> SearchOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SearchOrchestrator()
    return _orchestrator


@asynccontextmanager
async def _lifespan(_server: FastMCP):
    """Server lifespan: create the documentation session, drop it on shutdown."""
    global _context, _orchestrator

    logger.info("Starting Apple Docs MCP Server...")
    _context = create_context()
    _orchestrator = SearchOrchestrator()
    logger.info(
        f"Documentation source: {settings.docs_source} ({settings.get_docs_base_url()})"
    )
    logger.info(f"Documentation cache: {settings.get_cache_dir()}")

    yield

    logger.info("Shutting down Apple Docs MCP Server...")
    _context.cancel_download()
    _context.client.fetcher.clear_cache()
    _context = None
    _orchestrator = None


# Initialize MCP server
mcp = FastMCP(
    name="apple-docs",
    instructions=(
        "Apple Developer Documentation MCP Server. "
        "Use `discover_technologies` and `choose_technology` to pick a framework, "
        "then `search_symbols` to find APIs and `get_documentation` to read them. "
        "Downloaded documentation is cached on disk."
    ),
    lifespan=_lifespan,
)


async def _with_timeout(coro, action: str) -> str:
    """Wrap coroutine with hard timeout.

    Uses ``asyncio.wait`` so the deadline holds even if the inner task is
    slow to react to cancellation. The cancelled task gets a brief grace
    period to release connections before it is abandoned.
    """
    timeout = settings.tool_timeout
    if timeout <= 0:
        return await coro

    task = asyncio.create_task(coro)
    done, _pending = await asyncio.wait({task}, timeout=timeout)

    if done:
        return task.result()

    task.cancel()
    logger.warning(f"Tool '{action}' timed out after {timeout}s, cancelling...")
    try:
        await asyncio.wait_for(asyncio.shield(task), timeout=_CANCEL_GRACE_PERIOD)
    except (asyncio.CancelledError, TimeoutError, Exception):
        pass

    logger.error(f"Tool '{action}' timed out after {timeout}s")
    return (
        f"Error: '{action}' timed out after {timeout}s. "
        "Increase TOOL_TIMEOUT or narrow the request."
    )


def _render_error(error: Exception, action: str) -> str:
    """Markdown for documentation errors, ``Error: ...`` for anything else."""
    if isinstance(error, NotSelectedError):
        return format_no_technology(_get_context().last_discovery)
    if isinstance(error, DocsError):
        logger.warning(f"{action} failed: {error}")
        return format_error(error)
    logger.error(f"{action} failed unexpectedly: {error}")
    return f"Error: {action} failed: {error}"


# ---------------------------------------------------------------------------
# Technology selection
# ---------------------------------------------------------------------------


async def _do_discover(query: str | None, page: int, page_size: int) -> str:
    try:
        result = await _discover(_get_context(), query, page=page, page_size=page_size)
    except Exception as e:
        return _render_error(e, "discover_technologies")
    return format_discovery(result)


async def _do_choose(name: str | None, identifier: str | None) -> str:
    if not name and not identifier:
        return "Error: name or identifier is required"
    try:
        technology = await _choose_technology(
            _get_context(), name=name, identifier=identifier
        )
    except Exception as e:
        return _render_error(e, "choose_technology")
    return format_selection(technology)


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        openWorldHint=True,
        idempotentHint=True,
    ),
)
async def discover_technologies(
    query: str | None = None,
    page: int = 1,
    page_size: int = 25,
) -> str:
    """List Apple frameworks, optionally filtered by a keyword.
    Results are paginated (page_size at most 100).
    """
    return await _with_timeout(
        _do_discover(query, page, page_size), "discover_technologies"
    )


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        openWorldHint=True,
        idempotentHint=True,
    ),
)
async def choose_technology(
    name: str | None = None,
    identifier: str | None = None,
) -> str:
    """Select the framework to search, by name or catalog identifier.
    Switching frameworks resets the symbol index.
    """
    return await _with_timeout(_do_choose(name, identifier), "choose_technology")


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        openWorldHint=False,
        idempotentHint=True,
    ),
)
async def current_technology() -> str:
    """Show the currently selected framework."""
    context = _get_context()
    if context.active_technology is None:
        return format_no_technology(context.last_discovery)
    return format_current(context.active_technology)


# ---------------------------------------------------------------------------
# Search and documentation
# ---------------------------------------------------------------------------


async def _do_search(
    query: str,
    max_results: int | None,
    platform: str | None,
    symbol_type: str | None,
) -> str:
    context = _get_context()
    try:
        technology = context.require_technology()
        results = await _get_orchestrator().search(
            context,
            query,
            filters=SearchFilters(platform=platform, symbol_type=symbol_type),
            max_results=max_results,
        )
    except Exception as e:
        return _render_error(e, "search_symbols")
    return format_search_results(query, technology, results, context.index.count())


async def _do_get_documentation(path: str) -> str:
    context = _get_context()
    try:
        technology = context.require_technology()
        framework = await context.load_framework()
        document = await get_symbol(context, path)
    except Exception as e:
        return _render_error(e, "get_documentation")
    return format_symbol(document, technology, fallback_platforms=framework.platforms)


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        openWorldHint=True,
        idempotentHint=True,
    ),
)
async def search_symbols(
    query: str,
    max_results: int | None = None,
    platform: str | None = None,
    symbol_type: str | None = None,
) -> str:
    """Search symbols of the selected framework.
    Supports wildcards (`Grid*`, `*Item`) and multi-word queries.
    Filter by platform (e.g. "iOS") or symbol_type (e.g. "symbol").
    """
    if not query or not query.strip():
        return "Error: query is required"
    return await _with_timeout(
        _do_search(query, max_results, platform, symbol_type), "search_symbols"
    )


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        openWorldHint=True,
        idempotentHint=True,
    ),
)
async def get_documentation(path: str) -> str:
    """Read a symbol's documentation.
    Accepts a full path (documentation/swiftui/view) or a name relative
    to the selected framework (View).
    """
    if not path or not path.strip():
        return "Error: path is required"
    return await _with_timeout(_do_get_documentation(path), "get_documentation")


@mcp.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        openWorldHint=False,
        idempotentHint=True,
    ),
)
async def get_version() -> str:
    """Show the server version."""
    return f"apple-docs-mcp {version('apple-docs-mcp')}"


def main() -> None:
    """Entry point for the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
