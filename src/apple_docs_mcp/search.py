"""Search orchestration and symbol retrieval for the active technology."""

import asyncio

from loguru import logger

from apple_docs_mcp.config import settings
from apple_docs_mcp.models import SearchFilters, SearchResult, SymbolDocument
from apple_docs_mcp.state import SessionContext
from apple_docs_mcp.strategies import SearchStrategy, default_strategies


class SearchOrchestrator:
    """Make sure the index has content, then try each strategy in order.

    Args:
        strategies: Ordered strategies; defaults to index, hierarchical,
            regex, then direct.
        min_indexed_symbols: Index size below which the comprehensive
            downloader runs (once per selection). Searches made while it
            runs answer from the symbols indexed so far.
    """

    def __init__(
        self,
        strategies: list[SearchStrategy] | None = None,
        min_indexed_symbols: int | None = None,
    ):
        self.strategies = strategies if strategies is not None else default_strategies()
        self.min_indexed_symbols = (
            settings.min_indexed_symbols
            if min_indexed_symbols is None
            else min_indexed_symbols
        )

    async def ensure_index(self, context: SessionContext) -> int:
        """Build the index from cache and download more when it is too small."""
        index = context.index
        if index.count() == 0:
            try:
                index.build_from_cache(context.client.cache)
            except OSError as e:
                logger.warning(f"Could not scan cache for index: {e}")

        if index.count() >= self.min_indexed_symbols or context.download_attempted:
            return index.count()

        if context.download_running:
            logger.info(
                f"Download in progress, searching {index.count()} indexed symbols"
            )
            return index.count()

        logger.info(
            f"Index has {index.count()} symbols (< {self.min_indexed_symbols}), "
            "downloading framework"
        )
        # Shielded: a timed-out search leaves the download running
        await asyncio.shield(context.start_download())
        return context.index.count()

    async def search(
        self,
        context: SessionContext,
        query: str,
        filters: SearchFilters | None = None,
        max_results: int | None = None,
    ) -> list[SearchResult]:
        """Ranked results for ``query``; empty when no strategy matches.

        Raises:
            NotSelectedError: No technology is active.
        """
        context.require_technology()
        query = query.strip()
        max_results = max_results or settings.default_max_results
        if not query or max_results <= 0:
            return []
        filters = filters or SearchFilters()

        await self.ensure_index(context)

        for strategy in self.strategies:
            try:
                results = await strategy.attempt(context, query, filters, max_results)
            except Exception as e:
                logger.warning(f"{strategy.name} search failed for '{query}': {e}")
                continue
            if results:
                logger.debug(
                    f"'{query}': {len(results)} results via {strategy.name}"
                )
                return results[:max_results]

        logger.info(f"No results for '{query}'")
        return []


def resolve_symbol_path(context: SessionContext, path: str) -> str:
    """Turn a relative symbol name into ``documentation/<framework>/<path>``."""
    clean = path.strip().strip("/")
    if clean.lower().startswith("documentation/"):
        return clean
    technology = context.require_technology()
    return f"documentation/{technology.framework_name.lower()}/{clean}"


async def get_symbol(context: SessionContext, path: str) -> SymbolDocument:
    """Symbol document for an absolute path or a name relative to the framework.

    Raises:
        NotSelectedError: Relative path without an active technology.
        NotFoundError: The origin does not know the path.
    """
    return await context.client.get_symbol(resolve_symbol_path(context, path))
