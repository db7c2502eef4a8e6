"""Read-through documentation client.

Combines the disk cache and the fetcher: every document is looked up in
the cache first, fetched from the origin on a miss, validated, then
written back. A cached document that no longer validates is treated like
a miss and replaced.
"""

from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel

from apple_docs_mcp.cache import FRAMEWORK, SYMBOL, TECHNOLOGIES, DocumentCache
from apple_docs_mcp.errors import InvalidDocumentError
from apple_docs_mcp.fetcher import DocsFetcher
from apple_docs_mcp.models import (
    FrameworkDocument,
    SearchFilters,
    SearchResult,
    SymbolDocument,
    Technology,
    parse_document,
    parse_technologies,
    reference_platforms,
)

_TECHNOLOGIES_KEY = "technologies"

_M = TypeVar("_M", bound=BaseModel)


def clean_symbol_path(path: str) -> str:
    """Strip leading/trailing slashes and a ``.json`` suffix."""
    path = path.strip().strip("/")
    if path.endswith(".json"):
        path = path[: -len(".json")]
    return path


class DocsClient:
    """Technologies, frameworks and symbols with disk caching."""

    def __init__(self, cache: DocumentCache, fetcher: DocsFetcher):
        self.cache = cache
        self.fetcher = fetcher

    # --- Technologies ---

    async def get_technologies(self, refresh: bool = False) -> dict[str, Technology]:
        """Technology catalog keyed by identifier."""
        if not refresh:
            cached = self.cache.load(TECHNOLOGIES, _TECHNOLOGIES_KEY)
            if cached is not None:
                try:
                    return parse_technologies(cached)
                except InvalidDocumentError as e:
                    logger.warning(f"Cached technology catalog unusable ({e}), refetching")

        data = await self.fetcher.fetch(self.fetcher.technologies_url())
        technologies = parse_technologies(data)
        self.cache.save(TECHNOLOGIES, _TECHNOLOGIES_KEY, data)
        logger.info(f"Technology catalog loaded ({len(technologies)} entries)")
        return technologies

    async def refresh_technologies(self) -> dict[str, Technology]:
        return await self.get_technologies(refresh=True)

    async def list_technologies(self) -> list[Technology]:
        return list((await self.get_technologies()).values())

    # --- Frameworks ---

    async def get_framework(self, name: str, refresh: bool = False) -> FrameworkDocument:
        return await self._load_or_fetch(
            FRAMEWORK,
            name.lower(),
            self.fetcher.framework_url(name),
            FrameworkDocument,
            refresh=refresh,
        )

    async def refresh_framework(self, name: str) -> FrameworkDocument:
        return await self.get_framework(name, refresh=True)

    # --- Symbols ---

    async def get_symbol(self, path: str) -> SymbolDocument:
        clean = clean_symbol_path(path)
        return await self._load_or_fetch(
            SYMBOL, clean, self.fetcher.symbol_url(clean), SymbolDocument
        )

    def cached_symbol(self, path: str) -> SymbolDocument | None:
        """Symbol from disk only, without touching the network."""
        clean = clean_symbol_path(path)
        data = self.cache.load(SYMBOL, clean)
        if data is None:
            return None
        try:
            return parse_document(SymbolDocument, data, SYMBOL, clean)
        except InvalidDocumentError:
            return None

    # --- Direct framework search ---

    async def search_framework(
        self,
        name: str,
        query: str,
        filters: SearchFilters | None = None,
        max_results: int = 20,
    ) -> list[SearchResult]:
        """Substring search over a framework's references (title and abstract).

        Results are ordered exact title match, then prefix, then substring.
        """
        filters = filters or SearchFilters()
        framework = await self.get_framework(name)
        lower_query = query.lower()
        results: list[SearchResult] = []

        for ref in framework.references.values():
            if len(results) >= max_results:
                break
            title = ref.title.lower()
            if lower_query not in title and lower_query not in ref.abstract_text.lower():
                continue
            platforms = reference_platforms(ref, framework.platforms)
            if not filters.matches(ref.kind, platforms):
                continue
            results.append(
                SearchResult.from_reference(
                    ref, name, "direct", fallback_platforms=framework.platforms
                )
            )

        def _rank(result: SearchResult) -> int:
            title = result.title.lower()
            if title == lower_query:
                return 0
            if title.startswith(lower_query):
                return 1
            if lower_query in title:
                return 2
            return 3

        return sorted(results, key=_rank)

    # --- Internals ---

    async def _load_or_fetch(
        self,
        kind: str,
        key: str,
        url: str,
        model: type[_M],
        refresh: bool = False,
    ) -> _M:
        if not refresh:
            cached = self.cache.load(kind, key)
            if cached is not None:
                try:
                    return parse_document(model, cached, kind, key)
                except InvalidDocumentError as e:
                    logger.warning(f"Cached {kind} '{key}' unusable ({e}), refetching")

        data: Any = await self.fetcher.fetch(url)
        document = parse_document(model, data, kind, key)
        self.cache.save(kind, key, data)
        return document
