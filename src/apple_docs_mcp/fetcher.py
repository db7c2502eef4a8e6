"""HTTP access to the documentation origin.

The only module that touches the network. Every request carries the same
header set and a bounded timeout; responses are kept in a short-lived
in-memory cache keyed by URL so duplicate fetches within one process are
absorbed. Failures are translated into ``NetworkError`` / ``NotFoundError``
and never retried here - retry policy belongs to the downloader.
"""

import time
from collections import OrderedDict
from typing import Any

import httpx
from loguru import logger

from apple_docs_mcp.config import settings
from apple_docs_mcp.errors import NetworkError, NotFoundError

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36"
    ),
    "DNT": "1",
}


class MemoryCache:
    """LRU cache with a fixed time-to-live per entry."""

    def __init__(self, ttl: float, max_size: int = 1000):
        self._ttl = ttl
        self._max_size = max_size
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, data = entry
        if time.time() - stored_at >= self._ttl:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return data

    def set(self, key: str, data: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        self._entries[key] = (time.time(), data)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class DocsFetcher:
    """Fetch documentation JSON from the origin."""

    def __init__(
        self,
        base_url: str | None = None,
        referrer: str | None = None,
        timeout: float | None = None,
        cache_ttl: float | None = None,
        cache_size: int | None = None,
        lowercase_paths: bool | None = None,
    ):
        self._base_url = (base_url or settings.get_docs_base_url()).rstrip("/")
        self._lowercase_paths = (
            settings.lowercase_paths() if lowercase_paths is None else lowercase_paths
        )
        self._timeout = timeout if timeout is not None else settings.request_timeout
        self._headers = {
            **DEFAULT_HEADERS,
            "Referer": referrer or settings.get_docs_referrer(),
        }
        self._cache = MemoryCache(
            ttl=cache_ttl if cache_ttl is not None else settings.memory_cache_ttl,
            max_size=cache_size or settings.memory_cache_size,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    # --- URL helpers ---

    def technologies_url(self) -> str:
        return f"{self._base_url}/documentation/technologies.json"

    def framework_url(self, framework: str) -> str:
        return f"{self._base_url}/documentation/{framework.lower()}.json"

    def symbol_url(self, path: str) -> str:
        clean = path.strip("/")
        if self._lowercase_paths:
            clean = clean.lower()
        return f"{self._base_url}/{clean}.json"

    # --- Fetching ---

    async def fetch(self, url: str) -> Any:
        """GET ``url`` and return the decoded JSON body.

        Raises:
            NotFoundError: The origin answered 404.
            NetworkError: Transport failure, timeout, other non-2xx status
                or a body that is not JSON.
        """
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug(f"Memory cache HIT: {url}")
            return cached

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout after {self._timeout}s fetching {url}")
            raise NetworkError(url, e, message=f"Timed out fetching {url}") from e
        except httpx.RequestError as e:
            logger.warning(f"Request error fetching {url}: {e}")
            raise NetworkError(url, e) from e

        status = response.status_code
        if status == 404:
            logger.debug(f"Not found: {url}")
            raise NotFoundError(url)
        if not 200 <= status < 300:
            logger.warning(f"HTTP {status} fetching {url}")
            raise NetworkError(url, status_code=status)

        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError(url, e, message=f"Invalid JSON from {url}") from e

        self._cache.set(url, data)
        logger.debug(f"Fetched {url}")
        return data

    def clear_cache(self) -> None:
        self._cache.clear()
