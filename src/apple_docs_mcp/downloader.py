"""Comprehensive downloader: walks a framework's reference graph into the cache.

The walk is an explicit worklist processed layer by layer:

1. Seed layer: the framework document's topic-section identifiers and
   reference keys, limited to paths under ``/documentation/<framework>``.
2. Each layer is dispatched with a fixed delay between requests and at
   most ``max_concurrency`` fetches in flight, then awaited as a whole.
3. Identifiers found in the fetched documents become the next layer,
   until ``max_depth`` layers past the seed have been processed.

Per identifier the state moves ``pending -> fetching -> cached | failed``.
Failed symbols are logged and skipped; only a failing framework fetch
aborts the download. A cancelled download forgets the identifiers it had
not finished, so a later run fetches them again.
"""

import asyncio
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from apple_docs_mcp.client import DocsClient
from apple_docs_mcp.config import settings
from apple_docs_mcp.errors import InvalidDocumentError, NotFoundError
from apple_docs_mcp.models import FrameworkDocument, SymbolDocument, identifier_to_path

if TYPE_CHECKING:
    from apple_docs_mcp.state import SessionContext

_PROGRESS_EVERY = 10


class DownloadStatus(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    CACHED = "cached"
    FAILED = "failed"


class ComprehensiveDownloader:
    """Rate-limited, retrying, depth-bounded download of one framework.

    All limits default to the values in ``settings``.
    """

    def __init__(
        self,
        client: DocsClient,
        rate_limit_delay: float | None = None,
        max_retries: int | None = None,
        max_depth: int | None = None,
        max_concurrency: int | None = None,
    ):
        self._client = client
        self._delay = (
            settings.rate_limit_delay if rate_limit_delay is None else rate_limit_delay
        )
        self._max_retries = max(
            1, settings.max_retries if max_retries is None else max_retries
        )
        self._max_depth = settings.max_download_depth if max_depth is None else max_depth
        self._max_concurrency = max(
            1,
            settings.max_download_concurrency
            if max_concurrency is None
            else max_concurrency,
        )
        self._status: dict[str, DownloadStatus] = {}

    # --- Introspection ---

    def status(self, identifier: str) -> DownloadStatus | None:
        return self._status.get(identifier)

    def downloaded(self) -> list[str]:
        return [i for i, s in self._status.items() if s is DownloadStatus.CACHED]

    def downloaded_count(self) -> int:
        return sum(1 for s in self._status.values() if s is DownloadStatus.CACHED)

    def failed(self) -> list[str]:
        return [i for i, s in self._status.items() if s is DownloadStatus.FAILED]

    def reset(self) -> None:
        self._status.clear()

    def _drop_unfinished(self) -> None:
        """Forget identifiers that were dispatched but never reached a final state."""
        for identifier, status in list(self._status.items()):
            if status in (DownloadStatus.PENDING, DownloadStatus.FETCHING):
                del self._status[identifier]

    # --- Download ---

    async def download_all(self, context: "SessionContext") -> int:
        """Download every reachable symbol of the active technology.

        Fetched documents are written to the disk cache by the client and
        added to ``context.index`` as they arrive.

        Returns:
            Number of symbols fetched by this call.

        Raises:
            NotSelectedError: No technology is active.
            NetworkError: The framework document itself could not be fetched.
        """
        technology = context.require_technology()
        framework = await context.load_framework()
        context.index.add_document(framework)

        scope = f"documentation/{technology.framework_name.lower()}"
        visited: set[str] = set()
        layer = self._extract(framework, scope, visited)
        logger.info(
            f"Downloading {technology.title}: {len(layer)} seed identifiers "
            f"(max depth {self._max_depth})"
        )

        fetched = 0
        depth = 0
        try:
            while layer:
                todo = [
                    (identifier, path)
                    for identifier, path in layer
                    if self._status.get(identifier) is not DownloadStatus.CACHED
                ]
                next_layer: list[tuple[str, str]] = []
                for identifier, document in await self._fetch_layer(todo, depth):
                    if document is None:
                        continue
                    fetched += 1
                    context.index.add_document(document)
                    next_layer.extend(self._extract(document, scope, visited))

                if next_layer and depth >= self._max_depth:
                    logger.info(
                        f"Depth limit {self._max_depth} reached, "
                        f"{len(next_layer)} identifiers not followed"
                    )
                    break
                depth += 1
                layer = next_layer
        except asyncio.CancelledError:
            self._drop_unfinished()
            logger.info(f"Download of {technology.title} cancelled after {fetched} symbols")
            raise

        logger.info(
            f"Download of {technology.title} finished: {fetched} fetched, "
            f"{self.downloaded_count()} cached, {len(self.failed())} failed, "
            f"index size {context.index.count()}"
        )
        return fetched

    def _extract(
        self, document: FrameworkDocument, scope: str, visited: set[str]
    ) -> list[tuple[str, str]]:
        """Unseen in-scope ``(identifier, path)`` pairs referenced by ``document``."""
        found = []
        for identifier in document.all_identifiers():
            if identifier in visited:
                continue
            visited.add(identifier)
            path = identifier_to_path(identifier, document.references)
            if path is None:
                continue
            lowered = path.lower()
            if lowered != scope and not lowered.startswith(scope + "/"):
                continue
            found.append((identifier, path))
        return found

    async def _fetch_layer(
        self, layer: list[tuple[str, str]], depth: int
    ) -> list[tuple[str, SymbolDocument | None]]:
        if not layer:
            return []
        semaphore = asyncio.Semaphore(self._max_concurrency)
        tasks = []
        try:
            for identifier, path in layer:
                self._status[identifier] = DownloadStatus.PENDING
                if self._delay > 0:
                    await asyncio.sleep(self._delay)
                tasks.append(
                    asyncio.create_task(self._download_one(identifier, path, semaphore))
                )
                if len(tasks) % _PROGRESS_EVERY == 0:
                    logger.debug(f"Depth {depth}: dispatched {len(tasks)}/{len(layer)}")
            return await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

    async def _download_one(
        self, identifier: str, path: str, semaphore: asyncio.Semaphore
    ) -> tuple[str, SymbolDocument | None]:
        async with semaphore:
            self._status[identifier] = DownloadStatus.FETCHING
            for attempt in range(1, self._max_retries + 1):
                try:
                    document = await self._client.get_symbol(path)
                    self._status[identifier] = DownloadStatus.CACHED
                    return identifier, document
                except (NotFoundError, InvalidDocumentError) as e:
                    logger.warning(f"Skipping {path}: {e}")
                    break
                except Exception as e:
                    logger.warning(
                        f"Fetch attempt {attempt}/{self._max_retries} for {path} failed: {e}"
                    )
                if attempt < self._max_retries:
                    await asyncio.sleep(self._delay * 2 ** (attempt - 1))
            else:
                logger.error(f"Giving up on {path} after {self._max_retries} attempts")

            self._status[identifier] = DownloadStatus.FAILED
            return identifier, None
