"""Session context: the active technology and everything derived from it.

Every index and search operation receives the context explicitly. When
the technology changes, the framework document, the symbol index, the
downloader's progress and the set of lazily expanded identifiers are all
dropped (cached files on disk stay), and a download still in flight is
cancelled.
"""

import asyncio
from dataclasses import dataclass, field

from loguru import logger

from apple_docs_mcp.client import DocsClient
from apple_docs_mcp.downloader import ComprehensiveDownloader
from apple_docs_mcp.errors import DocsError, NotSelectedError
from apple_docs_mcp.index import LocalSymbolIndex
from apple_docs_mcp.models import (
    FrameworkDocument,
    ReferenceEntry,
    Technology,
    identifier_to_path,
)


@dataclass
class LastDiscovery:
    query: str | None = None
    results: list[Technology] = field(default_factory=list)


class SessionContext:
    """Single active technology plus its framework data and index."""

    def __init__(
        self,
        client: DocsClient,
        downloader: ComprehensiveDownloader | None = None,
    ):
        self.client = client
        self.downloader = downloader or ComprehensiveDownloader(client)
        self.index = LocalSymbolIndex()
        self.last_discovery: LastDiscovery | None = None
        self.download_attempted = False
        self.download_task: asyncio.Task | None = None

        self._active: Technology | None = None
        self._framework: FrameworkDocument | None = None
        self._references: dict[str, ReferenceEntry] = {}
        self._expanded: set[str] = set()

    # --- Selection ---

    @property
    def active_technology(self) -> Technology | None:
        return self._active

    def require_technology(self) -> Technology:
        if self._active is None:
            raise NotSelectedError()
        return self._active

    @property
    def framework_name(self) -> str:
        return self.require_technology().framework_name

    def select_technology(self, technology: Technology | None) -> None:
        """Activate ``technology`` (or clear the selection) and reset derived state."""
        self._active = technology
        self._framework = None
        self._references = {}
        self._expanded.clear()
        self.index = LocalSymbolIndex(
            scope=technology.framework_name if technology else None
        )
        self.cancel_download()
        self.download_attempted = False
        self.downloader.reset()
        if technology:
            logger.info(f"Technology selected: {technology.title} ({technology.identifier})")

    # --- Framework data ---

    @property
    def framework(self) -> FrameworkDocument | None:
        return self._framework

    async def load_framework(self) -> FrameworkDocument:
        """Framework document of the active technology (cached per selection)."""
        technology = self.require_technology()
        if self._framework is None:
            self._framework = await self.client.get_framework(technology.framework_name)
            self._references = dict(self._framework.references)
        return self._framework

    # --- Lazy expansion ---

    @property
    def references(self) -> dict[str, ReferenceEntry]:
        """Framework references plus those merged in by ``expand_identifiers``."""
        return self._references

    def is_expanded(self, identifier: str) -> bool:
        return identifier in self._expanded

    async def expand_identifiers(self, identifiers: list[str]) -> dict[str, ReferenceEntry]:
        """Fetch symbols for ``identifiers`` and merge their references.

        Already expanded identifiers are skipped; failures are logged and
        skipped. Returns the references that were newly added.
        """
        framework = await self.load_framework()
        added: dict[str, ReferenceEntry] = {}
        for identifier in identifiers:
            if identifier in self._expanded:
                continue
            path = identifier_to_path(identifier, self._references or framework.references)
            if path is None:
                self._expanded.add(identifier)
                continue
            try:
                symbol = await self.client.get_symbol(path)
            except DocsError as e:
                logger.warning(f"Failed to expand identifier {identifier}: {e}")
                continue
            for ref_id, ref in symbol.references.items():
                if ref_id not in self._references:
                    self._references[ref_id] = ref
                    added[ref_id] = ref
            self._expanded.add(identifier)
        if added:
            logger.debug(f"Expanded {len(added)} references")
        return added

    # --- Background download ---

    @property
    def download_running(self) -> bool:
        return self.download_task is not None and not self.download_task.done()

    def start_download(self) -> asyncio.Task:
        """Run the comprehensive download as a task owned by this session.

        The task outlives the tool call that started it, so a caller that
        times out does not interrupt the download. Calling again while it
        runs returns the same task.
        """
        if not self.download_running:
            self.download_task = asyncio.create_task(self._run_download())
        return self.download_task

    def cancel_download(self) -> None:
        if self.download_running:
            self.download_task.cancel()
        self.download_task = None

    async def _run_download(self) -> int:
        try:
            fetched = await self.downloader.download_all(self)
        except DocsError as e:
            logger.warning(f"Comprehensive download failed: {e}")
            fetched = 0
        self.download_attempted = True
        return fetched
