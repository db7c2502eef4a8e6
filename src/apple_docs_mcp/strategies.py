"""Search strategies tried in order by the orchestrator.

Each strategy returns a ranked, filtered list of results, or an empty
list when it has nothing to offer. The first non-empty answer wins.
"""

import re
from typing import Protocol

from apple_docs_mcp.models import (
    FoundVia,
    PlatformInfo,
    ReferenceEntry,
    SearchFilters,
    SearchResult,
    reference_platforms,
)
from apple_docs_mcp.state import SessionContext


class SearchStrategy(Protocol):
    name: str

    async def attempt(
        self,
        context: SessionContext,
        query: str,
        filters: SearchFilters,
        max_results: int,
    ) -> list[SearchResult]: ...


def _path_segments(url: str) -> list[str]:
    return [segment.lower() for segment in url.split("/") if segment]


def _collect(
    matches: list[tuple[ReferenceEntry, FoundVia]],
    context: SessionContext,
    filters: SearchFilters,
    max_results: int,
    fallback_platforms: list[PlatformInfo],
) -> list[SearchResult]:
    framework = context.require_technology().title
    results: list[SearchResult] = []
    for ref, found_via in matches:
        if not filters.matches(ref.kind, reference_platforms(ref, fallback_platforms)):
            continue
        results.append(
            SearchResult.from_reference(
                ref, framework, found_via, fallback_platforms=fallback_platforms
            )
        )
        if len(results) >= max_results:
            break
    return results


class IndexStrategy:
    """Ranked search over the local symbol index."""

    name = "index"

    async def attempt(self, context, query, filters, max_results):
        framework = context.require_technology().title
        results = []
        for entry in context.index.search(query, max_results * 2):
            if filters.matches(entry.kind, entry.platforms):
                results.append(SearchResult.from_index_entry(entry, framework))
        return results[:max_results]


class HierarchicalStrategy:
    """Scan framework references by title, URL path segment and abstract.

    A title hit is tagged ``direct``; a hit through the path or abstract
    only is tagged ``hierarchical``. When nothing matches, topic-section
    identifiers are expanded once per selection and the merged references
    are scanned again.
    """

    name = "hierarchical"

    async def attempt(self, context, query, filters, max_results):
        framework = await context.load_framework()
        lowered = query.lower()

        matches = self._scan(framework.references.values(), lowered)
        if not matches:
            pending = [
                i for i in framework.topic_identifiers() if not context.is_expanded(i)
            ]
            if pending:
                await context.expand_identifiers(pending)
            # References reached through expanded topics
            nested = [
                ref
                for ref_id, ref in context.references.items()
                if ref_id not in framework.references
            ]
            matches = [(ref, "hierarchical") for ref, _via in self._scan(nested, lowered)]

        return _collect(matches, context, filters, max_results, framework.platforms)

    @staticmethod
    def _scan(references, lowered: str) -> list[tuple[ReferenceEntry, FoundVia]]:
        matches: list[tuple[ReferenceEntry, FoundVia]] = []
        for ref in references:
            if lowered in ref.title.lower():
                matches.append((ref, "direct"))
            elif any(lowered in segment for segment in _path_segments(ref.url)):
                matches.append((ref, "hierarchical"))
            elif lowered in ref.abstract_text.lower():
                matches.append((ref, "hierarchical"))
        return matches


def compile_fuzzy(query: str) -> re.Pattern[str]:
    """``tbv`` -> ``t.*?b.*?v`` (case-insensitive)."""
    return re.compile(".*?".join(re.escape(ch) for ch in query), re.IGNORECASE)


class RegexStrategy:
    """Each query character followed by anything, over title, URL and abstract."""

    name = "regex"

    async def attempt(self, context, query, filters, max_results):
        framework = await context.load_framework()
        pattern = compile_fuzzy(query)
        matches: list[tuple[ReferenceEntry, FoundVia]] = [
            (ref, "regex")
            for ref in framework.references.values()
            if pattern.search(ref.title)
            or pattern.search(ref.url)
            or pattern.search(ref.abstract_text)
        ]
        return _collect(matches, context, filters, max_results, framework.platforms)


class DirectStrategy:
    """Plain substring search through the client."""

    name = "direct"

    async def attempt(self, context, query, filters, max_results):
        technology = context.require_technology()
        results = await context.client.search_framework(
            technology.framework_name, query, filters=filters, max_results=max_results
        )
        for result in results:
            result.framework = technology.title
        return results


def default_strategies() -> list[SearchStrategy]:
    return [IndexStrategy(), HierarchicalStrategy(), RegexStrategy(), DirectStrategy()]
