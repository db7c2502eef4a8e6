"""Technology discovery and selection."""

import math
from dataclasses import dataclass

from loguru import logger

from apple_docs_mcp.errors import NotAFrameworkError, TechnologyNotFoundError
from apple_docs_mcp.models import Technology
from apple_docs_mcp.state import LastDiscovery, SessionContext

MAX_PAGE_SIZE = 100
MAX_SUGGESTIONS = 5


@dataclass
class DiscoveryPage:
    query: str | None
    page: int
    page_size: int
    total: int
    items: list[Technology]

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))


def fuzzy_score(candidate: str, target: str) -> int | None:
    """0 exact, 1 prefix, 2 substring (either direction), None otherwise."""
    candidate = candidate.lower()
    target = target.lower()
    if not candidate or not target:
        return None
    if candidate == target:
        return 0
    if candidate.startswith(target) or target.startswith(candidate):
        return 1
    if target in candidate or candidate in target:
        return 2
    return None


def framework_technologies(technologies: dict[str, Technology]) -> list[Technology]:
    """Selectable frameworks sorted by title."""
    return sorted(
        (t for t in technologies.values() if t.is_framework),
        key=lambda t: t.title.casefold(),
    )


def filter_technologies(technologies: list[Technology], query: str | None) -> list[Technology]:
    if not query or not query.strip():
        return technologies
    lowered = query.strip().lower()
    return [
        t
        for t in technologies
        if lowered in t.title.lower() or lowered in t.abstract_text.lower()
    ]


def resolve_technology(
    technologies: dict[str, Technology],
    name: str | None = None,
    identifier: str | None = None,
) -> Technology:
    """Find a framework by identifier, exact title or fuzzy title.

    Raises:
        TechnologyNotFoundError: Nothing matched; carries suggestions.
        NotAFrameworkError: The match is not a framework collection.
    """
    query = (identifier or name or "").strip()
    if not query:
        raise TechnologyNotFoundError("", [])

    match: Technology | None = None
    if identifier:
        lowered = identifier.strip().lower()
        match = next(
            (t for t in technologies.values() if t.identifier.lower() == lowered), None
        )
    if match is None and name:
        lowered = name.strip().lower()
        match = next(
            (t for t in technologies.values() if t.title.lower() == lowered), None
        )
    if match is None and name:
        scored = [
            (score, t.title.casefold(), t)
            for t in framework_technologies(technologies)
            if (score := fuzzy_score(t.title, name.strip())) is not None
        ]
        if scored:
            scored.sort(key=lambda item: item[:2])
            match = scored[0][2]

    if match is None:
        raise TechnologyNotFoundError(query, suggest(technologies, query))
    if not match.is_framework:
        raise NotAFrameworkError(match.title)
    return match


def suggest(technologies: dict[str, Technology], query: str) -> list[str]:
    """Up to five framework titles close to ``query``.

    Fuzzy matches come first, then titles sharing the first three letters.
    """
    frameworks = framework_technologies(technologies)
    hits = [t.title for t in frameworks if fuzzy_score(t.title, query) is not None]
    stem = query.lower()[:3]
    if stem:
        hits += [
            t.title
            for t in frameworks
            if t.title.lower().startswith(stem) and t.title not in hits
        ]
    return hits[:MAX_SUGGESTIONS]


async def discover_technologies(
    context: SessionContext,
    query: str | None = None,
    page: int = 1,
    page_size: int = 25,
) -> DiscoveryPage:
    """One page of frameworks matching ``query``; remembered as the last discovery."""
    technologies = await context.client.get_technologies()
    matches = filter_technologies(framework_technologies(technologies), query)

    page_size = max(1, min(page_size, MAX_PAGE_SIZE))
    total_pages = max(1, math.ceil(len(matches) / page_size))
    page = max(1, min(page, total_pages))
    start = (page - 1) * page_size
    items = matches[start : start + page_size]

    context.last_discovery = LastDiscovery(query=query, results=items)
    return DiscoveryPage(
        query=query, page=page, page_size=page_size, total=len(matches), items=items
    )


async def choose_technology(
    context: SessionContext,
    name: str | None = None,
    identifier: str | None = None,
) -> Technology:
    """Resolve and activate a framework, resetting the session's derived state."""
    technologies = await context.client.get_technologies()
    technology = resolve_technology(technologies, name=name, identifier=identifier)
    context.select_technology(technology)
    logger.debug(f"Framework name for {technology.title}: {technology.framework_name}")
    return technology
