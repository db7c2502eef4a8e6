"""Markdown rendering for tool responses."""

from apple_docs_mcp.errors import DocsError, TechnologyNotFoundError
from apple_docs_mcp.models import (
    FrameworkDocument,
    PlatformInfo,
    SearchResult,
    SymbolDocument,
    Technology,
    format_platforms,
)
from apple_docs_mcp.state import LastDiscovery
from apple_docs_mcp.technologies import DiscoveryPage

_MAX_SECTION_ITEMS = 5
_DESCRIPTION_LENGTH = 100


def header(level: int, text: str) -> str:
    return f"{'#' * max(1, level)} {text}"


def bold(label: str, value: str) -> str:
    return f"**{label}:** {value}"


def trim_with_ellipsis(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[: max(0, max_length)]}..."


def _join(lines: list[str]) -> str:
    return "\n".join(lines)


# --- Technologies ---


def format_discovery(page: DiscoveryPage) -> str:
    title = f'Technologies matching "{page.query}"' if page.query else "Technologies"
    lines = [
        header(1, title),
        "",
        bold("Matches", str(page.total)),
        bold("Page", f"{page.page} of {page.total_pages}"),
        "",
    ]
    if not page.items:
        lines += [
            "No frameworks matched that keyword.",
            "",
            "Try a broader keyword, or omit the query to browse all frameworks.",
        ]
        return _join(lines)

    for tech in page.items:
        description = trim_with_ellipsis(tech.abstract_text, _DESCRIPTION_LENGTH)
        lines.append(f"- **{tech.title}**" + (f" - {description}" if description else ""))
    lines += ["", header(2, "Next actions")]
    lines.append(f'- `choose_technology "{page.items[0].title}"` to select a framework')
    if page.page < page.total_pages:
        lines.append(f"- `discover_technologies` with page={page.page + 1} for more")
    return _join(lines)


def format_selection(technology: Technology) -> str:
    return _join(
        [
            header(1, "Technology Selected"),
            "",
            bold("Name", technology.title),
            bold("Identifier", technology.identifier),
            "",
            header(2, "Next actions"),
            '- `search_symbols { "query": "keyword" }` to find symbols',
            '- `get_documentation { "path": "SymbolName" }` to open docs',
            "- `current_technology` to confirm the selection",
        ]
    )


def format_current(technology: Technology) -> str:
    return _join(
        [
            header(1, "Current Technology"),
            "",
            bold("Name", technology.title),
            bold("Identifier", technology.identifier),
            "",
            header(2, "Next actions"),
            '- `search_symbols { "query": "keyword" }` to find symbols',
            '- `get_documentation { "path": "SymbolName" }` to open docs',
            '- `choose_technology "Another Framework"` to switch',
        ]
    )


def format_no_technology(last_discovery: LastDiscovery | None = None) -> str:
    lines = [
        header(1, "Technology Not Selected"),
        "Before you can search or view documentation, choose a framework.",
        "",
        header(2, "How to get started"),
        '- `discover_technologies { "query": "swift" }` to narrow the catalog',
        '- `choose_technology "SwiftUI"` to select a framework',
        '- `search_symbols { "query": "tab view layout" }` to search it',
    ]
    if last_discovery and last_discovery.results:
        lines += ["", header(3, "Recently discovered frameworks")]
        for tech in last_discovery.results[:_MAX_SECTION_ITEMS]:
            lines.append(f'- {tech.title} (`choose_technology "{tech.title}"`)')
    return _join(lines)


# --- Search ---


def format_search_results(
    query: str,
    technology: Technology,
    results: list[SearchResult],
    indexed: int,
) -> str:
    lines = [
        header(1, f'Search Results for "{query}"'),
        "",
        bold("Technology", technology.title),
        bold("Matches", str(len(results))),
        bold("Total Symbols Indexed", str(indexed)),
        "",
        header(2, "Symbols"),
        "",
    ]
    if not results:
        lines += [
            "No symbols matched those terms within this technology.",
            "",
            "**Search tips:**",
            "- Try wildcards: `Grid*` or `*Item`",
            '- Use broader keywords: "grid" instead of "griditem"',
            "- Check spelling and try synonyms",
        ]
        return _join(lines)

    for result in results:
        lines.append(header(3, result.title))
        if result.kind:
            lines.append(f"- {bold('Kind', result.kind)}")
        lines.append(f"- {bold('Path', result.path)}")
        lines.append(f"- {bold('Platforms', result.platforms or 'All platforms')}")
        if result.found_via:
            lines.append(f"- {bold('Found via', result.found_via)}")
        if result.description:
            lines.append(result.description)
        lines.append("")
    return _join(lines)


# --- Documents ---


def _format_topics(document: FrameworkDocument) -> list[str]:
    if not document.topic_sections:
        return []
    lines = ["", header(2, "API Reference"), ""]
    for section in document.topic_sections:
        lines.append(header(3, section.title or "Topics"))
        for identifier in section.identifiers[:_MAX_SECTION_ITEMS]:
            ref = document.references.get(identifier)
            if ref is None:
                continue
            description = trim_with_ellipsis(ref.abstract_text, _DESCRIPTION_LENGTH)
            lines.append(f"- **{ref.title}** - {description}" if description else f"- **{ref.title}**")
        hidden = len(section.identifiers) - _MAX_SECTION_ITEMS
        if hidden > 0:
            lines.append(f"*... and {hidden} more items*")
        lines.append("")
    return lines


def format_symbol(
    document: SymbolDocument,
    technology: Technology | None,
    fallback_platforms: list[PlatformInfo] | None = None,
) -> str:
    platforms = document.metadata.platforms
    lines = [
        header(1, document.title or "Symbol"),
        "",
    ]
    if technology:
        lines.append(bold("Technology", technology.title))
    lines += [
        bold("Type", document.symbol_kind or "Unknown"),
        bold("Platforms", format_platforms(platforms if platforms is not None else fallback_platforms)),
        "",
        header(2, "Overview"),
        document.abstract_text or "No overview available.",
    ]
    lines += _format_topics(document)
    return _join(lines).rstrip() + "\n"


# --- Errors ---


def format_error(error: DocsError) -> str:
    lines = [header(1, "Error"), "", error.message]
    if isinstance(error, TechnologyNotFoundError) and error.suggestions:
        lines += ["", header(2, "Did you mean")]
        lines += [f'- `choose_technology "{title}"`' for title in error.suggestions]
    if error.hint:
        lines += ["", error.hint]
    return _join(lines)
