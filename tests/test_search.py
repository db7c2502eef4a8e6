"""Tests for search orchestration and the fallback strategies."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from conftest import (
    BASE_URL,
    SWIFTUI_ID,
    TABBAR_ID,
    VIEW_ID,
    hold_symbol_fetches,
    reference,
)

from apple_docs_mcp.errors import NetworkError, NotSelectedError
from apple_docs_mcp.index import build_entry
from apple_docs_mcp.models import SearchFilters, SearchResult, Technology
from apple_docs_mcp.search import SearchOrchestrator, get_symbol, resolve_symbol_path
from apple_docs_mcp.strategies import (
    DirectStrategy,
    HierarchicalStrategy,
    IndexStrategy,
    RegexStrategy,
    compile_fuzzy,
    default_strategies,
)
from apple_docs_mcp.technologies import choose_technology

SWIFTUI = Technology(title="SwiftUI", identifier=SWIFTUI_ID, kind="symbol", role="collection")

FRAMEWORK_URL = f"{BASE_URL}/documentation/swiftui.json"


@pytest.fixture
def selected(context):
    context.select_technology(SWIFTUI)
    return context


@pytest.fixture
def no_download():
    """Orchestrator that never triggers the downloader."""
    return SearchOrchestrator(min_indexed_symbols=0)


class _Fixed:
    def __init__(self, name, results=None, error=None):
        self.name = name
        self.attempt = AsyncMock(return_value=results or [], side_effect=error)


def _result(title, found_via):
    return SearchResult(title=title, framework="SwiftUI", path=f"/x/{title}", found_via=found_via)


# -----------------------------------------------------------------------
# Orchestrator
# -----------------------------------------------------------------------


class TestOrchestrator:
    async def test_requires_selection(self, context, no_download):
        with pytest.raises(NotSelectedError):
            await no_download.search(context, "view")

    async def test_empty_query(self, selected, no_download):
        assert await no_download.search(selected, "   ") == []

    async def test_first_non_empty_strategy_wins(self, selected):
        first = _Fixed("first")
        second = _Fixed("second", results=[_result("A", "regex")])
        third = _Fixed("third", results=[_result("B", "direct")])
        orchestrator = SearchOrchestrator(
            strategies=[first, second, third], min_indexed_symbols=0
        )

        results = await orchestrator.search(selected, "a")

        assert [r.title for r in results] == ["A"]
        first.attempt.assert_awaited_once()
        third.attempt.assert_not_awaited()

    async def test_failing_strategy_is_skipped(self, selected):
        broken = _Fixed("broken", error=NetworkError("https://x", status_code=500))
        working = _Fixed("working", results=[_result("A", "direct")])
        orchestrator = SearchOrchestrator(
            strategies=[broken, working], min_indexed_symbols=0
        )

        assert [r.title for r in await orchestrator.search(selected, "a")] == ["A"]

    async def test_no_results(self, selected, no_download):
        assert await no_download.search(selected, "zzzzqqq") == []

    async def test_max_results_trims(self, selected):
        many = _Fixed("many", results=[_result(str(i), "index") for i in range(10)])
        orchestrator = SearchOrchestrator(strategies=[many], min_indexed_symbols=0)
        assert len(await orchestrator.search(selected, "a", max_results=3)) == 3

    def test_default_order(self):
        assert [s.name for s in default_strategies()] == [
            "index",
            "hierarchical",
            "regex",
            "direct",
        ]


class TestEnsureIndex:
    async def test_builds_from_cache(self, selected, client, no_download, fetcher):
        await client.get_framework("SwiftUI")
        calls = fetcher.fetch.await_count

        count = await no_download.ensure_index(selected)

        assert count == 5
        assert fetcher.fetch.await_count == calls

    async def test_small_index_triggers_download_once(self, selected, fetcher):
        orchestrator = SearchOrchestrator(min_indexed_symbols=50)

        await orchestrator.ensure_index(selected)
        calls = fetcher.fetch.await_count
        await orchestrator.ensure_index(selected)

        assert selected.download_attempted
        assert selected.downloader.downloaded_count() == 5
        assert fetcher.fetch.await_count == calls

    async def test_download_failure_is_tolerated(self, selected, routes):
        routes[FRAMEWORK_URL] = NetworkError(FRAMEWORK_URL, status_code=503)
        orchestrator = SearchOrchestrator(min_indexed_symbols=50)

        assert await orchestrator.ensure_index(selected) == 0
        assert await orchestrator.search(selected, "view") == []

    async def test_timed_out_search_leaves_download_running(self, selected, fetcher):
        release = hold_symbol_fetches(fetcher)
        orchestrator = SearchOrchestrator(min_indexed_symbols=50)

        with pytest.raises(TimeoutError):
            await asyncio.wait_for(orchestrator.search(selected, "Tab*"), timeout=0.05)

        assert selected.download_running
        assert not selected.download_attempted

        release.set()
        await selected.download_task

        assert selected.download_attempted
        assert selected.downloader.downloaded_count() == 5
        results = await orchestrator.search(selected, "Tab*")
        assert [r.title for r in results] == ["tabBar", "TabView"]

    async def test_search_during_download_does_not_wait(self, selected, fetcher):
        release = hold_symbol_fetches(fetcher)
        orchestrator = SearchOrchestrator(min_indexed_symbols=50)
        task = selected.start_download()
        await asyncio.sleep(0.05)

        count = await asyncio.wait_for(orchestrator.ensure_index(selected), timeout=1)

        assert count == selected.index.count()
        assert selected.start_download() is task
        release.set()
        await task
        assert selected.downloader.downloaded_count() == 5


# -----------------------------------------------------------------------
# Strategies
# -----------------------------------------------------------------------


class TestIndexStrategy:
    async def test_filters_and_provenance(self, selected):
        selected.index.insert(build_entry("a", "TabView", platforms=["iOS"]))
        selected.index.insert(build_entry("b", "View", platforms=["macOS"]))

        results = await IndexStrategy().attempt(
            selected, "view", SearchFilters(platform="mac"), 10
        )

        assert [r.title for r in results] == ["View"]
        assert results[0].found_via == "index"
        assert results[0].framework == "SwiftUI"

    async def test_kind_filter(self, selected):
        selected.index.insert(build_entry("a", "View", kind="protocol"))
        results = await IndexStrategy().attempt(
            selected, "view", SearchFilters(symbol_type="struct"), 10
        )
        assert results == []


class TestHierarchicalStrategy:
    async def test_path_segment_match(self, selected):
        results = await HierarchicalStrategy().attempt(selected, "tabbar", SearchFilters(), 10)

        assert [r.title for r in results] == ["Tab Bar Placement"]
        assert results[0].found_via == "hierarchical"
        assert results[0].path == "/documentation/swiftui/toolbarplacement/tabbar"

    async def test_title_match_is_direct(self, selected):
        results = await HierarchicalStrategy().attempt(selected, "button", SearchFilters(), 10)
        assert results[0].title == "Button"
        assert results[0].found_via == "direct"

    async def test_abstract_match(self, selected):
        results = await HierarchicalStrategy().attempt(
            selected, "initiates", SearchFilters(), 10
        )
        assert [(r.title, r.found_via) for r in results] == [("Button", "hierarchical")]

    async def test_lazy_expansion(self, selected):
        """Nothing in the framework matches; expanded topic symbols do."""
        results = await HierarchicalStrategy().attempt(
            selected, "modifier", SearchFilters(), 10
        )

        assert [r.title for r in results] == ["ViewModifier"]
        assert results[0].found_via == "hierarchical"
        assert selected.is_expanded(VIEW_ID)
        assert selected.is_expanded(TABBAR_ID)

    async def test_expansion_happens_once(self, selected, fetcher):
        strategy = HierarchicalStrategy()
        await strategy.attempt(selected, "modifier", SearchFilters(), 10)
        calls = fetcher.fetch.await_count

        results = await strategy.attempt(selected, "modifier", SearchFilters(), 10)

        assert [r.title for r in results] == ["ViewModifier"]
        assert fetcher.fetch.await_count == calls

    async def test_filters(self, selected):
        results = await HierarchicalStrategy().attempt(
            selected, "button", SearchFilters(platform="macOS"), 10
        )
        assert results == []


class TestRegexStrategy:
    def test_compile_fuzzy(self):
        pattern = compile_fuzzy("tbv")
        assert pattern.search("TabView")
        assert not pattern.search("ViewTab")

    def test_escapes(self):
        assert compile_fuzzy("a.b").search("a.b")
        assert not compile_fuzzy("a.b").search("axb")

    async def test_fuzzy_match(self, selected):
        results = await RegexStrategy().attempt(selected, "tbvw", SearchFilters(), 10)
        assert [r.title for r in results] == ["TabView"]
        assert results[0].found_via == "regex"


class TestDirectStrategy:
    async def test_delegates_to_client(self, selected):
        results = await DirectStrategy().attempt(selected, "view", SearchFilters(), 10)
        assert [r.title for r in results] == ["View", "TabView"]
        assert {r.found_via for r in results} == {"direct"}

    async def test_framework_label_is_technology_title(self, context):
        context.select_technology(
            Technology(
                title="Swift UI", identifier=SWIFTUI_ID, kind="symbol", role="collection"
            )
        )

        direct = await DirectStrategy().attempt(context, "view", SearchFilters(), 10)
        hierarchical = await HierarchicalStrategy().attempt(
            context, "view", SearchFilters(), 10
        )

        assert {r.framework for r in direct} == {"Swift UI"}
        assert {r.framework for r in hierarchical} == {"Swift UI"}


# -----------------------------------------------------------------------
# Fallback ordering
# -----------------------------------------------------------------------


class TestFallbackOrdering:
    async def test_path_match_reaches_hierarchical(self, selected, no_download):
        """Empty index + reference whose URL holds the query -> hierarchical."""
        results = await no_download.search(selected, "tabbar")

        assert [r.title for r in results] == ["Tab Bar Placement"]
        assert results[0].found_via == "hierarchical"

    async def test_regex_after_hierarchical(self, selected, no_download, routes):
        routes[FRAMEWORK_URL]["references"] = {
            "doc://x/one": reference("NavigationSplitView", "/documentation/swiftui/navigationsplitview"),
        }
        routes[FRAMEWORK_URL]["topicSections"] = []

        results = await no_download.search(selected, "nsv")

        assert [r.title for r in results] == ["NavigationSplitView"]
        assert results[0].found_via == "regex"

    async def test_index_hit_wins(self, selected, no_download):
        selected.index.insert(build_entry("x", "TabBarItem"))
        results = await no_download.search(selected, "tabbar")
        assert results[0].found_via == "index"


# -----------------------------------------------------------------------
# End to end
# -----------------------------------------------------------------------


class TestEndToEnd:
    async def test_choose_then_search(self, context, no_download):
        technology = await choose_technology(context, name="swiftui")
        assert technology.title == "SwiftUI"

        results = await no_download.search(context, "tabbar")

        assert len(results) == 1
        assert results[0].path == "/documentation/swiftui/toolbarplacement/tabbar"
        assert results[0].found_via == "hierarchical"

    async def test_search_with_download(self, context):
        await choose_technology(context, name="SwiftUI")
        orchestrator = SearchOrchestrator(min_indexed_symbols=50)

        results = await orchestrator.search(context, "Tab*")

        # Downloaded documents replace the framework's reference entries
        assert [r.title for r in results] == ["tabBar", "TabView"]
        assert {r.found_via for r in results} == {"index"}


# -----------------------------------------------------------------------
# Symbol retrieval
# -----------------------------------------------------------------------


class TestGetSymbol:
    def test_resolve_relative(self, selected):
        assert resolve_symbol_path(selected, "View") == "documentation/swiftui/View"

    def test_resolve_absolute(self, selected):
        assert resolve_symbol_path(selected, "/documentation/swiftui/view") == (
            "documentation/swiftui/view"
        )

    def test_relative_requires_selection(self, context):
        with pytest.raises(NotSelectedError):
            resolve_symbol_path(context, "View")

    async def test_get_symbol(self, selected):
        symbol = await get_symbol(selected, "view")
        assert symbol.title == "View"
