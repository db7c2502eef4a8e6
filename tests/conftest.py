"""Pytest configuration and fixtures."""

import asyncio
import copy
from unittest.mock import AsyncMock

import pytest

from apple_docs_mcp.cache import DocumentCache
from apple_docs_mcp.client import DocsClient
from apple_docs_mcp.downloader import ComprehensiveDownloader
from apple_docs_mcp.errors import NotFoundError
from apple_docs_mcp.fetcher import DocsFetcher
from apple_docs_mcp.state import SessionContext

BASE_URL = "https://docs.test/data"

SWIFTUI_ID = "doc://com.apple.SwiftUI/documentation/SwiftUI"
UIKIT_ID = "doc://com.apple.UIKit/documentation/UIKit"
VIEW_ID = f"{SWIFTUI_ID}/View"
TABVIEW_ID = f"{SWIFTUI_ID}/TabView"
BUTTON_ID = f"{SWIFTUI_ID}/Button"
TABBAR_ID = f"{SWIFTUI_ID}/ToolbarPlacement/tabBar"
VIEW_MODIFIER_ID = f"{SWIFTUI_ID}/ViewModifier"
UIBUTTON_ID = f"{UIKIT_ID}/UIButton"


def text(value: str) -> list[dict]:
    return [{"type": "text", "text": value}]


def reference(title, url, kind="symbol", abstract="", platforms=None, **extra):
    ref = {"title": title, "url": url, "kind": kind, "type": "topic", **extra}
    if abstract:
        ref["abstract"] = text(abstract)
    if platforms is not None:
        ref["platforms"] = platforms
    return ref


def symbol_document(identifier, title, symbol_kind="struct", references=None, topics=None):
    return {
        "identifier": {"url": identifier, "interfaceLanguage": "swift"},
        "metadata": {"title": title, "symbolKind": symbol_kind, "role": "symbol"},
        "abstract": text(f"Documentation for {title}."),
        "topicSections": [{"title": "Topics", "identifiers": topics or []}],
        "references": references or {},
        "primaryContentSections": [],
    }


CATALOG = {
    "references": {
        SWIFTUI_ID: {
            "title": "SwiftUI",
            "identifier": SWIFTUI_ID,
            "kind": "symbol",
            "role": "collection",
            "url": "/documentation/swiftui",
            "abstract": text("Declare the user interface and behavior for your app."),
        },
        UIKIT_ID: {
            "title": "UIKit",
            "identifier": UIKIT_ID,
            "kind": "symbol",
            "role": "collection",
            "url": "/documentation/uikit",
            "abstract": text("Construct and manage a graphical, event-driven user interface."),
        },
        "doc://com.apple.documentation/documentation/Updates": {
            "title": "Updates",
            "identifier": "doc://com.apple.documentation/documentation/Updates",
            "kind": "article",
            "role": "article",
            "url": "/documentation/updates",
        },
        "https://developer.apple.com/swift": {
            "title": "Swift",
            "kind": "symbol",
            "role": "collection",
        },
    }
}

SWIFTUI_FRAMEWORK = {
    "identifier": {"url": SWIFTUI_ID, "interfaceLanguage": "swift"},
    "metadata": {
        "title": "SwiftUI",
        "role": "collection",
        "platforms": [
            {"name": "iOS", "introducedAt": "13.0"},
            {"name": "macOS", "introducedAt": "10.15"},
        ],
    },
    "abstract": text("Declare the user interface and behavior for your app."),
    "topicSections": [
        {"title": "Essentials", "identifiers": [VIEW_ID, TABVIEW_ID]},
        {"title": "Toolbars", "identifiers": [TABBAR_ID]},
    ],
    "references": {
        VIEW_ID: reference(
            "View",
            "/documentation/swiftui/view",
            abstract="A type that represents part of your app's user interface.",
        ),
        TABVIEW_ID: reference(
            "TabView",
            "/documentation/swiftui/tabview",
            abstract="A container that switches between multiple child views.",
        ),
        TABBAR_ID: reference(
            "Tab Bar Placement",
            "/documentation/swiftui/toolbarplacement/tabbar",
            abstract="The placement for bars at the bottom of the screen.",
        ),
        BUTTON_ID: reference(
            "Button",
            "/documentation/swiftui/button",
            abstract="A control that initiates an action.",
            platforms=[{"name": "iOS", "introducedAt": "13.0"}],
        ),
    },
}

SYMBOLS = {
    "documentation/swiftui/view": symbol_document(
        VIEW_ID,
        "View",
        symbol_kind="protocol",
        topics=[VIEW_MODIFIER_ID],
        references={
            VIEW_MODIFIER_ID: reference(
                "ViewModifier",
                "/documentation/swiftui/viewmodifier",
                abstract="A modifier that you apply to a view.",
            )
        },
    ),
    "documentation/swiftui/tabview": symbol_document(TABVIEW_ID, "TabView"),
    "documentation/swiftui/button": symbol_document(
        BUTTON_ID,
        "Button",
        references={
            UIBUTTON_ID: reference("UIButton", "/documentation/uikit/uibutton"),
        },
    ),
    "documentation/swiftui/toolbarplacement/tabbar": symbol_document(
        TABBAR_ID, "tabBar", symbol_kind="property"
    ),
    "documentation/swiftui/viewmodifier": symbol_document(
        VIEW_MODIFIER_ID,
        "ViewModifier",
        symbol_kind="protocol",
        references={VIEW_ID: reference("View", "/documentation/swiftui/view")},
    ),
}


def build_routes() -> dict:
    routes = {
        f"{BASE_URL}/documentation/technologies.json": CATALOG,
        f"{BASE_URL}/documentation/swiftui.json": SWIFTUI_FRAMEWORK,
    }
    for path, document in SYMBOLS.items():
        routes[f"{BASE_URL}/{path}.json"] = document
    return copy.deepcopy(routes)


@pytest.fixture
def routes():
    """URL -> JSON payload served by the ``fetcher`` fixture. Tests may edit it."""
    return build_routes()


@pytest.fixture
def fetcher(routes):
    """DocsFetcher whose ``fetch`` serves ``routes`` and 404s everything else."""

    async def _serve(url):
        if url not in routes:
            raise NotFoundError(url)
        value = routes[url]
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)

    docs_fetcher = DocsFetcher(base_url=BASE_URL)
    docs_fetcher.fetch = AsyncMock(side_effect=_serve)
    return docs_fetcher


@pytest.fixture
def cache(tmp_path):
    """Empty document cache rooted in a temp directory."""
    return DocumentCache(tmp_path / "docs")


@pytest.fixture
def client(cache, fetcher):
    return DocsClient(cache, fetcher)


@pytest.fixture
def downloader(client):
    """Downloader with no delays so tests run instantly."""
    return ComprehensiveDownloader(
        client, rate_limit_delay=0, max_retries=3, max_depth=3, max_concurrency=4
    )


@pytest.fixture
def context(client, downloader):
    return SessionContext(client, downloader=downloader)


def fetched_urls(docs_fetcher) -> list[str]:
    """URLs passed to a mocked ``fetch`` in call order."""
    return [call.args[0] for call in docs_fetcher.fetch.await_args_list]


def hold_symbol_fetches(docs_fetcher) -> asyncio.Event:
    """Block SwiftUI symbol fetches on the mocked ``fetch`` until the event is set.

    The framework document itself is still served immediately.
    """
    release = asyncio.Event()
    serve = docs_fetcher.fetch.side_effect

    async def _held(url):
        if "/documentation/swiftui/" in url:
            await release.wait()
        return await serve(url)

    docs_fetcher.fetch.side_effect = _held
    return release
