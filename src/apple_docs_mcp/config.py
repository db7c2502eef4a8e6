"""Configuration settings for the Apple Docs MCP Server."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings

# Named documentation origins: (base URL, referrer, lower-case symbol paths)
DOC_SOURCES: dict[str, tuple[str, str, bool]] = {
    "main": (
        "https://developer.apple.com/tutorials/data",
        "https://developer.apple.com/documentation",
        False,
    ),
    "container": (
        "https://apple.github.io/container/data",
        "https://apple.github.io/container/documentation",
        True,
    ),
    "containerization": (
        "https://apple.github.io/containerization/data",
        "https://apple.github.io/containerization/documentation",
        True,
    ),
}


def _default_data_dir() -> Path:
    """Get default data directory (~/.apple-docs-mcp/)."""
    return Path.home() / ".apple-docs-mcp"


class Settings(BaseSettings):
    """Apple Docs MCP Server configuration.

    Environment variables:
    - DOCS_SOURCE: Documentation origin preset: main, container or
        containerization (default: main)
    - DOCS_BASE_URL: Override the origin root of DOCS_SOURCE
    - DOCS_REFERRER: Override the Referer header of DOCS_SOURCE
    - CACHE_DIR: Data directory, documents live in CACHE_DIR/docs
        (default: ~/.apple-docs-mcp)
    - REQUEST_TIMEOUT: Per-request timeout in seconds (default: 15)
    - MEMORY_CACHE_TTL: In-memory response cache TTL in seconds (default: 600)
    - MEMORY_CACHE_SIZE: Max in-memory cached responses (default: 1000)
    - RATE_LIMIT_DELAY: Seconds between downloader requests (default: 0.1)
    - MAX_RETRIES: Download attempts per symbol (default: 3)
    - MAX_DOWNLOAD_DEPTH: Recursion bound for the downloader (default: 3)
    - MAX_DOWNLOAD_CONCURRENCY: In-flight fetches per layer (default: 8)
    - MIN_INDEXED_SYMBOLS: Index size below which symbols are downloaded
        (default: 50)
    - DEFAULT_MAX_RESULTS: Search result limit (default: 20)
    - TOOL_TIMEOUT: Hard timeout per tool call, 0 = no timeout (default: 120)
    - LOG_LEVEL: Loguru level (default: INFO)
    """

    # Origin
    docs_source: Literal["main", "container", "containerization"] = "main"
    docs_base_url: str = ""  # default: from docs_source
    docs_referrer: str = ""  # default: from docs_source
    request_timeout: float = 15.0

    # In-memory response cache
    memory_cache_ttl: int = 600
    memory_cache_size: int = 1000

    # Disk cache
    cache_dir: str = ""  # default: ~/.apple-docs-mcp

    # Comprehensive downloader
    rate_limit_delay: float = 0.1
    max_retries: int = 3
    max_download_depth: int = 3
    max_download_concurrency: int = 8

    # Search
    min_indexed_symbols: int = 50
    default_max_results: int = 20

    # Tool execution timeout (seconds, 0 = no timeout)
    tool_timeout: int = 120

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "", "case_sensitive": False}

    def get_data_dir(self) -> Path:
        """Get data directory.

        Uses CACHE_DIR if set, otherwise ~/.apple-docs-mcp/.
        """
        if self.cache_dir:
            return Path(self.cache_dir).expanduser()
        return _default_data_dir()

    def get_cache_dir(self) -> Path:
        """Get the directory holding cached documentation JSON.

        Sources other than ``main`` get their own ``docs-<source>`` directory.
        """
        if self.docs_source == "main":
            return self.get_data_dir() / "docs"
        return self.get_data_dir() / f"docs-{self.docs_source}"

    def get_docs_base_url(self) -> str:
        return self.docs_base_url or DOC_SOURCES[self.docs_source][0]

    def get_docs_referrer(self) -> str:
        return self.docs_referrer or DOC_SOURCES[self.docs_source][1]

    def lowercase_paths(self) -> bool:
        """GitHub-hosted sources only serve lower-case symbol paths."""
        return DOC_SOURCES[self.docs_source][2]


settings = Settings()
