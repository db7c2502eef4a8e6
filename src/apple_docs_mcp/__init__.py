"""Apple Docs MCP Server - Apple Developer Documentation search for AI Agents."""

from importlib.metadata import version

from apple_docs_mcp.__main__ import _cli as main
from apple_docs_mcp.server import mcp

__version__ = version("apple-docs-mcp")
__all__ = ["mcp", "main", "__version__"]
