"""Apple Docs MCP Server entry point."""

import asyncio
import sys


async def _refresh() -> None:
    from apple_docs_mcp.server import create_context

    context = create_context()
    technologies = await context.client.refresh_technologies()
    frameworks = [t for t in technologies.values() if t.is_framework]
    print(f"  Catalog refreshed: {len(technologies)} entries, {len(frameworks)} frameworks")


async def _download(name: str) -> None:
    from apple_docs_mcp.server import create_context
    from apple_docs_mcp.technologies import choose_technology

    context = create_context()
    technology = await choose_technology(context, name=name)
    print(f"  Downloading {technology.title} into {context.client.cache.root}...")
    fetched = await context.downloader.download_all(context)
    failed = len(context.downloader.failed())
    print(f"  {fetched} symbols fetched, {failed} failed, {context.index.count()} indexed")


def _cli() -> None:
    """CLI dispatcher: server (default), refresh, or download <framework>."""
    if len(sys.argv) >= 2 and sys.argv[1] == "refresh":
        print("Apple Docs MCP: refreshing technology catalog...")
        asyncio.run(_refresh())
    elif len(sys.argv) >= 2 and sys.argv[1] == "download":
        if len(sys.argv) < 3:
            print("Usage: apple-docs-mcp download <framework>", file=sys.stderr)
            sys.exit(2)
        print(f"Apple Docs MCP: pre-warming cache for {sys.argv[2]}...")
        asyncio.run(_download(sys.argv[2]))
        print("Download complete!")
    else:
        from apple_docs_mcp.server import main

        main()


if __name__ == "__main__":
    _cli()
