"""Error taxonomy for documentation retrieval and search.

Every error carries a human-readable message and an optional ``hint``
describing what the caller can do next. The tool layer renders both
instead of a stack trace.
"""


class DocsError(Exception):
    """Base class for all documentation errors."""

    def __init__(self, message: str, hint: str | None = None):
        self.message = message
        self.hint = hint
        super().__init__(message)


class NetworkError(DocsError):
    """Transport failure, timeout or non-2xx response from the origin.

    Attributes:
        url: URL that was requested
        cause: Underlying exception, if any
        status_code: HTTP status code for non-2xx responses
    """

    def __init__(
        self,
        url: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
        message: str | None = None,
    ):
        self.url = url
        self.cause = cause
        self.status_code = status_code
        if message is None:
            detail = f"HTTP {status_code}" if status_code else str(cause or "")
            message = f"Failed to fetch {url}"
            if detail:
                message = f"{message}: {detail}"
        super().__init__(
            message,
            hint="Check your network connection and try again in a moment.",
        )


class NotFoundError(NetworkError):
    """The origin does not resolve the requested path (HTTP 404)."""

    def __init__(self, url: str, cause: BaseException | None = None):
        super().__init__(
            url,
            cause=cause,
            status_code=404,
            message=f"Documentation not found: {url}",
        )
        self.hint = (
            "Check the symbol path, or use `search_symbols` to find the "
            "correct one."
        )


class InvalidDocumentError(DocsError):
    """A payload does not match the expected document shape."""

    def __init__(self, kind: str, key: str, cause: BaseException | None = None):
        self.kind = kind
        self.key = key
        self.cause = cause
        super().__init__(f"Invalid {kind} document for '{key}': {cause}")


class CacheCorruptionError(DocsError):
    """A persisted cache file could not be parsed.

    Raised only inside the cache reader, which converts it into a miss.
    """

    def __init__(self, path: str, cause: BaseException | None = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Corrupt cache file {path}: {cause}")


class NotSelectedError(DocsError):
    """An operation needs an active technology but none is selected."""

    def __init__(self):
        super().__init__(
            "No technology selected.",
            hint=(
                "Use `discover_technologies` then `choose_technology` first."
            ),
        )


class TechnologyNotFoundError(DocsError):
    """A technology name or identifier could not be resolved.

    Attributes:
        query: The name or identifier that was requested
        suggestions: Titles of close candidates
    """

    def __init__(self, query: str, suggestions: list[str] | None = None):
        self.query = query
        self.suggestions = suggestions or []
        super().__init__(
            f'Could not resolve "{query}".',
            hint='Use `discover_technologies { "query": "keyword" }` to find candidates.',
        )


class NotAFrameworkError(DocsError):
    """The chosen catalog entry is not a framework collection."""

    def __init__(self, title: str):
        self.title = title
        super().__init__(
            f"{title} is not a framework collection.",
            hint="Please choose a framework technology instead.",
        )
