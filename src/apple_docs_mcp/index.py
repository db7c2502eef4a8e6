"""In-memory symbol index built from cached documentation.

Entries are keyed by identifier (last write wins). Search has two tiers:

- Wildcard queries (``*`` / ``?``) are compiled into an anchored pattern
  and every entry that matches scores the same fixed value.
- Plain queries are split on whitespace; each term adds 50 when the title
  contains it, 30 when it is an exact token and 10 when the abstract
  contains it.

Results are sorted by descending score, then case-insensitive title.
"""

import re

from loguru import logger

from apple_docs_mcp.cache import FRAMEWORK, SYMBOL, DocumentCache
from apple_docs_mcp.errors import InvalidDocumentError
from apple_docs_mcp.models import (
    FrameworkDocument,
    IndexEntry,
    ReferenceEntry,
    SymbolDocument,
    parse_document,
)
from apple_docs_mcp.tokenizer import split_words, tokenize_all

WILDCARD_SCORE = 100
TITLE_SCORE = 50
TOKEN_SCORE = 30
ABSTRACT_SCORE = 10


def is_wildcard(query: str) -> bool:
    return "*" in query or "?" in query


def compile_wildcard(query: str) -> re.Pattern[str]:
    """``Grid*`` -> ``^grid.*$`` (case-insensitive input, literal otherwise)."""
    escaped = re.escape(query.strip().lower())
    pattern = escaped.replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{pattern}$")


def build_entry(
    entry_id: str,
    title: str,
    path: str = "",
    kind: str = "symbol",
    abstract: str = "",
    platforms: list[str] | None = None,
) -> IndexEntry:
    """Create an index entry with tokens from title, abstract, path and platforms."""
    platforms = platforms or []
    return IndexEntry(
        id=entry_id,
        title=title,
        path=path,
        kind=kind,
        abstract=abstract,
        platforms=platforms,
        tokens=tokenize_all(title, abstract, path, *platforms),
    )


class LocalSymbolIndex:
    """Map from symbol identifier to ``IndexEntry`` with ranked search.

    Args:
        scope: Framework name. When set, documents and references whose
            path lies outside ``/documentation/<scope>`` are not indexed.
    """

    def __init__(self, scope: str | None = None):
        self._scope = scope.lower() if scope else None
        self._entries: dict[str, IndexEntry] = {}

    @property
    def scope(self) -> str | None:
        return self._scope

    # --- Insertion ---

    def insert(self, entry: IndexEntry) -> None:
        self._entries[entry.id] = entry

    def count(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: str) -> IndexEntry | None:
        return self._entries.get(entry_id)

    def clear(self) -> None:
        self._entries.clear()

    def in_scope(self, path: str) -> bool:
        if not self._scope or not path:
            return True
        prefix = f"/documentation/{self._scope}"
        lowered = "/" + path.lower().lstrip("/")
        return lowered == prefix or lowered.startswith(prefix + "/")

    def add_reference(self, ref_id: str, ref: ReferenceEntry) -> bool:
        """Index a reference. Only titled ``symbol`` references are kept.

        A reference never replaces an existing entry; documents do.
        """
        if ref.kind != "symbol" or not ref.title or ref_id in self._entries:
            return False
        if not self.in_scope(ref.url):
            return False
        self.insert(
            build_entry(
                ref_id,
                ref.title,
                path=ref.url,
                kind=ref.kind,
                abstract=ref.abstract_text,
                platforms=ref.platform_names,
            )
        )
        return True

    def add_document(self, document: FrameworkDocument) -> int:
        """Index a framework or symbol document and its references.

        Returns the number of entries written.
        """
        added = 0
        path = document.path
        if self.in_scope(path):
            kind = (
                document.symbol_kind
                if isinstance(document, SymbolDocument) and document.symbol_kind
                else "framework"
            )
            title = document.title or "Unknown"
            # Same id as the references pointing at this document
            entry_id = document.identifier.url if document.identifier else ""
            self.insert(
                build_entry(
                    entry_id or path or title,
                    title,
                    path=path,
                    kind=kind,
                    abstract=document.abstract_text,
                    platforms=[p.name for p in document.platforms if p.name],
                )
            )
            added += 1

        for ref_id, ref in document.references.items():
            if self.add_reference(ref_id, ref):
                added += 1
        return added

    def build_from_cache(self, cache: DocumentCache) -> int:
        """Scan cached framework and symbol documents into the index.

        Unreadable or invalid files are skipped. Returns the index size.
        """
        for kind in (FRAMEWORK, SYMBOL):
            for file_path, data in cache.iter_documents(kind):
                try:
                    document = parse_document(SymbolDocument, data, kind, file_path.name)
                except InvalidDocumentError as e:
                    logger.warning(f"Skipping {file_path.name}: {e}")
                    continue
                self.add_document(document)

        logger.info(
            f"Local symbol index built with {self.count()} symbols"
            + (f" (scope: {self._scope})" if self._scope else "")
        )
        return self.count()

    # --- Search ---

    def search(self, query: str, max_results: int = 20) -> list[IndexEntry]:
        """Ranked entries for ``query``; empty when nothing scores."""
        query = query.strip()
        if not query or max_results <= 0:
            return []

        if is_wildcard(query):
            scored = self._score_wildcard(query)
        else:
            scored = self._score_terms(query.split())

        scored.sort(key=lambda item: (-item[0], item[1].title.casefold(), item[1].id))
        return [entry for _score, entry in scored[:max_results]]

    def _score_wildcard(self, query: str) -> list[tuple[int, IndexEntry]]:
        pattern = compile_wildcard(query)
        results = []
        for entry in self._entries.values():
            if any(pattern.match(candidate) for candidate in _wildcard_candidates(entry)):
                results.append((WILDCARD_SCORE, entry))
        return results

    def _score_terms(self, terms: list[str]) -> list[tuple[int, IndexEntry]]:
        results = []
        for entry in self._entries.values():
            title = entry.title.lower()
            abstract = entry.abstract.lower()
            score = 0
            for term in terms:
                lowered = term.lower()
                if lowered in title:
                    score += TITLE_SCORE
                if term in entry.tokens or lowered in entry.tokens:
                    score += TOKEN_SCORE
                if lowered in abstract:
                    score += ABSTRACT_SCORE
            if score > 0:
                results.append((score, entry))
        return results


def _wildcard_candidates(entry: IndexEntry) -> list[str]:
    """Title, path and their whole words, lower-cased.

    Compound sub-words are left out so ``Grid*`` stays anchored to names
    that start with ``Grid`` rather than any name containing a ``Grid`` part.
    """
    candidates = [entry.title.lower(), entry.path.lower()]
    candidates.extend(word.lower() for word in split_words(entry.title))
    candidates.extend(word.lower() for word in split_words(entry.path))
    return candidates
