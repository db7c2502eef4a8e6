"""Disk cache for documentation JSON (technology catalog, frameworks, symbols).

One JSON file per document under ``<root>/<kind>/``. File names combine a
readable slug of the normalized key with a short stable hash of
``kind:key`` so that keys which collapse to the same slug still land in
different files.

Cache is best effort - callers use ``load``/``save``; a missing or
unparsable file is a miss, never an error.
"""

import hashlib
import json
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from loguru import logger

from apple_docs_mcp.errors import CacheCorruptionError

TECHNOLOGIES = "technologies"
FRAMEWORK = "framework"
SYMBOL = "symbol"

KINDS = (TECHNOLOGIES, FRAMEWORK, SYMBOL)

_SLUG_RE = re.compile(r"[^a-z0-9_-]+")
_SLUG_MAX = 80
_HASH_LEN = 12


def normalize_key(key: str) -> str:
    """Normalize a logical name so equivalent spellings share one entry."""
    return key.strip().strip("/").lower()


def _cache_key(kind: str, key: str) -> str:
    """Generate the file stem for ``kind`` + ``key``."""
    normalized = normalize_key(key)
    slug = _SLUG_RE.sub("_", normalized).strip("_")[:_SLUG_MAX] or "index"
    digest = hashlib.sha256(f"{kind}:{normalized}".encode()).hexdigest()
    return f"{slug}-{digest[:_HASH_LEN]}"


class DocumentCache:
    """File-backed cache of documentation JSON documents."""

    def __init__(self, root: Path):
        self._root = Path(root)
        logger.debug(f"DocumentCache initialized at {self._root}")

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, kind: str, key: str) -> Path:
        if kind not in KINDS:
            raise ValueError(f"Unknown cache kind: {kind}")
        return self._root / kind / f"{_cache_key(kind, key)}.json"

    def load(self, kind: str, key: str) -> Any | None:
        """Return the cached document, or None on a miss."""
        path = self.path_for(kind, key)
        try:
            data = self._read(path)
        except FileNotFoundError:
            logger.debug(f"Cache MISS: {kind} {key}")
            return None
        except CacheCorruptionError as e:
            logger.warning(f"{e.message} - treating as cache miss")
            return None

        logger.debug(f"Cache HIT: {kind} {key}")
        return data

    def save(self, kind: str, key: str, document: Any) -> None:
        """Persist ``document``; the directory is created on first write."""
        path = self.path_for(kind, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        logger.debug(f"Cache SET: {kind} {key} -> {path.name}")

    def iter_documents(self, kind: str) -> Iterator[tuple[Path, Any]]:
        """Yield ``(path, document)`` for every readable file of ``kind``.

        Corrupt files are skipped with a warning.
        """
        directory = self._root / kind
        if not directory.is_dir():
            return
        for path in sorted(directory.glob("*.json")):
            try:
                yield path, self._read(path)
            except CacheCorruptionError as e:
                logger.warning(f"{e.message} - skipping")
            except FileNotFoundError:
                continue

    def clear(self, kind: str | None = None) -> int:
        """Delete cached files. If kind specified, only clear that kind."""
        kinds = [kind] if kind else list(KINDS)
        removed = 0
        for k in kinds:
            directory = self._root / k
            if not directory.is_dir():
                continue
            for path in directory.glob("*.json"):
                path.unlink(missing_ok=True)
                removed += 1
        return removed

    def stats(self) -> dict[str, int]:
        """Number of cached documents per kind."""
        return {
            kind: len(list((self._root / kind).glob("*.json")))
            if (self._root / kind).is_dir()
            else 0
            for kind in KINDS
        }

    @staticmethod
    def _read(path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CacheCorruptionError(str(path), e) from e
