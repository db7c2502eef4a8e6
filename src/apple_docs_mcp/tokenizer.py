"""Token extraction for symbol search.

``GridItem`` -> {"GridItem", "griditem", "Grid", "grid", "Item", "item"}
"""

import re

_DELIMITERS_RE = re.compile(r"[\s/._-]+")
_UPPER_BOUNDARY_RE = re.compile(r"(?=[A-Z])")


def split_words(text: str | None) -> list[str]:
    """Split on whitespace, ``/``, ``.``, ``_`` and ``-``."""
    if not text:
        return []
    return [piece for piece in _DELIMITERS_RE.split(text) if piece]


def split_compound(word: str) -> list[str]:
    """Split a joined capitalized word at each uppercase letter."""
    return [part for part in _UPPER_BOUNDARY_RE.split(word) if part]


def tokenize(text: str | None) -> set[str]:
    """Turn a title, path or description into a normalized token set."""
    tokens: set[str] = set()
    for piece in split_words(text):
        tokens.add(piece.lower())
        tokens.add(piece)

        parts = split_compound(piece)
        if len(parts) > 1:
            for part in parts:
                tokens.add(part.lower())
                tokens.add(part)
            tokens.add("".join(parts).lower())
    return tokens


def tokenize_all(*texts: str | None) -> set[str]:
    """Union of ``tokenize`` over several strings."""
    tokens: set[str] = set()
    for text in texts:
        tokens |= tokenize(text)
    return tokens
