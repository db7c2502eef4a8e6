"""Document types for the documentation origin and the local index.

Origin payloads (catalog, framework and symbol documents) are validated
with Pydantic at the deserialization boundary; a payload that does not
fit raises ``InvalidDocumentError`` instead of surfacing as a missing key
deep inside the search code. Index entries and search results are derived
internally, after validation, so they are plain dataclasses.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from apple_docs_mcp.errors import InvalidDocumentError

# doc://com.apple.SwiftUI/documentation/SwiftUI/View -> documentation/SwiftUI/View
_DOC_SCHEME_RE = re.compile(r"^doc://[^/]+/")

FoundVia = Literal["index", "direct", "hierarchical", "regex"]


class _OriginModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class InlineContent(_OriginModel):
    """One fragment of an abstract (plain text or inline code)."""

    type: str = "text"
    text: str = ""
    code: str = ""


class PlatformInfo(_OriginModel):
    name: str = ""
    introduced_at: str | None = Field(default=None, alias="introducedAt")
    beta: bool = False


class ReferenceEntry(_OriginModel):
    """Lightweight pointer to another symbol, framework or article."""

    title: str = ""
    kind: str | None = None
    role: str | None = None
    type: str | None = None
    abstract: list[InlineContent] | None = None
    platforms: list[PlatformInfo] | None = None
    url: str = ""

    @property
    def abstract_text(self) -> str:
        return extract_text(self.abstract)

    @property
    def platform_names(self) -> list[str]:
        return [p.name for p in self.platforms or [] if p.name]


class TopicSection(_OriginModel):
    title: str = ""
    identifiers: list[str] = Field(default_factory=list)
    anchor: str | None = None


class DocumentMetadata(_OriginModel):
    title: str = ""
    platforms: list[PlatformInfo] | None = None
    role: str | None = None
    symbol_kind: str | None = Field(default=None, alias="symbolKind")


class DocumentIdentifier(_OriginModel):
    url: str = ""
    interface_language: str | None = Field(default=None, alias="interfaceLanguage")


class FrameworkDocument(_OriginModel):
    """Root document of one framework: metadata, table of contents, references."""

    identifier: DocumentIdentifier | None = None
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    abstract: list[InlineContent] | None = None
    topic_sections: list[TopicSection] = Field(
        default_factory=list, alias="topicSections"
    )
    references: dict[str, ReferenceEntry] = Field(default_factory=dict)

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def abstract_text(self) -> str:
        return extract_text(self.abstract)

    @property
    def platforms(self) -> list[PlatformInfo]:
        return self.metadata.platforms or []

    @property
    def path(self) -> str:
        """Lower-cased site path of this document, e.g. ``/documentation/swiftui/view``."""
        if not self.identifier or not self.identifier.url:
            return ""
        return "/" + _DOC_SCHEME_RE.sub("", self.identifier.url).strip("/").lower()

    def topic_identifiers(self) -> list[str]:
        """Identifiers listed in topic sections, in document order, deduplicated."""
        seen: dict[str, None] = {}
        for section in self.topic_sections:
            for identifier in section.identifiers:
                seen.setdefault(identifier, None)
        return list(seen)

    def all_identifiers(self) -> list[str]:
        """Topic-section identifiers followed by any other reference keys."""
        seen = dict.fromkeys(self.topic_identifiers())
        for identifier in self.references:
            seen.setdefault(identifier, None)
        return list(seen)


class SymbolDocument(FrameworkDocument):
    """Document for a single API symbol."""

    primary_content_sections: list[dict[str, Any]] = Field(
        default_factory=list, alias="primaryContentSections"
    )

    @property
    def symbol_kind(self) -> str | None:
        return self.metadata.symbol_kind


class Technology(_OriginModel):
    """Entry of the technology catalog."""

    title: str = ""
    identifier: str = ""
    kind: str | None = None
    role: str | None = None
    url: str = ""
    abstract: list[InlineContent] | None = None

    @property
    def is_framework(self) -> bool:
        return self.kind == "symbol" and self.role == "collection"

    @property
    def framework_name(self) -> str:
        """Last identifier segment: ``doc://x/documentation/SwiftUI`` -> ``SwiftUI``."""
        return self.identifier.rstrip("/").split("/")[-1]

    @property
    def abstract_text(self) -> str:
        return extract_text(self.abstract)


# ---------------------------------------------------------------------------
# Deserialization boundary
# ---------------------------------------------------------------------------

_M = TypeVar("_M", bound=BaseModel)


def parse_document(model: type[_M], data: Any, kind: str, key: str) -> _M:
    """Validate ``data`` into ``model``.

    Raises:
        InvalidDocumentError: If the payload does not fit the model.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidDocumentError(kind, key, e) from e


def parse_technologies(data: Any) -> dict[str, Technology]:
    """Parse a technology catalog.

    Accepts the origin's ``{"references": {...}}`` wrapper or a bare
    identifier map. Entries without a title or identifier are dropped.
    """
    if not isinstance(data, dict):
        raise InvalidDocumentError(
            "technologies", "technologies", TypeError("expected a JSON object")
        )
    raw = data.get("references", data)
    if not isinstance(raw, dict):
        raise InvalidDocumentError(
            "technologies", "technologies", TypeError("references must be an object")
        )

    technologies: dict[str, Technology] = {}
    for key, value in raw.items():
        if not isinstance(value, dict):
            continue
        tech = parse_document(Technology, value, "technology", key)
        if tech.title and tech.identifier:
            technologies[key] = tech
    return technologies


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def extract_text(abstract: list[InlineContent] | None) -> str:
    """Flatten an abstract into plain text."""
    if not abstract:
        return ""
    return "".join(item.text or item.code for item in abstract)


def format_platforms(platforms: list[PlatformInfo] | None) -> str:
    """Render platform availability, e.g. ``iOS 13.0, macOS 10.15 (Beta)``."""
    if not platforms:
        return "All platforms"
    parts = []
    for p in platforms:
        label = f"{p.name} {p.introduced_at}" if p.introduced_at else p.name
        if p.beta:
            label += " (Beta)"
        parts.append(label)
    return ", ".join(parts)


def reference_platforms(
    ref: ReferenceEntry, fallback: list[PlatformInfo] | None = None
) -> list[str]:
    """Platform names of ``ref``, or of ``fallback`` when the reference has none."""
    platforms = ref.platforms if ref.platforms is not None else fallback
    return [p.name for p in platforms or [] if p.name]


def identifier_to_path(
    identifier: str, references: dict[str, ReferenceEntry] | None = None
) -> str | None:
    """Resolve a reference identifier to a fetchable documentation path.

    Prefers the reference's own ``url``; otherwise strips the ``doc://``
    bundle prefix. Returns None for anything outside ``documentation/``
    (images, external links, downloads).
    """
    ref = (references or {}).get(identifier)
    if ref and ref.url:
        path = ref.url
    else:
        path = _DOC_SCHEME_RE.sub("", identifier)
    path = path.split("#", 1)[0].strip("/")
    if not path.lower().startswith("documentation/"):
        return None
    return path


# ---------------------------------------------------------------------------
# Derived types
# ---------------------------------------------------------------------------


@dataclass
class IndexEntry:
    """One searchable symbol in the local index."""

    id: str
    title: str
    path: str = ""
    kind: str = "symbol"
    abstract: str = ""
    platforms: list[str] = field(default_factory=list)
    tokens: set[str] = field(default_factory=set)


@dataclass
class SearchFilters:
    platform: str | None = None
    symbol_type: str | None = None

    def matches(self, kind: str | None, platforms: list[str]) -> bool:
        """Platform: case-insensitive substring. Kind: case-insensitive equality."""
        if self.symbol_type and (kind or "").lower() != self.symbol_type.lower():
            return False
        if self.platform:
            wanted = self.platform.lower()
            if not any(wanted in name.lower() for name in platforms):
                return False
        return True


@dataclass
class SearchResult:
    title: str
    framework: str
    path: str
    description: str = ""
    kind: str | None = None
    platforms: str | None = None
    found_via: FoundVia | None = None

    @classmethod
    def from_index_entry(cls, entry: IndexEntry, framework: str) -> "SearchResult":
        return cls(
            title=entry.title,
            framework=framework,
            path=entry.path,
            description=entry.abstract,
            kind=entry.kind,
            platforms=", ".join(entry.platforms) or "All platforms",
            found_via="index",
        )

    @classmethod
    def from_reference(
        cls,
        ref: ReferenceEntry,
        framework: str,
        found_via: FoundVia,
        fallback_platforms: list[PlatformInfo] | None = None,
    ) -> "SearchResult":
        return cls(
            title=ref.title or "Symbol",
            framework=framework,
            path=ref.url,
            description=ref.abstract_text,
            kind=ref.kind,
            platforms=format_platforms(
                ref.platforms if ref.platforms is not None else fallback_platforms
            ),
            found_via=found_via,
        )
