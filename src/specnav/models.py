"""Canonical Pydantic models shared across all specnav modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into four groups:

**Configuration models** -- serialised as JSON in the user's config directory
or the project's ``specnav.json``:
    :class:`IndexConfig`, :class:`StoreConfig`, :class:`OutputConfig`,
    and :class:`GlobalConfig`.

**Spec element models** -- produced by the spec parser:
    :class:`HTTPMethod`, :class:`SpecOperation`, :class:`SpecComponent`,
    :class:`SpecTag`, and the :data:`SpecElement` union.

**Index record models** -- the persisted form of a spec element, keyed by
``<kind>:<identifier>`` in the inverted index:
    :class:`IndexedOperation`, :class:`IndexedComponent`,
    :class:`IndexedTag`, and the :data:`IndexRecord` union.

**Code-side models** -- the projection of a source-code unit that language
adapters hand to the matcher:
    :class:`SymbolKind` and :class:`CandidateSymbol`.

All models use Pydantic v2. Index records serialise with the camelCase wire
names (``operationId``, ``filePath``, ``type``) and ignore unknown keys so
that older records still deserialise after additive changes.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DocumentPath = tuple[str, ...]
"""Ordered segments locating a node inside a parsed document tree.

Example: ``("paths", "/users/{id}", "get", "operationId")``.
"""


# --- Configuration ---


class IndexConfig(BaseModel):
    """Which files the project indexer considers and which it skips.

    The default exclusions cover dependency roots (virtualenvs,
    ``site-packages``) and vendored module directories such as
    ``node_modules``. Patterns use gitignore syntax and are matched against
    project-relative paths.
    """

    spec_extensions: list[str] = Field(
        default_factory=lambda: ["yaml", "yml", "json"],
        description="File extensions treated as candidate spec documents",
    )
    source_extensions: list[str] = Field(
        default_factory=lambda: ["py"],
        description="File extensions scanned for candidate symbols",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Extra gitignore-style patterns to exclude from indexing",
    )
    respect_gitignore: bool = Field(
        default=True, description="Skip files ignored by the project's .gitignore"
    )

    @field_validator("spec_extensions", "source_extensions")
    @classmethod
    def _normalise_extensions(cls, value: list[str]) -> list[str]:
        return [ext.lower().lstrip(".") for ext in value]


class StoreConfig(BaseModel):
    """Persistent index store settings."""

    enabled: bool = Field(default=True, description="Persist index records between runs")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """Effective configuration after merging user, project, and env layers.

    Loaded by :func:`~specnav.config.resolve_config`. The user-level file
    lives at ``~/.config/specnav/config.json``; a project may override any
    field with a ``specnav.json`` at its root.
    """

    index: IndexConfig = Field(default_factory=IndexConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Spec elements ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI path-item objects.

    Values are upper-case; :meth:`parse` accepts any casing so that YAML
    keys (``get``), annotation values (``RequestMethod.GET``), and raw
    client code (``'Get'``) all normalise to the same member.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"

    @classmethod
    def parse(cls, value: str) -> Optional["HTTPMethod"]:
        """Return the member named by *value* (case-insensitive), or ``None``."""
        name = value.strip().rsplit(".", 1)[-1].upper()
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def key(self) -> str:
        """The lower-case key used for this method inside a path item."""
        return self.value.lower()


class SpecOperation(BaseModel):
    """One HTTP method bound to one path, identified by its ``operationId``.

    Also serves as the *operation identity* handed to implementation
    resolvers and produced by
    :func:`~specnav.locator.extract_operation_identity`.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["operation"] = "operation"
    path: str
    method: HTTPMethod
    operation_id: str
    tags: tuple[str, ...] = ()
    summary: Optional[str] = None

    @field_validator("method", mode="before")
    @classmethod
    def _normalise_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            parsed = HTTPMethod.parse(value)
            if parsed is not None:
                return parsed
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _dedupe_tags(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(dict.fromkeys(str(tag) for tag in value))
        return value


class SpecComponent(BaseModel):
    """A reusable schema declared under ``components.schemas``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["component"] = "component"
    name: str
    schema_type: Optional[str] = None


class SpecTag(BaseModel):
    """A grouping label declared in the top-level ``tags`` array."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["tag"] = "tag"
    name: str


SpecElement = Annotated[
    Union[SpecOperation, SpecComponent, SpecTag], Field(discriminator="kind")
]


# --- Index records ---


class IndexKind(str, enum.Enum):
    """Key namespaces of the inverted index.

    The tag namespace is spelled ``tags`` (plural) in index keys.
    """

    OPERATION = "operation"
    COMPONENT = "component"
    TAG = "tags"

    def key(self, identifier: str) -> str:
        """Build the ``<kind>:<identifier>`` index key."""
        return f"{self.value}:{identifier}"


class _RecordBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    file_path: str = Field(alias="filePath")

    def to_json(self) -> str:
        """Serialise with wire names, omitting unset optionals."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class IndexedOperation(_RecordBase):
    """Persisted form of a :class:`SpecOperation`."""

    kind: Literal["operation"] = "operation"
    operation_id: str = Field(alias="operationId")
    path: str
    method: str
    tags: list[str] = Field(default_factory=list)
    summary: Optional[str] = None

    @property
    def identifier(self) -> str:
        return self.operation_id

    def to_operation(self) -> SpecOperation:
        """Rebuild the operation identity this record was created from."""
        return SpecOperation(
            path=self.path,
            method=self.method,
            operation_id=self.operation_id,
            tags=self.tags,
            summary=self.summary,
        )


class IndexedComponent(_RecordBase):
    """Persisted form of a :class:`SpecComponent`."""

    kind: Literal["component"] = "component"
    name: str
    schema_type: Optional[str] = Field(default=None, alias="type")

    @property
    def identifier(self) -> str:
        return self.name


class IndexedTag(_RecordBase):
    """Persisted form of a :class:`SpecTag`."""

    kind: Literal["tag"] = "tag"
    name: str

    @property
    def identifier(self) -> str:
        return self.name


IndexRecord = Union[IndexedOperation, IndexedComponent, IndexedTag]

RECORD_TYPES: dict[IndexKind, type[_RecordBase]] = {
    IndexKind.OPERATION: IndexedOperation,
    IndexKind.COMPONENT: IndexedComponent,
    IndexKind.TAG: IndexedTag,
}


class ReferencePointer(BaseModel):
    """A parsed ``$ref`` value.

    ``file_path`` is ``None`` for same-document references (``#/a/b``).
    """

    model_config = ConfigDict(frozen=True)

    file_path: Optional[str] = None
    fragment: DocumentPath = ()

    @property
    def is_local(self) -> bool:
        return not self.file_path


# --- Candidate symbols ---


class SymbolKind(str, enum.Enum):
    """The shape of a source-code unit exposed by a language adapter."""

    METHOD = "method"
    FUNCTION = "function"
    CLASS = "class"


class CandidateSymbol(BaseModel):
    """Language-neutral projection of a method, function, or class.

    Language adapters produce these once per file; the matcher and the
    resolvers only ever read them. ``annotations`` maps an annotation
    (decorator, attribute) simple name to its attribute values, already
    unquoted and typed: strings, lists of strings, booleans.

    For classes, ``members`` holds the methods and ``bases`` the simple
    names of base classes. For methods, ``containing_type_qualified_name``
    names the owning class.
    """

    simple_name: str
    kind: SymbolKind
    containing_type_qualified_name: Optional[str] = None
    qualified_name: Optional[str] = None
    annotations: dict[str, dict[str, Any]] = Field(default_factory=dict)
    raw_text: Optional[str] = None
    parameters: tuple[str, ...] = ()
    members: list[CandidateSymbol] = Field(default_factory=list)
    bases: tuple[str, ...] = ()
    file_path: Optional[str] = None
    line: Optional[int] = None

    def annotation(self, name: str) -> Optional[dict[str, Any]]:
        """Return the attributes of annotation *name*, or ``None`` if absent."""
        return self.annotations.get(name)

    def has_annotation(self, name: str) -> bool:
        return name in self.annotations

    def find_members(self, name: str) -> list[CandidateSymbol]:
        """Return members whose simple name equals *name*, in declaration order."""
        return [member for member in self.members if member.simple_name == name]

    @property
    def display_name(self) -> str:
        """Human-readable ``Owner.name`` (or bare name) used in listings."""
        if self.qualified_name:
            return self.qualified_name
        if self.containing_type_qualified_name:
            return f"{self.containing_type_qualified_name}.{self.simple_name}"
        return self.simple_name

    @property
    def identity(self) -> tuple[Optional[str], str, Optional[int]]:
        """Stable identity used to de-duplicate resolver results."""
        return (self.file_path, self.display_name, self.line)


CandidateSymbol.model_rebuild()
