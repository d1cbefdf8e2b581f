"""Declaration model for one classdef unit.

Declarations are a tagged union: :class:`Property`, :class:`Method` and
:class:`Event` share no base class and are dispatched on ``kind``.  Source
text is referenced through offsets and token indices into the owning
:class:`~mdox.parse.source.SourceUnit`; nothing is copied until emission.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

# Section kinds
PROPERTIES = "properties"
METHODS = "methods"
EVENTS = "events"

# Declaration kinds
PROPERTY = "property"
METHOD = "method"
EVENT = "event"

# Method body kinds
INLINE = "inline"
DECLARED = "declared"
ABSTRACT = "abstract"

# Accessor kinds
GET = "get"
SET = "set"


# ── Attributes ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AccessPair:
    """Compound SetAccess/GetAccess value, kept as one unit."""

    set_access: str
    get_access: str

    @property
    def differs(self) -> bool:
        return self.set_access != self.get_access

    def describe(self) -> str:
        return f"SetAccess = {self.set_access}, GetAccess = {self.get_access}"


AttributeValue = Union[bool, str, AccessPair]


@dataclass
class Attribute:
    name: str
    value: AttributeValue
    line: int = 0
    col: int = 0


@dataclass
class AttributeSet:
    """Ordered open map of attribute name to value.

    Lookups are case-insensitive like MATLAB's own attribute handling;
    names are stored exactly as written so unknown attributes round-trip.
    """

    items: list[Attribute] = field(default_factory=list)

    def get(self, name: str) -> Attribute | None:
        key = name.lower()
        for attr in self.items:
            if attr.name.lower() == key:
                return attr
        return None

    def flag(self, name: str) -> bool:
        attr = self.get(name)
        return attr is not None and attr.value is True

    def access(self) -> AccessPair | None:
        attr = self.get("Access")
        if attr is not None and isinstance(attr.value, AccessPair):
            return attr.value
        return None

    def true_flags(self) -> list[str]:
        return [a.name for a in self.items if a.value is True]

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)


# ── Documentation ─────────────────────────────────────────────────────

@dataclass
class DocTag:
    """One tag entry of a doc block (note / param / retval / event / sa / default)."""

    kind: str
    key: str = ""
    lines: list[str] = field(default_factory=list)


@dataclass
class DocBlock:
    brief: list[str] = field(default_factory=list)
    details: list[str] = field(default_factory=list)
    tags: list[DocTag] = field(default_factory=list)
    # Set from @type / @default markers in the comment text.
    type_name: str | None = None
    default_text: str | None = None
    # True when default_text is the MATLAB expression rather than prose.
    default_is_code: bool = False
    param_types: dict[str, str] = field(default_factory=dict)
    retval_types: dict[str, str] = field(default_factory=dict)

    def add_note(self, text: str) -> None:
        self.tags.append(DocTag("note", "", [text]))

    def tags_of(self, kind: str) -> list[DocTag]:
        return [t for t in self.tags if t.kind == kind]

    @property
    def is_empty(self) -> bool:
        return not (self.brief or any(l.strip() for l in self.details) or self.tags
                    or self.default_text)


@dataclass
class LooseComment:
    """A comment block rendered where it was found (not attached to anything)."""

    offset: int
    lines: list[str]
    doc: DocBlock | None = None
    tag_line: str | None = None


# ── Declarations ──────────────────────────────────────────────────────

@dataclass
class Property:
    name: str
    start: int
    end: int
    line: int
    end_line: int
    type_name: str | None = None
    # Token index range [first, last) of the default expression.
    default_tokens: tuple[int, int] | None = None
    has_terminator: bool = True
    doc: DocBlock | None = None
    accessors: list[AccessorOverride] = field(default_factory=list)
    kind: str = PROPERTY


@dataclass
class Method:
    name: str
    start: int
    end: int
    line: int
    end_line: int  # last line of the signature
    params: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)
    body_kind: str = DECLARED
    # Offsets of the verbatim body (between the header line and the closing end).
    body_span: tuple[int, int] | None = None
    # Offsets of the leading doc comment inside the body, removed on emission.
    body_doc_span: tuple[int, int] | None = None
    is_static: bool = False
    doc: DocBlock | None = None
    accessor: AccessorOverride | None = None
    kind: str = METHOD


@dataclass
class Event:
    name: str
    start: int
    end: int
    line: int
    end_line: int
    doc: DocBlock | None = None
    kind: str = EVENT


Declaration = Union[Property, Method, Event]


@dataclass
class AccessorOverride:
    """A get.X / set.X method, owned by property X."""

    target: str
    accessor_kind: str
    method: Method
    doc: DocBlock | None = None


@dataclass
class Section:
    kind: str
    attributes: AttributeSet
    start: int
    line: int
    end: int = 0
    declarations: list[Declaration] = field(default_factory=list)
    accessors: list[AccessorOverride] = field(default_factory=list)


@dataclass
class ClassDeclaration:
    name: str
    line: int
    header_end: int
    header_end_line: int
    superclasses: list[str] = field(default_factory=list)
    attributes: AttributeSet = field(default_factory=AttributeSet)
    sections: list[Section] = field(default_factory=list)
    doc: DocBlock | None = None
    start: int = 0
    end: int = 0
    loose_comments: list[LooseComment] = field(default_factory=list)

    def declarations(self, kind: str | None = None):
        for section in self.sections:
            for decl in section.declarations:
                if kind is None or decl.kind == kind:
                    yield decl

    def properties_named(self, name: str) -> list[Property]:
        return [d for d in self.declarations(PROPERTY) if d.name == name]
