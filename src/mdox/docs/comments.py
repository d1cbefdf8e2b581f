"""Comment associator: attach comment blocks to declarations.

Runs as a second pass over the token stream once every declaration is
known.  Positional (adjacency) attachment happens first; blocks that name
their target with ``@var``/``@fn``/... are patched in afterwards through
a by-name lookup, so relocated blocks never need back-pointers.  Finally
the attribute-derived notes are appended to every declaration's doc.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field

from mdox.diagnostics import ORPHANED_DOC, DiagnosticSink
from mdox.docs.docblock import RE_NAME_TAG, comment_lines, merge_note, parse_doc, split_name_tag
from mdox.model import (
    EVENT,
    INLINE,
    METHOD,
    PROPERTY,
    AttributeSet,
    ClassDeclaration,
    DocBlock,
    DocTag,
    LooseComment,
    Method,
    Section,
)
from mdox.parse.declarations import default_text
from mdox.parse.source import COMMENT, NEWLINE, WHITESPACE, SourceUnit, Token

log = logging.getLogger(__name__)

PROPERTY_ATTRIBUTES_URL = "http://www.mathworks.de/help/techdoc/matlab_oop/brjjwby.html"
METHOD_ATTRIBUTES_URL = "http://www.mathworks.com/help/matlab/matlab_oop/method-attributes.html"
EVENT_ATTRIBUTES_URL = "http://www.mathworks.com/help/matlab/matlab_oop/event-attributes.html"
CLASS_ATTRIBUTES_URL = "http://www.mathworks.com/help/matlab/matlab_oop/class-attributes.html"

# kind -> (noun, attribute wording, reference link)
_NOTE_WORDING = {
    PROPERTY: ("property", "MATLAB attribute",
               f'<a href="{PROPERTY_ATTRIBUTES_URL}">Matlab documentation of property attributes.</a>'),
    METHOD: ("method", "MATLAB method attribute",
             f'<a href="{METHOD_ATTRIBUTES_URL}">matlab documentation of method attributes.</a>'),
    EVENT: ("event", "MATLAB event attribute",
            f'<a href="{EVENT_ATTRIBUTES_URL}">matlab documentation of event attributes.</a>'),
}
_CLASS_LINK = f'<a href="{CLASS_ATTRIBUTES_URL}">matlab documentation of class attributes.</a>'

# Already expressed by the emitted declaration syntax.
_ENCODED_ATTRIBUTES = frozenset({"constant", "static", "abstract", "access"})

_TAG_KINDS = {
    "var": (PROPERTY, EVENT),
    "property": (PROPERTY,),
    "fn": (METHOD,),
    "event": (EVENT,),
}

_CLASS = -1


@dataclass
class CommentBlock:
    """Whole-line comments on consecutive lines, a ``%{ %}`` block, or one trailing comment."""

    tokens: list[Token]
    start: int
    end: int
    first_line: int
    last_line: int
    trailing: bool = False


@dataclass
class _Sources:
    above: list[str] = field(default_factory=list)
    trailing: list[str] = field(default_factory=list)
    below: list[str] = field(default_factory=list)


# ── Block collection ──────────────────────────────────────────────────

def collect_blocks(unit: SourceUnit, cls: ClassDeclaration) -> list[CommentBlock]:
    """Comment blocks outside method bodies and default expressions, in file order."""
    excluded = _excluded_spans(unit, cls)
    starts = [s for s, _ in excluded]
    blocks: list[CommentBlock] = []
    line_has_code = False
    for tok in unit.tokens:
        if tok.kind == NEWLINE:
            line_has_code = False
            continue
        if tok.kind == WHITESPACE:
            continue
        if tok.kind != COMMENT:
            line_has_code = True
            continue
        pos = bisect.bisect_right(starts, tok.start) - 1
        if pos >= 0 and excluded[pos][0] < tok.start < excluded[pos][1]:
            continue
        first = unit.line_of(tok.start)
        last = unit.line_of(max(tok.start, tok.end - 1))
        prev = blocks[-1] if blocks else None
        if (
            not line_has_code
            and not tok.block
            and prev is not None
            and not prev.trailing
            and not prev.tokens[-1].block
            and prev.last_line + 1 == first
            and not RE_NAME_TAG.match(comment_lines(unit, [tok])[0])
        ):
            prev.tokens.append(tok)
            prev.end = tok.end
            prev.last_line = last
            continue
        blocks.append(CommentBlock([tok], tok.start, tok.end, first, last, trailing=line_has_code))
    return blocks


def _excluded_spans(unit: SourceUnit, cls: ClassDeclaration) -> list[tuple[int, int]]:
    spans = []
    for decl in cls.declarations():
        if decl.kind == METHOD:
            header_end = unit.line_end(decl.end_line)
            if decl.end > header_end:
                spans.append((header_end, decl.end))
        elif decl.kind == PROPERTY:
            spans.append((decl.start, decl.end))
    spans.sort()
    return spans


def _tokens_between(unit: SourceUnit, start: int, end: int) -> list[Token]:
    first = bisect.bisect_left(unit.tokens, start, key=lambda t: t.start)
    last = bisect.bisect_left(unit.tokens, end, key=lambda t: t.start)
    return unit.tokens[first:last]


# ── Association ───────────────────────────────────────────────────────

def associate(
    unit: SourceUnit,
    cls: ClassDeclaration,
    diagnostics: DiagnosticSink,
    attribute_links: bool = True,
) -> None:
    """Attach doc blocks to *cls* and its declarations, then add attribute notes."""
    decls = list(cls.declarations())
    covers: dict[int, int] = {}
    starts_at: dict[int, int] = {}
    ends_at: dict[int, int] = {}
    for line in range(cls.line, cls.header_end_line + 1):
        covers[line] = _CLASS
    for idx, decl in enumerate(decls):
        for line in range(decl.line, decl.end_line + 1):
            covers.setdefault(line, idx)
        starts_at.setdefault(decl.line, idx)
        if not (decl.kind == METHOD and decl.body_kind == INLINE):
            ends_at.setdefault(decl.end_line, idx)
    first_section = cls.sections[0].start if cls.sections else cls.end

    sources = [_Sources() for _ in decls]
    class_sources = _Sources()
    class_body_doc = False
    tagged: list[tuple[CommentBlock, tuple[str, str, list[str]]]] = []

    for block in collect_blocks(unit, cls):
        lines = comment_lines(unit, block.tokens)
        tag = split_name_tag(lines)
        if tag is not None:
            tagged.append((block, tag))
            continue
        if block.trailing:
            owner = covers.get(block.first_line)
            if owner == _CLASS:
                class_sources.trailing.extend(lines)
            elif owner is not None:
                sources[owner].trailing.extend(lines)
            else:
                cls.loose_comments.append(LooseComment(block.start, lines))
        elif block.first_line - 1 in ends_at:
            sources[ends_at[block.first_line - 1]].below.extend(lines)
        elif block.last_line + 1 in starts_at:
            sources[starts_at[block.last_line + 1]].above.extend(lines)
        elif block.last_line + 1 == cls.line:
            class_sources.above.extend(lines)
        elif cls.header_end < block.start < first_section and not class_body_doc:
            class_sources.below.extend(lines)
            class_body_doc = True
        else:
            cls.loose_comments.append(LooseComment(block.start, lines))

    for decl, src in zip(decls, sources):
        body = method_body_doc(unit, decl) if decl.kind == METHOD else []
        lines = src.above + src.trailing + body + src.below
        if lines:
            decl.doc = parse_doc(lines)
    class_lines = class_sources.above + class_sources.trailing + class_sources.below
    if class_lines:
        cls.doc = parse_doc(class_lines)

    for block, (kind, name, rest) in tagged:
        _attach_tagged(unit, cls, block, kind, name, rest, diagnostics)

    synthesize_notes(unit, cls, attribute_links)
    log.debug(
        "associated docs: %d of %d declarations documented, %d loose blocks",
        sum(1 for d in decls if d.doc is not None), len(decls), len(cls.loose_comments),
    )


def _attach_tagged(
    unit: SourceUnit,
    cls: ClassDeclaration,
    block: CommentBlock,
    kind: str,
    name: str,
    rest: list[str],
    diagnostics: DiagnosticSink,
) -> None:
    doc = parse_doc(rest)
    if kind == "class":
        target = cls if name == cls.name else None
    else:
        target = _find_named(cls, name, _TAG_KINDS[kind])
    if target is None:
        diagnostics.warning(
            ORPHANED_DOC,
            f"doc block names unknown {kind} '{name}'",
            unit.position(block.start),
        )
        cls.loose_comments.append(
            LooseComment(block.start, comment_lines(unit, block.tokens), doc=doc,
                         tag_line=f"@{kind} {name}")
        )
        return
    if target.doc is None:
        target.doc = doc
    else:
        merge_note(target.doc, doc)


def _find_named(cls: ClassDeclaration, name: str, kinds: tuple[str, ...]):
    for kind in kinds:
        for decl in cls.declarations(kind):
            if decl.name == name:
                return decl
    return None


# ── Note synthesis ────────────────────────────────────────────────────

def attribute_notes(kind: str, attributes: AttributeSet, attribute_links: bool = True) -> list[str]:
    """Notes describing the non-default attributes of a section, in header order."""
    noun, wording, link = _NOTE_WORDING[kind]
    notes: list[str] = []
    pair = attributes.access()
    if pair is not None and pair.differs:
        notes.append(f"This {noun} has non-unique access specifier: <tt>{pair.describe()}</tt>")
    for attr in attributes:
        if attr.name.lower() in _ENCODED_ATTRIBUTES or attr.value is False:
            continue
        value = "true" if attr.value is True else attr.value
        notes.append(f"This {noun} has the {wording} @c {attr.name} set to {value}.")
    if notes and attribute_links:
        notes.append(link)
    return notes


def class_notes(attributes: AttributeSet, attribute_links: bool = True) -> list[str]:
    notes: list[str] = []
    for attr in attributes:
        if attr.value is False:
            continue
        if attr.name.lower() == "sealed" and attr.value is True:
            notes.append("This class has the class property <tt>Sealed</tt> and cannot be derived from.")
            continue
        value = "true" if attr.value is True else attr.value
        notes.append(f"This class has the MATLAB class attribute @c {attr.name} set to {value}.")
    if notes and attribute_links:
        notes.append(_CLASS_LINK)
    return notes


def synthesize_notes(unit: SourceUnit, cls: ClassDeclaration, attribute_links: bool = True) -> None:
    for note in class_notes(cls.attributes, attribute_links):
        cls.doc = cls.doc or DocBlock()
        cls.doc.add_note(note)
    for section in cls.sections:
        _section_notes(unit, section, attribute_links)


def _section_notes(unit: SourceUnit, section: Section, attribute_links: bool) -> None:
    notes_by_kind: dict[str, list[str]] = {}
    for decl in section.declarations:
        if decl.kind not in notes_by_kind:
            notes_by_kind[decl.kind] = attribute_notes(decl.kind, section.attributes, attribute_links)
        notes = notes_by_kind[decl.kind]
        if notes:
            decl.doc = decl.doc or DocBlock()
            for note in notes:
                decl.doc.add_note(note)
        if decl.kind == PROPERTY and decl.default_tokens is not None:
            decl.doc = decl.doc or DocBlock()
            if decl.doc.default_text is None:
                decl.doc.default_text = default_text(unit, decl)
                decl.doc.default_is_code = True
        elif decl.kind == EVENT:
            decl.doc = decl.doc or DocBlock()
            if not decl.doc.brief:
                decl.doc.brief = [decl.name]
            decl.doc.tags.append(DocTag("event", decl.name))


def method_body_doc(unit: SourceUnit, method: Method) -> list[str]:
    if method.body_doc_span is None:
        return []
    return comment_lines(unit, _tokens_between(unit, *method.body_doc_span))
