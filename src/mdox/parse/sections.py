"""Section state machine: classdef header, member sections and attribute lists.

Walks the token stream at class-body granularity.  Each ``properties``,
``methods`` or ``events`` keyword opens a section whose attribute list
applies to every declaration until the matching ``end``; the declarations
themselves are handed to :mod:`mdox.parse.declarations`.
"""

from __future__ import annotations

import logging

from mdox.diagnostics import (
    ATTRIBUTE_SYNTAX,
    BODY_MATCH,
    UNEXPECTED_TOKEN,
    UNSUPPORTED_BLOCK,
    DiagnosticSink,
    FatalParseError,
)
from mdox.model import (
    EVENTS,
    METHODS,
    PROPERTIES,
    AccessPair,
    Attribute,
    AttributeSet,
    ClassDeclaration,
    Section,
)
from mdox.parse.cursor import TokenCursor
from mdox.parse.declarations import extract_events, extract_methods, extract_properties
from mdox.parse.source import (
    CLOSERS,
    IDENT,
    KEYWORD,
    LPAREN,
    NEWLINE,
    OPENERS,
    OTHER,
    QUALIFIED,
    STRING,
    TRIVIA,
    SourceUnit,
    Token,
)

log = logging.getLogger(__name__)

_EXTRACTORS = {
    PROPERTIES: extract_properties,
    METHODS: extract_methods,
    EVENTS: extract_events,
}

# Attributes folded into the compound Access value, with the sides they set.
_ACCESS_SIDES = {
    "access": ("set", "get"),
    "setaccess": ("set",),
    "getaccess": ("get",),
}
_DEFAULT_ACCESS = "public"


def parse_class(unit: SourceUnit, diagnostics: DiagnosticSink) -> ClassDeclaration:
    """Parse the single classdef of *unit*.

    Raises :class:`FatalParseError` when there is no ``classdef`` header or
    the header has no class name; everything else is recovered from.
    """
    cur = TokenCursor(unit)
    cur.skip_blank()
    head = cur.peek()
    if not cur.is_keyword(head, "classdef"):
        raise FatalParseError("no classdef header found", cur.position(head))
    cur.advance()

    attributes = AttributeSet()
    tok = cur.peek()
    if tok is not None and tok.kind == LPAREN:
        attributes = parse_attribute_list(cur, diagnostics)

    name_tok = cur.peek()
    if name_tok is None or name_tok.kind != IDENT:
        raise FatalParseError("classdef header without class name", cur.position(name_tok))
    cur.advance()

    superclasses = _parse_superclasses(cur, diagnostics)
    if not cur.at_line_end():
        stray = cur.peek()
        diagnostics.warning(
            UNEXPECTED_TOKEN,
            f"unexpected '{cur.text(stray)}' in classdef header",
            cur.position(stray),
        )
    nl = cur.skip_line()
    header_end = unit.tokens[nl].start if nl < len(unit.tokens) else len(unit.text)

    cls = ClassDeclaration(
        name=cur.text(name_tok),
        line=unit.line_of(head.start),
        header_end=header_end,
        header_end_line=unit.line_of(header_end),
        superclasses=superclasses,
        attributes=attributes,
        start=head.start,
    )
    _parse_body(cur, cls, diagnostics)
    log.debug("class %s: %d sections", cls.name, len(cls.sections))
    return cls


# ── Header ────────────────────────────────────────────────────────────

def _parse_superclasses(cur: TokenCursor, diagnostics: DiagnosticSink) -> list[str]:
    if not cur.is_op(cur.peek(), "<"):
        return []
    cur.advance()
    names: list[str] = []
    while True:
        tok = cur.peek()
        if tok is None or tok.kind not in (IDENT, QUALIFIED):
            diagnostics.warning(
                UNEXPECTED_TOKEN, "expected a superclass name after '<' or '&'", cur.position(tok)
            )
            break
        names.append(cur.text(tok))
        cur.advance()
        if not cur.is_op(cur.peek(), "&"):
            break
        cur.advance()
    return names


# ── Class body ────────────────────────────────────────────────────────

def _parse_body(cur: TokenCursor, cls: ClassDeclaration, diagnostics: DiagnosticSink) -> None:
    unit = cur.unit
    while True:
        cur.skip_blank()
        tok = cur.peek()
        if tok is None:
            diagnostics.warning(
                BODY_MATCH, f"classdef {cls.name} is not closed by 'end'", cur.position(None)
            )
            cls.end = len(unit.text)
            return
        word = cur.text(tok) if tok.kind == KEYWORD else ""
        if word == "end":
            cur.advance()
            cls.end = tok.end
            return
        if word in _EXTRACTORS:
            cls.sections.append(_parse_section(cur, tok, diagnostics))
        elif word == "enumeration":
            diagnostics.warning(
                UNSUPPORTED_BLOCK, "enumeration block is not documented", cur.position(tok)
            )
            cur.advance()
            _skip_block(cur)
        else:
            diagnostics.warning(
                UNEXPECTED_TOKEN,
                f"unexpected '{cur.text(tok)}' at class level",
                cur.position(tok),
            )
            cur.skip_line()


def _parse_section(cur: TokenCursor, keyword: Token, diagnostics: DiagnosticSink) -> Section:
    kind = cur.text(keyword)
    cur.advance()
    attributes = AttributeSet()
    tok = cur.peek()
    if tok is not None and tok.kind == LPAREN:
        attributes = parse_attribute_list(cur, diagnostics)
    if not cur.at_line_end():
        stray = cur.peek()
        diagnostics.warning(
            UNEXPECTED_TOKEN, f"unexpected '{cur.text(stray)}' after {kind}", cur.position(stray)
        )
    cur.skip_line()

    section = Section(
        kind=kind,
        attributes=attributes,
        start=keyword.start,
        line=cur.unit.line_of(keyword.start),
    )
    _EXTRACTORS[kind](cur, section, diagnostics)
    return section


def _skip_block(cur: TokenCursor) -> None:
    """Skip to just past the ``end`` closing a block without nested blocks."""
    depth = 0
    while True:
        tok = cur.advance()
        if tok is None:
            return
        if tok.kind in OPENERS:
            depth += 1
        elif tok.kind in CLOSERS:
            depth = max(0, depth - 1)
        elif depth == 0 and cur.is_keyword(tok, "end"):
            return


# ── Attribute lists ───────────────────────────────────────────────────

def parse_attribute_list(cur: TokenCursor, diagnostics: DiagnosticSink) -> AttributeSet:
    """Parse ``(Name, ~Name, Name = value, ...)`` with the cursor on ``(``.

    The cursor ends up just past the closing paren.  A malformed list
    yields an ``attribute-syntax`` warning and an empty set.
    """
    unit = cur.unit
    open_idx = cur.peek_index()
    close_idx = _close_on_line(unit, open_idx)
    if close_idx is None:
        diagnostics.warning(
            ATTRIBUTE_SYNTAX, "attribute list is not closed on its line",
            unit.position(unit.tokens[open_idx].start),
        )
        cur.pos = open_idx
        while not cur.at_line_end():
            cur.advance()
        return AttributeSet()

    cur.pos = close_idx + 1
    groups = _split_groups(unit, open_idx + 1, close_idx)
    parsed: list[Attribute] = []
    for group in groups:
        attr = _parse_attribute(unit, group)
        if attr is None:
            where = group[0] if group else unit.tokens[open_idx]
            diagnostics.warning(
                ATTRIBUTE_SYNTAX,
                "malformed attribute list; section treated as having no attributes",
                unit.position(where.start),
            )
            return AttributeSet()
        parsed.append(attr)
    return AttributeSet(_fold_access(parsed))


def _close_on_line(unit: SourceUnit, open_idx: int) -> int | None:
    depth = 0
    for idx in range(open_idx, len(unit.tokens)):
        tok = unit.tokens[idx]
        if tok.kind in OPENERS:
            depth += 1
        elif tok.kind in CLOSERS:
            depth -= 1
            if depth == 0:
                return idx
        elif tok.kind == NEWLINE:
            return None
    return None


def _split_groups(unit: SourceUnit, first: int, last: int) -> list[list[Token]]:
    groups: list[list[Token]] = [[]]
    depth = 0
    for tok in unit.tokens[first:last]:
        if tok.kind in TRIVIA or tok.kind == NEWLINE:
            continue
        if tok.kind in OPENERS:
            depth += 1
        elif tok.kind in CLOSERS:
            depth -= 1
        elif depth == 0 and tok.kind == OTHER and unit.token_text(tok) == ",":
            groups.append([])
            continue
        groups[-1].append(tok)
    if groups == [[]]:
        return []
    return groups


def _parse_attribute(unit: SourceUnit, group: list[Token]) -> Attribute | None:
    if not group:
        return None
    text = unit.token_text
    negated = group[0].kind == OTHER and text(group[0]) in ("~", "!")
    if negated:
        group = group[1:]
        if len(group) != 1:
            return None
    name_tok = group[0]
    if name_tok.kind not in (IDENT, KEYWORD):
        return None
    line, col = unit.position(name_tok.start)
    name = text(name_tok)
    if negated:
        return Attribute(name, False, line, col)
    if len(group) == 1:
        return Attribute(name, True, line, col)
    if len(group) < 3 or text(group[1]) != "=":
        return None
    raw = unit.slice(group[2].start, group[-1].end)
    return Attribute(name, _attribute_value(unit, group[2:], raw), line, col)


def _attribute_value(unit: SourceUnit, tokens: list[Token], raw: str) -> bool | str:
    lowered = raw.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if len(tokens) == 1 and tokens[0].kind == STRING:
        return unit.string_value(tokens[0])[1:-1]
    return raw


def _fold_access(attributes: list[Attribute]) -> list[Attribute]:
    """Merge Access/SetAccess/GetAccess into one compound ``Access`` entry."""
    sides: dict[str, str] = {}
    slot: int | None = None
    folded: list[Attribute] = []
    first: Attribute | None = None
    for attr in attributes:
        targets = _ACCESS_SIDES.get(attr.name.lower())
        if targets is None:
            folded.append(attr)
            continue
        value = attr.value if isinstance(attr.value, str) else _DEFAULT_ACCESS
        for side in targets:
            sides[side] = value
        if slot is None:
            slot = len(folded)
            first = attr
            folded.append(attr)
    if slot is not None:
        pair = AccessPair(sides.get("set", _DEFAULT_ACCESS), sides.get("get", _DEFAULT_ACCESS))
        folded[slot] = Attribute("Access", pair, first.line, first.col)
    return folded
