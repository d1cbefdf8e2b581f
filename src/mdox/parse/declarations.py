"""Declaration extractor: properties, methods and events inside one section.

Each ``extract_*`` function runs with the cursor just past the section
header line and leaves it just past the section's closing ``end``.
"""

from __future__ import annotations

import logging
import re

from mdox.diagnostics import (
    ABSTRACT_BODY,
    BODY_MATCH,
    UNEXPECTED_TOKEN,
    DiagnosticSink,
)
from mdox.model import ABSTRACT, DECLARED, INLINE, Event, Method, Property, Section
from mdox.parse.balancer import find_matching_close, find_statement_end
from mdox.parse.cursor import TokenCursor
from mdox.parse.source import (
    CLOSERS,
    COMMENT,
    IDENT,
    KEYWORD,
    LBRACE,
    LBRACKET,
    LPAREN,
    NEWLINE,
    OPENERS,
    OTHER,
    QUALIFIED,
    RPAREN,
    TRIVIA,
    WHITESPACE,
    SourceUnit,
    Token,
)

log = logging.getLogger(__name__)

# Keywords that open a block closed by ``end``.
BLOCK_OPENERS = frozenset({"if", "for", "parfor", "while", "switch", "try", "spmd", "function"})

_RE_LINE_BREAK = re.compile(r"[ \t]*\n\s*")


# ── Properties ────────────────────────────────────────────────────────

def extract_properties(cur: TokenCursor, section: Section, diagnostics: DiagnosticSink) -> None:
    while _next_member(cur, section, diagnostics):
        tok = cur.peek()
        if tok.kind == IDENT:
            section.declarations.append(_parse_property(cur, diagnostics))
        else:
            _unexpected(cur, tok, "in properties block", diagnostics)


def _parse_property(cur: TokenCursor, diagnostics: DiagnosticSink) -> Property:
    unit = cur.unit
    name_tok = cur.advance()
    last = name_tok
    type_name = None

    tok = cur.peek()
    if tok is not None and tok.kind == LPAREN:
        # size constraint: (1,:)
        last = _skip_group(cur, diagnostics)
        tok = cur.peek()
    if tok is not None and tok.kind in (IDENT, QUALIFIED):
        type_name = cur.text(tok)
        last = cur.advance()
        tok = cur.peek()
    if tok is not None and tok.kind == LBRACE:
        # validator functions: {mustBePositive}
        last = _skip_group(cur, diagnostics)
        tok = cur.peek()

    default_tokens = None
    if cur.is_op(tok, "="):
        cur.advance()
        first = cur.peek_index()
        stop = find_statement_end(unit, first, diagnostics)
        end = stop
        while end > first and unit.tokens[end - 1].kind in (WHITESPACE, NEWLINE):
            end -= 1
        if end > first:
            default_tokens = (first, end)
            last = unit.tokens[end - 1]
        cur.pos = stop

    has_terminator = False
    tok = cur.peek()
    if cur.is_op(tok, ";"):
        has_terminator = True
        last = cur.advance()
    elif not cur.at_line_end():
        _unexpected(cur, tok, f"after property {cur.text(name_tok)}", diagnostics)

    return Property(
        name=cur.text(name_tok),
        start=name_tok.start,
        end=last.end,
        line=unit.line_of(name_tok.start),
        end_line=unit.line_of(last.end - 1),
        type_name=type_name,
        default_tokens=default_tokens,
        has_terminator=has_terminator,
    )


def default_text(unit: SourceUnit, prop: Property) -> str | None:
    """Default expression as written, every physical line kept, ``...`` markers removed."""
    if prop.default_tokens is None:
        return None
    first, last = prop.default_tokens
    return unit.logical_text(first, last, joiner="\n").strip()


def initializer_text(unit: SourceUnit, prop: Property) -> str | None:
    """Default expression folded onto one line."""
    if prop.default_tokens is None:
        return None
    first, last = prop.default_tokens
    return _RE_LINE_BREAK.sub(" ", unit.logical_text(first, last, joiner="\n")).strip()


# ── Events ────────────────────────────────────────────────────────────

def extract_events(cur: TokenCursor, section: Section, diagnostics: DiagnosticSink) -> None:
    unit = cur.unit
    while _next_member(cur, section, diagnostics):
        tok = cur.peek()
        if tok.kind != IDENT:
            _unexpected(cur, tok, "in events block", diagnostics)
            continue
        cur.advance()
        if not cur.at_line_end():
            _unexpected(cur, cur.peek(), f"after event {cur.text(tok)}", diagnostics)
        section.declarations.append(Event(
            name=cur.text(tok),
            start=tok.start,
            end=tok.end,
            line=unit.line_of(tok.start),
            end_line=unit.line_of(tok.start),
        ))


# ── Methods ───────────────────────────────────────────────────────────

def extract_methods(cur: TokenCursor, section: Section, diagnostics: DiagnosticSink) -> None:
    abstract = section.attributes.flag("Abstract")
    static = section.attributes.flag("Static")
    while _next_member(cur, section, diagnostics):
        tok = cur.peek()
        if cur.is_keyword(tok, "function"):
            method = _parse_function(cur, abstract, diagnostics)
        elif tok.kind in (IDENT, QUALIFIED, LBRACKET):
            method = _parse_declared(cur, abstract, diagnostics)
        else:
            _unexpected(cur, tok, "in methods block", diagnostics)
            continue
        if method is not None:
            method.is_static = static
            section.declarations.append(method)
    log.debug(
        "methods block at line %d: %d methods%s",
        section.line, len(section.declarations), " (abstract)" if abstract else "",
    )


def _parse_function(cur: TokenCursor, abstract: bool, diagnostics: DiagnosticSink) -> Method | None:
    unit = cur.unit
    fn_tok = cur.advance()
    signature = _parse_signature(cur, diagnostics)
    if signature is None:
        _unexpected(cur, cur.peek(), "in function header", diagnostics, skip=False)
    nl = cur.skip_line()
    header_end = unit.tokens[nl].start if nl < len(unit.tokens) else len(unit.text)
    body_first = nl + 1

    if abstract and not _has_statements(cur):
        body_kind, body_span, end = ABSTRACT, None, header_end
        owned = _owned_end(cur)
        if owned is not None:
            cur.pos = owned + 1
            end = unit.tokens[owned].end
    else:
        end_idx = match_block_end(unit, body_first, diagnostics, fn_tok)
        cur.pos = end_idx + 1
        end = unit.tokens[end_idx].end if end_idx < len(unit.tokens) else len(unit.text)
        body_stop = unit.tokens[end_idx].start if end_idx < len(unit.tokens) else len(unit.text)
        body_start = min(header_end + 1, body_stop)
        if abstract:
            name = signature[1] if signature else "function"
            diagnostics.warning(
                ABSTRACT_BODY,
                f"abstract method {name} has a body; body discarded",
                unit.position(fn_tok.start),
            )
            body_kind, body_span = ABSTRACT, None
        else:
            body_kind, body_span = INLINE, (body_start, body_stop)

    if signature is None:
        return None
    outputs, name, params = signature
    method = Method(
        name=name,
        start=fn_tok.start,
        end=end,
        line=unit.line_of(fn_tok.start),
        end_line=unit.line_of(header_end),
        params=params,
        outputs=outputs,
        body_kind=body_kind,
        body_span=body_span,
    )
    if end > header_end:
        method.body_doc_span = _leading_comment_span(unit, body_first)
    return method


def _parse_declared(cur: TokenCursor, abstract: bool, diagnostics: DiagnosticSink) -> Method | None:
    unit = cur.unit
    first = cur.peek()
    signature = _parse_signature(cur, diagnostics)
    if signature is None:
        _unexpected(cur, first, "in methods block", diagnostics)
        return None
    last = unit.tokens[min(cur.pos, len(unit.tokens)) - 1]
    if cur.is_op(cur.peek(), ";"):
        last = cur.advance()
    elif not cur.at_line_end():
        _unexpected(cur, cur.peek(), f"after signature of {signature[1]}", diagnostics, skip=False)
    cur.skip_line()
    outputs, name, params = signature
    return Method(
        name=name,
        start=first.start,
        end=last.end,
        line=unit.line_of(first.start),
        end_line=unit.line_of(last.end - 1),
        params=params,
        outputs=outputs,
        body_kind=ABSTRACT if abstract else DECLARED,
    )


def _parse_signature(
    cur: TokenCursor, diagnostics: DiagnosticSink
) -> tuple[list[str], str, list[str]] | None:
    """``[o1, o2] = name(p1, p2)`` / ``o = name(...)`` / ``name(...)`` / ``name``."""
    unit = cur.unit
    outputs: list[str] = []
    tok = cur.peek()
    if tok is None:
        return None
    if tok.kind == LBRACKET:
        close = find_matching_close(unit, cur.peek_index(), diagnostics)
        outputs = _names_between(unit, cur.peek_index() + 1, close)
        cur.pos = min(close + 1, len(unit.tokens))
        if not cur.is_op(cur.peek(), "="):
            return None
        cur.advance()
    elif tok.kind == IDENT and cur.is_op(cur.peek(1), "="):
        outputs = [cur.text(tok)]
        cur.advance()
        cur.advance()

    name_tok = cur.peek()
    if name_tok is None or name_tok.kind not in (IDENT, QUALIFIED):
        return None
    cur.advance()

    params: list[str] = []
    tok = cur.peek()
    if tok is not None and tok.kind == LPAREN:
        open_idx = cur.peek_index()
        close = find_matching_close(unit, open_idx, diagnostics)
        params = _names_between(unit, open_idx + 1, close)
        cur.pos = min(close + 1, len(unit.tokens))
    return outputs, cur.text(name_tok), params


def _names_between(unit: SourceUnit, first: int, last: int) -> list[str]:
    names: list[str] = []
    for tok in unit.tokens[first:last]:
        if tok.kind == IDENT:
            names.append(unit.token_text(tok))
        elif tok.kind == OTHER and unit.token_text(tok) == "~":
            names.append("~")
    return names


def _has_statements(cur: TokenCursor) -> bool:
    """True when the next statement is neither ``end`` nor another method."""
    probe = TokenCursor(cur.unit, cur.pos)
    probe.skip_blank()
    tok = probe.peek()
    if tok is None or probe.is_keyword(tok, "end", "function"):
        return False
    if tok.kind not in (IDENT, QUALIFIED, LBRACKET):
        return True
    signature = _parse_signature(probe, DiagnosticSink())
    if signature is None or not probe.at_line_end():
        return True
    # a bare `name` line reads as a call; `name(...)` and `a = name` read as declarations
    outputs = signature[0]
    return not outputs and cur.unit.tokens[probe.pos - 1].kind != RPAREN


def _owned_end(cur: TokenCursor) -> int | None:
    """Index of an empty abstract function's own ``end``, if it has one.

    The run of ``end`` keywords after the header also closes the section
    and maybe the class; what follows the run tells how many are left.
    """
    probe = TokenCursor(cur.unit, cur.pos)
    ends: list[int] = []
    while True:
        probe.skip_blank()
        tok = probe.peek()
        if not probe.is_keyword(tok, "end"):
            break
        ends.append(probe.peek_index())
        probe.advance()
    if tok is None:
        needed = 3
    elif probe.is_keyword(tok, "properties", "methods", "events", "enumeration"):
        needed = 2
    else:
        needed = 1
    return ends[0] if len(ends) >= needed else None


def match_block_end(
    unit: SourceUnit, start: int, diagnostics: DiagnosticSink, opener: Token
) -> int:
    """Index of the ``end`` closing the block whose body starts at token *start*.

    Block keywords are only counted at bracket depth zero, so the ``end``
    in ``a(end)`` or ``x{end+1}`` is an index and not a closer.
    """
    tokens = unit.tokens
    blocks = 1
    brackets = 0
    statement_start = True
    for idx in range(start, len(tokens)):
        tok = tokens[idx]
        kind = tok.kind
        if kind in TRIVIA or kind == COMMENT:
            continue
        if kind == NEWLINE or (brackets == 0 and kind == OTHER and unit.token_text(tok) in (";", ",")):
            statement_start = True
            continue
        if kind in OPENERS:
            brackets += 1
        elif kind in CLOSERS:
            brackets = max(0, brackets - 1)
        elif kind == KEYWORD and brackets == 0:
            word = unit.token_text(tok)
            if word in BLOCK_OPENERS:
                blocks += 1
            elif word == "arguments" and statement_start and _opens_arguments(unit, idx):
                blocks += 1
            elif word == "end":
                blocks -= 1
                if blocks == 0:
                    return idx
        statement_start = False
    diagnostics.warning(
        BODY_MATCH,
        "function body is not closed by 'end'; truncated at end of input",
        unit.position(opener.start),
    )
    return len(tokens)


def _opens_arguments(unit: SourceUnit, idx: int) -> bool:
    tokens = unit.tokens
    for pos in range(idx + 1, len(tokens)):
        tok = tokens[pos]
        if tok.kind in TRIVIA:
            continue
        return tok.kind in (NEWLINE, COMMENT, LPAREN)
    return True


def _leading_comment_span(unit: SourceUnit, first: int) -> tuple[int, int] | None:
    """Span of the comment block opening a function body, if any."""
    start = end = None
    last_line = None
    tokens = unit.tokens
    for idx in range(first, len(tokens)):
        tok = tokens[idx]
        if tok.kind in (WHITESPACE, NEWLINE):
            continue
        if tok.kind != COMMENT:
            break
        line = unit.line_of(tok.start)
        if last_line is not None and line != last_line + 1:
            break
        if start is None:
            start = tok.start
        end = tok.end
        last_line = unit.line_of(tok.end)
        if tok.block:
            break
    if start is None:
        return None
    return start, end


# ── Shared helpers ────────────────────────────────────────────────────

def _next_member(cur: TokenCursor, section: Section, diagnostics: DiagnosticSink) -> bool:
    """Advance to the next member; False once the section's ``end`` is consumed."""
    cur.skip_blank()
    tok = cur.peek()
    if tok is None:
        diagnostics.warning(
            BODY_MATCH,
            f"{section.kind} block is not closed by 'end'",
            cur.unit.position(section.start),
        )
        section.end = len(cur.unit.text)
        return False
    if cur.is_keyword(tok, "end"):
        cur.advance()
        section.end = tok.end
        return False
    return True


def _skip_group(cur: TokenCursor, diagnostics: DiagnosticSink) -> Token:
    close = find_matching_close(cur.unit, cur.peek_index(), diagnostics)
    cur.pos = min(close + 1, len(cur.unit.tokens))
    return cur.unit.tokens[min(close, len(cur.unit.tokens) - 1)]


def _unexpected(
    cur: TokenCursor, tok: Token | None, where: str, diagnostics: DiagnosticSink, skip: bool = True
) -> None:
    diagnostics.warning(
        UNEXPECTED_TOKEN, f"unexpected '{cur.text(tok)}' {where}", cur.position(tok)
    )
    if skip:
        cur.skip_line()
