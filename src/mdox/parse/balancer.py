"""Bracket/quote balancer: find where an expression ends.

Both scans walk the token stream forward once.  Quoted text is a single
STRING token, so brackets inside literals are inert by construction.
Only simple depth counting is done: any opener increments, any closer
decrements, and bracket kinds are not required to pair up.
"""

from __future__ import annotations

from mdox.diagnostics import BALANCE, DiagnosticSink
from mdox.parse.source import CLOSERS, COMMENT, NEWLINE, OPENERS, OTHER, SourceUnit


def find_statement_end(unit: SourceUnit, start: int, diagnostics: DiagnosticSink) -> int:
    """Index of the token terminating the statement that begins at *start*.

    At depth zero a newline, a comment or ``;`` ends the statement.  Inside
    brackets newlines are row separators and the scan continues.  When the
    input ends with brackets still open a ``balance`` warning is recorded
    and ``len(tokens)`` is returned.
    """
    tokens = unit.tokens
    depth = 0
    opened_at = start
    for idx in range(start, len(tokens)):
        tok = tokens[idx]
        kind = tok.kind
        if kind in OPENERS:
            if depth == 0:
                opened_at = idx
            depth += 1
        elif kind in CLOSERS:
            if depth > 0:
                depth -= 1
        elif depth == 0:
            if kind in (NEWLINE, COMMENT):
                return idx
            if kind == OTHER and unit.token_text(tok) == ";":
                return idx
    if depth > 0:
        diagnostics.warning(
            BALANCE,
            "unterminated bracket expression; truncated at end of input",
            unit.position(tokens[opened_at].start),
        )
    return len(tokens)


def find_matching_close(unit: SourceUnit, open_index: int, diagnostics: DiagnosticSink) -> int:
    """Index of the closer that brings the depth opened at *open_index* back to zero."""
    tokens = unit.tokens
    depth = 0
    for idx in range(open_index, len(tokens)):
        kind = tokens[idx].kind
        if kind in OPENERS:
            depth += 1
        elif kind in CLOSERS:
            depth -= 1
            if depth == 0:
                return idx
    diagnostics.warning(
        BALANCE,
        "unterminated bracket expression; truncated at end of input",
        unit.position(tokens[open_index].start),
    )
    return len(tokens)
