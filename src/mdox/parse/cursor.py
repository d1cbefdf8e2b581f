"""Forward-only cursor over a unit's token stream."""

from __future__ import annotations

from mdox.parse.source import (
    COMMENT,
    KEYWORD,
    NEWLINE,
    OTHER,
    TRIVIA,
    SourceUnit,
    Token,
)

_SEPARATORS = frozenset({";", ","})


class TokenCursor:
    def __init__(self, unit: SourceUnit, pos: int = 0):
        self.unit = unit
        self.tokens = unit.tokens
        self.pos = pos

    # ── Lookahead ─────────────────────────────────────────────────────

    def peek_index(self, start: int | None = None) -> int:
        """Index of the next non-trivia token (whitespace and ``...`` are trivia)."""
        idx = self.pos if start is None else start
        while idx < len(self.tokens) and self.tokens[idx].kind in TRIVIA:
            idx += 1
        return idx

    def peek(self, offset: int = 0) -> Token | None:
        idx = self.peek_index()
        for _ in range(offset):
            if idx >= len(self.tokens):
                return None
            idx = self.peek_index(idx + 1)
        return self.tokens[idx] if idx < len(self.tokens) else None

    def advance(self) -> Token | None:
        idx = self.peek_index()
        if idx >= len(self.tokens):
            self.pos = idx
            return None
        self.pos = idx + 1
        return self.tokens[idx]

    # ── Token predicates ──────────────────────────────────────────────

    def text(self, tok: Token | None) -> str:
        return "" if tok is None else self.unit.token_text(tok)

    def is_keyword(self, tok: Token | None, *words: str) -> bool:
        return tok is not None and tok.kind == KEYWORD and self.text(tok) in words

    def is_op(self, tok: Token | None, op: str) -> bool:
        return tok is not None and tok.kind == OTHER and self.text(tok) == op

    def at_line_end(self) -> bool:
        tok = self.peek()
        return tok is None or tok.kind in (NEWLINE, COMMENT) or (
            tok.kind == OTHER and self.text(tok) in _SEPARATORS
        )

    def position(self, tok: Token | None) -> tuple[int, int]:
        if tok is None:
            return self.unit.position(len(self.unit.text))
        return self.unit.position(tok.start)

    # ── Skipping ──────────────────────────────────────────────────────

    def skip_blank(self) -> None:
        """Skip trivia, newlines, comments and statement separators."""
        while self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            if tok.kind in TRIVIA or tok.kind in (NEWLINE, COMMENT):
                self.pos += 1
            elif tok.kind == OTHER and self.text(tok) in _SEPARATORS:
                self.pos += 1
            else:
                break

    def skip_line(self) -> int:
        """Move past the next newline; returns that newline's index (or len(tokens))."""
        while self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            self.pos += 1
            if tok.kind == NEWLINE:
                return self.pos - 1
        return len(self.tokens)
