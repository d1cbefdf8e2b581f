"""Source unit and token spans.

All tokens are (start, end) offsets into the single text buffer owned by
:class:`SourceUnit`; text is only sliced out when a pass actually needs it.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass, field

# ── Token kinds ───────────────────────────────────────────────────────

IDENT = "ident"
QUALIFIED = "qualified"        # dotted name: a.b.c, get.Prop
STRING = "string"
NUMBER = "number"
KEYWORD = "keyword"
COMMENT = "comment"
WHITESPACE = "whitespace"
NEWLINE = "newline"
CONTINUATION = "continuation"  # "..." up to and including the newline
OTHER = "other"

LPAREN = "lparen"
RPAREN = "rparen"
LBRACKET = "lbracket"
RBRACKET = "rbracket"
LBRACE = "lbrace"
RBRACE = "rbrace"

OPENERS = frozenset({LPAREN, LBRACKET, LBRACE})
CLOSERS = frozenset({RPAREN, RBRACKET, RBRACE})
BRACKET_KINDS = {
    "(": LPAREN,
    ")": RPAREN,
    "[": LBRACKET,
    "]": RBRACKET,
    "{": LBRACE,
    "}": RBRACE,
}

# Tokens that never terminate or start a statement on their own.
TRIVIA = frozenset({WHITESPACE, CONTINUATION})

_STRING_CONTINUATION_RE = re.compile(r"\.\.\.[ \t]*\n")


@dataclass(frozen=True, slots=True)
class Token:
    kind: str
    start: int
    end: int
    # Only set for strings that crossed a continuation marker.
    logical: str | None = None
    # True for %{ ... %} block comments.
    block: bool = False


@dataclass
class SourceUnit:
    """The full input text plus its token stream."""

    text: str
    tokens: list[Token] = field(default_factory=list)
    _line_starts: list[int] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        # Offsets are only meaningful on \n-terminated lines.
        self.text = self.text.replace("\r\n", "\n").replace("\r", "\n")
        self._line_starts = [0]
        for idx, ch in enumerate(self.text):
            if ch == "\n":
                self._line_starts.append(idx + 1)

    def slice(self, start: int, end: int) -> str:
        return self.text[start:end]

    def token_text(self, token: Token) -> str:
        return self.text[token.start:token.end]

    def string_value(self, token: Token) -> str:
        """Logical text of a string token (continuation markers removed)."""
        if token.logical is not None:
            return token.logical
        return self.token_text(token)

    def position(self, offset: int) -> tuple[int, int]:
        """1-based (line, column) of *offset*."""
        line_idx = bisect.bisect_right(self._line_starts, offset) - 1
        return line_idx + 1, offset - self._line_starts[line_idx] + 1

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self._line_starts, offset)

    def line_start(self, line: int) -> int:
        return self._line_starts[line - 1]

    def line_end(self, line: int) -> int:
        """Offset of the newline ending *line* (or len(text) for the last line)."""
        if line < len(self._line_starts):
            return self._line_starts[line] - 1
        return len(self.text)

    def logical_text(self, first: int, last: int, joiner: str = "\n") -> str:
        """Text of tokens[first:last] with continuation markers removed.

        Each ``...`` marker (and the comment behind it) is replaced by
        *joiner*, so the default keeps the physical line structure.
        Comments inside the range are dropped.
        """
        parts: list[str] = []
        for tok in self.tokens[first:last]:
            if tok.kind == CONTINUATION:
                parts.append(joiner)
            elif tok.kind == COMMENT:
                continue
            elif tok.kind == STRING and tok.logical is not None:
                parts.append(_STRING_CONTINUATION_RE.sub(joiner, self.token_text(tok)))
            else:
                parts.append(self.token_text(tok))
        return "".join(parts)
