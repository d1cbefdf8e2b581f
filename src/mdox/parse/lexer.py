"""MATLAB lexer: raw text to classified spans (no semantic interpretation)."""

from __future__ import annotations

import logging
import re

from mdox.diagnostics import LEX_ERROR, DiagnosticSink
from mdox.parse.source import (
    BRACKET_KINDS,
    CLOSERS,
    COMMENT,
    CONTINUATION,
    IDENT,
    KEYWORD,
    NEWLINE,
    NUMBER,
    OTHER,
    QUALIFIED,
    STRING,
    WHITESPACE,
    SourceUnit,
    Token,
)

log = logging.getLogger(__name__)

KEYWORDS = frozenset({
    "classdef", "properties", "methods", "events", "enumeration",
    "function", "end", "arguments",
    "if", "elseif", "else", "for", "parfor", "while", "switch", "case",
    "otherwise", "try", "catch", "spmd", "return", "break", "continue",
    "global", "persistent",
})

# ── Regex patterns ────────────────────────────────────────────────────

_RE_IDENT = re.compile(r"[A-Za-z_]\w*")
_RE_NUMBER = re.compile(
    r"(?:0[xX][0-9A-Fa-f]+"
    r"|(?:\d+(?:\.(?![.*/\\^'])\d*)?|\.\d+)(?:[eEdD][+-]?\d+)?)"
    r"[ij]?"
)
_RE_OPERATOR = re.compile(r"==|~=|<=|>=|&&|\|\||\.\*|\./|\.\\|\.\^|\.'")
_RE_STRING_CONTINUATION = re.compile(r"\.\.\.[ \t]*\n")

_HSPACE = " \t\f\v"
# A quote right after one of these (with no space in between) is a transpose.
_TRANSPOSE_AFTER = frozenset({IDENT, QUALIFIED, NUMBER, STRING}) | CLOSERS


def tokenize(unit: SourceUnit, diagnostics: DiagnosticSink) -> list[Token]:
    """Tokenize *unit* in a single forward scan and store the result on it."""
    text = unit.text
    n = len(text)
    tokens: list[Token] = []
    i = 0

    while i < n:
        ch = text[i]

        if ch == "\n":
            tokens.append(Token(NEWLINE, i, i + 1))
            i += 1
            continue

        if ch in _HSPACE or ch == "\r":
            j = i
            while j < n and (text[j] in _HSPACE or text[j] == "\r"):
                j += 1
            tokens.append(Token(WHITESPACE, i, j))
            i = j
            continue

        if ch == "%":
            if _opens_block_comment(text, i):
                j = _scan_block_comment(unit, i, diagnostics)
                tokens.append(Token(COMMENT, i, j, block=True))
            else:
                j = _line_end(text, i)
                tokens.append(Token(COMMENT, i, j))
            i = j
            continue

        if text.startswith("...", i):
            j = _line_end(text, i)
            if j < n:
                j += 1  # the newline belongs to the marker
            tokens.append(Token(CONTINUATION, i, j))
            i = j
            continue

        m = _RE_OPERATOR.match(text, i)
        if m:
            tokens.append(Token(OTHER, i, m.end()))
            i = m.end()
            continue

        if ch == "'" and _is_transpose(text, tokens, i):
            tokens.append(Token(OTHER, i, i + 1))
            i += 1
            continue

        if ch in "'\"":
            tok = _scan_string(unit, i, diagnostics)
            tokens.append(tok)
            i = tok.end
            continue

        if ch.isdigit() or (ch == "." and i + 1 < n and text[i + 1].isdigit()):
            m = _RE_NUMBER.match(text, i)
            if m and m.end() > i:
                tokens.append(Token(NUMBER, i, m.end()))
                i = m.end()
                continue

        m = _RE_IDENT.match(text, i)
        if m:
            j = m.end()
            qualified = False
            while j + 1 < n and text[j] == ".":
                part = _RE_IDENT.match(text, j + 1)
                if part is None:
                    break
                j = part.end()
                qualified = True
            if qualified:
                kind = QUALIFIED
            elif m.group(0) in KEYWORDS:
                kind = KEYWORD
            else:
                kind = IDENT
            tokens.append(Token(kind, i, j))
            i = j
            continue

        if ch in BRACKET_KINDS:
            tokens.append(Token(BRACKET_KINDS[ch], i, i + 1))
            i += 1
            continue

        tokens.append(Token(OTHER, i, i + 1))
        i += 1

    unit.tokens = tokens
    log.debug("tokenized %d chars into %d tokens", n, len(tokens))
    return tokens


# ── Helpers ───────────────────────────────────────────────────────────

def _line_end(text: str, i: int) -> int:
    j = text.find("\n", i)
    return len(text) if j == -1 else j


def _is_transpose(text: str, tokens: list[Token], i: int) -> bool:
    if not tokens or tokens[-1].end != i:
        return False
    prev = tokens[-1]
    if prev.kind == OTHER:
        return text[prev.start:prev.end] in ("'", ".'")
    return prev.kind in _TRANSPOSE_AFTER


def _opens_block_comment(text: str, i: int) -> bool:
    """``%{`` only opens a block comment when it is alone on its line."""
    if not text.startswith("%{", i):
        return False
    line_start = text.rfind("\n", 0, i) + 1
    if text[line_start:i].strip():
        return False
    return not text[i + 2:_line_end(text, i)].strip()


def _scan_block_comment(unit: SourceUnit, i: int, diagnostics: DiagnosticSink) -> int:
    text = unit.text
    depth = 0
    pos = i
    while pos < len(text):
        end = _line_end(text, pos)
        stripped = text[pos:end].strip()
        if stripped == "%{":
            depth += 1
        elif stripped == "%}":
            depth -= 1
            if depth == 0:
                return end
        pos = end + 1
    diagnostics.error(LEX_ERROR, "unterminated block comment", unit.position(i))
    return len(text)


def _scan_string(unit: SourceUnit, i: int, diagnostics: DiagnosticSink) -> Token:
    text = unit.text
    n = len(text)
    quote = text[i]
    j = i + 1
    continued = False
    while True:
        if j >= n or text[j] == "\n":
            if j < n and text[i:j].rstrip(" \t").endswith("..."):
                continued = True
                j += 1
                continue
            diagnostics.error(LEX_ERROR, "unterminated string literal", unit.position(i))
            j = n
            break
        if text[j] == quote:
            if j + 1 < n and text[j + 1] == quote:
                j += 2
                continue
            j += 1
            break
        j += 1
    logical = _RE_STRING_CONTINUATION.sub("", text[i:j]) if continued else None
    return Token(STRING, i, j, logical=logical)
