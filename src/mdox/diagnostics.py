"""Diagnostics collected while filtering one source unit.

Every recoverable problem is recorded here instead of being raised, so a
caller always gets the emitted text together with an ordered list of what
went wrong.  The only exception used for control flow is
:class:`FatalParseError`, which never leaves :mod:`mdox.api`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

log = logging.getLogger(__name__)

WARNING = "warning"
ERROR = "error"

# ── Diagnostic codes ──────────────────────────────────────────────────

LEX_ERROR = "lex-error"                      # unterminated string / block comment
ATTRIBUTE_SYNTAX = "attribute-syntax"        # malformed (...) attribute list
BALANCE = "balance"                          # unterminated bracket expression
BODY_MATCH = "body-match"                    # function body without closing end
ABSTRACT_BODY = "abstract-body"              # abstract method with a body
UNRESOLVED_ACCESSOR = "unresolved-accessor"  # get.X / set.X without property X
ORPHANED_DOC = "orphaned-doc"                # @var/@fn tag naming nothing
UNEXPECTED_TOKEN = "unexpected-token"
UNSUPPORTED_BLOCK = "unsupported-block"
FATAL = "fatal"


@dataclass(frozen=True)
class Diagnostic:
    severity: str
    code: str
    message: str
    line: int
    col: int

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR

    def format(self, path: str = "<input>") -> str:
        """Render in the ``file:line:col: severity: message`` form compilers use."""
        return f"{path}:{self.line}:{self.col}: {self.severity}: {self.message} [{self.code}]"

    def to_dict(self) -> dict:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "line": self.line,
            "col": self.col,
        }


@dataclass
class DiagnosticSink:
    """Append-only diagnostic list shared by all passes over one unit."""

    items: list[Diagnostic] = field(default_factory=list)

    def warning(self, code: str, message: str, position: tuple[int, int]) -> Diagnostic:
        return self._add(WARNING, code, message, position)

    def error(self, code: str, message: str, position: tuple[int, int]) -> Diagnostic:
        return self._add(ERROR, code, message, position)

    def _add(self, severity: str, code: str, message: str, position: tuple[int, int]) -> Diagnostic:
        line, col = position
        diag = Diagnostic(severity, code, message, line, col)
        self.items.append(diag)
        log.debug("%d:%d: %s: %s [%s]", line, col, severity, message, code)
        return diag

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.items)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class FatalParseError(Exception):
    """The token stream cannot be parsed any further (e.g. no classdef header)."""

    def __init__(self, message: str, position: tuple[int, int]):
        super().__init__(message)
        self.message = message
        self.position = position
