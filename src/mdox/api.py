"""Library entry points: one source unit in, emitted text plus diagnostics out.

Passes always run in the same order::

    tokenize -> parse_class -> associate -> route_accessors -> emit

No exception leaves this module for malformed input.  A unit that cannot
be parsed at all (no ``classdef`` header) yields empty output and ends
its diagnostic list with a single ``fatal`` error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mdox.config import FilterConfig
from mdox.diagnostics import FATAL, Diagnostic, DiagnosticSink, FatalParseError
from mdox.docs.accessors import route_accessors
from mdox.docs.comments import associate
from mdox.model import ClassDeclaration
from mdox.output.emitter import emit
from mdox.parse.lexer import tokenize
from mdox.parse.sections import parse_class
from mdox.parse.source import SourceUnit

log = logging.getLogger(__name__)


@dataclass
class ParseResult:
    unit: SourceUnit
    cls: ClassDeclaration | None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def fatal(self) -> bool:
        return self.cls is None


@dataclass
class FilterResult:
    output: str
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    def to_dict(self) -> dict:
        return {
            "output": self.output,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


def parse(text: str, config: FilterConfig | None = None) -> ParseResult:
    """Run every pass except emission and return the linked model."""
    config = config or FilterConfig()
    unit = SourceUnit(text)
    sink = DiagnosticSink()
    tokenize(unit, sink)
    try:
        cls = parse_class(unit, sink)
    except FatalParseError as exc:
        sink.error(FATAL, exc.message, exc.position)
        log.debug("fatal: %s", exc.message)
        return ParseResult(unit, None, list(sink))
    associate(unit, cls, sink, attribute_links=config.attribute_links)
    route_accessors(unit, cls, sink)
    return ParseResult(unit, cls, list(sink))


def transform(text: str, config: FilterConfig | None = None, *, group: str | None = None) -> FilterResult:
    """Filter one classdef unit into its doxygen-readable form."""
    config = config or FilterConfig()
    result = parse(text, config)
    if result.cls is None:
        return FilterResult("", result.diagnostics)
    output = emit(result.unit, result.cls, config, group=group or config.group)
    return FilterResult(output, result.diagnostics)
