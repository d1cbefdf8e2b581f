"""Accessor router: link ``get.X`` / ``set.X`` methods to property ``X``.

A post-pass over the finished declaration table.  Linked methods leave
their section's declaration list and are kept on the section as
:class:`~mdox.model.AccessorOverride` entries, so they still render in
source order, only in guarded form.
"""

from __future__ import annotations

import logging

from mdox.diagnostics import UNRESOLVED_ACCESSOR, DiagnosticSink
from mdox.model import (
    GET,
    METHOD,
    PROPERTY,
    SET,
    AccessorOverride,
    ClassDeclaration,
    DocBlock,
)
from mdox.parse.source import SourceUnit

log = logging.getLogger(__name__)

_PREFIXES = {"get": GET, "set": SET}

_CUSTOM_NOTES = {
    (GET,): "This property has custom functionality when its value is retrieved.",
    (SET,): "This property has custom functionality when its value is changed.",
    (GET, SET): "This property has custom functionality when its value is retrieved or changed.",
}


def split_accessor_name(name: str) -> tuple[str, str] | None:
    """``("get", "X")`` for ``get.X``; None for any other name."""
    prefix, dot, target = name.partition(".")
    if not dot or prefix not in _PREFIXES or not target or "." in target:
        return None
    return _PREFIXES[prefix], target


def route_accessors(unit: SourceUnit, cls: ClassDeclaration, diagnostics: DiagnosticSink) -> None:
    linked = 0
    for section in cls.sections:
        kept = []
        for decl in section.declarations:
            parts = split_accessor_name(decl.name) if decl.kind == METHOD else None
            if parts is None:
                kept.append(decl)
                continue
            accessor_kind, target = parts
            owners = cls.properties_named(target)
            if not owners:
                diagnostics.error(
                    UNRESOLVED_ACCESSOR,
                    f"accessor {decl.name} names no property '{target}'",
                    unit.position(decl.start),
                )
                kept.append(decl)
                continue
            override = AccessorOverride(target, accessor_kind, decl, doc=decl.doc)
            decl.accessor = override
            owners[0].accessors.append(override)
            section.accessors.append(override)
            linked += 1
        section.declarations = kept

    for prop in cls.declarations(PROPERTY):
        kinds = tuple(sorted({a.accessor_kind for a in prop.accessors}))
        if not kinds:
            continue
        prop.doc = prop.doc or DocBlock()
        prop.doc.add_note(_CUSTOM_NOTES[kinds])
    log.debug("linked %d accessor methods", linked)
