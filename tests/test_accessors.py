"""Tests for routing get./set. methods to their properties."""

from __future__ import annotations

import pytest
from conftest import classdef, codes, parse_source

from mdox.diagnostics import UNRESOLVED_ACCESSOR
from mdox.docs.accessors import split_accessor_name
from mdox.model import GET, METHOD, PROPERTY, SET


def _source(*methods_body, props=("p",)):
    return classdef(
        "properties",
        *[f"  {p}" for p in props],
        "end",
        "methods",
        *[f"  {line}" for line in methods_body],
        "end",
    )


def _prop(result, name):
    return next(p for p in result.cls.declarations(PROPERTY) if p.name == name)


class TestSplitAccessorName:
    @pytest.mark.parametrize("name, expected", [
        ("get.Prop", (GET, "Prop")),
        ("set.Prop", (SET, "Prop")),
        ("getProp", None),
        ("other.Prop", None),
        ("get.a.b", None),
        ("get.", None),
    ])
    def test_split(self, name, expected):
        assert split_accessor_name(name) == expected


class TestRouting:
    def test_getter_and_setter_are_linked(self):
        result = parse_source(_source(
            "function v = get.p(this)",
            "  v = 1;",
            "end",
            "function this = set.p(this, v)",
            "end",
            "function other(this)",
            "end",
        ))
        prop = _prop(result, "p")
        assert [(a.accessor_kind, a.method.name) for a in prop.accessors] == [
            (GET, "get.p"), (SET, "set.p"),
        ]
        methods = [m.name for m in result.cls.declarations(METHOD)]
        assert methods == ["other"]
        section = result.cls.sections[1]
        assert [a.target for a in section.accessors] == ["p", "p"]
        assert all(a.method.accessor is a for a in section.accessors)
        assert len(result.diagnostics) == 0

    def test_custom_functionality_note(self):
        result = parse_source(_source("function v = get.p(this)", "end"))
        notes = [t.lines[0] for t in _prop(result, "p").doc.tags_of("note")]
        assert notes == ["This property has custom functionality when its value is retrieved."]

    def test_note_for_both_accessors(self):
        result = parse_source(_source(
            "function set.p(this, v)", "end",
            "function v = get.p(this)", "end",
        ))
        notes = [t.lines[0] for t in _prop(result, "p").doc.tags_of("note")]
        assert notes == ["This property has custom functionality when its value is retrieved or changed."]

    def test_accessor_doc_stays_with_override(self):
        result = parse_source(_source(
            "function v = get.p(this)",
            "  % getter enriching property help text",
            "end",
        ))
        override = _prop(result, "p").accessors[0]
        assert override.doc.brief == ["getter enriching property help text"]

    def test_unknown_property_is_an_error(self):
        result = parse_source(_source("function set.unknown_prop(this, v)", "end"))
        assert codes(result.diagnostics) == [UNRESOLVED_ACCESSOR]
        assert result.diagnostics[0].is_error
        assert [m.name for m in result.cls.declarations(METHOD)] == ["set.unknown_prop"]

    def test_duplicate_property_links_first(self):
        result = parse_source(_source("function v = get.p(this)", "end", props=("p", "p")))
        first, second = list(result.cls.declarations(PROPERTY))
        assert len(first.accessors) == 1
        assert second.accessors == []
