"""Tests for comment association and attribute note synthesis."""

from __future__ import annotations

from conftest import classdef, codes, parse_source

from mdox.diagnostics import ORPHANED_DOC
from mdox.docs.comments import PROPERTY_ATTRIBUTES_URL, attribute_notes, class_notes
from mdox.model import METHOD, PROPERTY, AccessPair, Attribute, AttributeSet


def _decl(result, name):
    for decl in result.cls.declarations():
        if decl.name == name:
            return decl
    raise AssertionError(f"no declaration {name}")


def _notes(doc):
    return [" ".join(t.lines) for t in doc.tags_of("note")]


class TestPositionalAttachment:
    def test_block_above_declaration(self):
        result = parse_source(classdef("properties", "  % the x value", "  x", "end"))
        assert _decl(result, "x").doc.brief == ["the x value"]

    def test_trailing_comment(self):
        result = parse_source(classdef("properties", "  x; % short help", "end"))
        assert _decl(result, "x").doc.brief == ["short help"]

    def test_block_below_declaration(self):
        result = parse_source(classdef("properties", "  x = 1;", "  % below x", "", "  y", "end"))
        assert _decl(result, "x").doc.brief == ["below x"]
        assert _decl(result, "y").doc is None

    def test_below_wins_over_above(self):
        result = parse_source(classdef("properties", "  x", "  % between", "  y", "end"))
        assert _decl(result, "x").doc.brief == ["between"]
        assert _decl(result, "y").doc is None

    def test_sources_combine_in_order(self):
        result = parse_source(classdef(
            "methods (Abstract)",
            "  % above",
            "  r = f(this) % trailing",
            "  % below",
            "end",
        ))
        assert _decl(result, "f").doc.brief == ["above", "trailing", "below"]

    def test_comment_after_inline_method_documents_next_method(self):
        result = parse_source(classdef(
            "methods",
            "  function f(this)",
            "  end",
            "  % doc of g",
            "  function g(this)",
            "  end",
            "end",
        ))
        assert _decl(result, "f").doc is None
        assert _decl(result, "g").doc.brief == ["doc of g"]

    def test_body_leading_comment_documents_method(self):
        result = parse_source(classdef(
            "methods",
            "  function f(this)",
            "    % brief doc for f",
            "    x = 1; % not doc",
            "  end",
            "end",
        ))
        assert _decl(result, "f").doc.brief == ["brief doc for f"]
        assert result.cls.loose_comments == []

    def test_comments_in_default_expression_are_ignored(self):
        result = parse_source(classdef(
            "properties",
            "  M = [1 2 % first row",
            "       3 4];",
            "end",
        ))
        assert _decl(result, "M").doc.brief == []
        assert result.cls.loose_comments == []


class TestClassDoc:
    def test_block_after_header(self):
        result = parse_source("classdef Foo\n  % help for Foo\n  %\n  % details\n\n  properties\n    x\n  end\nend\n")
        assert result.cls.doc.brief == ["help for Foo"]
        assert result.cls.doc.details == ["details"]

    def test_block_above_classdef(self):
        result = parse_source("% help above\nclassdef Foo\nend\n")
        assert result.cls.doc.brief == ["help above"]

    def test_sealed_note(self):
        result = parse_source("classdef (Sealed) Foo\nend\n")
        assert _notes(result.cls.doc)[0] == (
            "This class has the class property <tt>Sealed</tt> and cannot be derived from."
        )


class TestLooseComments:
    def test_separated_block_stays_loose(self):
        result = parse_source(classdef("properties", "  x", "", "  % nobody's", "", "  y", "end"))
        assert [c.lines for c in result.cls.loose_comments] == [["nobody's"]]
        assert _decl(result, "y").doc is None


class TestNameTags:
    def test_tagged_block_reattaches_as_note(self):
        result = parse_source(
            classdef("properties", "  p; % short help for p", "end")
            + "\n% @var p\n% reattached from the end of the file\n"
        )
        doc = _decl(result, "p").doc
        assert doc.brief == ["short help for p"]
        assert _notes(doc) == ["reattached from the end of the file"]
        assert result.cls.loose_comments == []
        assert len(result.diagnostics) == 0

    def test_tagged_block_becomes_doc_of_undocumented_member(self):
        result = parse_source(
            classdef("methods", "  function f(this)", "  end", "end") + "% @fn f\n% what f does\n"
        )
        assert _decl(result, "f").doc.brief == ["what f does"]

    def test_var_tag_finds_event(self):
        result = parse_source(classdef("events", "  Changed", "end") + "% @var Changed\n% fired on change\n")
        assert _decl(result, "Changed").doc.brief == ["fired on change"]

    def test_unknown_name_is_orphaned(self):
        result = parse_source(classdef("properties", "  p", "end") + "% @var nothere\n% lost\n")
        assert codes(result.diagnostics) == [ORPHANED_DOC]
        loose = result.cls.loose_comments
        assert len(loose) == 1
        assert loose[0].tag_line == "@var nothere"
        assert loose[0].doc.brief == ["lost"]

    def test_tag_line_starts_a_new_block(self):
        result = parse_source(
            classdef("properties", "  p", "end", "methods", "  function f(this)", "  end", "end")
            + "% @fn f\n% what f does\n% @var p\n% about p\n"
        )
        assert _decl(result, "f").doc.brief == ["what f does"]
        assert _decl(result, "p").doc.brief == ["about p"]
        assert len(result.diagnostics) == 0

    def test_unknown_tag_inside_a_run_is_orphaned(self):
        result = parse_source(
            classdef("methods", "  function f(this)", "  end", "end")
            + "% @fn f\n% extra\n% @var nothing\n% lost\n"
        )
        doc = _decl(result, "f").doc
        assert doc.brief == ["extra"]
        assert not any("@var" in line for line in doc.brief + doc.details)
        assert codes(result.diagnostics) == [ORPHANED_DOC]
        assert [c.tag_line for c in result.cls.loose_comments] == ["@var nothing"]


class TestAttributeNotes:
    def test_transient_and_access_notes(self):
        attrs = AttributeSet([
            Attribute("Access", AccessPair("private", "protected")),
            Attribute("Transient", True),
        ])
        assert attribute_notes(PROPERTY, attrs) == [
            "This property has non-unique access specifier: <tt>SetAccess = private, GetAccess = protected</tt>",
            "This property has the MATLAB attribute @c Transient set to true.",
            f'<a href="{PROPERTY_ATTRIBUTES_URL}">Matlab documentation of property attributes.</a>',
        ]

    def test_encoded_and_false_attributes_are_silent(self):
        attrs = AttributeSet([
            Attribute("Constant", True),
            Attribute("Access", AccessPair("protected", "protected")),
            Attribute("Hidden", False),
        ])
        assert attribute_notes(PROPERTY, attrs) == []

    def test_method_wording(self):
        notes = attribute_notes(METHOD, AttributeSet([Attribute("Hidden", True)]), attribute_links=False)
        assert notes == ["This method has the MATLAB method attribute @c Hidden set to true."]

    def test_valued_attribute(self):
        notes = attribute_notes(PROPERTY, AttributeSet([Attribute("Description", "a label")]), False)
        assert notes == ["This property has the MATLAB attribute @c Description set to a label."]

    def test_class_notes_without_links(self):
        assert class_notes(AttributeSet([Attribute("Abstract", True)]), attribute_links=False) == [
            "This class has the MATLAB class attribute @c Abstract set to true."
        ]

    def test_every_declaration_gets_section_notes(self):
        result = parse_source(classdef("properties (Transient)", "  a", "  b % doc", "end"))
        for name in ("a", "b"):
            assert "This property has the MATLAB attribute @c Transient set to true." in _notes(
                _decl(result, name).doc
            )

    def test_links_can_be_disabled(self):
        result = parse_source(classdef("properties (Transient)", "  a", "end"), attribute_links=False)
        assert not any("href" in n for n in _notes(_decl(result, "a").doc))


class TestSynthesizedDocs:
    def test_default_is_recorded_as_code(self):
        result = parse_source(classdef("properties", "  a = struct('x', 1);", "end"))
        doc = _decl(result, "a").doc
        assert doc.default_text == "struct('x', 1)"
        assert doc.default_is_code

    def test_user_default_wins(self):
        result = parse_source(classdef("properties", "  a = 3; % count", "  % @default three", "end"))
        doc = _decl(result, "a").doc
        assert doc.default_text == "three"
        assert not doc.default_is_code

    def test_event_tag_and_brief(self):
        result = parse_source(classdef("events", "  % a documented event", "  Documented", "  Undocumented", "end"))
        documented = _decl(result, "Documented").doc
        undocumented = _decl(result, "Undocumented").doc
        assert documented.brief == ["a documented event"]
        assert undocumented.brief == ["Undocumented"]
        assert [t.key for t in undocumented.tags_of("event")] == ["Undocumented"]
