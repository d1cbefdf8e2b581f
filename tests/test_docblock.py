"""Tests for doc comment parsing: brief/details, lists, tags, math."""

from __future__ import annotations

from mdox.diagnostics import DiagnosticSink
from mdox.docs.docblock import comment_lines, format_math, merge_note, parse_doc, split_name_tag
from mdox.model import DocBlock
from mdox.parse.lexer import tokenize
from mdox.parse.source import SourceUnit


def _tags(doc, kind):
    return [(t.key, t.lines) for t in doc.tags_of(kind)]


class TestCommentLines:
    def test_markers_are_stripped(self):
        unit = SourceUnit("  % first\n  %% second\n  %\n")
        tokens = tokenize(unit, DiagnosticSink())
        assert comment_lines(unit, tokens) == ["first", "second", ""]

    def test_indentation_after_marker_is_kept(self):
        unit = SourceUnit("%   indented\n")
        tokens = tokenize(unit, DiagnosticSink())
        assert comment_lines(unit, tokens) == ["  indented"]

    def test_block_comment_is_dedented(self):
        unit = SourceUnit("%{\n    one\n      two\n%}\n")
        tokens = tokenize(unit, DiagnosticSink())
        assert comment_lines(unit, tokens) == ["one", "  two"]


class TestBriefAndDetails:
    def test_first_paragraph_is_brief(self):
        doc = parse_doc(["short text", "continued", "", "long text", "", "more"])
        assert doc.brief == ["short text", "continued"]
        assert doc.details == ["long text", "", "more"]

    def test_single_line(self):
        doc = parse_doc(["only brief"])
        assert doc.brief == ["only brief"]
        assert doc.details == []

    def test_empty_lines_only(self):
        assert parse_doc(["", ""]).is_empty


class TestLists:
    def test_parameters_and_return_values(self):
        doc = parse_doc([
            "brief",
            "",
            "Parameters:",
            "  d: parameter 1 @type double",
            "  e: parameter 2",
            "    continued",
            "",
            "Return values:",
            "  a: test object @type pkg.Obj",
        ])
        assert _tags(doc, "param") == [("d", ["parameter 1"]), ("e", ["parameter 2", "continued"])]
        assert _tags(doc, "retval") == [("a", ["test object"])]
        assert doc.param_types == {"d": "double"}
        assert doc.retval_types == {"a": "pkg.Obj"}
        assert doc.details == []

    def test_explicit_param_tags(self):
        doc = parse_doc(["brief", "@param x the x value", "@retval y the result"])
        assert _tags(doc, "param") == [("x", ["the x value"])]
        assert _tags(doc, "retval") == [("y", ["the result"])]

    def test_see_also(self):
        doc = parse_doc(["brief", "", "See also: foo bar"])
        assert _tags(doc, "sa") == [("", ["foo bar"])]


class TestMarkers:
    def test_type_marker(self):
        doc = parse_doc(["A grid.", "@type gridbase.gridbase"])
        assert doc.type_name == "gridbase.gridbase"
        assert doc.brief == ["A grid."]

    def test_default_marker(self):
        doc = parse_doc(["brief", "@default empty string"])
        assert doc.default_text == "empty string"
        assert not doc.default_is_code

    def test_note_marker(self):
        doc = parse_doc(["brief", "@note be careful", "  really"])
        assert _tags(doc, "note") == [("", ["be careful", "really"])]

    def test_verbatim_region_is_untouched(self):
        doc = parse_doc(["brief", "", "@code", "  x = $a$;", "", "Parameters:", "@endcode", "after"])
        assert doc.details == ["@code", "  x = $a$;", "", "Parameters:", "@endcode", "after"]
        assert doc.tags == []


class TestMath:
    def test_inline_math(self):
        assert format_math("value $x_i$ here") == "value @f$x_i@f$ here"

    def test_display_math(self):
        assert format_math("$$a+b$$") == "@f[a+b@f]"

    def test_already_converted_math_is_left_alone(self):
        assert format_math("@f$x@f$") == "@f$x@f$"

    def test_math_in_brief(self):
        doc = parse_doc(["Computes $y = Ax$."])
        assert doc.brief == ["Computes @f$y = Ax@f$."]


class TestNameTags:
    def test_split_name_tag(self):
        assert split_name_tag(["@var protected_access", "text"]) == ("var", "protected_access", ["text"])

    def test_tag_with_text_on_same_line(self):
        assert split_name_tag(["@fn foo does things"]) == ("fn", "foo", ["does things"])

    def test_no_tag(self):
        assert split_name_tag(["plain text"]) is None
        assert split_name_tag([]) is None


class TestMergeNote:
    def test_merge_appends_note_and_keeps_target_brief(self):
        target = parse_doc(["short help"])
        merge_note(target, parse_doc(["reattached text", "", "more"]))
        assert target.brief == ["short help"]
        assert _tags(target, "note") == [("", ["reattached text", "more"])]

    def test_merge_fills_missing_type(self):
        target = DocBlock(brief=["x"])
        merge_note(target, parse_doc(["@type double"]))
        assert target.type_name == "double"
        assert target.tags == []
