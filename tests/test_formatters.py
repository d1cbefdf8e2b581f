"""Unit tests for mdox.output.formatter: pure functions, no fixtures needed."""

from __future__ import annotations

import json

from mdox.diagnostics import ERROR, WARNING, Diagnostic
from mdox.output.formatter import (
    ENVELOPE_SCHEMA_NAME,
    diagnostic_summary,
    format_diagnostics,
    format_table,
    json_envelope,
    to_json,
)

# ── to_json ──────────────────────────────────────────────────────────


class TestToJson:
    def test_sort_keys(self):
        parsed = json.loads(to_json({"zebra": 1, "alpha": 2, "middle": 3}))
        assert list(parsed) == ["alpha", "middle", "zebra"]

    def test_idempotent(self):
        data = {"b": 2, "a": {"y": 1, "x": [3, 2, 1]}}
        results = [to_json(data) for _ in range(5)]
        assert all(r == results[0] for r in results)

    def test_non_serializable_falls_back_to_str(self):
        from pathlib import Path

        assert json.loads(to_json({"p": Path("a/b.m")})) == {"p": str(Path("a/b.m"))}


# ── json_envelope ────────────────────────────────────────────────────


class TestJsonEnvelope:
    def test_required_keys(self):
        env = json_envelope("check", summary={"errors": 0})
        assert env["schema"] == ENVELOPE_SCHEMA_NAME
        assert env["command"] == "check"
        assert env["summary"] == {"errors": 0}
        assert "version" in env
        assert "schema_version" in env

    def test_payload_is_merged(self):
        env = json_envelope("filter", file="Foo.m", output="class Foo {};\n")
        assert env["file"] == "Foo.m"
        assert env["output"] == "class Foo {};\n"

    def test_missing_summary_is_empty_dict(self):
        assert json_envelope("batch")["summary"] == {}

    def test_no_time_dependent_keys(self):
        env = json_envelope("check")
        assert "timestamp" not in env
        assert "_meta" not in env


# ── diagnostics ──────────────────────────────────────────────────────


class TestDiagnosticFormatting:
    def test_compiler_style_line(self):
        diag = Diagnostic(WARNING, "body-match", "function body is not closed", 12, 5)
        assert format_diagnostics([diag], "Foo.m") == [
            "Foo.m:12:5: warning: function body is not closed [body-match]"
        ]

    def test_summary_counts(self):
        diags = [
            Diagnostic(WARNING, "a", "m", 1, 1),
            Diagnostic(ERROR, "b", "m", 2, 1),
            Diagnostic(WARNING, "c", "m", 3, 1),
        ]
        assert diagnostic_summary(diags) == {"errors": 1, "warnings": 2}

    def test_to_dict(self):
        diag = Diagnostic(ERROR, "fatal", "no classdef header found", 1, 1)
        assert diag.to_dict() == {
            "severity": "error",
            "code": "fatal",
            "message": "no classdef header found",
            "line": 1,
            "col": 1,
        }


# ── format_table ─────────────────────────────────────────────────────


class TestFormatTable:
    def test_empty(self):
        assert format_table(["a", "b"], []) == "(none)"

    def test_columns_are_padded(self):
        out = format_table(["file", "status"], [["Foo.m", "written"], ["pkg/LongName.m", "skipped"]])
        lines = out.split("\n")
        assert lines[0].rstrip() == "file" + " " * 12 + "status"
        assert lines[1] == "-" * 14 + "  " + "-" * 7
        assert lines[2] == "Foo.m" + " " * 11 + "written"
        assert lines[3] == "pkg/LongName.m  skipped"
