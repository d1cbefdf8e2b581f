"""Shared test fixtures and helpers for mdox tests.

Provides:
- Source helpers: run_source(), parse_source() for in-process filtering
- Fixture files: fixture_path(), classA_source
- CliRunner fixtures: cli_runner, invoke_cli()
- Factory fixture: project_factory for custom .m file trees
- JSON validation helpers: parse_json_output(), assert_json_envelope()
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from click.testing import CliRunner

FIXTURES = Path(__file__).parent / "fixtures"


# ===========================================================================
# In-process filtering helpers
# ===========================================================================


def fixture_path(name):
    """Path of a file under tests/fixtures."""
    return FIXTURES / name


def run_source(text, **config):
    """Filter MATLAB *text* and return the FilterResult.

    Keyword arguments become FilterConfig fields; the banner is off unless
    asked for so assertions can look at the class directly.
    """
    from mdox.api import transform
    from mdox.config import config_from_dict

    config.setdefault("banner", False)
    return transform(text, config_from_dict(config))


def parse_source(text, **config):
    """Parse MATLAB *text* and return the ParseResult (no emission)."""
    from mdox.api import parse
    from mdox.config import config_from_dict

    return parse(text, config_from_dict(config))


def codes(diagnostics):
    """Diagnostic codes in report order."""
    return [d.code for d in diagnostics]


def classdef(*body, header="classdef Foo"):
    """Build a classdef unit from body lines (two-space indented)."""
    lines = [header]
    lines.extend("  " + line if line else "" for line in body)
    lines.append("end")
    return "\n".join(lines) + "\n"


@pytest.fixture
def classA_source():
    return fixture_path("classA.m").read_text(encoding="utf-8")


@pytest.fixture
def classA_output(classA_source):
    return run_source(classA_source).output


# ===========================================================================
# CliRunner helpers
# ===========================================================================


@pytest.fixture
def cli_runner():
    """Provide a Click CliRunner for in-process CLI testing."""
    return CliRunner()


def invoke_cli(runner, args, cwd=None, json_mode=False):
    """Invoke the mdox CLI via CliRunner.

    Args:
        runner: CliRunner instance
        args: list of CLI arguments (e.g. ["filter", "Foo.m"])
        cwd: directory to run in
        json_mode: if True, prepend --json flag
    Returns:
        click.testing.Result
    """
    from mdox.cli import cli

    full_args = []
    if json_mode:
        full_args.append("--json")
    full_args.extend(args)

    old_cwd = os.getcwd()
    try:
        if cwd:
            os.chdir(str(cwd))
        result = runner.invoke(cli, full_args, catch_exceptions=False)
    finally:
        os.chdir(old_cwd)

    return result


# ===========================================================================
# JSON validation helpers
# ===========================================================================


def parse_json_output(result, command=None, exit_code=0):
    """Parse JSON from a CliRunner result.

    Args:
        result: click.testing.Result from invoke_cli
        command: optional command name for better error messages
        exit_code: the exit code the command is expected to finish with
    Returns:
        Parsed dict from JSON output
    Raises:
        AssertionError with context on parse failure
    """
    assert result.exit_code == exit_code, (
        f"Command {command or '?'} exited {result.exit_code}, expected {exit_code}:\n{result.output}"
    )
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        pytest.fail(f"Invalid JSON from {command or '?'}: {e}\nOutput was:\n{result.output[:500]}")


def assert_json_envelope(data, command=None):
    """Validate that a parsed JSON dict follows the mdox envelope contract.

    Checks required top-level keys: schema, command, version, summary.
    The envelope carries no timestamp so repeated runs are byte-identical.
    """
    assert isinstance(data, dict), f"Expected dict, got {type(data)}"
    assert data.get("schema") == "mdox-envelope-v1", "Missing or wrong 'schema' key in envelope"
    assert "command" in data, "Missing 'command' key in envelope"
    assert "version" in data, "Missing 'version' key in envelope"
    assert "summary" in data, "Missing 'summary' key in envelope"
    assert "timestamp" not in data
    if command:
        assert data["command"] == command, f"Expected command={command}, got {data['command']}"
    summary = data["summary"]
    assert isinstance(summary, dict), f"summary should be dict, got {type(summary)}"


# ===========================================================================
# Project fixtures
# ===========================================================================


@pytest.fixture
def project_factory(tmp_path):
    """Factory fixture for creating source trees.

    Usage::

        def test_something(project_factory):
            root = project_factory({
                "Foo.m": "classdef Foo\\nend\\n",
                "+pkg/Bar.m": "classdef Bar\\nend\\n",
            })
    """

    def _create(files):
        root = tmp_path / "src"
        root.mkdir(exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return _create
