"""Standardized CLI exit codes for mdox.

Exit code scheme (POSIX conventions):

    0  SUCCESS  -- every unit filtered without error diagnostics
    1  ERROR    -- unexpected failure, unreadable or unwritable file
    2  USAGE    -- invalid arguments, bad flags, unknown command (Click default)
    3  CONFIG   -- .mdox.yaml is malformed or has unknown keys
    4  FATAL    -- a unit has no parseable classdef header
    6  PARTIAL  -- output written but error diagnostics were reported

Warnings never change the exit code.  When doxygen runs mdox as an
INPUT_FILTER the exit code is ignored, but build scripts running
``mdox check`` can tell "malformed MATLAB" (6) from "tool crashed" (1).
"""

from __future__ import annotations

import click

from mdox.diagnostics import FATAL

# ---------------------------------------------------------------------------
# Exit code constants
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_ERROR: int = 1
EXIT_USAGE: int = 2
EXIT_CONFIG: int = 3
EXIT_FATAL: int = 4
EXIT_PARTIAL: int = 6

DESCRIPTIONS: dict[int, str] = {
    EXIT_SUCCESS: "success",
    EXIT_ERROR: "unexpected error",
    EXIT_USAGE: "invalid usage (bad arguments or flags)",
    EXIT_CONFIG: "invalid configuration file",
    EXIT_FATAL: "input is not a classdef file",
    EXIT_PARTIAL: "partial results (completed with error diagnostics)",
}

# ---------------------------------------------------------------------------
# Custom exceptions (caught by the click error handler)
# ---------------------------------------------------------------------------


class MdoxError(click.ClickException):
    """Base class for mdox errors with exit codes."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.exit_code = exit_code

    def format_message(self) -> str:
        return self.message


class ConfigError(MdoxError):
    """Raised when the configuration file cannot be used."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_CONFIG)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def exit_code_for(diagnostics) -> int:
    """Exit code for a finished run given all of its diagnostics."""
    codes = [d.code for d in diagnostics if d.is_error]
    if FATAL in codes:
        return EXIT_FATAL
    if codes:
        return EXIT_PARTIAL
    return EXIT_SUCCESS

