"""Text and JSON formatting for CLI output."""

from __future__ import annotations

import json as _json

from mdox.diagnostics import Diagnostic

# Envelope schema versioning (semver: major.minor.patch)
ENVELOPE_SCHEMA_VERSION = "1.0.0"
ENVELOPE_SCHEMA_NAME = "mdox-envelope-v1"


def to_json(data) -> str:
    """Serialize data to a JSON string with deterministic key ordering.

    Uses ``sort_keys=True`` so that identical input always produces
    byte-identical output.
    """
    return _json.dumps(data, indent=2, default=str, sort_keys=True)


def json_envelope(command: str, summary: dict | None = None, **payload) -> dict:
    """Wrap command output in a self-describing envelope.

    Returns a dict with at minimum::

        {
            "schema":  "mdox-envelope-v1",
            "command": "filter",
            "version": "<current>",
            "summary": { ... },
            ...payload
        }

    Nothing time- or host-dependent goes in, so repeated runs over the
    same input serialize identically.
    """
    out: dict = {
        "schema": ENVELOPE_SCHEMA_NAME,
        "schema_version": ENVELOPE_SCHEMA_VERSION,
        "command": command,
        "version": _get_version(),
        "summary": summary or {},
    }
    out.update(payload)
    return out


def diagnostic_summary(diagnostics: list[Diagnostic]) -> dict:
    errors = sum(1 for d in diagnostics if d.is_error)
    return {"errors": errors, "warnings": len(diagnostics) - errors}


def format_diagnostics(diagnostics: list[Diagnostic], path: str) -> list[str]:
    return [d.format(path) for d in diagnostics]


def format_table(headers: list[str], rows: list[list[str]]) -> str:
    if not rows:
        return "(none)"
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < len(widths):
                widths[i] = max(widths[i], len(str(cell)))
    lines = []
    lines.append("  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        cells = [str(c).ljust(widths[i]) if i < len(widths) else str(c) for i, c in enumerate(row)]
        lines.append("  ".join(cells).rstrip())
    return "\n".join(lines)


def _get_version() -> str:
    """Return mdox version string."""
    from mdox import __version__

    return __version__
