"""Report diagnostics for classdef files without emitting anything."""

from __future__ import annotations

from pathlib import Path

import click

from mdox.api import parse
from mdox.commands.resolve import append_log, read_source, resolve_config
from mdox.exit_codes import exit_code_for
from mdox.output.formatter import diagnostic_summary, format_diagnostics, json_envelope, to_json


@click.command()
@click.argument("files", nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def check(ctx, files):
    """Parse FILES and list every warning and error found."""
    everything = []
    per_file = []
    for path in files:
        config = resolve_config(ctx, path)
        result = parse(read_source(path), config)
        append_log(config, path, result.diagnostics)
        everything.extend(result.diagnostics)
        per_file.append((path, result))

    if ctx.obj.get("json"):
        click.echo(to_json(json_envelope(
            "check",
            summary={"files": len(files), **diagnostic_summary(everything)},
            files=[
                {
                    "path": str(path),
                    "class": result.cls.name if result.cls is not None else None,
                    "diagnostics": [d.to_dict() for d in result.diagnostics],
                }
                for path, result in per_file
            ],
        )))
    else:
        for path, result in per_file:
            for line in format_diagnostics(result.diagnostics, str(path)):
                click.echo(line)
        counts = diagnostic_summary(everything)
        click.echo(
            f"{len(files)} file(s) checked: {counts['errors']} error(s), {counts['warnings']} warning(s)"
        )
    ctx.exit(exit_code_for(everything))
