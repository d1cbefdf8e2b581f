"""Filter one classdef file: the doxygen INPUT_FILTER command.

Doxyfile usage::

    INPUT_FILTER  = "mdox filter"
    FILTER_PATTERNS = *.m="mdox filter"

The emitted unit goes to stdout, diagnostics to stderr (and to
``log_file`` when configured, since doxygen does not show filter stderr).
"""

from __future__ import annotations

from pathlib import Path

import click

from mdox.api import transform
from mdox.commands.resolve import append_log, group_for, read_source, resolve_config
from mdox.exit_codes import exit_code_for
from mdox.output.formatter import diagnostic_summary, format_diagnostics, json_envelope, to_json


@click.command("filter")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--group", default=None, help="doxygen group of the class (overrides config)")
@click.pass_context
def filter_cmd(ctx, file, group):
    """Filter FILE and write the doxygen-readable unit to stdout."""
    config = resolve_config(ctx, file)
    result = transform(read_source(file), config, group=group or group_for(file, config))
    append_log(config, file, result.diagnostics)

    if ctx.obj.get("json"):
        click.echo(to_json(json_envelope(
            "filter",
            summary=diagnostic_summary(result.diagnostics),
            file=str(file),
            output=result.output,
            diagnostics=[d.to_dict() for d in result.diagnostics],
        )))
    else:
        click.echo(result.output, nl=False)
        for line in format_diagnostics(result.diagnostics, str(file)):
            click.echo(line, err=True)
    ctx.exit(exit_code_for(result.diagnostics))
