"""Filter a whole source tree into a mirrored output tree.

Every ``*.m`` file under SRC is filtered on its own; files that are not
classdef units (plain functions, scripts) are listed as skipped and do
not affect the exit code.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from mdox.api import transform
from mdox.commands.resolve import append_log, group_for, read_source, resolve_config
from mdox.diagnostics import FATAL
from mdox.exit_codes import exit_code_for
from mdox.output.formatter import diagnostic_summary, format_table, json_envelope, to_json

log = logging.getLogger(__name__)


@click.command()
@click.argument("src", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("out", type=click.Path(file_okay=False, path_type=Path))
@click.option("--suffix", default=".cc", show_default=True, help="Suffix of the written files")
@click.pass_context
def batch(ctx, src, out, suffix):
    """Filter every .m file under SRC into OUT, keeping the directory layout."""
    rows = []
    counted = []
    written = skipped = 0
    for path in sorted(src.rglob("*.m")):
        rel = path.relative_to(src)
        config = resolve_config(ctx, path)
        result = transform(read_source(path), config, group=group_for(path, config))
        append_log(config, path, result.diagnostics)

        if any(d.code == FATAL for d in result.diagnostics):
            skipped += 1
            status = "skipped"
            log.info("%s: not a classdef, skipped", rel)
        else:
            target = (out / rel).with_suffix(suffix)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.output, encoding="utf-8")
            written += 1
            counted.extend(result.diagnostics)
            status = "written"
            log.info("%s -> %s", rel, target)
        counts = diagnostic_summary(result.diagnostics)
        rows.append([rel.as_posix(), status, str(counts["errors"]), str(counts["warnings"])])

    if ctx.obj.get("json"):
        click.echo(to_json(json_envelope(
            "batch",
            summary={"written": written, "skipped": skipped, **diagnostic_summary(counted)},
            files=[
                {"path": r[0], "status": r[1], "errors": int(r[2]), "warnings": int(r[3])}
                for r in rows
            ],
        )))
    else:
        click.echo(format_table(["file", "status", "errors", "warnings"], rows))
        click.echo(f"\n{written} written, {skipped} skipped")
    ctx.exit(exit_code_for(counted))
