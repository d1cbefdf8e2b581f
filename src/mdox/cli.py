"""Click CLI entry point with lazy-loaded subcommands."""

import logging
import os
import sys

# Fix Unicode output on Windows consoles (cp1253, cp1252, etc.)
if sys.platform == "win32" and not os.environ.get("PYTHONIOENCODING"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import click


# Lazy-loading command group: imports command modules only when invoked.
# doxygen starts one mdox process per input file, so startup stays small.
_COMMANDS = {
    "filter": ("mdox.commands.cmd_filter", "filter_cmd"),
    "check":  ("mdox.commands.cmd_check",  "check"),
    "batch":  ("mdox.commands.cmd_batch",  "batch"),
}


class LazyGroup(click.Group):
    """A Click group that lazy-loads command modules on first access."""

    def list_commands(self, ctx):
        return sorted(_COMMANDS.keys())

    def get_command(self, ctx, cmd_name):
        if cmd_name not in _COMMANDS:
            return None
        module_path, attr_name = _COMMANDS[cmd_name]
        import importlib
        mod = importlib.import_module(module_path)
        return getattr(mod, attr_name)


@click.group(cls=LazyGroup)
@click.version_option(package_name="mdox")
@click.option('--json', 'json_mode', is_flag=True, help='Output in JSON format')
@click.option('-v', '--verbose', count=True, help='Log progress to stderr (-vv for debug)')
@click.option('--config', 'config_path', default=None,
              type=click.Path(exists=True, dir_okay=False),
              help='Use this .mdox.yaml instead of searching upwards from the input')
@click.pass_context
def cli(ctx, json_mode, verbose, config_path):
    """mdox: doxygen input filter for MATLAB classdef files."""
    ctx.ensure_object(dict)
    ctx.obj['json'] = json_mode
    ctx.obj['config_path'] = config_path
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )


if __name__ == "__main__":
    cli()
