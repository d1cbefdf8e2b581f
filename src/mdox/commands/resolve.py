"""Shared config, input and reporting helpers for all mdox commands."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from mdox.config import FilterConfig, find_config, load_config
from mdox.diagnostics import Diagnostic
from mdox.exit_codes import ConfigError

log = logging.getLogger(__name__)


def resolve_config(ctx: click.Context, source: Path) -> FilterConfig:
    """Config for *source*: ``--config`` if given, else the nearest .mdox.yaml.

    Raises ConfigError (exit 3) when the file exists but cannot be used.
    """
    explicit = ctx.obj.get("config_path") if ctx.obj else None
    path = Path(explicit) if explicit else find_config(source)
    if path is None:
        return FilterConfig()
    try:
        config = load_config(path)
    except (OSError, ValueError) as exc:
        raise ConfigError(str(exc)) from exc
    log.debug("using config %s", path)
    return config


def group_for(source: Path, config: FilterConfig) -> str | None:
    """doxygen group for *source*: the configured one, else one from +package dirs."""
    if config.group:
        return config.group
    if not config.auto_group:
        return None
    packages = [part[1:] for part in source.resolve().parent.parts if part.startswith("+")]
    if packages:
        return "_".join(packages)
    return source.resolve().parent.name or None


def read_source(path: Path) -> str:
    """Text of a MATLAB file; files saved in a legacy 8-bit encoding are read as latin-1."""
    data = path.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        log.info("%s is not valid UTF-8, reading as latin-1", path)
        return data.decode("latin-1")


def append_log(config: FilterConfig, path: Path, diagnostics: list[Diagnostic]) -> None:
    """Append formatted diagnostics to the configured log file, if any."""
    if not config.log_file or not diagnostics:
        return
    with open(config.log_file, "a", encoding="utf-8") as f:
        for diag in diagnostics:
            f.write(diag.format(str(path)) + "\n")
