"""Filter configuration: discovery, loading, validation."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

CONFIG_NAME = ".mdox.yaml"
DEFAULT_PLACEHOLDER = "matlabtypesubstitute"


@dataclass
class FilterConfig:
    placeholder_type: str = DEFAULT_PLACEHOLDER
    banner: bool = True
    attribute_links: bool = True
    # Derive the doxygen group from the +package directories of the input path.
    auto_group: bool = False
    group: str | None = None
    # Diagnostics are appended here as well as printed (doxygen swallows stderr).
    log_file: str | None = None


_TYPES: dict[str, tuple[type, ...]] = {
    "placeholder_type": (str,),
    "banner": (bool,),
    "attribute_links": (bool,),
    "auto_group": (bool,),
    "group": (str, type(None)),
    "log_file": (str, type(None)),
}


def find_config(start: str | Path = ".") -> Path | None:
    """Walk up from *start* looking for a .mdox.yaml file.

    Returns the path of the config file, or None.
    """
    current = Path(start).resolve()
    if current.is_file():
        current = current.parent
    while True:
        candidate = current / CONFIG_NAME
        if candidate.exists():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def load_config(path: str | Path) -> FilterConfig:
    """Read and validate a YAML config file.

    An empty file yields the defaults.  Raises ValueError on unknown keys
    or wrongly typed values, and on YAML syntax errors.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ValueError(f"{path}: invalid YAML: {exc}") from exc
    if data is None:
        data = {}
    _validate_config(data, path)
    return FilterConfig(**data)


def config_from_dict(data: dict[str, Any]) -> FilterConfig:
    _validate_config(data, None)
    return FilterConfig(**data)


def config_to_dict(config: FilterConfig) -> dict[str, Any]:
    return {f.name: getattr(config, f.name) for f in fields(config)}


def _validate_config(data: Any, path: Path | None) -> None:
    """Raise ValueError if the config is structurally invalid."""
    where = f"{path}: " if path is not None else ""
    if not isinstance(data, dict):
        raise ValueError(f"{where}config must be a mapping")
    for key, value in data.items():
        if key not in _TYPES:
            raise ValueError(f"{where}unknown config key '{key}'")
        if not isinstance(value, _TYPES[key]):
            expected = " or ".join("null" if t is type(None) else t.__name__ for t in _TYPES[key])
            raise ValueError(f"{where}'{key}' must be {expected}, got {type(value).__name__}")
    placeholder = data.get("placeholder_type")
    if placeholder is not None and not placeholder.strip():
        raise ValueError(f"{where}'placeholder_type' must not be empty")
