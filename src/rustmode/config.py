"""Analysis and formatter options, loadable from a TOML file."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

CONFIG_NAME = "rustmode.toml"


@dataclass(frozen=True, slots=True)
class Options:
    """Options read at analysis time; never changed mid-scan."""

    indent_offset: int = 4
    indent_method_chain: bool = False
    indent_where_clause: bool = False
    indent_return_type_to_arguments: bool = True
    match_angle_brackets: bool = True
    rustfmt_bin: str = "rustfmt"
    rustfmt_args: tuple[str, ...] = ("--edition", "2021")
    rustfmt_timeout: float = 10.0


# TOML table -> {key: Options field}
_TABLES: dict[str, dict[str, str]] = {
    "indent": {
        "offset": "indent_offset",
        "method_chain": "indent_method_chain",
        "where_clause": "indent_where_clause",
        "return_type_to_arguments": "indent_return_type_to_arguments",
        "match_angle_brackets": "match_angle_brackets",
    },
    "rustfmt": {
        "bin": "rustfmt_bin",
        "args": "rustfmt_args",
        "timeout": "rustfmt_timeout",
    },
}


def load_config(config_path: Path | None, search_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else search_dir / CONFIG_NAME

    if not path.is_file():
        return {}

    with open(path, "rb") as f:
        return tomllib.load(f)


def options_from_config(config: dict[str, Any], base: Options | None = None) -> Options:
    """Overlay recognised config values onto base; ill-typed values are skipped."""
    options = base or Options()
    types = {f.name: f.type for f in fields(Options)}
    changes: dict[str, Any] = {}
    for table, keys in _TABLES.items():
        section = config.get(table)
        if not isinstance(section, dict):
            continue
        for key, name in keys.items():
            if key not in section:
                continue
            value = _coerce(section[key], types[name])
            if value is not None:
                changes[name] = value
    return replace(options, **changes) if changes else options


def _coerce(value: Any, annotation: str) -> Any:
    if annotation == "bool":
        return value if isinstance(value, bool) else None
    if annotation == "int":
        return value if isinstance(value, int) and not isinstance(value, bool) and value >= 0 else None
    if annotation == "float":
        return float(value) if isinstance(value, (int, float)) and not isinstance(value, bool) else None
    if annotation == "str":
        return value if isinstance(value, str) else None
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    return None
