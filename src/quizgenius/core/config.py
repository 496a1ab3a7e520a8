"""TOML reading, layering and template writing for ``quizgenius.toml``."""

from __future__ import annotations

import copy
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = [
    "TomlConfigError",
    "overlay",
    "read_toml",
    "write_template_file",
]


class TomlConfigError(RuntimeError):
    """Raised when a TOML document cannot be read, layered or written."""


def read_toml(path: Path) -> Dict[str, Any]:
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    try:
        return tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise TomlConfigError(f"Failed to parse {path.name}: {exc}") from exc


def overlay(
    defaults: Mapping[str, Any], override: Mapping[str, Any], *, prefix: str = ""
) -> Dict[str, Any]:
    """Return ``defaults`` with ``override`` laid on top.

    Only keys already present in ``defaults`` may be overridden, and a table
    may only be replaced by a table. Neither input is modified.
    """

    merged = copy.deepcopy(dict(defaults))
    for key, value in override.items():
        dotted = f"{prefix}{key}"
        if key not in merged:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        if isinstance(merged[key], Mapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    f"Expected table for '{dotted}', "
                    f"found {type(value).__name__}."
                )
            merged[key] = overlay(merged[key], value, prefix=f"{dotted}.")
        else:
            merged[key] = value
    return merged


def write_template_file(path: Path, text: str, *, overwrite: bool = False) -> Path:
    """Write ``text`` to ``path``; an existing file needs ``overwrite``."""

    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
