"""Core shared helpers: client bootstrap, TOML config, logging."""

from __future__ import annotations

from .ai import load_client
from .config import TomlConfigError, overlay, read_toml, write_template_file
from .logging import JsonLogFormatter, configure_logger

__all__ = [
    "load_client",
    "TomlConfigError",
    "overlay",
    "read_toml",
    "write_template_file",
    "configure_logger",
    "JsonLogFormatter",
]
