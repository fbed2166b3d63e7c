"""Style configuration: load and validate styles.toml."""

from __future__ import annotations

import os
import tomllib
from dataclasses import fields
from pathlib import Path
from typing import Any

from rich.errors import StyleSyntaxError
from rich.style import Style

from richmark.styles import LevelAttributeTable, StyleConfig

_TABLE_FIELDS = frozenset({"headers", "lists", "ordered_lists", "quotes"})
_STYLE_FIELDS = frozenset(f.name for f in fields(StyleConfig))


class ConfigError(Exception):
    """Raised when styles.toml is malformed or holds invalid styles."""


def get_config_path() -> Path:
    """Return the path to styles.toml, respecting XDG_CONFIG_HOME."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "richmark" / "styles.toml"


def _read(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e


def _style(path: Path, name: str, value: object) -> str | None:
    """Validate one style string; an empty string disables the style."""
    if not isinstance(value, str):
        msg = f"Style '{name}' in {path} must be a string, got {type(value).__name__}"
        raise ConfigError(msg)
    if not value:
        return None
    try:
        Style.parse(value)
    except StyleSyntaxError as e:
        msg = f"Invalid style '{name}' in {path}: {e}"
        raise ConfigError(msg) from e
    return value


def load_style_config(path: Path) -> StyleConfig:
    """Load a StyleConfig from a TOML file.

    Returns the default configuration if the file does not exist.
    Raises ConfigError on parse errors, unknown keys or invalid styles.
    """
    styles = _read(path).get("styles", {})
    if not isinstance(styles, dict):
        msg = f"[styles] in {path} must be a table"
        raise ConfigError(msg)

    overrides: dict[str, Any] = {}
    for name, value in styles.items():
        if name not in _STYLE_FIELDS:
            msg = f"Unknown style '{name}' in {path}"
            raise ConfigError(msg)
        if name in _TABLE_FIELDS:
            if not isinstance(value, list):
                msg = f"Style '{name}' in {path} must be a list of styles"
                raise ConfigError(msg)
            entries = [_style(path, f"{name}[{i}]", v) for i, v in enumerate(value)]
            overrides[name] = LevelAttributeTable(tuple(entries))
        else:
            overrides[name] = _style(path, name, value)
    return StyleConfig(**overrides)


def load_allowed_schemes(path: Path) -> list[str] | None:
    """Return the configured URL scheme allow-list, or None if unset."""
    schemes = _read(path).get("allowed_schemes")
    if schemes is None:
        return None
    if not isinstance(schemes, list) or not all(isinstance(s, str) for s in schemes):
        msg = f"allowed_schemes in {path} must be a list of strings"
        raise ConfigError(msg)
    return schemes
