"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import tomllib
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List

from .datatypes import (
    AppConfig,
    ExifToolConfig,
    FindConfig,
    PrintConfig,
    RsyncConfig,
    SelectionConfig,
)
from .xmp_select.errors import ConfigurationError
from .xmp_select.extensions import resolve_extensions


class ConfigError(ConfigurationError):
    """Raised when the configuration file is malformed or fails validation."""


def _coerce_bool(value: Any, dotted_key: str) -> bool:
    """Return a bool, coercing simple 0/1 representations when necessary."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"0", "1"}:
            return normalized == "1"
        if normalized in {"true", "false"}:
            return normalized == "true"
    raise ConfigError(f"{dotted_key} must be a boolean (use true/false).")


def _coerce_str_list(value: Any, dotted_key: str) -> list[str]:
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise ConfigError(f"{dotted_key} must be a list of strings")


def _sanitize_section(raw: dict[str, Any], name: str, cls):
    """
    Coerce a raw TOML table into an instance of ``cls``.

    Booleans are coerced, ``List[str]`` fields are type-checked, and unknown
    keys are rejected.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"[{name}] must be a table")
    cleaned: Dict[str, Any] = {}
    cls_fields = {field.name: field for field in fields(cls)}
    bool_fields = {key for key, field in cls_fields.items() if field.type is bool}
    str_list_fields = {key for key, field in cls_fields.items() if field.type == List[str]}
    for key, value in raw.items():
        if key in bool_fields:
            cleaned[key] = _coerce_bool(value, f"{name}.{key}")
        elif key in str_list_fields:
            cleaned[key] = _coerce_str_list(value, f"{name}.{key}")
        else:
            cleaned[key] = value
    try:
        return cls(**cleaned)
    except TypeError as exc:
        raise ConfigError(f"Invalid keys in [{name}]: {exc}") from exc


def _validate(app: AppConfig) -> AppConfig:
    if not str(app.exiftool.bin).strip():
        raise ConfigError("exiftool.bin must be set")
    if not all(isinstance(code, int) and not isinstance(code, bool) for code in app.exiftool.no_match_exit_codes):
        raise ConfigError("exiftool.no_match_exit_codes must be a list of integers")
    if 0 in app.exiftool.no_match_exit_codes:
        raise ConfigError("exiftool.no_match_exit_codes must not contain 0")

    if not isinstance(app.selection.extensions, str):
        raise ConfigError("selection.extensions must be a comma-separated string")
    resolve_extensions(app.selection.extensions)
    sidecar = str(app.selection.sidecar_extension).strip().lstrip(".").lower()
    if not sidecar or "." in sidecar or "/" in sidecar:
        raise ConfigError("selection.sidecar_extension must be a bare extension such as 'xmp'")
    app.selection.sidecar_extension = sidecar

    if not isinstance(app.print.display_root, str):
        raise ConfigError("print.display_root must be a string")
    tags = app.print.sidecar_tags
    if not isinstance(tags, dict) or not all(isinstance(k, str) and k for k in tags):
        raise ConfigError("print.sidecar_tags must be a table of { tag = default }")
    app.print.sidecar_tags = {str(k): str(v) for k, v in tags.items()}

    if not str(app.find.bin).strip():
        raise ConfigError("find.bin must be set")
    if not str(app.rsync.bin).strip():
        raise ConfigError("rsync.bin must be set")
    return app


def load_config(path: str | Path) -> AppConfig:
    """
    Load and validate an application configuration from a TOML file.

    Reads the file at `path`, parses it as UTF-8 TOML (BOM is accepted),
    coerces each section into its dataclass and validates the result.
    Sections that are absent keep their defaults.

    Raises:
        FileNotFoundError: If `path` does not exist.
        ConfigError: If the file is not UTF-8, TOML parsing fails, or any
            validation rule is violated.
    """

    with open(path, "rb") as handle:
        raw_bytes = handle.read()
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        raw_bytes = raw_bytes[3:]
    try:
        raw = tomllib.loads(raw_bytes.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigError("Configuration file must be UTF-8 encoded") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML: {exc}") from exc

    known = {"exiftool", "selection", "print", "find", "rsync"}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown config section(s): {', '.join(unknown)}")

    app = AppConfig(
        exiftool=_sanitize_section(raw.get("exiftool", {}), "exiftool", ExifToolConfig),
        selection=_sanitize_section(raw.get("selection", {}), "selection", SelectionConfig),
        print=_sanitize_section(raw.get("print", {}), "print", PrintConfig),
        find=_sanitize_section(raw.get("find", {}), "find", FindConfig),
        rsync=_sanitize_section(raw.get("rsync", {}), "rsync", RsyncConfig),
    )
    return _validate(app)


def default_config() -> AppConfig:
    """Return the built-in configuration used when no file is given."""

    return AppConfig()
