"""Configuration path helpers shared across the CLI and tests."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final, Optional

_DATA_DIR: Final[Path] = Path(__file__).resolve().parent / "data"

EXAMPLE_CONFIG_PATH: Final[Path] = _DATA_DIR / "xmp-select.example.toml"
"""Packaged example configuration documenting every key and its default."""

CONFIG_ENV_VAR: Final[str] = "XMP_SELECT_CONFIG"
"""Environment variable naming a config file when --config is not given."""


def resolve_config_path(cli_value: Optional[str], environ: Optional[dict[str, str]] = None) -> Optional[Path]:
    """Return the config path from --config, then the environment, else ``None``."""

    if cli_value:
        return Path(cli_value).expanduser()
    env = os.environ if environ is None else environ
    env_value = env.get(CONFIG_ENV_VAR, "").strip()
    if env_value:
        return Path(env_value).expanduser()
    return None


__all__ = [
    "CONFIG_ENV_VAR",
    "EXAMPLE_CONFIG_PATH",
    "resolve_config_path",
]
