"""Environment flag helpers."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final, Optional

DEBUG_ENV_VAR: Final[str] = "XMP_SELECT_DEBUG"
"""Set to a truthy value to enable debug logging without --debug."""

_TRUE_VALUES = {"1", "true", "yes", "on"}


def env_flag_enabled(value: Any) -> bool:
    """Return ``True`` when *value* represents an enabled environment flag."""
    if value is None:
        return False
    if isinstance(value, bytes):
        text = value.decode(errors="ignore")
    else:
        text = str(value)
    return text.strip().lower() in _TRUE_VALUES


def debug_requested(environ: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    return env_flag_enabled(env.get(DEBUG_ENV_VAR))


__all__ = ["DEBUG_ENV_VAR", "env_flag_enabled", "debug_requested"]
