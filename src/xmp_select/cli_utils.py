"""Merge command-line options with config values: an explicit flag wins."""

from __future__ import annotations

from typing import Optional, TypeVar, cast

import click
from click.core import ParameterSource

T = TypeVar("T")


def _given_on_command_line(ctx: click.Context, name: str) -> bool:
    get_source = getattr(ctx, "get_parameter_source", None)
    if not callable(get_source):
        return True
    return cast(Optional[ParameterSource], get_source(name)) is ParameterSource.COMMANDLINE


def _cli_override_value(ctx: click.Context, name: str, value: T | None) -> T | None:
    """
    Return *value* when option *name* was typed by the user, else ``None``.

    Click defaults and ``default_map`` entries defer to the config file.
    """

    return value if _given_on_command_line(ctx, name) else None


def _cli_or_config(ctx: click.Context, name: str, value: T | None, config_value: T) -> T:
    override = _cli_override_value(ctx, name, value)
    return config_value if override is None else override


def _cli_flag_value(ctx: click.Context, name: str, value: bool, *, default: bool) -> bool:
    """Boolean flavour of `_cli_or_config`; *default* is the config value."""

    return bool(_cli_or_config(ctx, name, value, default))


__all__ = ["_cli_override_value", "_cli_flag_value", "_cli_or_config"]
