"""CLI entry point: select media files by embedded or sidecar XMP metadata."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Dict, Optional, TypeVar, cast

import click

import src.xmp_select.doctor as doctor_module
from src.config_loader import ConfigError, default_config, load_config
from src.config_paths import resolve_config_path
from src.datatypes import AppConfig
from src.xmp_select.cli_runtime import configure_logging, fail, install_sigterm_handler, note
from src.xmp_select.cli_utils import _cli_flag_value, _cli_or_config
from src.xmp_select.collaborators import FindAction, RsyncAction
from src.xmp_select.criteria import SelectionCriteria, build_criteria, check_argfiles
from src.xmp_select.engine import SelectionEngine, SelectionResult, relative_to_root, selection_workspace
from src.xmp_select.env_flags import DEBUG_ENV_VAR, debug_requested
from src.xmp_select.errors import ConfigurationError, XmpSelectError
from src.xmp_select.evaluator import ExifToolEvaluator
from src.xmp_select.output import emit_formatted, emit_raw

logger = logging.getLogger("src.xmp_select.cli")

F = TypeVar("F", bound=Callable[..., Any])

_DEBUG_PREVIEW_LIMIT = 10


def _selection_options(func: F) -> F:
    """Options shared by every command that runs a selection."""

    decorators = [
        click.option(
            "--if",
            "expression",
            default=None,
            metavar="EXPR",
            help="ExifTool -if condition, passed through verbatim.",
        ),
        click.option(
            "-@",
            "--argfile",
            "argfiles",
            multiple=True,
            metavar="FILE",
            help="ExifTool argument file (repeatable).",
        ),
        click.option(
            "--ext",
            "extensions",
            default=None,
            metavar="LIST",
            help="Comma-separated extensions; overrides [selection].extensions.",
        ),
        click.option(
            "--include-sidecars",
            is_flag=True,
            default=False,
            help="Also select the XMP sidecar of every embedded match.",
        ),
        click.option(
            "-p",
            "--print",
            "template",
            default=None,
            metavar="FMT",
            help="Print each file through an ExifTool -p template.",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _params(ctx: click.Context) -> Dict[str, Any]:
    return cast(Dict[str, Any], ctx.ensure_object(dict))


def _load_app_config(ctx: click.Context) -> AppConfig:
    """Load the config named by --config or the environment, else defaults."""

    config_path = cast(Optional[Path], _params(ctx).get("config_path"))
    if config_path is None:
        return default_config()
    try:
        return load_config(config_path)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {config_path}") from exc


def _build_selection(
    ctx: click.Context,
    app: AppConfig,
    root: str,
    *,
    expression: Optional[str],
    argfiles: tuple[str, ...],
    extensions: Optional[str],
    include_sidecars: bool,
) -> SelectionCriteria:
    check_argfiles(Path(item).expanduser() for item in app.exiftool.argfiles)
    criteria = build_criteria(
        root,
        extensions=_cli_or_config(ctx, "extensions", extensions, app.selection.extensions),
        expression=expression,
        argfiles=argfiles,
        include_sidecars=_cli_flag_value(
            ctx, "include_sidecars", include_sidecars, default=app.selection.include_sidecars
        ),
        sidecar_extension=app.selection.sidecar_extension,
    )
    logger.debug("Extensions: %s", ",".join(criteria.extensions))
    logger.debug("Root: %s", criteria.root)
    return criteria


def _display_root(ctx: click.Context, app: AppConfig, typed_root: str, value: Optional[str]) -> str:
    configured = _cli_or_config(ctx, "display_root", value, app.print.display_root)
    return configured if configured else typed_root


def _print_formatted(
    result: SelectionResult,
    evaluator: ExifToolEvaluator,
    template: str,
    app: AppConfig,
    criteria: SelectionCriteria,
    display_root: str,
) -> None:
    emit_formatted(
        result,
        evaluator,
        template,
        root=criteria.root,
        stream=click.get_binary_stream("stdout"),
        display_root=display_root,
        sidecar_tags=app.print.sidecar_tags,
        sidecar_extension=criteria.sidecar_extension,
    )


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    metavar="PATH",
    help="TOML config file (defaults to $XMP_SELECT_CONFIG when set).",
)
@click.option("--debug", is_flag=True, help=f"Debug logging (also {DEBUG_ENV_VAR}=1).")
@click.option("-v", "--verbose", is_flag=True, help="Log each file found by every pass.")
@click.option("--no-color", is_flag=True, help="Disable ANSI colour output.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, debug: bool, verbose: bool, no_color: bool) -> None:
    """Select media files by metadata embedded in the file or in its XMP sidecar."""

    debug = debug or debug_requested()
    configure_logging(debug=debug, verbose=verbose, no_color=no_color)
    install_sigterm_handler()
    params_map = _params(ctx)
    params_map.update(
        {
            "config_path": resolve_config_path(config_path),
            "debug": debug,
            "verbose": verbose,
            "no_color": no_color,
        }
    )
    ctx.obj = params_map


@main.command("find")
@click.argument("root", type=click.Path(file_okay=False))
@_selection_options
@click.option(
    "--find-args",
    "find_args",
    multiple=True,
    metavar="STR",
    help="Arguments for find, split shell-style (repeatable; default -print).",
)
@click.option("--print0", "print0", is_flag=True, help="Write the NUL-separated list to stdout.")
@click.option(
    "--display-root",
    "display_root",
    default=None,
    metavar="STR",
    help="Prefix shown in place of ROOT by $FilePath in --print.",
)
@click.pass_context
def find_command(
    ctx: click.Context,
    root: str,
    expression: Optional[str],
    argfiles: tuple[str, ...],
    extensions: Optional[str],
    include_sidecars: bool,
    template: Optional[str],
    find_args: tuple[str, ...],
    print0: bool,
    display_root: Optional[str],
) -> None:
    """Select files under ROOT and list, print or hand them to find."""

    no_color = bool(_params(ctx).get("no_color", False))
    try:
        app = _load_app_config(ctx)
        criteria = _build_selection(
            ctx,
            app,
            root,
            expression=expression,
            argfiles=argfiles,
            extensions=extensions,
            include_sidecars=include_sidecars,
        )
        evaluator = ExifToolEvaluator(app.exiftool)

        find_action: Optional[FindAction] = None
        if template is None and not print0:
            find_action = FindAction.detect(app.find, criteria.root, find_args)
            if not find_action.available:
                note("GNU find not detected; printing the NUL-separated list instead.", no_color=no_color)

        with selection_workspace() as workspace:
            result = SelectionEngine(evaluator).select(criteria, workspace)
            if template is not None:
                _print_formatted(
                    result,
                    evaluator,
                    template,
                    app,
                    criteria,
                    _display_root(ctx, app, root, display_root),
                )
            elif find_action is None or not find_action.available:
                emit_raw(result, click.get_binary_stream("stdout"))
            else:
                status = find_action.run(result)
                if status != 0:
                    raise click.exceptions.Exit(status)
    except XmpSelectError as exc:
        fail(exc, no_color=no_color)


@main.command("sync")
@click.argument("source", type=click.Path(file_okay=False))
@click.argument("dest", type=click.Path(file_okay=False))
@_selection_options
@click.option(
    "--rsync-args",
    "rsync_args",
    multiple=True,
    metavar="STR",
    help="Extra rsync arguments, split shell-style (repeatable).",
)
@click.pass_context
def sync_command(
    ctx: click.Context,
    source: str,
    dest: str,
    expression: Optional[str],
    argfiles: tuple[str, ...],
    extensions: Optional[str],
    include_sidecars: bool,
    template: Optional[str],
    rsync_args: tuple[str, ...],
) -> None:
    """Copy the files selected under SOURCE into DEST with rsync.

    With --print the selection is printed instead and nothing is copied.
    """

    no_color = bool(_params(ctx).get("no_color", False))
    try:
        app = _load_app_config(ctx)
        criteria = _build_selection(
            ctx,
            app,
            source,
            expression=expression,
            argfiles=argfiles,
            extensions=extensions,
            include_sidecars=include_sidecars,
        )
        evaluator = ExifToolEvaluator(app.exiftool)

        rsync_action: Optional[RsyncAction] = None
        if template is None:
            rsync_action = RsyncAction.detect(app.rsync, criteria.root, Path(dest).expanduser(), rsync_args)
            if not rsync_action.available:
                note(f"{app.rsync.bin} not found; printing the NUL-separated list instead.", no_color=no_color)

        with selection_workspace() as workspace:
            result = SelectionEngine(evaluator).select(criteria, workspace)
            note(f"Selected files: {len(result)}", no_color=no_color)
            if logger.isEnabledFor(logging.DEBUG):
                for path in result.paths[:_DEBUG_PREVIEW_LIMIT]:
                    logger.debug("  %s", os.fsdecode(relative_to_root(path, criteria.root_bytes)))
            if template is not None:
                _print_formatted(
                    result,
                    evaluator,
                    template,
                    app,
                    criteria,
                    _display_root(ctx, app, source, None),
                )
            elif rsync_action is None or not rsync_action.available:
                emit_raw(result, click.get_binary_stream("stdout"))
            elif len(result) == 0:
                note("Nothing to sync.", no_color=no_color)
            else:
                status = rsync_action.run(result)
                if status != 0:
                    raise click.exceptions.Exit(status)
    except XmpSelectError as exc:
        fail(exc, no_color=no_color)


@main.command("doctor")
@click.option("--json", "json_mode", is_flag=True, help="Emit machine-readable diagnostics.")
@click.pass_context
def doctor(ctx: click.Context, json_mode: bool) -> None:
    """Summarise whether exiftool, GNU find and rsync are usable."""

    config_path = cast(Optional[Path], _params(ctx).get("config_path"))
    config_issue: Optional[str] = None
    try:
        app = _load_app_config(ctx)
    except ConfigurationError as exc:
        config_issue = f"Config loading failed: {exc}"
        app = default_config()

    checks, notes = doctor_module.collect_checks(app, config_path, config_issue=config_issue)
    doctor_module.emit_results(checks, notes, json_mode=json_mode, config_path=config_path)


if __name__ == "__main__":
    _entry_point = cast(Callable[[], None], main)
    _entry_point()
