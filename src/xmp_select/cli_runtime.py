"""Console, logging and error reporting shared by the Click commands."""

from __future__ import annotations

import logging
import signal
from types import FrameType
from typing import Final, NoReturn, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .errors import XmpSelectError

PACKAGE_LOGGER: Final[str] = "src.xmp_select"

_HANDLER_MARK = "_xmp_select_handler"


def make_console(*, no_color: bool = False) -> Console:
    """Return a console bound to stderr; stdout is reserved for path output."""

    return Console(stderr=True, no_color=no_color, highlight=False, soft_wrap=True)


def configure_logging(*, debug: bool = False, verbose: bool = False, no_color: bool = False) -> logging.Logger:
    """
    Attach a Rich handler to the package logger.

    WARNING by default, INFO with ``verbose``, DEBUG with ``debug``. Calling
    it again replaces the previous handler.
    """

    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            logger.removeHandler(handler)
    handler = RichHandler(
        console=make_console(no_color=no_color),
        show_time=False,
        show_path=debug,
        markup=False,
        rich_tracebacks=debug,
    )
    setattr(handler, _HANDLER_MARK, True)
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def note(message: str, *, prog: str = "xmp-select", no_color: bool = False) -> None:
    """Print one informational line to stderr."""

    make_console(no_color=no_color).print(f"[dim]\\[{prog}][/] {escape(message)}")


def fail(exc: XmpSelectError, *, no_color: bool = False) -> NoReturn:
    """Print *exc* as a single diagnostic line and exit with its code."""

    make_console(no_color=no_color).print(f"[red]Error:[/red] {escape(exc.rich_message)}")
    raise click.exceptions.Exit(exc.code)


def install_sigterm_handler() -> None:
    """Turn SIGTERM into SystemExit so temporary files are cleaned up."""

    def _handler(signum: int, frame: Optional[FrameType]) -> None:
        raise SystemExit(128 + signum)

    try:
        signal.signal(signal.SIGTERM, _handler)
    except ValueError:  # pragma: no cover - not on the main thread
        pass


__all__ = [
    "PACKAGE_LOGGER",
    "configure_logging",
    "fail",
    "install_sigterm_handler",
    "make_console",
    "note",
]
