"""Dependency doctor: report whether exiftool, GNU find and rsync are usable."""

from __future__ import annotations

import json
import shutil
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Final, Literal, Optional, TypedDict

import click

from src.datatypes import AppConfig

from .collaborators import detect_gnu_find
from .subproc import probe, run_checked

DoctorStatus = Literal["pass", "fail", "warn"]


class DoctorCheck(TypedDict):
    """Structured result for dependency doctor checks."""

    id: str
    label: str
    status: DoctorStatus
    message: str


_DOCTOR_STATUS_ICONS: Final[dict[DoctorStatus, str]] = {
    "pass": "✅",
    "fail": "❌",
    "warn": "⚠️",
}


def _exiftool_version(binary: str) -> Optional[str]:
    try:
        completed = run_checked([binary, "-ver"])
    except OSError:
        return None
    if completed.returncode != 0:
        return None
    return (completed.stdout or b"").decode("utf-8", errors="replace").strip() or None


def collect_checks(
    config: AppConfig,
    config_path: Optional[Path],
    *,
    config_issue: str | None = None,
    which: Optional[Callable[[str], Optional[str]]] = None,
) -> tuple[list[DoctorCheck], list[str]]:
    """Generate doctor check results and auxiliary notes."""

    notes: list[str] = []
    checks: list[DoctorCheck] = []
    which = which or shutil.which

    if config_issue:
        config_status: DoctorStatus = "fail"
        config_message = config_issue
    elif config_path is None:
        config_status = "pass"
        config_message = "No config file given; using built-in defaults."
    else:
        config_status = "pass"
        config_message = f"{config_path} loaded."
    checks.append({
        "id": "config",
        "label": "Configuration",
        "status": config_status,
        "message": config_message,
    })

    exiftool_bin = config.exiftool.bin
    exiftool_path = which(exiftool_bin)
    version = _exiftool_version(exiftool_bin) if exiftool_path else None
    if exiftool_path and version:
        exif_status: DoctorStatus = "pass"
        exif_message = f"{exiftool_path} (version {version})."
    elif exiftool_path:
        exif_status = "fail"
        exif_message = f"{exiftool_path} found but '-ver' failed."
    else:
        exif_status = "fail"
        exif_message = f"{exiftool_bin} not found. Install ExifTool or set [exiftool].bin."
    checks.append({
        "id": "exiftool",
        "label": "ExifTool",
        "status": exif_status,
        "message": exif_message,
    })

    if exif_status == "pass":
        if probe([exiftool_bin, "-0", "-ver"]):
            nul_status: DoctorStatus = "pass"
            nul_message = "Native NUL-separated output (-0) supported."
        else:
            nul_status = "warn"
            nul_message = "No -0 support; paths containing newlines cannot be selected."
    else:
        nul_status = "warn"
        nul_message = "Skipped; ExifTool unavailable."
    checks.append({
        "id": "exiftool-nul",
        "label": "ExifTool NUL output",
        "status": nul_status,
        "message": nul_message,
    })

    if detect_gnu_find(config.find.bin, which=which):
        find_status: DoctorStatus = "pass"
        find_message = "GNU findutils detected."
    else:
        find_status = "warn"
        find_message = "GNU find not detected; 'find' will print the raw list instead."
    checks.append({
        "id": "find",
        "label": "GNU find",
        "status": find_status,
        "message": find_message,
    })

    rsync_path = which(config.rsync.bin)
    if rsync_path:
        rsync_status: DoctorStatus = "pass"
        rsync_message = f"{rsync_path} available."
    else:
        rsync_status = "warn"
        rsync_message = f"{config.rsync.bin} not found; 'sync' will print the raw list instead."
    checks.append({
        "id": "rsync",
        "label": "rsync",
        "status": rsync_status,
        "message": rsync_message,
    })

    for argfile in config.exiftool.argfiles:
        if not Path(argfile).expanduser().is_file():
            notes.append(f"Configured argfile does not exist: {argfile}")

    return checks, notes


def emit_results(
    checks: Sequence[DoctorCheck],
    notes: Sequence[str],
    *,
    json_mode: bool,
    config_path: Optional[Path],
) -> None:
    """Render doctor results either as text or JSON payload."""

    if json_mode:
        payload = {
            "config_path": str(config_path) if config_path is not None else None,
            "checks": list(checks),
            "notes": list(notes),
        }
        click.echo(json.dumps(payload, indent=2))
        return

    if checks:
        width = max(len(check["label"]) for check in checks)
    else:
        width = 0
    for check in checks:
        icon = _DOCTOR_STATUS_ICONS.get(check["status"], "•")
        label = check["label"].ljust(width)
        click.echo(f"{icon} {label}  {check['message']}")
    if notes:
        click.echo("Notes:")
        for note in notes:
            click.echo(f"  - {note}")


__all__ = ["DoctorCheck", "DoctorStatus", "collect_checks", "emit_results"]
