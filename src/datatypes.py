"""Configuration dataclasses for the xmp-select tool."""
from dataclasses import dataclass, field
from typing import Dict, List

from src.xmp_select.extensions import DEFAULT_EXTENSIONS


@dataclass
class ExifToolConfig:
    """How the metadata evaluator is invoked."""

    bin: str = "exiftool"
    common_args: List[str] = field(default_factory=lambda: ["-m"])
    argfiles: List[str] = field(default_factory=list)
    no_match_exit_codes: List[int] = field(default_factory=lambda: [2])


@dataclass
class SelectionConfig:
    """Defaults for the selection criteria when the CLI does not override them."""

    extensions: str = DEFAULT_EXTENSIONS
    sidecar_extension: str = "xmp"
    include_sidecars: bool = False


@dataclass
class PrintConfig:
    """Formatted-print behaviour."""

    display_root: str = ""
    sidecar_tags: Dict[str, str] = field(default_factory=lambda: {"XMP:Rating": "0"})


@dataclass
class FindConfig:
    bin: str = "find"


@dataclass
class RsyncConfig:
    bin: str = "rsync"
    base_args: List[str] = field(default_factory=lambda: ["-av"])


@dataclass
class AppConfig:
    """Top-level configuration aggregate."""

    exiftool: ExifToolConfig = field(default_factory=ExifToolConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    print: PrintConfig = field(default_factory=PrintConfig)
    find: FindConfig = field(default_factory=FindConfig)
    rsync: RsyncConfig = field(default_factory=RsyncConfig)
