"""Working directory lifecycle for one pipeline run.

The workspace holds every intermediate artifact (raw super image,
extracted partitions, the Odin staging directory). It is cleaned on
success and left untouched on failure so it can be inspected.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

import psutil

from super_gsi.domain import ValidationWarning
from super_gsi.logging import LoggerFactory

from .exceptions import WorkspaceError
from .images import human_size

EXTRACT_DIRNAME = "extracted"
PACKAGE_DIRNAME = "odin_package"
SUPER_RAW_FILENAME = "super_raw.img"

# Leftovers from earlier runs; user files never match these.
STALE_DIRS = (EXTRACT_DIRNAME, PACKAGE_DIRNAME)
STALE_GLOBS = (
    SUPER_RAW_FILENAME,
    "*.tar",
    "*.tar.*",
    "*_super.img",
    "*_modified.img",
    "temp_*.img",
    "work_*.img",
)

log = LoggerFactory.for_workspace()


class Workspace:
    """A directory that owns the intermediate files of one run."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser().resolve()

    @property
    def extract_dir(self) -> Path:
        return self.root / EXTRACT_DIRNAME

    @property
    def package_dir(self) -> Path:
        return self.root / PACKAGE_DIRNAME

    @property
    def super_raw_path(self) -> Path:
        return self.root / SUPER_RAW_FILENAME

    def create(self) -> None:
        log.info(f"Creating working directory: {self.root}")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise WorkspaceError(
                f"Could not create directory {self.root}: {error}", str(self.root)
            ) from error
        if not self.root.is_dir():
            raise WorkspaceError(f"Not a directory: {self.root}", str(self.root))

    def clean_stale(self, keep: tuple[Path, ...] = ()) -> list[Path]:
        """Remove artifacts a previous run may have left behind.

        Args:
            keep: Paths that must survive even if they match a stale pattern
                (the user's own inputs, when they live in the workspace).

        Returns:
            The paths that were removed.
        """
        protected = {Path(path).resolve() for path in keep}
        removed: list[Path] = []
        try:
            for dirname in STALE_DIRS:
                target = self.root / dirname
                if target.is_dir():
                    shutil.rmtree(target)
                    removed.append(target)
            for pattern in STALE_GLOBS:
                for target in self.root.glob(pattern):
                    if target.resolve() in protected or not target.is_file():
                        continue
                    target.unlink()
                    removed.append(target)
        except OSError as error:
            raise WorkspaceError(
                f"Could not remove stale artifacts: {error}", str(self.root)
            ) from error
        if removed:
            log.debug(f"Removed stale artifacts: {[p.name for p in removed]}")
        return removed

    def free_space(self) -> int:
        try:
            return psutil.disk_usage(str(self.root)).free
        except OSError as error:
            raise WorkspaceError(
                f"Could not read free space: {error}", str(self.root)
            ) from error

    def check_free_space(self, required_bytes: int) -> Optional[ValidationWarning]:
        """Compare free space against an estimate; advisory only."""
        available = self.free_space()
        log.info(f"Estimated space required: {human_size(required_bytes)}")
        if required_bytes > available:
            return ValidationWarning(
                code="low_disk_space",
                message="Insufficient free space in the working directory",
                details=(
                    f"Required: {human_size(required_bytes)}",
                    f"Available: {human_size(available)}",
                    "Consider using a directory with more free space",
                ),
            )
        return None

    def cleanup(self, remove_super_raw: bool) -> None:
        """Delete intermediate artifacts after a successful run.

        ``super_raw.img`` is removed only when this run generated it.
        """
        log.info("Removing temporary files...")
        try:
            for target in (self.extract_dir, self.package_dir):
                if target.is_dir():
                    shutil.rmtree(target)
            if remove_super_raw and self.super_raw_path.exists():
                self.super_raw_path.unlink()
        except OSError as error:
            raise WorkspaceError(
                f"Could not remove temporary files: {error}", str(self.root)
            ) from error
