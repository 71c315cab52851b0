"""Thin wrappers around simg2img, lpunpack and lpmake."""

from __future__ import annotations

from pathlib import Path

from super_gsi.domain import RepackLayout
from super_gsi.logging import get_logger
from super_gsi.storage.command_runners import run_checked_command, run_command
from super_gsi.storage.exceptions import ConversionError, RepackError, UnpackError

# lpmake warns about this for every raw partition image; it is not an error.
LPMAKE_NOISE = ("Invalid sparse file format",)

log = get_logger(source="transform", tags=["transform"])


def convert_sparse_to_raw(source: Path, destination: Path) -> Path:
    """Expand an Android sparse image into a raw image with simg2img."""
    log.info(f"Converting sparse image to raw: {source.name} -> {destination.name}")
    try:
        run_checked_command(["simg2img", str(source), str(destination)])
    except (RuntimeError, OSError) as error:
        raise ConversionError(str(source), str(error)) from error
    if not destination.is_file():
        raise ConversionError(str(source), "simg2img produced no output")
    return destination


def unpack_super(raw_image: Path, extract_dir: Path) -> list[Path]:
    """Extract every logical partition of ``raw_image`` into ``extract_dir``.

    Returns:
        The extracted ``*.img`` files, sorted by name.
    """
    log.debug(f"Running: lpunpack {raw_image} {extract_dir}/")
    try:
        extract_dir.mkdir(parents=True, exist_ok=True)
        run_checked_command(["lpunpack", str(raw_image), f"{extract_dir}/"])
    except (RuntimeError, OSError) as error:
        raise UnpackError(str(raw_image), str(error)) from error
    return sorted(extract_dir.glob("*.img"))


def _run_lpmake(layout: RepackLayout, output: Path) -> bool:
    command = ["lpmake", *layout.to_args(output)]
    log.info(f"Command: {' '.join(command)}")
    try:
        run_command(command, ignore_patterns=LPMAKE_NOISE)
    except OSError as error:
        raise RepackError(str(output), str(error)) from error
    return output.is_file()


def repack_super(layout: RepackLayout, output: Path) -> Path:
    """Build a super image with lpmake.

    lpmake's exit status is unreliable with sparse output, so success is
    judged by the output file existing. One retry without ``--sparse`` is
    made when the first attempt yields nothing.

    Raises:
        RepackError: If neither attempt produced ``output``.
    """
    try:
        if output.exists():
            output.unlink()
    except OSError as error:
        raise RepackError(str(output), f"cannot remove previous output: {error}") from error
    log.warning("Warnings about 'Invalid sparse file format' are expected and harmless")
    if _run_lpmake(layout, output):
        return output
    if layout.sparse:
        log.error("Failed to create new super image - retrying without --sparse...")
        if _run_lpmake(layout.without_sparse(), output):
            return output
    raise RepackError(str(output), "lpmake produced no output image")
