"""Image probing helpers built on the external ``file`` tool."""

from __future__ import annotations

import re
from pathlib import Path

from super_gsi.domain import ImageFile, ImageFormat
from super_gsi.logging import get_logger

from .command_runners import run_checked_command

log = get_logger(source="images", tags=["images"])

SPARSE_SIGNATURE = "Android sparse image"
FILESYSTEM_PATTERN = re.compile(r"(ext[2-4]|Android sparse|EROFS)", re.IGNORECASE)
SUPER_PATTERN = re.compile(r"(Android sparse|data)")


def human_size(size_bytes):
    if size_bytes is None:
        return "0B"
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}PB"


def describe_file(path) -> str:
    """Return the ``file -b`` description of ``path``, or "" if it fails."""
    try:
        output = run_checked_command(["file", "-b", str(path)])
    except (RuntimeError, OSError) as error:
        log.warning(f"Could not determine file type of {path}: {error}")
        return ""
    return output.strip()


def classify_description(description: str) -> ImageFormat:
    if not description:
        return ImageFormat.UNKNOWN
    if SPARSE_SIGNATURE in description:
        return ImageFormat.SPARSE
    return ImageFormat.RAW


def probe_image(path) -> ImageFile:
    """Stat and classify an image file."""
    path = Path(path)
    description = describe_file(path)
    image = ImageFile(
        path=path,
        size_bytes=path.stat().st_size,
        image_format=classify_description(description),
        description=description,
    )
    log.debug(
        f"{path.name}: {human_size(image.size_bytes)}, "
        f"{image.image_format.value} ({description or 'no description'})"
    )
    return image


def looks_like_filesystem(description: str) -> bool:
    return bool(FILESYSTEM_PATTERN.search(description or ""))


def looks_like_super(description: str) -> bool:
    return bool(SUPER_PATTERN.search(description or ""))
