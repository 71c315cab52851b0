"""Odin AP package creation and verification.

An Odin ``.tar.md5`` is a plain tar archive with the MD5 of the archive
appended as ``"<hex>  <filename>"`` (two spaces, no trailing newline).
"""

from __future__ import annotations

import hashlib
import re
import shutil
from pathlib import Path

from super_gsi.logging import get_logger

from .command_runners import find_tool, run_checked_command
from .exceptions import ArchiveError, PackageVerificationError
from .images import human_size
from .workspace import Workspace

TAR_ENTRY_NAME = "super.img"
TRAILER_SEPARATOR = b"  "
MD5_HEX = re.compile(rb"^[0-9a-f]{32}$")
CHUNK_SIZE = 4 * 1024 * 1024

log = get_logger(source="package", tags=["package"])


def compute_md5(path: Path) -> str:
    """MD5 of a file, via md5sum when available, else hashlib."""
    md5sum_path = find_tool("md5sum")
    if md5sum_path:
        output = run_checked_command([md5sum_path, str(path)])
        checksum = output.split()[0] if output else ""
        if checksum:
            return checksum.lower()
    digest = hashlib.md5()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def format_trailer(checksum: str, filename: str) -> bytes:
    return f"{checksum}  {filename}".encode("ascii")


def create_tar(image: Path, workspace: Workspace, output_name: str) -> Path:
    """Stage ``image`` as super.img and archive it as ``<name>_AP.tar``."""
    package_dir = workspace.package_dir
    staged = package_dir / TAR_ENTRY_NAME
    try:
        if package_dir.exists():
            shutil.rmtree(package_dir)
        package_dir.mkdir(parents=True)
        shutil.move(str(image), str(staged))
    except OSError as error:
        raise ArchiveError(
            f"Failed to stage {image.name} for packaging: {error}", str(staged)
        ) from error

    tar_path = workspace.root / f"{output_name}_AP.tar"
    log.info("Creating TAR archive for Odin...")
    try:
        run_checked_command(["tar", "-cf", str(tar_path), TAR_ENTRY_NAME], cwd=package_dir)
    except (RuntimeError, OSError) as error:
        raise ArchiveError(f"Failed to create TAR archive: {error}", str(tar_path)) from error
    if not tar_path.is_file():
        raise ArchiveError("Failed to create TAR archive", str(tar_path))
    log.success(f"TAR archive created: {human_size(tar_path.stat().st_size)}")
    return tar_path


def append_odin_trailer(tar_path: Path) -> tuple[Path, str]:
    """Rename ``<name>.tar`` to ``<name>.tar.md5`` and append its digest."""
    log.info("Generating MD5 hash...")
    final_path = tar_path.with_name(f"{tar_path.name}.md5")
    try:
        checksum = compute_md5(tar_path)
        tar_path.rename(final_path)
        with open(final_path, "ab") as handle:
            handle.write(format_trailer(checksum, final_path.name))
    except (RuntimeError, OSError) as error:
        raise ArchiveError(
            f"Failed to append MD5 trailer: {error}", str(final_path)
        ) from error
    log.success(f"MD5 hash: {checksum}")
    return final_path, checksum


def read_trailer(path: Path) -> tuple[str, str, int]:
    """Parse the trailer of an Odin package.

    Returns:
        (checksum, filename, archive_length) where archive_length is the
        number of bytes preceding the trailer.
    """
    try:
        size = path.stat().st_size
        tail_length = min(size, 512)
        with open(path, "rb") as handle:
            handle.seek(size - tail_length)
            tail = handle.read()
    except OSError as error:
        raise ArchiveError(f"Cannot read package: {error}", str(path)) from error
    # tar pads with NUL blocks, so the trailer is what follows the last NUL
    trailer = tail.rsplit(b"\x00", 1)[-1]
    checksum, sep, filename = trailer.partition(TRAILER_SEPARATOR)
    if not sep or not MD5_HEX.match(checksum):
        raise PackageVerificationError(str(path), "<missing>", "<unknown>")
    return checksum.decode("ascii"), filename.decode("utf-8", errors="replace"), size - len(trailer)


def verify_odin_package(path: Path) -> str:
    """Recompute the MD5 of the archive bytes and compare with the trailer."""
    expected, filename, archive_length = read_trailer(path)
    digest = hashlib.md5()
    remaining = archive_length
    try:
        with open(path, "rb") as handle:
            while remaining > 0:
                chunk = handle.read(min(CHUNK_SIZE, remaining))
                if not chunk:
                    break
                digest.update(chunk)
                remaining -= len(chunk)
    except OSError as error:
        raise ArchiveError(f"Cannot read package: {error}", str(path)) from error
    actual = digest.hexdigest()
    if actual != expected:
        raise PackageVerificationError(str(path), expected, actual)
    if filename != path.name:
        log.warning(f"Trailer names {filename}, but the file is called {path.name}")
    log.success(f"Odin package verified: {path.name}")
    return actual


def create_odin_package(image: Path, workspace: Workspace, output_name: str) -> Path:
    """Full packaging step: tar, digest, trailer, verification."""
    tar_path = create_tar(image, workspace, output_name)
    final_path, _ = append_odin_trailer(tar_path)
    verify_odin_package(final_path)
    return final_path
