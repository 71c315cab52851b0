"""Validation of the user-supplied super image and GSI.

Definite problems (missing file, empty file, a super image lpunpack cannot
read or that has no system partition) raise exceptions from the exceptions
module. Heuristic problems (small GSI, unrecognized file type) are returned
as ValidationWarning objects for the caller to confirm or reject.

Example:
    from super_gsi.storage.validation import resolve_input_path, validate_gsi_image

    gsi = resolve_input_path("~/Download/system.img")
    image, warnings = validate_gsi_image(gsi)
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional

from super_gsi.config import settings
from super_gsi.domain import (
    SYSTEM_PARTITION,
    ImageFile,
    SuperImageReport,
    ValidationWarning,
)
from super_gsi.logging import LoggerFactory

from .exceptions import (
    EmptyImageError,
    ImageNotFoundError,
    SuperImageValidationError,
    TransformError,
)
from .images import human_size, looks_like_filesystem, looks_like_super, probe_image
from .transform.tools import convert_sparse_to_raw, unpack_super

log = LoggerFactory.for_validation()


def resolve_input_path(raw_path: str) -> Path:
    """Expand ``~`` and resolve a user-typed path to an absolute file path.

    Raises:
        ImageNotFoundError: If the path is empty, missing, or not a file.
    """
    raw_path = (raw_path or "").strip()
    if not raw_path:
        raise ImageNotFoundError("(empty path)")
    expanded = os.path.expanduser(raw_path)
    resolved = Path(expanded).resolve()
    if not resolved.is_file():
        raise ImageNotFoundError(raw_path, str(resolved))
    log.success(f"File found: {resolved}")
    return resolved


def validate_not_empty(path: Path) -> int:
    """Return the file size, raising EmptyImageError for zero-length files."""
    try:
        size = path.stat().st_size
    except FileNotFoundError as error:
        raise ImageNotFoundError(str(path)) from error
    if size == 0:
        raise EmptyImageError(str(path))
    log.info(f"Size: {human_size(size)}")
    return size


def validate_gsi_image(
    path: Path, min_size: Optional[int] = None
) -> tuple[ImageFile, list[ValidationWarning]]:
    """Heuristic checks for a Generic System Image.

    The size check runs first; an undersized GSI is not type-checked.
    """
    if min_size is None:
        min_size = settings.get_int("min_gsi_size_bytes", settings.DEFAULT_MIN_GSI_SIZE_BYTES)
    log.info("Validating GSI (Generic System Image)...")
    validate_not_empty(path)
    image = probe_image(path)
    warnings: list[ValidationWarning] = []

    if image.size_bytes < min_size:
        warnings.append(
            ValidationWarning(
                code="gsi_too_small",
                message=f"GSI looks too small (< {human_size(min_size)})",
                details=(f"Current size: {human_size(image.size_bytes)}",),
            )
        )
        return image, warnings

    log.info(f"GSI type: {image.description or 'unknown'}")
    if looks_like_filesystem(image.description):
        log.success("GSI has a valid filesystem format")
    else:
        warnings.append(
            ValidationWarning(
                code="gsi_unrecognized_type",
                message="GSI may not have a recognized filesystem format",
                details=(f"Detected type: {image.description or 'unknown'}",),
            )
        )
    return image, warnings


def probe_super_structure(image: ImageFile, label: str = "super image") -> SuperImageReport:
    """Extract ``image`` into a scratch directory and report partition sizes.

    The scratch directory is always removed, whatever the outcome.

    Raises:
        SuperImageValidationError: If conversion or lpunpack fails, or no
            system partition is found.
    """
    log.info("Checking internal super partition structure...")
    with tempfile.TemporaryDirectory(prefix="super-gsi-check-") as scratch:
        scratch_dir = Path(scratch)
        test_file = image.path
        try:
            if image.is_sparse:
                log.info("Converting sparse to raw for verification...")
                test_file = convert_sparse_to_raw(
                    image.path, scratch_dir / "test_super.img"
                )
            extracted = unpack_super(test_file, scratch_dir / "test_extract")
        except TransformError as error:
            raise SuperImageValidationError(
                str(image.path), f"not a valid super partition structure ({error})"
            ) from error

        report = SuperImageReport(
            image=image,
            partitions={path.stem: path.stat().st_size for path in extracted},
        )

    log.success(f"{label} has a valid super partition structure")
    partitions = report.partitions
    log.info(f"Partitions found: {len(partitions)}")
    if not report.has_system:
        raise SuperImageValidationError(
            str(image.path), f"system partition not found in {label}"
        )
    log.info(f"System partition: {human_size(partitions[SYSTEM_PARTITION])}")
    for name in settings.get_setting(
        "optional_partitions", settings.DEFAULT_OPTIONAL_PARTITIONS
    ):
        if name in partitions:
            log.info(f"{name} partition: {human_size(partitions[name])}")
    return report


def validate_super_image(
    path: Path, label: str = "super image"
) -> tuple[SuperImageReport, list[ValidationWarning]]:
    """Validate a super image, including a structural probe with lpunpack.

    Returns:
        The structural report and any advisory warnings about the file type.
    """
    log.info(f"Validating {label}...")
    validate_not_empty(path)
    image = probe_image(path)
    log.info(f"Detected type: {image.description or 'unknown'}")
    warnings: list[ValidationWarning] = []
    if not looks_like_super(image.description):
        warnings.append(
            ValidationWarning(
                code="super_unrecognized_type",
                message=f"{label} does not look like an Android image",
                details=(f"Detected type: {image.description or 'unknown'}",),
            )
        )
    report = probe_super_structure(image, label)
    log.success(f"{label} passed validation")
    return report, warnings


def verify_repacked_super(path: Path) -> SuperImageReport:
    """Final structural check of a freshly built super image.

    Unlike input validation there is nobody to confirm warnings here, so
    only the structural probe matters.
    """
    report, _ = validate_super_image(path, "modified super image")
    return report
