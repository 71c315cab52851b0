"""Partition discovery and super-partition size computation."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from super_gsi.config import settings
from super_gsi.domain import SYSTEM_PARTITION, PartitionImage, PartitionSet, RepackLayout
from super_gsi.logging import get_logger
from super_gsi.storage.exceptions import SystemReplaceError, TransformError
from super_gsi.storage.images import human_size

log = get_logger(source="layout", tags=["transform", "layout"])


def read_partition(path: Path) -> PartitionImage:
    try:
        return PartitionImage.from_path(path)
    except OSError as error:
        raise TransformError(f"Cannot read partition image {path}: {error}") from error


def collect_partitions(
    extract_dir: Path, optional: Optional[Iterable[str]] = None
) -> PartitionSet:
    """Read current sizes of the partitions to repack.

    ``system`` is mandatory; each optional partition is included only when
    its image exists. Partitions not named here are left out of the repack.
    """
    if optional is None:
        optional = settings.get_setting(
            "optional_partitions", settings.DEFAULT_OPTIONAL_PARTITIONS
        )
    system_image = extract_dir / f"{SYSTEM_PARTITION}.img"
    if not system_image.is_file():
        raise SystemReplaceError(f"{system_image} is missing from the extraction")
    partitions = {SYSTEM_PARTITION: read_partition(system_image)}
    for name in optional:
        image_path = extract_dir / f"{name}.img"
        if image_path.is_file():
            partitions[name] = read_partition(image_path)
    partition_set = PartitionSet(partitions)
    log.info("Partition sizes:")
    for partition in partition_set:
        log.info(f"- {partition.name}: {human_size(partition.size_bytes)}")
    return partition_set


def compute_super_size(total_bytes: int, margin_divisor: Optional[int] = None) -> int:
    """Add headroom to the summed partition sizes.

    With the default divisor of 5 this is ``total * 1.2`` in integer
    arithmetic.
    """
    if margin_divisor is None:
        margin_divisor = settings.get_int(
            "super_margin_divisor", settings.DEFAULT_SUPER_MARGIN_DIVISOR
        )
    if margin_divisor <= 0:
        raise ValueError(f"margin divisor must be positive, got {margin_divisor}")
    return total_bytes + total_bytes // margin_divisor


def build_repack_layout(partitions: PartitionSet) -> RepackLayout:
    device_size = compute_super_size(partitions.total_size)
    log.info(f"Computed super size: {human_size(device_size)}")
    return RepackLayout(
        partitions=tuple(partitions),
        device_size=device_size,
        group_name=settings.get_setting("group_name", "main"),
        super_name=settings.get_setting("super_name", "super"),
        metadata_size=settings.get_int("metadata_size", settings.DEFAULT_METADATA_SIZE),
        metadata_slots=settings.get_int(
            "metadata_slots", settings.DEFAULT_METADATA_SLOTS
        ),
        sparse=settings.get_bool("sparse_output", True),
    )
