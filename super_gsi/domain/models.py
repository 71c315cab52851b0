"""Domain model for the super.img system-swap pipeline.

Every stage receives these objects explicitly instead of reading ambient
state such as the current directory or a growing command string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, Mapping


SYSTEM_PARTITION = "system"

# Repack order: system first, then the optional partitions.
PARTITION_ORDER = ("system", "vendor", "product", "odm", "system_ext")


# ==============================================================================
# Image Domain
# ==============================================================================


class ImageFormat(Enum):
    """On-disk encoding of an image file, as reported by ``file``."""

    SPARSE = "sparse"  # Android sparse image, needs simg2img first
    RAW = "raw"  # Raw filesystem or super image
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ImageFile:
    """An image on disk with its probed size and format."""

    path: Path
    size_bytes: int
    image_format: ImageFormat
    description: str = ""  # Raw output of the file probe

    @property
    def is_sparse(self) -> bool:
        return self.image_format == ImageFormat.SPARSE


# ==============================================================================
# Partition Domain
# ==============================================================================


@dataclass(frozen=True)
class PartitionImage:
    """One logical partition image extracted from a super image."""

    name: str  # e.g., "system", "vendor"
    path: Path
    size_bytes: int

    @classmethod
    def from_path(cls, path: Path) -> PartitionImage:
        """Build from an ``<name>.img`` file, reading its current size."""
        return cls(name=path.stem, path=path, size_bytes=path.stat().st_size)


@dataclass(frozen=True)
class PartitionSet:
    """Partitions available for repacking, keyed by name.

    Iteration follows PARTITION_ORDER for known names, then any other
    partitions alphabetically.
    """

    partitions: Mapping[str, PartitionImage] = field(default_factory=dict)

    def __iter__(self) -> Iterator[PartitionImage]:
        known = [name for name in PARTITION_ORDER if name in self.partitions]
        extra = sorted(name for name in self.partitions if name not in PARTITION_ORDER)
        for name in known + extra:
            yield self.partitions[name]

    def __len__(self) -> int:
        return len(self.partitions)

    def __contains__(self, name: object) -> bool:
        return name in self.partitions

    def get(self, name: str) -> PartitionImage | None:
        return self.partitions.get(name)

    @property
    def names(self) -> list[str]:
        return [partition.name for partition in self]

    @property
    def total_size(self) -> int:
        return sum(partition.size_bytes for partition in self.partitions.values())

    def replace(self, image: PartitionImage) -> PartitionSet:
        """Return a new set with ``image`` taking the slot of the same name."""
        updated = dict(self.partitions)
        updated[image.name] = image
        return PartitionSet(updated)


@dataclass(frozen=True)
class SuperImageReport:
    """Outcome of a structural probe of a super image."""

    image: ImageFile
    partitions: dict[str, int]  # name -> extracted size in bytes

    @property
    def has_system(self) -> bool:
        return SYSTEM_PARTITION in self.partitions


# ==============================================================================
# Repack Domain
# ==============================================================================


@dataclass(frozen=True)
class RepackLayout:
    """Typed description of an lpmake invocation.

    Each partition becomes a readonly entry in a single group sized to
    ``device_size``.
    """

    partitions: tuple[PartitionImage, ...]
    device_size: int
    group_name: str = "main"
    super_name: str = "super"
    metadata_size: int = 65536
    metadata_slots: int = 2
    sparse: bool = True

    def without_sparse(self) -> RepackLayout:
        return RepackLayout(
            partitions=self.partitions,
            device_size=self.device_size,
            group_name=self.group_name,
            super_name=self.super_name,
            metadata_size=self.metadata_size,
            metadata_slots=self.metadata_slots,
            sparse=False,
        )

    def to_args(self, output: Path) -> list[str]:
        """Render the layout as lpmake arguments (without the program name)."""
        args = [
            "--metadata-size",
            str(self.metadata_size),
            "--super-name",
            self.super_name,
            "--metadata-slots",
            str(self.metadata_slots),
            "--device",
            f"{self.super_name}:{self.device_size}",
            "--group",
            f"{self.group_name}:{self.device_size}",
        ]
        for partition in self.partitions:
            args.extend(
                [
                    "--partition",
                    f"{partition.name}:readonly:{partition.size_bytes}:{self.group_name}",
                    "--image",
                    f"{partition.name}={partition.path}",
                ]
            )
        if self.sparse:
            args.append("--sparse")
        args.extend(["--output", str(output)])
        return args


class TransformState(Enum):
    """Progress of the super image through the transformer."""

    RAW_PENDING = "raw_pending"
    UNPACKED = "unpacked"
    SYSTEM_REPLACED = "system_replaced"
    REPACKED = "repacked"


# ==============================================================================
# Request Domain
# ==============================================================================


@dataclass(frozen=True)
class SwapRequest:
    """Everything the pipeline needs, collected up front from the user."""

    super_image: Path
    gsi_image: Path
    work_dir: Path
    output_name: str

    @property
    def archive_name(self) -> str:
        """Final artifact file name, e.g. ``super_modified_AP.tar.md5``."""
        return f"{self.tar_name}.md5"

    @property
    def tar_name(self) -> str:
        return f"{self.output_name}_AP.tar"

    @property
    def repacked_name(self) -> str:
        return f"{self.output_name}_super.img"


@dataclass(frozen=True)
class ValidationWarning:
    """An advisory finding the user may choose to continue past."""

    code: str  # e.g., "gsi_too_small"
    message: str
    details: tuple[str, ...] = ()
