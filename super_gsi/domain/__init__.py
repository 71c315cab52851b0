"""Domain models for the super.img system-swap pipeline."""

from __future__ import annotations

from .models import (
    PARTITION_ORDER,
    SYSTEM_PARTITION,
    ImageFile,
    ImageFormat,
    PartitionImage,
    PartitionSet,
    RepackLayout,
    SuperImageReport,
    SwapRequest,
    TransformState,
    ValidationWarning,
)


__all__ = [
    "PARTITION_ORDER",
    "SYSTEM_PARTITION",
    "ImageFile",
    "ImageFormat",
    "PartitionImage",
    "PartitionSet",
    "RepackLayout",
    "SuperImageReport",
    "SwapRequest",
    "TransformState",
    "ValidationWarning",
]
