"""Drives a super image through unpack, system swap and repack."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from super_gsi.domain import (
    SYSTEM_PARTITION,
    ImageFile,
    PartitionSet,
    SwapRequest,
    TransformState,
)
from super_gsi.logging import get_logger, operation_context
from super_gsi.storage.exceptions import SystemReplaceError, TransformError
from super_gsi.storage.images import human_size
from super_gsi.storage.workspace import Workspace

from .layout import build_repack_layout, collect_partitions, read_partition
from .tools import convert_sparse_to_raw, repack_super, unpack_super

log = get_logger(source="transform", tags=["transform"])


def prepare_raw_super(super_image: ImageFile, workspace: Workspace) -> tuple[Path, bool]:
    """Return a raw super image for lpunpack.

    A sparse image is converted to ``super_raw.img`` in the workspace; a raw
    one is used where it is, without copying.

    Returns:
        (raw_path, generated) where ``generated`` is True when this call
        wrote ``super_raw.img``.
    """
    if super_image.is_sparse:
        log.info("Super image is sparse, converting to raw...")
        return convert_sparse_to_raw(super_image.path, workspace.super_raw_path), True
    log.info("Super image is already raw, using it in place")
    return super_image.path, False


def replace_system_image(extract_dir: Path, gsi_image: ImageFile) -> Path:
    """Put the GSI in place of ``system.img``, in raw form.

    Raises:
        SystemReplaceError: If the GSI cannot be converted or copied.
    """
    target = extract_dir / f"{SYSTEM_PARTITION}.img"
    try:
        if target.exists():
            target.unlink()
    except OSError as error:
        raise SystemReplaceError(
            f"Failed to remove the original system.img: {error}", str(gsi_image.path)
        ) from error
    if gsi_image.is_sparse:
        log.info("GSI is sparse, converting to raw...")
        try:
            convert_sparse_to_raw(gsi_image.path, target)
        except TransformError as error:
            raise SystemReplaceError(
                f"Failed to convert GSI from sparse to raw: {error}",
                str(gsi_image.path),
            ) from error
    else:
        log.info("GSI is already raw, copying...")
        try:
            shutil.copyfile(gsi_image.path, target)
        except OSError as error:
            raise SystemReplaceError(
                f"Failed to copy GSI: {error}", str(gsi_image.path)
            ) from error
    log.info(f"New system.img size: {human_size(target.stat().st_size)}")
    return target


class ImageTransformer:
    """State machine: RAW_PENDING -> UNPACKED -> SYSTEM_REPLACED -> REPACKED.

    Each step checks it is being called from the expected state, so a
    partially failed run can never skip ahead.
    """

    def __init__(
        self,
        request: SwapRequest,
        workspace: Workspace,
        super_image: ImageFile,
        gsi_image: ImageFile,
    ):
        self.request = request
        self.workspace = workspace
        self.super_image = super_image
        self.gsi_image = gsi_image
        self.state = TransformState.RAW_PENDING
        self.raw_super: Optional[Path] = None
        self.super_raw_generated = False
        self.partitions: Optional[PartitionSet] = None
        self.output: Optional[Path] = None

    def _require(self, expected: TransformState) -> None:
        if self.state != expected:
            raise TransformError(
                f"Cannot run this step from state {self.state.value}, "
                f"expected {expected.value}"
            )

    def unpack(self) -> list[Path]:
        """Convert the super image to raw if needed and extract it."""
        self._require(TransformState.RAW_PENDING)
        with operation_context("unpack", image=str(self.super_image.path)) as op_log:
            self.raw_super, self.super_raw_generated = prepare_raw_super(
                self.super_image, self.workspace
            )
            op_log.info(f"Using: {self.raw_super}")
            extracted = unpack_super(self.raw_super, self.workspace.extract_dir)
            op_log.info(f"Extracted partitions: {[path.stem for path in extracted]}")
            self.partitions = collect_partitions(self.workspace.extract_dir)
            op_log.info(f"Partitions to repack: {self.partitions.names}")
        self.state = TransformState.UNPACKED
        return extracted

    def replace_system(self) -> Path:
        self._require(TransformState.UNPACKED)
        with operation_context("replace", gsi=str(self.gsi_image.path)) as op_log:
            previous = self.partitions.get(SYSTEM_PARTITION)
            target = replace_system_image(self.workspace.extract_dir, self.gsi_image)
            self.partitions = self.partitions.replace(read_partition(target))
            op_log.info(
                f"system.img: {human_size(previous.size_bytes)} -> "
                f"{human_size(self.partitions.get(SYSTEM_PARTITION).size_bytes)}"
            )
        self.state = TransformState.SYSTEM_REPLACED
        return target

    def repack(self) -> Path:
        """Build the new super image from the recorded partitions."""
        self._require(TransformState.SYSTEM_REPLACED)
        output = self.workspace.root / self.request.repacked_name
        with operation_context("repack", output=str(output)) as op_log:
            layout = build_repack_layout(self.partitions)
            self.output = repack_super(layout, output)
            op_log.info(f"Final size: {human_size(self.output.stat().st_size)}")
        self.state = TransformState.REPACKED
        return self.output

    def run(self) -> Path:
        self.unpack()
        self.replace_system()
        return self.repack()
