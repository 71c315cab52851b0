"""Super image transformation: sparse conversion, unpack, swap, repack.

Main Entry Points:
    - ImageTransformer: runs the unpack -> replace -> repack sequence
    - prepare_raw_super(), replace_system_image(): the individual steps
    - convert_sparse_to_raw(), unpack_super(), repack_super(): tool wrappers
    - collect_partitions(), compute_super_size(), build_repack_layout()
"""

from .layout import (
    build_repack_layout,
    collect_partitions,
    compute_super_size,
    read_partition,
)
from .tools import convert_sparse_to_raw, repack_super, unpack_super
from .transformer import ImageTransformer, prepare_raw_super, replace_system_image

__all__ = [
    "ImageTransformer",
    "build_repack_layout",
    "collect_partitions",
    "compute_super_size",
    "convert_sparse_to_raw",
    "prepare_raw_super",
    "read_partition",
    "repack_super",
    "replace_system_image",
    "unpack_super",
]
