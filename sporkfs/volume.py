"""The volume control block kept in logical block 0."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass
from typing import ClassVar

from sporkfs.blockdev import BlockDevice

SIGNATURE = 0x1A

_FORMAT = struct.Struct("<9I")


@dataclass
class VolumeControlBlock:
    """Geometry and layout of a formatted volume."""

    block_size: int = 0
    total_blocks: int = 0
    free_blocks: int = 0
    signature: int = 0
    root_directory_block: int = 0
    root_num_blocks: int = 0
    fsmap_start_block: int = 0
    fsmap_end_block: int = 0
    fsmap_num_blocks: int = 0

    SIZE: ClassVar[int] = _FORMAT.size

    def pack(self, block_size: int) -> bytes:
        """Encode into one block of ``block_size`` bytes."""
        if block_size < self.SIZE:
            raise ValueError(f"block size {block_size} is smaller than the control block ({self.SIZE})")
        try:
            raw = _FORMAT.pack(*astuple(self))
        except struct.error as exc:
            raise ValueError(f"control block field out of range: {exc}") from exc
        return raw.ljust(block_size, b"\0")

    @classmethod
    def unpack(cls, data: bytes) -> "VolumeControlBlock":
        if len(data) < cls.SIZE:
            raise ValueError(f"need {cls.SIZE} bytes, got {len(data)}")
        return cls(*_FORMAT.unpack_from(data))


def load_vcb(device: BlockDevice) -> VolumeControlBlock:
    """Read the control block from block 0."""
    return VolumeControlBlock.unpack(device.read_blocks(1, 0))


def write_vcb(device: BlockDevice, vcb: VolumeControlBlock) -> int:
    """Write the control block to block 0; return the number of blocks written."""
    return device.write_blocks(vcb.pack(device.block_size), 0)