"""Free space bitmap: one bit per block, set when the block is in use."""

from __future__ import annotations

import errno

from sporkfs.blockdev import BlockDevice
from sporkfs.volume import VolumeControlBlock, write_vcb

MAP_START_BLOCK = 1


class InvalidBlockError(ValueError):
    """Raised for a block number or block range outside the volume."""


class FreeSpaceMap:
    """The in-memory free space bitmap, written through to disk on every change.

    Block 0 holds the control block and the map itself starts at block 1.
    A fresh map marks those blocks as used.
    """

    def __init__(
        self,
        device: BlockDevice,
        vcb: VolumeControlBlock,
        fs_num_blocks: int,
        block_size: int,
        data: bytes | None = None,
    ) -> None:
        if fs_num_blocks < 1 or block_size < 1:
            raise ValueError("volume needs at least one block of positive size")
        self.device = device
        self.vcb = vcb
        self.fs_num_blocks = fs_num_blocks
        map_bytes = (fs_num_blocks + 7) // 8
        self.map_num_blocks = (map_bytes + block_size - 1) // block_size
        self.bitmap_size = self.map_num_blocks * block_size

        if data is None:
            reserved = self.map_num_blocks + 1
            if reserved > fs_num_blocks:
                raise ValueError("volume too small to hold its own free space map")
            self.data = bytearray(self.bitmap_size)
            for block in range(reserved):
                self._mark(block, True)
            vcb.free_blocks = fs_num_blocks - reserved
            write_vcb(device, vcb)
        else:
            self.data = bytearray(data[: self.bitmap_size])
            self.data.extend(bytes(self.bitmap_size - len(self.data)))
        self.flush()

    def flush(self) -> int:
        """Write the bitmap to its blocks on disk."""
        return self.device.write_blocks(bytes(self.data), MAP_START_BLOCK)

    def _check(self, block_number: int) -> None:
        if not 0 <= block_number < self.fs_num_blocks:
            raise InvalidBlockError(f"invalid block number {block_number}")

    def _test(self, block_number: int) -> bool:
        return bool(self.data[block_number // 8] & (1 << (block_number % 8)))

    def _mark(self, block_number: int, used: bool) -> bool:
        """Set the bit to ``used``; return whether it changed."""
        if self._test(block_number) == used:
            return False
        mask = 1 << (block_number % 8)
        if used:
            self.data[block_number // 8] |= mask
        else:
            self.data[block_number // 8] &= ~mask & 0xFF
        return True

    def _commit(self, delta_free: int) -> None:
        self.vcb.free_blocks += delta_free
        self.flush()
        write_vcb(self.device, self.vcb)

    def set_bit(self, block_number: int) -> None:
        """Mark a block as used."""
        self._check(block_number)
        self._commit(-1 if self._mark(block_number, True) else 0)

    def clear_bit(self, block_number: int) -> None:
        """Mark a block as free."""
        self._check(block_number)
        self._commit(1 if self._mark(block_number, False) else 0)

    def is_used(self, block_number: int) -> bool:
        self._check(block_number)
        return self._test(block_number)

    def allocate(self, count: int) -> int:
        """Reserve the first run of ``count`` free blocks; return its first block."""
        if count <= 0 or count > self.fs_num_blocks:
            raise InvalidBlockError(f"invalid request size {count}")
        run_start = run_length = 0
        for block in range(self.fs_num_blocks):
            if self._test(block):
                run_length = 0
                continue
            if run_length == 0:
                run_start = block
            run_length += 1
            if run_length == count:
                for used in range(run_start, run_start + count):
                    self._mark(used, True)
                self._commit(-count)
                return run_start
        raise OSError(errno.ENOSPC, f"no run of {count} free blocks")

    def release(self, start_block: int, count: int) -> None:
        """Mark ``count`` blocks from ``start_block`` as free."""
        if start_block < 0 or start_block + count > self.fs_num_blocks:
            raise InvalidBlockError(f"invalid blocks {start_block}+{count}")
        if count < 1:
            raise InvalidBlockError(f"invalid count {count}")
        freed = sum(self._mark(block, False) for block in range(start_block, start_block + count))
        self._commit(freed)


def load_bitmap(device: BlockDevice, vcb: VolumeControlBlock) -> bytes:
    """Read the stored bitmap bytes described by the control block."""
    return device.read_blocks(vcb.fsmap_num_blocks, vcb.fsmap_start_block)