"""Logical block device stored in a volume file or held in memory.

A volume file starts with one partition header block, followed by the
logical blocks that the file system sees, numbered from zero.
"""

from __future__ import annotations

import io
import os
import struct
from typing import BinaryIO

MIN_BLOCK_SIZE = 512
PART_SIGNATURE = 0x526F626572742042
PART_SIGNATURE2 = 0x4220747265626F52
PART_CAPTION = b"Logical volume partition header\n\n"

PART_ACTIVE = 1
PART_INACTIVE = 0

PART_NOERROR = 0
PART_ERR_OPEN = -1
PART_ERR_SPACE = -2
PART_ERR_INVALID = -4

_HEADER = struct.Struct("<Q64sQQQ")


class PartitionError(Exception):
    """Raised when the partition cannot be opened or a block request is invalid."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code


def _check_block_size(block_size: int) -> None:
    if block_size <= 0 or block_size & (block_size - 1):
        raise ValueError(f"block size must be a power of two, got {block_size}")


class BlockDevice:
    """An array of fixed-size logical blocks."""

    def __init__(self, storage: BinaryIO, block_size: int, block_count: int, offset: int = 0) -> None:
        self._storage: BinaryIO | None = storage
        self.block_size = block_size
        self.block_count = block_count
        self._offset = offset

    @property
    def volume_size(self) -> int:
        return self.block_size * self.block_count

    @classmethod
    def open(cls, filename, volume_size: int, block_size: int) -> "BlockDevice":
        """Open a volume file, creating it if it does not exist.

        For an existing file the stored geometry wins and the given sizes
        are ignored.
        """
        path = os.fspath(filename)
        if os.path.exists(path):
            try:
                handle = io.open(path, "r+b")
            except OSError as exc:
                raise PartitionError(PART_ERR_OPEN, f"cannot open {path} for writing") from exc
            raw = handle.read(_HEADER.size)
            if len(raw) < _HEADER.size:
                handle.close()
                raise PartitionError(PART_ERR_INVALID, f"{path} has no partition header")
            signature, _caption, stored_block_size, stored_count, signature2 = _HEADER.unpack(raw)
            if signature != PART_SIGNATURE or signature2 != PART_SIGNATURE2:
                handle.close()
                raise PartitionError(PART_ERR_INVALID, f"{path} is not a partitioned volume")
            return cls(handle, stored_block_size, stored_count, offset=stored_block_size)

        _check_block_size(block_size)
        if block_size < _HEADER.size:
            raise ValueError(f"block size {block_size} cannot hold the partition header")
        block_count = volume_size // block_size
        if block_count < 1:
            raise PartitionError(PART_ERR_SPACE, "volume size is smaller than one block")
        try:
            handle = io.open(path, "w+b")
        except OSError as exc:
            raise PartitionError(PART_ERR_OPEN, f"cannot create {path}") from exc
        header = _HEADER.pack(PART_SIGNATURE, PART_CAPTION, block_size, block_count, PART_SIGNATURE2)
        try:
            handle.write(header.ljust(block_size, b"\0"))
            handle.truncate((block_count + 1) * block_size)
            handle.flush()
        except OSError as exc:
            handle.close()
            raise PartitionError(PART_ERR_SPACE, f"insufficient space for {path}") from exc
        return cls(handle, block_size, block_count, offset=block_size)

    @classmethod
    def in_memory(cls, block_count: int, block_size: int) -> "BlockDevice":
        """Create a zero-filled device that lives only in memory."""
        _check_block_size(block_size)
        if block_count < 1:
            raise PartitionError(PART_ERR_SPACE, "a volume needs at least one block")
        return cls(io.BytesIO(bytes(block_count * block_size)), block_size, block_count)

    def _require_open(self) -> BinaryIO:
        if self._storage is None:
            raise PartitionError(PART_ERR_INVALID, "device is closed")
        return self._storage

    def _check_range(self, count: int, position: int) -> None:
        if count < 0 or position < 0 or position + count > self.block_count:
            raise PartitionError(
                PART_ERR_INVALID,
                f"blocks {position}..{position + count - 1} outside volume of {self.block_count}",
            )

    def read_blocks(self, count: int, position: int) -> bytes:
        """Read ``count`` blocks starting at logical block ``position``."""
        storage = self._require_open()
        self._check_range(count, position)
        size = count * self.block_size
        storage.seek(self._offset + position * self.block_size)
        data = storage.read(size)
        return data.ljust(size, b"\0")

    def write_blocks(self, data: bytes, position: int) -> int:
        """Write ``data`` at ``position``, padding the last block; return blocks written."""
        storage = self._require_open()
        count = -(-len(data) // self.block_size)
        self._check_range(count, position)
        if count == 0:
            return 0
        storage.seek(self._offset + position * self.block_size)
        storage.write(bytes(data).ljust(count * self.block_size, b"\0"))
        return count

    def close(self) -> None:
        if self._storage is not None:
            self._storage.flush()
            self._storage.close()
            self._storage = None

    def __enter__(self) -> "BlockDevice":
        return self

    def __exit__(self, *args) -> None:
        self.close()