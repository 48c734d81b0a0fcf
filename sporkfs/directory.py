"""Directory entries and the directories built from them."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass, replace
from typing import ClassVar

from sporkfs.bitmap import FreeSpaceMap
from sporkfs.blockdev import BlockDevice
from sporkfs.volume import VolumeControlBlock

NAME_MAX = 31
UNSET = -1

_FORMAT = struct.Struct("<qqq32sqqqhxxi")


@dataclass
class DirectoryEntry:
    """One slot of a directory.

    ``is_directory`` is 1 for a directory, 0 for a file and -1 for an unused
    slot.  For a directory, ``lba_location`` is the first block of its entries
    and ``size`` is the number of bytes those entries take.
    """

    size: int = UNSET
    lba_location: int = 0
    lba_index: int = 0
    name: str = ""
    time_creation: int = UNSET
    last_accessed: int = UNSET
    last_modified: int = UNSET
    is_directory: int = UNSET
    dir_num_blocks: int = UNSET

    SIZE: ClassVar[int] = _FORMAT.size

    def pack(self) -> bytes:
        raw_name = self.name.encode("utf-8")
        if len(raw_name) > NAME_MAX:
            raise ValueError(f"name {self.name!r} is longer than {NAME_MAX} bytes")
        try:
            return _FORMAT.pack(
                self.size,
                self.lba_location,
                self.lba_index,
                raw_name,
                self.time_creation,
                self.last_accessed,
                self.last_modified,
                self.is_directory,
                self.dir_num_blocks,
            )
        except struct.error as exc:
            raise ValueError(f"directory entry field out of range: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "DirectoryEntry":
        if len(data) < cls.SIZE:
            raise ValueError(f"need {cls.SIZE} bytes, got {len(data)}")
        (size, location, index, raw_name, created, accessed, modified, is_dir, num_blocks) = (
            _FORMAT.unpack_from(data)
        )
        name = raw_name.split(b"\0", 1)[0].decode("utf-8", errors="replace")
        return cls(size, location, index, name, created, accessed, modified, is_dir, num_blocks)

    def is_used(self) -> bool:
        return self.name != ""


def _pack_dir(entries: list[DirectoryEntry]) -> bytes:
    return b"".join(entry.pack() for entry in entries)


def _unpack_dir(data: bytes) -> list[DirectoryEntry]:
    size = DirectoryEntry.SIZE
    first = DirectoryEntry.unpack(data)
    count = first.size // size
    if count < 1 or count * size > len(data):
        raise ValueError(f"corrupt directory: {first.size} bytes of entries in {len(data)}")
    view = memoryview(data)
    return [DirectoryEntry.unpack(view[offset : offset + size]) for offset in range(0, count * size, size)]


def init_dir(
    min_entries: int,
    parent: DirectoryEntry | None,
    bitmap: FreeSpaceMap,
    device: BlockDevice,
    vcb: VolumeControlBlock,
) -> list[DirectoryEntry]:
    """Allocate, initialise and write a directory with room for at least ``min_entries``.

    ``parent`` is the entry that ``..`` copies; ``None`` makes a root directory,
    whose location is then recorded in the control block.
    """
    if min_entries < 2:
        raise ValueError("a directory needs room for '.' and '..'")
    block_size = vcb.block_size
    entry_size = DirectoryEntry.SIZE
    blocks_needed = -(-(min_entries * entry_size) // block_size)
    actual_entries = blocks_needed * block_size // entry_size
    location = bitmap.allocate(blocks_needed)

    entries = [
        DirectoryEntry(
            lba_location=location + offset // block_size,
            lba_index=offset % block_size,
        )
        for offset in range(0, actual_entries * entry_size, entry_size)
    ]

    now = int(time.time())
    dot = entries[0]
    dot.size = actual_entries * entry_size
    dot.name = "."
    dot.is_directory = 1
    dot.time_creation = dot.last_accessed = dot.last_modified = now
    dot.dir_num_blocks = blocks_needed

    if parent is None:
        source = dot
        vcb.root_directory_block = location
        vcb.root_num_blocks = blocks_needed
    else:
        source = parent
    entries[1] = replace(source, name="..")

    device.write_blocks(_pack_dir(entries), location)
    return entries


def load_dir_blocks(
    device: BlockDevice, vcb: VolumeControlBlock, num_blocks: int, start_block: int
) -> list[DirectoryEntry]:
    """Read the directory stored in ``num_blocks`` blocks from ``start_block``."""
    data = device.read_blocks(num_blocks, start_block)
    return _unpack_dir(data[: num_blocks * vcb.block_size])


def load_dir(
    device: BlockDevice,
    vcb: VolumeControlBlock,
    entry: DirectoryEntry,
    root: list[DirectoryEntry] | None = None,
) -> list[DirectoryEntry]:
    """Load the directory that ``entry`` describes; the root comes back as is."""
    if entry.is_directory != 1:
        raise NotADirectoryError(f"{entry.name!r} is not a directory")
    if root is not None and entry.lba_location == root[0].lba_location:
        return root
    return load_dir_blocks(device, vcb, entry.dir_num_blocks, entry.lba_location)


def update_entry(device: BlockDevice, vcb: VolumeControlBlock, entry: DirectoryEntry) -> int:
    """Write one entry back to its place on disk; return the blocks written."""
    if entry.is_directory == 0:
        raise NotADirectoryError(f"{entry.name!r} is not a directory")
    span = -(-(entry.lba_index + DirectoryEntry.SIZE) // vcb.block_size)
    buffer = bytearray(device.read_blocks(span, entry.lba_location))
    buffer[entry.lba_index : entry.lba_index + DirectoryEntry.SIZE] = entry.pack()
    return device.write_blocks(bytes(buffer), entry.lba_location)