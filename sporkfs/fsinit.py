"""Formatting a volume and the state of a mounted file system."""

from __future__ import annotations

from dataclasses import dataclass, field

from sporkfs.bitmap import MAP_START_BLOCK, FreeSpaceMap
from sporkfs.blockdev import MIN_BLOCK_SIZE, BlockDevice
from sporkfs.directory import DirectoryEntry, init_dir
from sporkfs.volume import SIGNATURE, VolumeControlBlock, write_vcb

MIN_ENTRIES = 12
CWD_SIZE = 256
MAX_DIR_NAME = 100
ROOT_NUM_BLOCKS = 5


@dataclass
class FileSystem:
    """A mounted volume: its control block, free space map, root and working directory."""

    device: BlockDevice
    vcb: VolumeControlBlock
    bitmap: FreeSpaceMap
    root: list[DirectoryEntry]
    cwd: list[DirectoryEntry] | None = field(default=None)
    cwd_name: str = "/"

    def __post_init__(self) -> None:
        if self.cwd is None:
            self.cwd = self.root

    def exit(self) -> None:
        """Write the control block and free space map back to disk."""
        write_vcb(self.device, self.vcb)
        self.bitmap.flush()
        self.cwd = self.root
        self.cwd_name = "/"


def init_file_system(device: BlockDevice, number_of_blocks: int, block_size: int) -> FileSystem:
    """Format ``device`` with a fresh control block, free space map and root directory."""
    if block_size < VolumeControlBlock.SIZE:
        raise ValueError(
            f"block size ({block_size}) is less than the control block ({VolumeControlBlock.SIZE})"
        )
    if block_size != device.block_size:
        raise ValueError(f"block size {block_size} does not match device ({device.block_size})")
    if number_of_blocks > device.block_count:
        raise ValueError(f"{number_of_blocks} blocks do not fit a device of {device.block_count}")

    vcb = VolumeControlBlock(
        block_size=block_size,
        total_blocks=number_of_blocks,
        signature=SIGNATURE,
    )
    bitmap = FreeSpaceMap(device, vcb, number_of_blocks, block_size)
    vcb.fsmap_start_block = MAP_START_BLOCK
    vcb.fsmap_end_block = bitmap.map_num_blocks
    vcb.fsmap_num_blocks = bitmap.map_num_blocks
    vcb.root_directory_block = vcb.fsmap_end_block + 1
    vcb.root_num_blocks = ROOT_NUM_BLOCKS

    root = init_dir((MIN_BLOCK_SIZE * 5) // DirectoryEntry.SIZE, None, bitmap, device, vcb)
    write_vcb(device, vcb)
    return FileSystem(device=device, vcb=vcb, bitmap=bitmap, root=root)