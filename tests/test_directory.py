from dataclasses import replace

import pytest

from sporkfs.bitmap import FreeSpaceMap
from sporkfs.blockdev import BlockDevice
from sporkfs.directory import (
    DirectoryEntry,
    init_dir,
    load_dir,
    load_dir_blocks,
    update_entry,
)
from sporkfs.volume import SIGNATURE, VolumeControlBlock

BLOCK_SIZE = 512
BLOCKS = 64


@pytest.fixture
def volume():
    device = BlockDevice.in_memory(BLOCKS, BLOCK_SIZE)
    vcb = VolumeControlBlock(block_size=BLOCK_SIZE, total_blocks=BLOCKS, signature=SIGNATURE)
    bitmap = FreeSpaceMap(device, vcb, BLOCKS, BLOCK_SIZE)
    return device, vcb, bitmap


def test_entry_size_matches_on_disk_layout():
    assert len(DirectoryEntry().pack()) == DirectoryEntry.SIZE == 88


def test_entry_round_trip():
    entry = DirectoryEntry(1024, 7, 176, "notes", 100, 200, 300, 1, 2)
    assert DirectoryEntry.unpack(entry.pack()) == entry


def test_default_entry_is_unused():
    entry = DirectoryEntry.unpack(DirectoryEntry().pack())
    assert not entry.is_used()
    assert entry.is_directory == -1


def test_name_too_long_rejected():
    with pytest.raises(ValueError):
        DirectoryEntry(name="n" * 32).pack()


def test_unpack_short_data_rejected():
    with pytest.raises(ValueError):
        DirectoryEntry.unpack(b"\0" * 10)


def test_root_dir_layout(volume):
    device, vcb, bitmap = volume
    entries = init_dir(12, None, bitmap, device, vcb)
    dot, dotdot = entries[0], entries[1]
    assert dot.name == "."
    assert dotdot.name == ".."
    assert dot.size == len(entries) * DirectoryEntry.SIZE
    assert len(entries) >= 12
    assert dotdot.lba_location == dot.lba_location
    assert vcb.root_directory_block == dot.lba_location
    assert vcb.root_num_blocks == dot.dir_num_blocks
    assert all(not entry.is_used() for entry in entries[2:])
    for block in range(dot.lba_location, dot.lba_location + dot.dir_num_blocks):
        assert bitmap.is_used(block)


def test_entry_positions_are_contiguous(volume):
    device, vcb, bitmap = volume
    entries = init_dir(12, None, bitmap, device, vcb)
    start = entries[0].lba_location * BLOCK_SIZE
    for i, entry in enumerate(entries[2:], start=2):
        assert entry.lba_location * BLOCK_SIZE + entry.lba_index == start + i * DirectoryEntry.SIZE


def test_load_dir_blocks_round_trip(volume):
    device, vcb, bitmap = volume
    entries = init_dir(12, None, bitmap, device, vcb)
    loaded = load_dir_blocks(device, vcb, entries[0].dir_num_blocks, entries[0].lba_location)
    assert loaded == entries


def test_subdirectory_parent_link(volume):
    device, vcb, bitmap = volume
    root = init_dir(12, None, bitmap, device, vcb)
    root_block = vcb.root_directory_block
    sub = init_dir(12, root[0], bitmap, device, vcb)
    assert sub[1] == replace(root[0], name="..")
    assert sub[0].lba_location != root[0].lba_location
    assert vcb.root_directory_block == root_block


def test_load_dir_returns_root_itself(volume):
    device, vcb, bitmap = volume
    root = init_dir(12, None, bitmap, device, vcb)
    assert load_dir(device, vcb, root[0], root) is root


def test_load_dir_reads_subdirectory(volume):
    device, vcb, bitmap = volume
    root = init_dir(12, None, bitmap, device, vcb)
    sub = init_dir(12, root[0], bitmap, device, vcb)
    assert load_dir(device, vcb, sub[0], root) == sub


def test_load_dir_rejects_file(volume):
    device, vcb, _ = volume
    with pytest.raises(NotADirectoryError):
        load_dir(device, vcb, DirectoryEntry(name="f", is_directory=0))


def test_update_entry_persists(volume):
    device, vcb, bitmap = volume
    entries = init_dir(12, None, bitmap, device, vcb)
    entries[0].last_modified = 123456
    update_entry(device, vcb, entries[0])
    loaded = load_dir_blocks(device, vcb, entries[0].dir_num_blocks, entries[0].lba_location)
    assert loaded[0].last_modified == 123456
    assert loaded[1:] == entries[1:]


def test_update_entry_across_block_boundary(volume):
    device, vcb, bitmap = volume
    entries = init_dir(12, None, bitmap, device, vcb)
    straddling = next(
        entry for entry in entries if entry.lba_index + DirectoryEntry.SIZE > BLOCK_SIZE
    )
    straddling.name = "sub"
    straddling.is_directory = 1
    update_entry(device, vcb, straddling)
    loaded = load_dir_blocks(device, vcb, entries[0].dir_num_blocks, entries[0].lba_location)
    assert loaded == entries


def test_update_entry_rejects_file(volume):
    device, vcb, _ = volume
    with pytest.raises(NotADirectoryError):
        update_entry(device, vcb, DirectoryEntry(name="f", is_directory=0))


def test_init_dir_rejects_too_few_entries(volume):
    device, vcb, bitmap = volume
    with pytest.raises(ValueError):
        init_dir(1, None, bitmap, device, vcb)