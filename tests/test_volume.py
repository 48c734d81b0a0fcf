import pytest

from sporkfs.blockdev import BlockDevice
from sporkfs.volume import SIGNATURE, VolumeControlBlock, load_vcb, write_vcb


def _sample():
    return VolumeControlBlock(512, 100, 90, SIGNATURE, 3, 5, 1, 1, 1)


def test_round_trip():
    vcb = _sample()
    assert VolumeControlBlock.unpack(vcb.pack(512)) == vcb


def test_pack_pads_to_block():
    data = _sample().pack(1024)
    assert len(data) == 1024
    assert data[VolumeControlBlock.SIZE:] == bytes(1024 - VolumeControlBlock.SIZE)


def test_layout_is_little_endian_words():
    data = VolumeControlBlock(block_size=512, total_blocks=7).pack(512)
    assert data[:4] == (512).to_bytes(4, "little")
    assert data[4:8] == (7).to_bytes(4, "little")


def test_size_is_nine_words():
    data = VolumeControlBlock(fsmap_num_blocks=9).pack(36)
    assert len(data) == 36
    assert data[32:36] == (9).to_bytes(4, "little")
    assert VolumeControlBlock.unpack(data).fsmap_num_blocks == 9


def test_pack_rejects_small_block():
    with pytest.raises(ValueError):
        _sample().pack(VolumeControlBlock.SIZE - 1)


def test_pack_rejects_out_of_range_field():
    with pytest.raises(ValueError):
        VolumeControlBlock(free_blocks=-1).pack(512)


def test_unpack_short_data():
    with pytest.raises(ValueError):
        VolumeControlBlock.unpack(b"\0" * (VolumeControlBlock.SIZE - 1))


def test_write_and_load():
    dev = BlockDevice.in_memory(4, 512)
    vcb = _sample()
    assert write_vcb(dev, vcb) == 1
    assert load_vcb(dev) == vcb
    assert dev.read_blocks(1, 0) == vcb.pack(512)


def test_load_blank_device():
    dev = BlockDevice.in_memory(4, 512)
    assert load_vcb(dev) == VolumeControlBlock()