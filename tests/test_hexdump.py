import pytest

from sporkfs.hexdump import (
    ERR_OPEN,
    ERR_PAST_END,
    HexdumpError,
    dump_file,
    format_line,
    main,
)


def _data_lines(lines):
    return [line for line in lines[2:] if line]


def _bytes_from_lines(lines):
    out = bytearray()
    for line in _data_lines(lines):
        hex_part = line.split(": ", 1)[1].split(" | ", 1)[0]
        out.extend(bytes.fromhex("".join(hex_part.split())))
    return bytes(out)


def _write(tmp_path, name, data):
    path = tmp_path / name
    path.write_bytes(data)
    return path


def test_format_line_matches_documented_example():
    chunk = bytes.fromhex("19000000480000005F5F504147455A45")
    assert format_line(0x20, chunk) == (
        "000020: 19 00 00 00 48 00 00 00  5F 5F 50 41 47 45 5A 45 | ....H...__PAGEZE"
    )


def test_format_line_partial_pads_hex_column():
    line = format_line(0x10, b"AB")
    assert line == "000010: 41 42 " + "   " * 14 + " | AB"


def test_full_and_partial_lines_align_separator():
    full = format_line(0, bytes(range(32, 48)))
    partial = format_line(0, b"xyz")
    assert full.index(" | ") == partial.index(" | ")


def test_format_line_control_bytes_become_dots():
    line = format_line(0, bytes(range(16)))
    assert line.split(" | ", 1)[1] == "." * 16


def test_format_line_rejects_long_chunk():
    with pytest.raises(ValueError):
        format_line(0, bytes(17))


def test_missing_file_raises_open_error(tmp_path):
    with pytest.raises(HexdumpError) as info:
        list(dump_file(tmp_path / "absent.bin"))
    assert info.value.code == ERR_OPEN


def test_start_past_end_raises(tmp_path):
    path = _write(tmp_path, "small.bin", bytes(512))
    with pytest.raises(HexdumpError) as info:
        list(dump_file(path, 2, 0))
    assert info.value.code == ERR_PAST_END


def test_negative_arguments_rejected(tmp_path):
    path = _write(tmp_path, "small.bin", bytes(512))
    with pytest.raises(ValueError):
        list(dump_file(path, -1, 0))


def test_single_block_file_layout(tmp_path):
    data = bytes(i % 256 for i in range(512))
    path = _write(tmp_path, "one.bin", data)
    lines = list(dump_file(path))
    assert lines[0] == f"Dumping file {path}, starting at block 0 for 1 block:"
    assert lines[1] == ""
    assert lines[2] == format_line(0, data[:16])
    assert lines[18] == ""
    assert lines[-1] == ""
    assert _bytes_from_lines(lines) == data


def test_count_limits_output(tmp_path):
    data = bytes(i % 251 for i in range(1024))
    path = _write(tmp_path, "two.bin", data)
    lines = list(dump_file(path, 0, 1))
    assert lines[0].endswith("for 1 block:")
    assert _bytes_from_lines(lines) == data[:512]


def test_start_block_offsets_addresses(tmp_path):
    data = bytes(i % 7 for i in range(1024))
    path = _write(tmp_path, "two.bin", data)
    lines = list(dump_file(path, 1, 0))
    assert lines[0] == f"Dumping file {path}, starting at block 1 for 1 block:"
    assert lines[2] == format_line(512, data[512:528])
    assert _bytes_from_lines(lines) == data[512:]


def test_short_file_ends_with_partial_line(tmp_path):
    data = b"0123456789abcdefXYZW"
    path = _write(tmp_path, "short.bin", data)
    lines = list(dump_file(path))
    assert lines[2] == format_line(0, data[:16])
    assert lines[3] == format_line(16, data[16:])
    assert lines[4:] == [""]


def test_multiple_buffers_round_trip(tmp_path):
    data = bytes((i * 31) % 256 for i in range(5000))
    path = _write(tmp_path, "big.bin", data)
    lines = list(dump_file(path))
    assert _bytes_from_lines(lines) == data
    addresses = [int(line.split(":", 1)[0], 16) for line in _data_lines(lines)]
    assert addresses == sorted(addresses)
    assert all(b - a == 16 for a, b in zip(addresses, addresses[1:]))


def test_main_help(capsys):
    assert main(["--help"]) == 0
    assert capsys.readouterr().out.startswith("USAGE: hexdump --file <filename>")


def test_main_missing_file(tmp_path, capsys):
    missing = tmp_path / "nope.bin"
    assert main(["-f", str(missing)]) == ERR_OPEN
    assert f"ERROR: failed to open file '{missing}'" in capsys.readouterr().out


def test_main_with_file_option_and_count(tmp_path, capsys):
    path = _write(tmp_path, "two.bin", bytes(1024))
    assert main(["--file", str(path), "--count", "1"]) == 0
    out = capsys.readouterr().out
    assert f"Dumping file {path}, starting at block 0 for 1 block:" in out


def test_main_permutes_positional_files(tmp_path, capsys):
    path = _write(tmp_path, "two.bin", bytes(1024))
    assert main([str(path), "-s", "1"]) == 0
    assert f"Dumping file {path}, starting at block 1 for 1 block:" in capsys.readouterr().out


def test_main_skips_unknown_option(tmp_path, capsys):
    path = _write(tmp_path, "one.bin", bytes(512))
    assert main(["-x", str(path)]) == 0
    assert f"Dumping file {path}" in capsys.readouterr().out


def test_main_past_end_returns_code(tmp_path, capsys):
    path = _write(tmp_path, "one.bin", bytes(512))
    assert main(["--start", "3", str(path)]) == ERR_PAST_END
    assert "past the end of the file." in capsys.readouterr().out