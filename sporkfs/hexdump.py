"""Display a file in hexadecimal and characters, 16 bytes per line.

Lines look like::

    000020: 19 00 00 00 48 00 00 00  5F 5F 50 41 47 45 5A 45 | ....H...__PAGEZE

A blank line follows every 256 bytes.  Start and count are given in blocks
of 512 bytes.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Iterator, Sequence

BUFSIZE = 4096
BLOCKSIZE = 256
LBA_BLOCK_SIZE = 512
LINE_WIDTH = 16
VERSION = "1.0"

ERR_OPEN = -2
ERR_PAST_END = -5

USAGE = (
    "USAGE: hexdump --file <filename> [--count num512ByteBlocks] "
    "[--start start512ByteBlock] [--help] [--version]"
)

_LONG_OPTIONS = {"count": True, "start": True, "help": False, "version": False, "file": True}
_SHORT_OPTIONS = {"c": "count", "s": "start", "f": "file", "h": "help", "v": "version"}


class HexdumpError(Exception):
    """Raised when a file cannot be dumped; ``code`` is the exit status."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code


def format_line(address: int, chunk: bytes) -> str:
    """Format up to 16 bytes found at ``address`` as one dump line."""
    chunk = bytes(chunk)
    if len(chunk) > LINE_WIDTH:
        raise ValueError(f"a line holds at most {LINE_WIDTH} bytes, got {len(chunk)}")
    text = "".join("." if byte < 32 else chr(byte) for byte in chunk)
    if len(chunk) == LINE_WIDTH:
        half = LINE_WIDTH // 2
        hex_part = (
            " ".join(f"{byte:02X}" for byte in chunk[:half])
            + "  "
            + " ".join(f"{byte:02X}" for byte in chunk[half:])
        )
    else:
        hex_part = "".join(f"{byte:02X} " for byte in chunk).ljust(3 * LINE_WIDTH)
    return f"{address:06X}: {hex_part} | {text}"


def _ceil_div(value: int, divisor: int) -> int:
    return -(-value // divisor)


def dump_file(filename, start_block: int = 0, num_blocks: int = 0) -> Iterator[str]:
    """Yield the dump of ``filename`` line by line, without line endings.

    A ``num_blocks`` of 0 dumps to the end of the file.  Errors are raised
    as :class:`HexdumpError` when iteration starts.
    """
    if start_block < 0 or num_blocks < 0:
        raise ValueError("start and count must not be negative")
    name = os.fspath(filename)
    try:
        handle = open(name, "rb")
    except OSError as exc:
        raise HexdumpError(ERR_OPEN, f"ERROR: failed to open file '{name}'") from exc

    with handle:
        end_of_file = handle.seek(0, os.SEEK_END)
        bytes_to_process = num_blocks * LBA_BLOCK_SIZE
        start_bytes = start_block * LBA_BLOCK_SIZE
        if bytes_to_process == 0:
            bytes_to_process = end_of_file
            num_blocks = _ceil_div(bytes_to_process, LBA_BLOCK_SIZE) - start_block

        position = start_bytes
        if position > end_of_file:
            raise HexdumpError(
                ERR_PAST_END,
                f"Can not dump file {name}, starting at block {start_block}, past the end of the file.",
            )
        max_blocks = _ceil_div(end_of_file - position, LBA_BLOCK_SIZE)
        num_blocks = min(num_blocks, max_blocks)

        plural = "s" if num_blocks != 1 else ""
        yield f"Dumping file {name}, starting at block {start_block} for {num_blocks} block{plural}:"
        yield ""

        limit = start_bytes + bytes_to_process
        handle.seek(start_bytes)
        while position < limit:
            buffer = handle.read(BUFSIZE)
            offset = 0
            for _ in range(BUFSIZE // BLOCKSIZE):
                for _ in range(BLOCKSIZE // LINE_WIDTH):
                    if position + offset >= limit:
                        return
                    yield format_line(position + offset, buffer[offset : offset + LINE_WIDTH])
                    offset += LINE_WIDTH
                    if offset >= len(buffer):
                        break
                yield ""
                if offset >= len(buffer):
                    break
            position += len(buffer)
            if len(buffer) != BUFSIZE:
                return


def _atol(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def _parse_options(args: list[str], positional: list[str]) -> Iterator[tuple[str, str]]:
    """Yield ``(option, value)`` pairs in order, collecting other words into ``positional``."""
    i = 0
    while i < len(args):
        arg = args[i]
        i += 1
        if arg == "--":
            positional.extend(args[i:])
            return
        if arg.startswith("--"):
            name, has_value, value = arg[2:].partition("=")
            matches = [name] if name in _LONG_OPTIONS else [o for o in _LONG_OPTIONS if o.startswith(name)]
            if len(matches) != 1 or not name:
                print(f"hexdump: unrecognized option '{arg}'", file=sys.stderr)
                continue
            option = matches[0]
            if _LONG_OPTIONS[option]:
                if not has_value:
                    if i >= len(args):
                        print(f"hexdump: option '--{option}' requires an argument", file=sys.stderr)
                        continue
                    value = args[i]
                    i += 1
            elif has_value:
                print(f"hexdump: option '--{option}' doesn't allow an argument", file=sys.stderr)
                continue
            yield option, value
        elif arg.startswith("-") and len(arg) > 1:
            j = 1
            while j < len(arg):
                letter = arg[j]
                j += 1
                option = _SHORT_OPTIONS.get(letter)
                if option is None:
                    print(f"hexdump: invalid option -- '{letter}'", file=sys.stderr)
                    continue
                if not _LONG_OPTIONS[option]:
                    yield option, ""
                    continue
                value = arg[j:]
                if not value:
                    if i >= len(args):
                        print(f"hexdump: option requires an argument -- '{letter}'", file=sys.stderr)
                        break
                    value = args[i]
                    i += 1
                yield option, value
                break
        else:
            positional.append(arg)


def _process(filename: str, start: int, count: int) -> int:
    try:
        for line in dump_file(filename, start, count):
            print(line)
    except HexdumpError as exc:
        print(exc)
        if exc.code == ERR_PAST_END:
            print()
        return exc.code
    except ValueError as exc:
        print(f"ERROR: {exc}")
        return -1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    count = start = 0
    filename: str | None = None
    positional: list[str] = []

    for option, value in _parse_options(args, positional):
        if option == "count":
            count = _atol(value)
        elif option == "start":
            start = _atol(value)
        elif option == "file":
            filename = value
        elif option == "help":
            print(USAGE)
            return 0
        elif option == "version":
            print(f"hexdump - Version {VERSION}")
            print()
            return 0

    files = ([filename] if filename is not None else []) + positional
    for name in files:
        status = _process(name, start, count)
        if status != 0:
            return status
    return 0


if __name__ == "__main__":
    sys.exit(main())