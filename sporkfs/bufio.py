"""Table of open files with buffered read, write and seek."""

from __future__ import annotations

import errno
import os
from dataclasses import dataclass

MAX_FCBS = 20

_ACCMODE = os.O_RDONLY | os.O_WRONLY | os.O_RDWR


class InvalidDescriptorError(OSError):
    """Raised for a descriptor that is out of range, closed, or not open for the operation."""

    def __init__(self, fd, reason: str = "bad file descriptor") -> None:
        super().__init__(errno.EBADF, f"{reason}: {fd}")
        self.fd = fd


@dataclass
class _ControlBlock:
    name: str
    flags: int
    position: int = 0

    @property
    def readable(self) -> bool:
        return self.flags & _ACCMODE in (os.O_RDONLY, os.O_RDWR)

    @property
    def writable(self) -> bool:
        return self.flags & _ACCMODE in (os.O_WRONLY, os.O_RDWR)


class FileTable:
    """At most ``MAX_FCBS`` open files over a mapping of names to contents."""

    def __init__(self, files: dict[str, bytearray] | None = None) -> None:
        self.files = {} if files is None else files
        self._fcbs: list[_ControlBlock | None] = [None] * MAX_FCBS

    def _lookup(self, fd: int) -> _ControlBlock:
        if not isinstance(fd, int) or not 0 <= fd < MAX_FCBS or self._fcbs[fd] is None:
            raise InvalidDescriptorError(fd)
        return self._fcbs[fd]

    def open(self, filename: str, flags: int) -> int:
        """Open ``filename`` with ``os.O_*`` flags; return the lowest free descriptor."""
        fd = next((i for i, fcb in enumerate(self._fcbs) if fcb is None), None)
        if fd is None:
            raise OSError(errno.EMFILE, "all file control blocks are in use")
        fcb = _ControlBlock(filename, flags)
        if filename not in self.files:
            if not flags & os.O_CREAT:
                raise FileNotFoundError(errno.ENOENT, "No such file", filename)
            self.files[filename] = bytearray()
        elif flags & os.O_TRUNC and fcb.writable:
            self.files[filename].clear()
        self._fcbs[fd] = fcb
        return fd

    def read(self, fd: int, count: int) -> bytes:
        """Read up to ``count`` bytes; an empty result means end of file."""
        fcb = self._lookup(fd)
        if not fcb.readable:
            raise InvalidDescriptorError(fd, "not open for reading")
        if count < 0:
            raise ValueError(f"negative read count {count}")
        content = self.files[fcb.name]
        data = bytes(content[fcb.position : fcb.position + count])
        fcb.position += len(data)
        return data

    def write(self, fd: int, data: bytes) -> int:
        """Write ``data`` at the current position; return the number of bytes written."""
        fcb = self._lookup(fd)
        if not fcb.writable:
            raise InvalidDescriptorError(fd, "not open for writing")
        content = self.files[fcb.name]
        if fcb.position > len(content):
            content.extend(bytes(fcb.position - len(content)))
        content[fcb.position : fcb.position + len(data)] = data
        fcb.position += len(data)
        return len(data)

    def seek(self, fd: int, offset: int, whence: int) -> int:
        """Move the position as ``os.lseek`` does; return the new position."""
        fcb = self._lookup(fd)
        bases = {
            os.SEEK_SET: 0,
            os.SEEK_CUR: fcb.position,
            os.SEEK_END: len(self.files[fcb.name]),
        }
        if whence not in bases:
            raise ValueError(f"invalid whence {whence}")
        position = bases[whence] + offset
        if position < 0:
            raise ValueError(f"cannot seek to negative position {position}")
        fcb.position = position
        return position

    def close(self, fd: int) -> None:
        self._lookup(fd)
        self._fcbs[fd] = None