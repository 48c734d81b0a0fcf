"""Path resolution and directory operations on a mounted file system."""

from __future__ import annotations

import errno
import posixpath
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Iterator

from sporkfs.directory import NAME_MAX, DirectoryEntry, init_dir, load_dir
from sporkfs.fsinit import MIN_ENTRIES, FileSystem

DIRMAX_LEN = 4096


class FileType(IntEnum):
    """Kinds of directory items, numbered as the POSIX ``d_type`` values."""

    DIRECTORY = 4
    REGFILE = 8
    LINK = 10


class FileSystemError(OSError):
    """Raised when a path cannot be resolved."""


@dataclass
class PathInfo:
    """Where a path leads: the loaded parent directory and the last element in it.

    ``index`` is the slot of the last element in ``parent``, or ``None`` when
    no entry of that name exists.  For the root path ``last_element`` is
    ``None`` and ``index`` is 0, the root's own ``.`` entry.
    """

    parent: list[DirectoryEntry]
    last_element: str | None
    index: int | None

    @property
    def is_root(self) -> bool:
        return self.last_element is None

    @property
    def entry(self) -> DirectoryEntry | None:
        return None if self.index is None else self.parent[self.index]


@dataclass
class DirItemInfo:
    """One item returned while reading a directory."""

    name: str
    file_type: FileType


@dataclass
class FsStat:
    """Attributes of a file or directory."""

    st_size: int
    st_blksize: int
    st_blocks: int
    st_accesstime: int
    st_modtime: int
    st_createtime: int


class DirHandle:
    """An open directory that yields its used entries in slot order."""

    def __init__(self, directory: list[DirectoryEntry]) -> None:
        self.directory: list[DirectoryEntry] | None = directory
        self.position = 0
        self.num_entries = len(directory)

    def readdir(self) -> DirItemInfo | None:
        """Return the next used entry, or ``None`` when none are left."""
        if self.directory is None:
            raise ValueError("directory handle is closed")
        while self.position < self.num_entries:
            entry = self.directory[self.position]
            self.position += 1
            if entry.is_used():
                kind = FileType.DIRECTORY if entry.is_directory == 1 else FileType.REGFILE
                return DirItemInfo(entry.name, kind)
        return None

    def __iter__(self) -> Iterator[DirItemInfo]:
        while (item := self.readdir()) is not None:
            yield item

    def close(self) -> None:
        self.directory = None
        self.num_entries = 0
        self.position = 0


def find_name_in_dir(directory: list[DirectoryEntry], name: str) -> int | None:
    """Return the slot holding ``name``, or ``None``."""
    return next((i for i, entry in enumerate(directory) if entry.name == name), None)


def entry_is_dir(directory: list[DirectoryEntry], index: int) -> bool:
    return directory[index].is_directory == 1


def find_unused_entry(directory: list[DirectoryEntry]) -> int | None:
    """Return the first free slot after ``.`` and ``..``, or ``None`` if the directory is full."""
    return next(
        (i for i, entry in enumerate(directory[2:], start=2) if not entry.is_used()),
        None,
    )


def save_dir(fs: FileSystem, directory: list[DirectoryEntry]) -> int:
    """Write a whole directory back to its blocks; return the blocks written."""
    data = b"".join(entry.pack() for entry in directory)
    return fs.device.write_blocks(data, directory[0].lba_location)


def _load(fs: FileSystem, entry: DirectoryEntry) -> list[DirectoryEntry]:
    """Load a directory, reusing the in-memory root or working directory."""
    if fs.cwd is not None and entry.is_directory == 1 and entry.lba_location == fs.cwd[0].lba_location:
        return fs.cwd
    return load_dir(fs.device, fs.vcb, entry, fs.root)


def parse_path(fs: FileSystem, path: str) -> PathInfo:
    """Resolve every element but the last, which may or may not exist."""
    if path is None:
        raise FileSystemError(errno.EINVAL, "path is null")
    parent = fs.root if path.startswith("/") else fs.cwd
    tokens = [token for token in path.split("/") if token]
    if not tokens:
        if not path.startswith("/"):
            raise FileSystemError(errno.ENOENT, f"invalid path {path!r}")
        return PathInfo(parent, None, 0)

    *walk, last = tokens
    for token in walk:
        index = find_name_in_dir(parent, token)
        if index is None:
            raise FileSystemError(errno.ENOENT, f"invalid path {path!r}: {token!r} not found")
        if not entry_is_dir(parent, index):
            raise FileSystemError(errno.ENOTDIR, f"invalid path {path!r}: {token!r} is not a directory")
        parent = _load(fs, parent[index])
    return PathInfo(parent, last, find_name_in_dir(parent, last))


def _fit_name(name: str) -> str:
    return name.encode("utf-8")[:NAME_MAX].decode("utf-8", errors="ignore")


def mkdir(fs: FileSystem, path: str, mode: int = 0o777) -> None:
    """Create a directory; ``mode`` is accepted but not stored."""
    info = parse_path(fs, path)
    if info.is_root:
        raise FileExistsError(errno.EEXIST, "File exists", path)
    parent = info.parent
    name = _fit_name(info.last_element)
    if find_name_in_dir(parent, name) is not None:
        raise FileExistsError(errno.EEXIST, "File exists", path)
    slot = find_unused_entry(parent)
    if slot is None:
        raise OSError(errno.ENOSPC, f"no unused entry in parent of {path!r}")
    new_dir = init_dir(MIN_ENTRIES, parent[0], fs.bitmap, fs.device, fs.vcb)
    parent[slot] = replace(new_dir[0], name=name)
    save_dir(fs, parent)


def opendir(fs: FileSystem, path: str) -> DirHandle:
    info = parse_path(fs, path)
    entry = info.entry
    if entry is None:
        raise FileNotFoundError(errno.ENOENT, "No such directory", path)
    return DirHandle(_load(fs, entry))


def _absolute(fs: FileSystem, path: str) -> str:
    combined = path if path.startswith("/") else f"{fs.cwd_name}/{path}"
    return posixpath.normpath("/" + combined.lstrip("/"))


def setcwd(fs: FileSystem, path: str) -> None:
    """Change the working directory."""
    info = parse_path(fs, path)
    if info.is_root:
        fs.cwd = fs.root
        fs.cwd_name = "/"
        return
    entry = info.entry
    if entry is None:
        raise FileNotFoundError(errno.ENOENT, "No such directory", path)
    if entry.is_directory != 1:
        raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
    fs.cwd = _load(fs, entry)
    fs.cwd_name = _absolute(fs, path)


def getcwd(fs: FileSystem, size: int = DIRMAX_LEN) -> str:
    """Return the working directory path, which must fit in ``size`` bytes with a terminator."""
    if size <= len(fs.cwd_name):
        raise OSError(errno.ERANGE, f"buffer of {size} is too small for the working directory")
    return fs.cwd_name


def _lookup(fs: FileSystem, path: str) -> DirectoryEntry | None:
    try:
        return parse_path(fs, path).entry
    except FileSystemError:
        return None


def is_file(fs: FileSystem, path: str) -> bool:
    entry = _lookup(fs, path)
    return entry is not None and entry.is_directory == 0 and entry.is_used()


def is_dir(fs: FileSystem, path: str) -> bool:
    entry = _lookup(fs, path)
    return entry is not None and entry.is_directory == 1 and entry.is_used()


def stat(fs: FileSystem, path: str) -> FsStat:
    """Return the attributes of ``path``; ``st_blocks`` is the block count of the volume."""
    entry = parse_path(fs, path).entry
    if entry is None:
        raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
    return FsStat(
        st_size=entry.size,
        st_blksize=fs.vcb.block_size,
        st_blocks=fs.vcb.total_blocks,
        st_accesstime=entry.last_accessed,
        st_modtime=entry.last_modified,
        st_createtime=entry.time_creation,
    )