# sporkfs

A small file system that lives inside a single volume file. The volume file
begins with a partition header block, after which come the logical blocks
the file system uses:

- block 0 holds the volume control block (`sporkfs.volume.VolumeControlBlock`),
- the blocks from 1 onward hold the free-space bitmap (`sporkfs.bitmap.FreeSpaceMap`),
- directories are arrays of fixed-size directory entries
  (`sporkfs.directory.DirectoryEntry`) stored in runs of contiguous free blocks.

The package also includes a hexdump tool for inspecting the volume file.

## Installing

    pip install .

For running the tests:

    pip install ".[test]"
    pytest

## The shell

    sporkfs-shell VolumeFile 10000000 512

The three arguments are the volume file name, the volume size in bytes and
the block size (a power of two). If the file does not exist it is created
with that geometry; if it exists, the geometry stored in its header is used
instead. The shell then formats the volume and reads commands at a
`Prompt > ` prompt:

| Command   | What it does                                        |
|-----------|-----------------------------------------------------|
| `ls`      | Lists a directory (`-a`/`--all`, `-l`/`--long`)     |
| `md`      | Makes a new directory                               |
| `pwd`     | Prints the working directory                        |
| `history` | Prints the command history (up to 200 lines)        |
| `help`    | Prints the list of commands                         |
| `exit`    | Writes the control block and bitmap back and leaves |

End of input works like `exit`. Words are separated by spaces; single or
double quotes let a word hold spaces, and a backslash protects the next
character. The quotes and backslashes stay part of the word.

## Inspecting a volume

    sporkfs-hexdump --file VolumeFile --start 0 --count 2

This prints the file in hexadecimal and characters, 16 bytes per line, with
a blank line every 256 bytes. `--start`/`-s` and `--count`/`-c` are in
512-byte blocks; a count of 0 dumps to the end of the file. `--file`/`-f`
names a file, and further file names may follow the options; they are dumped
with the same start and count. `--help`/`-h` and `--version`/`-v` print the
usage line and the version.

## Using it from Python

```python
from sporkfs.blockdev import BlockDevice
from sporkfs.fsinit import init_file_system
from sporkfs import mfs

with BlockDevice.in_memory(block_count=200, block_size=512) as device:
    fs = init_file_system(device, 200, 512)
    mfs.mkdir(fs, "/docs", 0o777)
    handle = mfs.opendir(fs, "/")
    for item in handle:
        print(item.name, item.file_type.name)
    handle.close()
    print(mfs.getcwd(fs, 256))
    print(mfs.stat(fs, "/docs").st_size)
    fs.exit()
```

`sporkfs.mfs` also offers `parse_path`, `setcwd`, `is_file` and `is_dir`.
`sporkfs.hexdump.dump_file` yields the dump as lines, and
`sporkfs.shell.split_command` splits a command line the way the shell does.

Errors are raised as exceptions: `PartitionError` for the volume file and
out-of-range block requests, `InvalidBlockError` for the free-space bitmap,
`FileSystemError` for paths that cannot be resolved, and the standard
`FileExistsError`, `FileNotFoundError` and `NotADirectoryError` where those
fit. `HexdumpError` carries the exit status of a failed dump.

## What it does not do

- Each shell start formats the volume afresh; an existing volume's
  directories are not mounted again.
- Regular files cannot be stored on the volume. The shell lists `cp`, `mv`,
  `rm`, `touch`, `cat`, `cp2l`, `cp2fs` and `cd` in its help, but answers
  that they are not available. There is no removal of directories.
- `sporkfs.bufio.FileTable` gives open/read/write/seek/close over an
  in-memory mapping of names to contents; it is not connected to a volume.
- The `mode` given to `mkdir` is accepted but not stored.