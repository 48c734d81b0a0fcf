"""Interactive shell for exploring a volume."""

from __future__ import annotations

import getopt
import posixpath
import sys
from collections import deque
from dataclasses import dataclass
from typing import Callable, Sequence, TextIO

from sporkfs import mfs
from sporkfs.blockdev import BlockDevice, PartitionError
from sporkfs.fsinit import FileSystem, init_file_system

SINGLE_QUOTE = "'"
DOUBLE_QUOTE = '"'
DIRMAX_LEN = 4096
HISTORY_MAX = 200
PROMPT = "Prompt > "

LS_USAGE = "Usage: ls [--all-a] [--long/-l] [pathname]"


class UnterminatedStringError(ValueError):
    """Raised when a command line has a quote without its closing partner."""


def split_command(line: str) -> list[str]:
    """Split a command line into words.

    Words are separated by runs of spaces.  A backslash protects the next
    character and quoted text may hold spaces; quotes and backslashes stay
    in the words.  A line that starts with a space yields an empty first word.
    """
    words: list[str] = []
    start: int | None = 0
    length = len(line)
    i = 0
    while i < length:
        char = line[i]
        if char == " ":
            words.append(line[start:i])
            while i + 1 < length and line[i + 1] == " ":
                i += 1
            start = i + 1 if i + 1 < length else None
        elif char == "\\":
            i += 1
        elif char in (SINGLE_QUOTE, DOUBLE_QUOTE):
            j = i + 1
            while j < length:
                if line[j] == "\\":
                    j += 1
                elif line[j] == char:
                    break
                j += 1
            if j >= length:
                raise UnterminatedStringError("Unterminated string")
            i = j
        i += 1
    if start is not None:
        words.append(line[start:])
    return words


@dataclass(frozen=True)
class _Command:
    name: str
    description: str
    handler: Callable[[list[str]], int] | None


class Shell:
    """Reads commands, runs them against a mounted file system and prints the results."""

    def __init__(
        self,
        fs: FileSystem,
        out: TextIO | None = None,
        input_func: Callable[[str], str] = input,
    ) -> None:
        self.fs = fs
        self.out = out if out is not None else sys.stdout
        self.input_func = input_func
        self.history: deque[str] = deque(maxlen=HISTORY_MAX)
        self.commands = [
            _Command("ls", "Lists the file in a directory", self.cmd_ls),
            _Command("cp", "Copies a file - source [dest]", None),
            _Command("mv", "Moves a file - source dest", None),
            _Command("md", "Make a new directory", self.cmd_md),
            _Command("rm", "Removes a file or directory", None),
            _Command("touch", "Touches/Creates a file", None),
            _Command("cat", "Limited version of cat that displace the file to the console", None),
            _Command("cp2l", "Copies a file from the test file system to the linux file system", None),
            _Command("cp2fs", "Copies a file from the Linux file system to the test file system", None),
            _Command("cd", "Changes directory", None),
            _Command("pwd", "Prints the working directory", self.cmd_pwd),
            _Command("history", "Prints out the history", self.cmd_history),
            _Command("help", "Prints out help", self.cmd_help),
        ]

    def _print(self, *args, **kwargs) -> None:
        print(*args, file=self.out, **kwargs)

    def run_command(self, line: str) -> int:
        """Split and dispatch one command line; return the command's status."""
        try:
            words = split_command(line)
        except UnterminatedStringError as exc:
            self._print(exc)
            return -1
        name = words[0]
        for command in self.commands:
            if command.name == name:
                if command.handler is None:
                    self._print(f"{name}: command is not available")
                    return 0
                return command.handler(words)
        self._print(f"{name} is not a recognized command.")
        self.cmd_help(words)
        return -1

    def _display_files(self, path: str, show_all: bool, long_format: bool) -> int:
        try:
            handle = mfs.opendir(self.fs, path)
        except OSError as exc:
            self._print(exc)
            return -1
        try:
            for item in handle:
                if item.name.startswith(".") and not show_all:
                    continue
                if not long_format:
                    self._print(item.name)
                    continue
                item_path = posixpath.join(path, item.name)
                try:
                    size = mfs.stat(self.fs, item_path).st_size
                except OSError:
                    size = 0
                kind = "D" if mfs.is_dir(self.fs, item_path) else "-"
                self._print(f"{kind}    {size:9d}   {item.name}")
        finally:
            handle.close()
        return 0

    def cmd_ls(self, args: list[str]) -> int:
        try:
            options, paths = getopt.gnu_getopt(args[1:], "alh", ["long", "all", "help"])
        except getopt.GetoptError:
            self._print(LS_USAGE)
            return -1
        show_all = long_format = False
        for option, _ in options:
            if option in ("-a", "--all"):
                show_all = True
            elif option in ("-l", "--long"):
                long_format = True
            else:
                self._print(LS_USAGE)
                return -1

        if not paths:
            try:
                cwd = mfs.getcwd(self.fs, DIRMAX_LEN)
            except OSError as exc:
                self._print(exc)
                return -1
            return self._display_files(cwd, show_all, long_format)

        for path in paths:
            if mfs.is_dir(self.fs, path):
                self._display_files(path, show_all, long_format)
            elif mfs.is_file(self.fs, path):
                self._print(path)
            else:
                self._print(f"{path} is not found")
        return 0

    def cmd_md(self, args: list[str]) -> int:
        if len(args) != 2:
            self._print("Usage: md pathname")
            return -1
        try:
            mfs.mkdir(self.fs, args[1], 0o777)
        except FileExistsError:
            self._print("Directory already exists")
            return 2
        except OSError as exc:
            self._print(exc)
            return -1
        return 0

    def cmd_pwd(self, args: list[str]) -> int:
        try:
            self._print(mfs.getcwd(self.fs, DIRMAX_LEN))
        except OSError:
            self._print("An error occurred while trying to get the current working directory")
        return 0

    def cmd_history(self, args: list[str]) -> int:
        for line in self.history:
            self._print(line)
        return 0

    def cmd_help(self, args: list[str]) -> int:
        for command in self.commands:
            self._print(f"{command.name}\t{command.description}")
        return 0

    def _print_status(self) -> None:
        enabled = {command.name for command in self.commands if command.handler is not None}
        order = ["ls", "cd", "md", "pwd", "touch", "cat", "rm", "cp", "mv", "cp2fs", "cp2l"]
        self._print("|---------------------------------|")
        self._print("|------- Command ------|- Status -|")
        for name in order:
            status = "ON " if name in enabled else "OFF"
            self._print(f"| {name:<21}|    {status}   |")
        self._print("|---------------------------------|")

    def loop(self) -> None:
        """Read and run commands until ``exit`` or end of input, then unmount."""
        while True:
            try:
                line = self.input_func(PROMPT)
            except EOFError:
                line = "exit"
            if line == "exit":
                self.fs.exit()
                self._print("System exiting")
                return
            if line:
                if not self.history or self.history[-1] != line:
                    self.history.append(line)
                self.run_command(line)


def _atoll(text: str) -> int:
    digits = ""
    for char in text.strip():
        if not char.isdigit():
            break
        digits += char
    return int(digits) if digits else 0


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 3:
        print("Usage: fsshell volumeFileName volumeSize blockSize")
        return -1
    filename = args[0]
    volume_size = _atoll(args[1])
    block_size = _atoll(args[2])

    try:
        device = BlockDevice.open(filename, volume_size, block_size)
    except PartitionError as exc:
        print(f"Start Partition Failed:  {exc.code}")
        return exc.code
    except ValueError as exc:
        print(f"Start Partition Failed:  {exc}")
        return -1

    with device:
        print(
            f"Opened {filename}, Volume Size: {device.volume_size};  "
            f"BlockSize: {device.block_size}; Return 0"
        )
        try:
            fs = init_file_system(device, device.volume_size // device.block_size, device.block_size)
        except (ValueError, OSError) as exc:
            print(f"Initialize File System Failed:  {exc}")
            return -1
        shell = Shell(fs)
        shell._print_status()
        shell.loop()
    return 0


if __name__ == "__main__":
    sys.exit(main())