[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "sporkfs"
version = "0.1.0"
description = "A small block-based file system on a volume file, with an interactive shell and a hexdump utility"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "bitmap", "volume", "shell", "hexdump"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sporkfs-shell = "sporkfs.shell:main"
sporkfs-hexdump = "sporkfs.hexdump:main"

[tool.setuptools.packages.find]
include = ["sporkfs*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
