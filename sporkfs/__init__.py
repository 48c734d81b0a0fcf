"""A block-based file system stored in a volume file, with a shell and a hexdump tool."""

__version__ = "0.1.0"