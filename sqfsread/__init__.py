"""Read-only building blocks for SquashFS images: records, tables, xattrs, inode maps and traversal."""

__version__ = "0.1.0"
__all__ = [
    "format",
    "inodemap",
    "stack",
    "stat",
    "table",
    "traverse",
    "util",
    "xattr",
]