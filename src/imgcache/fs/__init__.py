"""Filesystem layer: host capability and cache-level file operations."""

from imgcache.fs.base import FileSystem
from imgcache.fs.local import LocalFileSystem
from imgcache.fs.operations import FileOperations

__all__ = ["FileSystem", "FileOperations", "LocalFileSystem"]
