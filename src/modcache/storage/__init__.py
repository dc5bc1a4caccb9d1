"""Cache contract and the local directory backend."""

from .archive import ArchiveEntry, ArchiveReader
from .base import (
    Cacher,
    CacheHandle,
    SupportsETag,
    SupportsLastModified,
    SupportsModTime,
    SupportsSeek,
    describe_handle,
)
from .dir_cacher import DIR_MODE, FILE_MODE, CachedFile, DirCacher

__all__ = [
    "DIR_MODE",
    "FILE_MODE",
    "ArchiveEntry",
    "ArchiveReader",
    "CacheHandle",
    "CachedFile",
    "Cacher",
    "DirCacher",
    "SupportsETag",
    "SupportsLastModified",
    "SupportsModTime",
    "SupportsSeek",
    "describe_handle",
]
