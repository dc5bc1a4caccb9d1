"""Module proxy content cache."""

from .config import AppConfig, load_config
from .context import CacheContext
from .errors import (
    ArchiveDecodeError,
    CacheError,
    CacheNotFoundError,
    InvalidCacheNameError,
    OperationCancelledError,
    UnsupportedSyncTypeError,
)
from .schemas import CacheEntryInfo, CompressionKind, SyncReport
from .storage import Cacher, DirCacher, describe_handle

__all__ = [
    "AppConfig",
    "ArchiveDecodeError",
    "CacheContext",
    "CacheEntryInfo",
    "CacheError",
    "CacheNotFoundError",
    "Cacher",
    "CompressionKind",
    "DirCacher",
    "InvalidCacheNameError",
    "OperationCancelledError",
    "SyncReport",
    "UnsupportedSyncTypeError",
    "describe_handle",
    "load_config",
]
