from __future__ import annotations


class CacheError(Exception):
    """Base class for errors raised by modcache."""


class CacheNotFoundError(CacheError, FileNotFoundError):
    """No entry is stored under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"cache entry not found: {name}")
        self.name = name


class InvalidCacheNameError(CacheError, ValueError):
    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"invalid cache name {name!r}: {reason}")
        self.name = name
        self.reason = reason


class UnsupportedSyncTypeError(CacheError, ValueError):
    def __init__(self, kind: str) -> None:
        super().__init__(f"unsupported cache-directory sync type: {kind}")
        self.kind = kind


class ArchiveDecodeError(CacheError):
    """The sync archive stream is not valid gzip or tar data."""


class OperationCancelledError(CacheError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"operation aborted: {reason}")
        self.reason = reason
