"""Cache contract shared by every storage backend.

A backend stores named byte blobs (module zips, ``.info``/``.mod`` files,
checksum database tiles) under slash-separated logical names.

``get`` returns a readable, closable handle. Handles may additionally satisfy
any of the capability protocols below, each checked independently:

1. ``SupportsSeek``, used for Range requests.
2. ``SupportsLastModified``, used for Last-Modified and for
   If-Modified-Since, If-Unmodified-Since and If-Range when 1 holds.
3. ``SupportsModTime``, same as 2 with lower priority.
4. ``SupportsETag``, used for ETag and for If-Match, If-None-Match and
   If-Range when 1 holds. The value is assumed to already be a valid
   RFC 7232 entity tag and is used verbatim.
"""

from __future__ import annotations

from datetime import datetime
from typing import IO, Protocol, runtime_checkable

from modcache.context import CacheContext
from modcache.schemas import CacheEntryInfo, CompressionKind, SyncReport


class CacheHandle(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...

    def close(self) -> None: ...


@runtime_checkable
class SupportsSeek(Protocol):
    def seek(self, offset: int, whence: int = 0, /) -> int: ...

    def tell(self) -> int: ...


@runtime_checkable
class SupportsLastModified(Protocol):
    def last_modified(self) -> datetime: ...


@runtime_checkable
class SupportsModTime(Protocol):
    def mod_time(self) -> datetime: ...


@runtime_checkable
class SupportsETag(Protocol):
    def etag(self) -> str: ...


class Cacher(Protocol):
    def get(self, name: str, *, ctx: CacheContext | None = None) -> CacheHandle:
        """Return a handle for ``name`` or raise ``CacheNotFoundError``."""
        ...

    def put(
        self,
        name: str,
        content: IO[bytes] | bytes,
        *,
        ctx: CacheContext | None = None,
    ) -> None:
        """Store ``content`` under ``name``, replacing any previous entry."""
        ...

    def sync(
        self,
        stream: IO[bytes],
        compression_kind: str | CompressionKind,
        *,
        ctx: CacheContext | None = None,
        report: SyncReport | None = None,
    ) -> SyncReport:
        """Ingest every file of a tar (optionally gzip-wrapped) stream."""
        ...


def describe_handle(handle: CacheHandle, *, name: str) -> CacheEntryInfo:
    seekable = isinstance(handle, SupportsSeek)
    seekable_probe = getattr(handle, "seekable", None)
    if seekable and callable(seekable_probe):
        seekable = bool(seekable_probe())

    last_modified: datetime | None = None
    if isinstance(handle, SupportsLastModified):
        last_modified = handle.last_modified()
    elif isinstance(handle, SupportsModTime):
        last_modified = handle.mod_time()

    etag = handle.etag() if isinstance(handle, SupportsETag) else None

    size = getattr(handle, "size", None)
    if not isinstance(size, int):
        size = None

    return CacheEntryInfo(
        name=name,
        seekable=seekable,
        size=size,
        last_modified=last_modified,
        etag=etag or None,
    )
