from __future__ import annotations

import contextlib
import io
import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import IO

from modcache.config import AppConfig
from modcache.context import CacheContext, check_context
from modcache.errors import CacheNotFoundError, InvalidCacheNameError
from modcache.schemas import LOCK_SUFFIX, CompressionKind, EntryKind, SyncReport

from .archive import ArchiveReader

logger = logging.getLogger(__name__)

DIR_MODE = 0o755
FILE_MODE = 0o644
_COPY_CHUNK_SIZE = 64 * 1024


class CachedFile:
    """Read handle returned by ``DirCacher.get``.

    Wraps the opened file together with the stat taken when it was opened,
    so the timestamps stay consistent with the bytes being served even if the
    entry is replaced concurrently.
    """

    def __init__(self, fp: IO[bytes], stat_result: os.stat_result) -> None:
        self._fp = fp
        self._stat = stat_result

    @property
    def size(self) -> int:
        return self._stat.st_size

    @property
    def closed(self) -> bool:
        return self._fp.closed

    def mod_time(self) -> datetime:
        return datetime.fromtimestamp(self._stat.st_mtime, tz=UTC)

    def read(self, size: int = -1, /) -> bytes:
        return self._fp.read(size)

    def readinto(self, buffer: bytearray | memoryview, /) -> int:
        return self._fp.readinto(buffer)  # type: ignore[attr-defined]

    def seek(self, offset: int, whence: int = io.SEEK_SET, /) -> int:
        return self._fp.seek(offset, whence)

    def tell(self) -> int:
        return self._fp.tell()

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return self._fp.seekable()

    def close(self) -> None:
        self._fp.close()

    def __enter__(self) -> CachedFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class DirCacher:
    """Cache backend storing one file per entry under a local directory.

    Directories are created with 0755 and files with 0644 permissions. Writes
    go to a staging file next to the target which is renamed into place, so
    readers only ever see complete content.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    @classmethod
    def from_config(cls, config: AppConfig) -> DirCacher:
        return cls(config.cache.directory)

    def translate(self, name: str) -> Path:
        if "\x00" in name:
            raise InvalidCacheNameError(name, "contains NUL byte")

        parts = [part for part in name.split("/") if part not in ("", ".")]
        if not parts:
            raise InvalidCacheNameError(name, "empty name")
        for part in parts:
            if part == "..":
                raise InvalidCacheNameError(name, "parent directory segment")
            if os.sep in part or (os.altsep and os.altsep in part):
                raise InvalidCacheNameError(name, "contains host path separator")
        return self.root.joinpath(*parts)

    def get(self, name: str, *, ctx: CacheContext | None = None) -> CachedFile:
        check_context(ctx)
        path = self.translate(name)
        try:
            fp = path.open("rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            logger.info("dir_cache miss name=%s", name)
            raise CacheNotFoundError(name) from exc

        try:
            stat_result = os.fstat(fp.fileno())
        except OSError:
            fp.close()
            raise

        logger.info("dir_cache hit name=%s size=%d", name, stat_result.st_size)
        return CachedFile(fp, stat_result)

    def put(
        self,
        name: str,
        content: IO[bytes] | bytes | bytearray | memoryview,
        *,
        ctx: CacheContext | None = None,
    ) -> None:
        if isinstance(content, (bytes, bytearray, memoryview)):
            content = io.BytesIO(content)
        elif not _is_seekable(content):
            raise TypeError("put requires seekable content; use put_stream for forward-only readers")

        size = self._write(name, content, ctx=ctx)
        logger.info("dir_cache put name=%s size=%d", name, size)

    def put_stream(
        self,
        name: str,
        content: IO[bytes],
        *,
        ctx: CacheContext | None = None,
    ) -> int:
        """Store a forward-only stream; returns the number of bytes written."""
        size = self._write(name, content, ctx=ctx)
        logger.debug("dir_cache put_stream name=%s size=%d", name, size)
        return size

    def sync(
        self,
        stream: IO[bytes],
        compression_kind: str | CompressionKind,
        *,
        ctx: CacheContext | None = None,
        report: SyncReport | None = None,
    ) -> SyncReport:
        """Write every regular file of a tar stream into the cache.

        Directory entries, entries ending in ``.lock`` and non-regular entries
        are skipped. The first error aborts the sync; files written before it
        stay in place and are recorded in ``report`` when one is passed in.
        """
        check_context(ctx)
        reader = ArchiveReader(stream, compression_kind)
        if report is None:
            report = SyncReport()

        logger.info("dir_cache sync start root=%s type=%s", self.root, reader.compression_kind)
        with contextlib.closing(iter(reader)) as entries:
            for entry in entries:
                check_context(ctx)
                if entry.kind is EntryKind.DIRECTORY:
                    report.skipped_directories += 1
                    continue
                if entry.name.endswith(LOCK_SUFFIX):
                    report.skipped_locks += 1
                    continue
                if entry.kind is EntryKind.OTHER or entry.body is None:
                    logger.warning(
                        "dir_cache sync skip name=%s size=%d reason=not_regular_file",
                        entry.name,
                        entry.size,
                    )
                    report.skipped_other += 1
                    continue

                report.bytes_written += self.put_stream(entry.name, entry.body)
                report.written.append(entry.name)

        logger.info(
            "dir_cache sync done written=%d skipped=%d bytes=%d",
            len(report.written),
            report.skipped,
            report.bytes_written,
        )
        return report

    def _write(self, name: str, content: IO[bytes], *, ctx: CacheContext | None) -> int:
        check_context(ctx)
        target = self.translate(name)
        os.makedirs(target.parent, mode=DIR_MODE, exist_ok=True)

        with self._staging_file(target) as staging:
            shutil.copyfileobj(content, staging, _COPY_CHUNK_SIZE)
            size = staging.tell()
        return size

    @staticmethod
    @contextlib.contextmanager
    def _staging_file(target: Path) -> Iterator[IO[bytes]]:
        """Yield a staging file that is renamed onto ``target`` on success.

        The staging file lives in the target's directory so the rename stays on
        one filesystem. It is removed on every exit path; after a successful
        rename the removal is a no-op.
        """
        fd, staging_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.tmp.")
        try:
            with os.fdopen(fd, "wb") as staging:
                yield staging
            os.chmod(staging_name, FILE_MODE)
            os.replace(staging_name, target)
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(staging_name)


def _is_seekable(content: object) -> bool:
    seekable = getattr(content, "seekable", None)
    if callable(seekable):
        return bool(seekable())
    return callable(getattr(content, "seek", None))
