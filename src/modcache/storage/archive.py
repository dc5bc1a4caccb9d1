from __future__ import annotations

import gzip
import logging
import tarfile
import zlib
from collections.abc import Iterator
from dataclasses import dataclass
from typing import IO

from modcache.errors import ArchiveDecodeError
from modcache.schemas import CompressionKind, EntryKind

logger = logging.getLogger(__name__)

# BadGzipFile is an OSError; it must be matched before plain stream I/O errors.
_DECODE_ERRORS = (tarfile.TarError, gzip.BadGzipFile, EOFError, zlib.error)


@dataclass(slots=True)
class ArchiveEntry:
    name: str
    kind: EntryKind
    size: int
    body: IO[bytes] | None = None


class _GuardedReader:
    """Forward-only entry body that reports broken archive data as decode errors."""

    def __init__(self, raw: IO[bytes], *, name: str) -> None:
        self._raw = raw
        self._name = name

    def read(self, size: int = -1) -> bytes:
        try:
            return self._raw.read(size)
        except _DECODE_ERRORS as exc:
            raise ArchiveDecodeError(
                f"failed to read archive entry {self._name}: {exc}"
            ) from exc

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def close(self) -> None:
        self._raw.close()


class ArchiveReader:
    """Iterates the entries of a streamed tar archive, optionally gzip-wrapped.

    The compression kind is validated on construction, before any byte of the
    stream is consumed. Entries are yielded in stream order and each body must
    be read before advancing to the next entry.
    """

    def __init__(self, stream: IO[bytes], compression_kind: str | CompressionKind) -> None:
        self.compression_kind = CompressionKind.parse(compression_kind)
        self._stream = stream

    def __iter__(self) -> Iterator[ArchiveEntry]:
        source: IO[bytes] = self._stream
        decompressor: gzip.GzipFile | None = None
        if self.compression_kind is CompressionKind.GZIP:
            decompressor = gzip.GzipFile(fileobj=self._stream, mode="rb")
            source = decompressor

        try:
            tar = self._open_tar(source)
            with tar:
                member = self._first_member(tar)
                while member is not None:
                    yield self._to_entry(tar, member)
                    member = self._next_member(tar)
        finally:
            if decompressor is not None:
                decompressor.close()

    @staticmethod
    def _open_tar(source: IO[bytes]) -> tarfile.TarFile:
        try:
            return tarfile.open(fileobj=source, mode="r|")
        except _DECODE_ERRORS as exc:
            raise ArchiveDecodeError(f"failed to open archive: {exc}") from exc

    @staticmethod
    def _first_member(tar: tarfile.TarFile) -> tarfile.TarInfo | None:
        # The header at offset 0 was parsed by tarfile.open, which reports corruption there.
        try:
            return tar.next()
        except _DECODE_ERRORS as exc:
            raise ArchiveDecodeError(f"failed to read archive header: {exc}") from exc

    @staticmethod
    def _next_member(tar: tarfile.TarFile) -> tarfile.TarInfo | None:
        """Read the header following the current member.

        ``TarFile.next`` treats a broken header past offset 0 as the end of the
        archive, so headers are parsed here instead. Only a zero block or a
        clean end of stream on a block boundary terminates the archive.
        """
        try:
            if tar.offset != tar.fileobj.tell():
                # Skip whatever is left of the previous member's data.
                tar.fileobj.seek(tar.offset - 1)
                if not tar.fileobj.read(1):
                    raise tarfile.ReadError("unexpected end of data")
            return tar.tarinfo.fromtarfile(tar)
        except (tarfile.EOFHeaderError, tarfile.EmptyHeaderError):
            return None
        except _DECODE_ERRORS as exc:
            raise ArchiveDecodeError(f"failed to read archive header at offset {tar.offset}: {exc}") from exc

    @staticmethod
    def _to_entry(tar: tarfile.TarFile, member: tarfile.TarInfo) -> ArchiveEntry:
        if member.isdir():
            return ArchiveEntry(name=member.name, kind=EntryKind.DIRECTORY, size=0)
        if not member.isreg():
            logger.debug("archive entry name=%s type=%r is not a regular file", member.name, member.type)
            return ArchiveEntry(name=member.name, kind=EntryKind.OTHER, size=member.size)

        try:
            raw = tar.extractfile(member)
        except _DECODE_ERRORS as exc:
            raise ArchiveDecodeError(f"failed to open archive entry {member.name}: {exc}") from exc
        if raw is None:
            return ArchiveEntry(name=member.name, kind=EntryKind.OTHER, size=member.size)
        return ArchiveEntry(
            name=member.name,
            kind=EntryKind.FILE,
            size=member.size,
            body=_GuardedReader(raw, name=member.name),
        )
