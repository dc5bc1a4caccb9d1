from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import UnsupportedSyncTypeError

LOCK_SUFFIX = ".lock"


class DTOBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class CompressionKind(StrEnum):
    GZIP = "application/gzip"
    TAR = "application/x-tar"

    @classmethod
    def parse(cls, value: str | CompressionKind) -> CompressionKind:
        try:
            return cls(value)
        except ValueError as exc:
            raise UnsupportedSyncTypeError(str(value)) from exc


class EntryKind(StrEnum):
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"


class CacheEntryInfo(DTOBase):
    name: str
    seekable: bool = False
    size: int | None = None
    last_modified: datetime | None = None
    etag: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be empty")
        return value


@dataclass(slots=True)
class SyncReport:
    written: list[str] = field(default_factory=list)
    skipped_directories: int = 0
    skipped_locks: int = 0
    skipped_other: int = 0
    bytes_written: int = 0

    @property
    def skipped(self) -> int:
        return self.skipped_directories + self.skipped_locks + self.skipped_other


def compression_kind_for_path(path: str | Path) -> CompressionKind:
    """Guess the sync compression kind from an archive file name."""
    name = Path(path).name.lower()
    if name.endswith((".tar.gz", ".tgz", ".gz")):
        return CompressionKind.GZIP
    if name.endswith(".tar"):
        return CompressionKind.TAR
    raise UnsupportedSyncTypeError(Path(path).suffix or name)
