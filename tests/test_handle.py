from __future__ import annotations

from datetime import UTC, datetime

from modcache import DirCacher, describe_handle


class _PlainHandle:
    def __init__(self, payload: bytes) -> None:
        self.payload = payload

    def read(self, size: int = -1) -> bytes:
        return self.payload

    def close(self) -> None:
        return None


class _RichHandle(_PlainHandle):
    def seek(self, offset: int, whence: int = 0) -> int:
        return offset

    def tell(self) -> int:
        return 0

    def last_modified(self) -> datetime:
        return datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)

    def mod_time(self) -> datetime:
        return datetime(1999, 1, 1, tzinfo=UTC)

    def etag(self) -> str:
        return '"abc123"'


class _ModTimeOnlyHandle(_PlainHandle):
    def mod_time(self) -> datetime:
        return datetime(2023, 6, 7, tzinfo=UTC)


class _UnseekableWrapper(_RichHandle):
    def seekable(self) -> bool:
        return False


def test_describe_plain_handle_has_no_optional_metadata() -> None:
    info = describe_handle(_PlainHandle(b"x"), name="pkg/@v/list")

    assert info.name == "pkg/@v/list"
    assert info.seekable is False
    assert info.last_modified is None
    assert info.etag is None
    assert info.size is None


def test_last_modified_wins_over_mod_time_and_etag_is_verbatim() -> None:
    info = describe_handle(_RichHandle(b"x"), name="pkg/@v/v1.0.0.zip")

    assert info.seekable is True
    assert info.last_modified == datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
    assert info.etag == '"abc123"'


def test_mod_time_is_used_when_last_modified_is_absent() -> None:
    info = describe_handle(_ModTimeOnlyHandle(b"x"), name="pkg/@v/v1.0.0.info")

    assert info.last_modified == datetime(2023, 6, 7, tzinfo=UTC)
    assert info.etag is None


def test_seekable_probe_overrides_seek_method() -> None:
    info = describe_handle(_UnseekableWrapper(b"x"), name="x")

    assert info.seekable is False


def test_describe_dir_cacher_handle(tmp_path) -> None:
    cacher = DirCacher(tmp_path)
    cacher.put("golang.org/x/mod/@v/v0.17.0.mod", b"module golang.org/x/mod\n")

    with cacher.get("golang.org/x/mod/@v/v0.17.0.mod") as handle:
        info = describe_handle(handle, name="golang.org/x/mod/@v/v0.17.0.mod")

    assert info.seekable is True
    assert info.size == len(b"module golang.org/x/mod\n")
    assert info.last_modified is not None
    assert info.last_modified.tzinfo is not None
    assert info.etag is None
