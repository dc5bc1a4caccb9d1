from __future__ import annotations

import io

import pytest
import requests

from modcache import CacheContext, OperationCancelledError
from modcache.remote import ArchiveDownloader


class _FakeRaw(io.BytesIO):
    decode_content = True


class _FakeResponse:
    def __init__(self, *, status_code: int, body: bytes, content_type: str) -> None:
        self.status_code = status_code
        self.raw = _FakeRaw(body)
        self.headers = {"Content-Type": content_type}
        self.closed = False

    def raise_for_status(self) -> None:
        if self.status_code < 400:
            return
        error = requests.HTTPError(f"{self.status_code} error")
        error.response = self  # type: ignore[assignment]
        raise error

    def close(self) -> None:
        self.closed = True


class _FakeSession:
    def __init__(self, response: _FakeResponse) -> None:
        self.response = response
        self.headers: dict[str, str] = {}
        self.calls: list[tuple[str, bool, float]] = []

    def get(self, url: str, *, stream: bool, timeout: float) -> _FakeResponse:
        self.calls.append((url, stream, timeout))
        return self.response


def test_downloader_streams_raw_body_and_normalizes_content_type() -> None:
    response = _FakeResponse(
        status_code=200,
        body=b"\x1f\x8b archive bytes",
        content_type="Application/Gzip; charset=binary",
    )
    session = _FakeSession(response)
    downloader = ArchiveDownloader(session=session, timeout_seconds=7.5)  # type: ignore[arg-type]

    with downloader.open("https://cache.example.com/cache.tar.gz") as download:
        assert download.content_type == "application/gzip"
        assert download.stream.read() == b"\x1f\x8b archive bytes"
        assert response.raw.decode_content is False

    assert response.closed
    assert session.calls == [("https://cache.example.com/cache.tar.gz", True, 7.5)]
    assert "User-Agent" in session.headers


def test_downloader_raises_http_error_and_closes_response() -> None:
    response = _FakeResponse(status_code=404, body=b"missing", content_type="text/plain")
    downloader = ArchiveDownloader(session=_FakeSession(response))  # type: ignore[arg-type]

    with pytest.raises(requests.HTTPError):
        with downloader.open("https://cache.example.com/missing.tar"):
            pass

    assert response.closed


def test_downloader_rejects_bad_arguments() -> None:
    with pytest.raises(ValueError):
        ArchiveDownloader(timeout_seconds=0)

    downloader = ArchiveDownloader(session=_FakeSession(_FakeResponse(status_code=200, body=b"", content_type="")))  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        with downloader.open("  "):
            pass


def test_downloader_caps_timeout_by_context_deadline() -> None:
    now = [100.0]
    ctx = CacheContext(timeout_seconds=5.0, clock=lambda: now[0])
    now[0] = 103.0
    session = _FakeSession(_FakeResponse(status_code=200, body=b"tar", content_type="application/x-tar"))
    downloader = ArchiveDownloader(session=session, timeout_seconds=30.0)  # type: ignore[arg-type]

    with downloader.open("https://cache.example.com/cache.tar", ctx=ctx):
        pass

    assert session.calls == [("https://cache.example.com/cache.tar", True, 2.0)]


def test_downloader_keeps_configured_timeout_without_deadline() -> None:
    session = _FakeSession(_FakeResponse(status_code=200, body=b"tar", content_type="application/x-tar"))
    downloader = ArchiveDownloader(session=session, timeout_seconds=4.0)  # type: ignore[arg-type]

    with downloader.open("https://cache.example.com/cache.tar", ctx=CacheContext()):
        pass

    assert session.calls == [("https://cache.example.com/cache.tar", True, 4.0)]


def test_downloader_does_not_request_when_context_is_cancelled() -> None:
    session = _FakeSession(_FakeResponse(status_code=200, body=b"tar", content_type="application/x-tar"))
    downloader = ArchiveDownloader(session=session)  # type: ignore[arg-type]
    ctx = CacheContext()
    ctx.cancel()

    with pytest.raises(OperationCancelledError):
        with downloader.open("https://cache.example.com/cache.tar", ctx=ctx):
            pass

    assert session.calls == []
