from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import IO

import requests

from .context import CacheContext, check_context

logger = logging.getLogger(__name__)

USER_AGENT = "modcache/0.1.0 (+cache-directory sync)"


@dataclass(slots=True)
class DownloadedArchive:
    url: str
    content_type: str
    stream: IO[bytes]


class ArchiveDownloader:
    """Streams a sync archive over HTTP without buffering it in memory."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0.")

        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    @contextmanager
    def open(self, url: str, *, ctx: CacheContext | None = None) -> Iterator[DownloadedArchive]:
        """Stream ``url``; the request timeout never outlives the ``ctx`` deadline."""
        if not url.strip():
            raise ValueError("archive url is empty.")
        check_context(ctx)

        timeout = self.timeout_seconds
        remaining = ctx.remaining() if ctx is not None else None
        if remaining is not None:
            timeout = min(timeout, remaining)

        response = self.session.get(url, stream=True, timeout=timeout)
        try:
            response.raise_for_status()
            # Keep Content-Encoding untouched; the body is decoded by the sync type.
            response.raw.decode_content = False
            content_type = _media_type(response.headers.get("Content-Type", ""))
            logger.info("archive download url=%s content_type=%s", url, content_type or "-")
            yield DownloadedArchive(url=url, content_type=content_type, stream=response.raw)
        finally:
            response.close()


def _media_type(header_value: str) -> str:
    return header_value.split(";", 1)[0].strip().lower()
