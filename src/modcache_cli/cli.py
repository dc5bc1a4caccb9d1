from __future__ import annotations

import logging
from pathlib import Path

import requests
import typer

from modcache import (
    AppConfig,
    CacheContext,
    CacheError,
    CacheNotFoundError,
    DirCacher,
    SyncReport,
    describe_handle,
    load_config,
)
from modcache.remote import ArchiveDownloader
from modcache.schemas import compression_kind_for_path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

_READ_CHUNK_SIZE = 64 * 1024

app = typer.Typer(help="modcache CLI")
debug_app = typer.Typer(help="Debug commands")
app.add_typer(debug_app, name="debug")

CacheDirOption = typer.Option(
    None,
    "--cache-dir",
    help="Cache root directory. Overrides cache.directory from the config file.",
)
ConfigOption = typer.Option(
    None,
    "--config",
    help="Config file path (JSON or YAML).",
    exists=True,
    dir_okay=False,
    readable=True,
)


@app.command("get")
def get_entry(
    name: str = typer.Argument(..., help="Logical cache name, e.g. golang.org/x/text/@v/list."),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write content to this file instead of stdout.",
    ),
    cache_dir: Path | None = CacheDirOption,
    config_path: Path | None = ConfigOption,
) -> None:
    """Print a cached entry."""
    cacher = _build_cacher(config_path, cache_dir)
    try:
        handle = cacher.get(name)
    except CacheError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    with handle:
        if output is None:
            while chunk := handle.read(_READ_CHUNK_SIZE):
                typer.echo(chunk, nl=False)
            return

        output.parent.mkdir(parents=True, exist_ok=True)
        with output.open("wb") as fp:
            while chunk := handle.read(_READ_CHUNK_SIZE):
                fp.write(chunk)
    typer.echo(f"name={name} output={output}")


@app.command("put")
def put_entry(
    name: str = typer.Argument(..., help="Logical cache name."),
    file: Path = typer.Option(
        ...,
        "--file",
        "-f",
        help="File whose content is stored under NAME.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    cache_dir: Path | None = CacheDirOption,
    config_path: Path | None = ConfigOption,
) -> None:
    """Store a file under a cache name."""
    cacher = _build_cacher(config_path, cache_dir)
    try:
        with file.open("rb") as content:
            cacher.put(name, content)
    except CacheError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"stored name={name} size={file.stat().st_size}")


@app.command("stat")
def stat_entry(
    name: str = typer.Argument(..., help="Logical cache name."),
    cache_dir: Path | None = CacheDirOption,
    config_path: Path | None = ConfigOption,
) -> None:
    """Show the metadata an HTTP layer would derive from a cached entry."""
    cacher = _build_cacher(config_path, cache_dir)
    try:
        handle = cacher.get(name)
    except CacheError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    with handle:
        info = describe_handle(handle, name=name)
    typer.echo(info.model_dump_json(indent=2))


@app.command("sync")
def sync_archive(
    archive: Path | None = typer.Option(
        None,
        "--archive",
        help="Local tar or tar.gz archive to ingest.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    url: str | None = typer.Option(
        None,
        "--url",
        help="Download the archive from this URL instead of reading a file.",
    ),
    kind: str | None = typer.Option(
        None,
        "--type",
        help="Archive type: application/gzip or application/x-tar. Guessed when omitted.",
    ),
    timeout_seconds: float | None = typer.Option(
        None,
        "--timeout-seconds",
        min=0,
        help="Give up the whole sync after this many seconds.",
    ),
    cache_dir: Path | None = CacheDirOption,
    config_path: Path | None = ConfigOption,
) -> None:
    """Ingest a cache-directory archive into the local cache."""
    if (archive is None) == (url is None):
        typer.echo("exactly one of --archive or --url is required", err=True)
        raise typer.Exit(code=1)

    config = _load_app_config(config_path)
    cacher = _build_cacher(config_path, cache_dir, config=config)
    report = SyncReport()
    ctx = CacheContext(timeout_seconds=timeout_seconds)
    try:
        if archive is not None:
            sync_kind = kind or compression_kind_for_path(archive)
            with archive.open("rb") as stream:
                cacher.sync(stream, sync_kind, ctx=ctx, report=report)
        else:
            downloader = ArchiveDownloader(timeout_seconds=config.sync.timeout_seconds)
            with downloader.open(url or "", ctx=ctx) as download:
                cacher.sync(download.stream, kind or download.content_type, ctx=ctx, report=report)
    except (CacheError, requests.RequestException) as exc:
        typer.echo(f"sync failed after written={len(report.written)}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(
        "synced "
        f"written={len(report.written)} "
        f"skipped_directories={report.skipped_directories} "
        f"skipped_locks={report.skipped_locks} "
        f"skipped_other={report.skipped_other} "
        f"bytes={report.bytes_written}"
    )


@debug_app.command("storage")
def debug_storage(
    cache_dir: Path | None = CacheDirOption,
    config_path: Path | None = ConfigOption,
) -> None:
    """Run cache directory smoke test."""
    cacher = _build_cacher(config_path, cache_dir)

    name = "debug/storage.txt"
    payload = b"smoke_ok"
    cacher.put(name, payload)
    try:
        with cacher.get(name) as handle:
            cached = handle.read()
    except CacheNotFoundError:
        cached = None

    if cached != payload:
        typer.echo("storage smoke test failed", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"storage ok root={cacher.root}")


def _load_app_config(config_path: Path | None) -> AppConfig:
    if config_path is None:
        return AppConfig()
    try:
        return load_config(config_path)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


def _build_cacher(
    config_path: Path | None,
    cache_dir: Path | None,
    *,
    config: AppConfig | None = None,
) -> DirCacher:
    if config is None:
        config = _load_app_config(config_path)
    logging.getLogger().setLevel(config.logging.level)
    if cache_dir is not None:
        return DirCacher(cache_dir)
    return DirCacher.from_config(config)


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
