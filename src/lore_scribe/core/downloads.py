# ABOUTME: Download manager for registry and source-folder images with bounded concurrency
# ABOUTME: Streams into a temporary file, renames on success, retries transient failures with backoff

from __future__ import annotations

import asyncio
import os
import secrets
from pathlib import Path

import httpx

from lore_scribe.config import Config
from lore_scribe.core.models import (
    DOWNLOAD_LOG_HEADER,
    DownloadReport,
    DownloadState,
    DownloadTask,
    render_log,
    timestamp_slug,
)
from lore_scribe.errors import (
    NetworkPermanentError,
    NetworkTransientError,
    PrerequisiteMissingError,
    StorageError,
)
from lore_scribe.extraction import read_json_sources
from lore_scribe.extraction.normalizer import is_plain_filename, unwrap_record
from lore_scribe.persistence import ImageEntry, image_registry
from lore_scribe.utils.concurrency import run_bounded
from lore_scribe.utils.logging import get_logger, with_async_operation_context
from lore_scribe.utils.retry import (
    SleepFunc,
    classify_status,
    convert_request_error,
    convert_transport_error,
    download_retrying,
)

CHUNK_SIZE = 64 * 1024


def temp_path_for(final_path: Path) -> Path:
    """``<final>.tmp_<16 hex chars>`` in the destination directory."""
    return final_path.with_name(f"{final_path.name}.tmp_{secrets.token_hex(8)}")


def existing_filenames(directory: Path) -> set[str]:
    if not directory.is_dir():
        return set()
    return {p.name for p in directory.iterdir() if p.is_file()}


def synchronize_image_registry(entries: list[ImageEntry], image_dir: Path) -> int:
    """Mark entries whose file is already on disk as extracted. Returns how many changed."""
    on_disk = existing_filenames(image_dir)
    return sum(1 for entry in entries if entry.filename in on_disk and entry.mark_extracted())


class DownloadManager:
    """Downloads images into the image folder and writes a per-run log.

    Args:
        config: Run configuration (image folder, pool size, retry policy)
        client: HTTP client to use; one is created (and owned) when omitted
        sleep: Awaitable used between retry attempts
    """

    def __init__(self, config: Config, client: httpx.AsyncClient | None = None, sleep: SleepFunc = asyncio.sleep):
        self.config = config
        self.image_dir = Path(config.image_dir)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": config.user_agent},
            timeout=config.download_timeout,
            follow_redirects=True,
        )
        self.sleep = sleep
        self.logger = get_logger(__name__)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> DownloadManager:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @with_async_operation_context("download_registry_images")
    async def download_from_registry(self) -> DownloadReport:
        """Download every image registry entry not yet extracted and not already on disk."""
        store = image_registry(self.config)
        if not store.exists():
            raise PrerequisiteMissingError(store.name, "sync-images")
        entries = await store.load()

        self.image_dir.mkdir(parents=True, exist_ok=True)
        report = DownloadReport(registry_synced=synchronize_image_registry(entries, self.image_dir))
        on_disk = existing_filenames(self.image_dir)

        pending: list[tuple[ImageEntry, DownloadTask]] = []
        for entry in entries:
            task = DownloadTask(url=entry.url, filename=entry.filename, entry_id=entry.id)
            if entry.extracted or entry.filename in on_disk:
                self._skip(task)
            else:
                pending.append((entry, task))
            report.tasks.append(task)

        await run_bounded([task for _, task in pending], self.download, self.config.max_concurrent_downloads)

        changed = report.registry_synced
        for entry, task in pending:
            if task.state == DownloadState.SUCCESS and entry.mark_extracted():
                changed += 1
        if changed:
            await store.save(entries)

        report.log_path = await self.write_run_log(report)
        self._log_summary(report)
        return report

    @with_async_operation_context("download_source_images")
    async def download_from_source(self, source_dir: Path, name_prop: str = "filename") -> DownloadReport:
        """Download images straight from a folder of image records, naming files by ``name_prop``."""
        records = await read_json_sources(Path(source_dir), self.config.max_concurrent_reads)

        self.image_dir.mkdir(parents=True, exist_ok=True)
        on_disk = existing_filenames(self.image_dir)
        report = DownloadReport()
        pending: list[DownloadTask] = []

        for record in records:
            if record.data is None:
                continue
            data = unwrap_record(record.data)
            url = data.get("url")
            filename = data.get(name_prop)
            task = DownloadTask(
                url=str(url or ""),
                filename=str(filename or ""),
                entry_id=str(data["id"]) if data.get("id") is not None else None,
            )
            report.tasks.append(task)

            if not url or not filename:
                task.state = DownloadState.PERMANENT_FAILURE
                task.result = "ERROR:MissingData"
                self.logger.warning("Image record is missing data", source_file=record.filename, name_prop=name_prop)
            elif task.filename in on_disk:
                self._skip(task)
            else:
                pending.append(task)

        await run_bounded(pending, self.download, self.config.max_concurrent_downloads)

        report.log_path = await self.write_run_log(report)
        self._log_summary(report)
        return report

    def _skip(self, task: DownloadTask) -> None:
        task.state = DownloadState.SKIPPED
        task.result = "SKIPPED"
        self.logger.debug("Skipping download, already present", filename=task.filename)

    async def download(self, task: DownloadTask) -> DownloadTask:
        """Run one task through its state machine. Never raises for per-download failures."""
        if not is_plain_filename(task.filename):
            task.state = DownloadState.PERMANENT_FAILURE
            task.result = "ERROR:UnsafeFilename"
            self.logger.error("Refusing to write outside the image folder", url=task.url, filename=task.filename)
            return task

        final_path = self.image_dir / task.filename
        retrying = download_retrying(
            max_attempts=self.config.download_max_attempts,
            base_delay=self.config.download_base_delay,
            max_delay=self.config.download_max_delay,
            sleep=self.sleep,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    task.attempts += 1
                    task.state = DownloadState.FETCHING
                    try:
                        status_code = await self._fetch_to_file(task.url, final_path)
                    except NetworkTransientError:
                        task.state = DownloadState.TRANSIENT_FAILURE
                        raise
        except NetworkPermanentError as e:
            task.state = DownloadState.PERMANENT_FAILURE
            task.result = f"ERROR:{e.status_code} ({_reason(e.status_code)})" if e.status_code else f"ERROR:{e}"
        except NetworkTransientError as e:
            task.state = DownloadState.TRANSIENT_FAILURE
            task.result = f"ERROR:Final({e.status_code or 'Network/Timeout'})"
        except StorageError as e:
            task.state = DownloadState.PERMANENT_FAILURE
            task.result = f"ERROR:IO ({e})"
        else:
            task.state = DownloadState.SUCCESS
            task.result = f"SUCCESS:{status_code}"

        log = self.logger.info if task.state == DownloadState.SUCCESS else self.logger.error
        log("Download finished", url=task.url, filename=task.filename, attempts=task.attempts, result=task.result)
        return task

    async def _fetch_to_file(self, url: str, final_path: Path) -> int:
        """Stream ``url`` into a temporary file and rename it into place.

        File I/O runs in worker threads. The temporary file is removed on every
        failure path.
        """
        temp_path = temp_path_for(final_path)
        try:
            async with self.client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise classify_status(response.status_code, url)
                handle = await asyncio.to_thread(temp_path.open, "wb")
                try:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        await asyncio.to_thread(handle.write, chunk)
                finally:
                    await asyncio.to_thread(handle.close)
            await asyncio.to_thread(os.replace, temp_path, final_path)
            return response.status_code
        except httpx.TransportError as e:
            temp_path.unlink(missing_ok=True)
            raise convert_transport_error(e, url) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            temp_path.unlink(missing_ok=True)
            raise convert_request_error(e, url) from e
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write {final_path.name}: {e}") from e
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise

    async def write_run_log(self, report: DownloadReport) -> Path:
        """Write ``download_log_<timestamp>.txt`` in the image folder."""
        path = self.image_dir / f"download_log_{timestamp_slug()}.txt"
        content = render_log(DOWNLOAD_LOG_HEADER, [task.log_line() for task in report.tasks])
        try:
            await asyncio.to_thread(path.write_text, content, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to write download log {path}: {e}") from e
        return path

    def _log_summary(self, report: DownloadReport) -> None:
        self.logger.info("Downloads finished", log_path=str(report.log_path), **report.summary())


def _reason(status_code: int) -> str:
    return httpx.codes.get_reason_phrase(status_code) or "Unknown"
