"""Locked downloads: fetch a URL to a destination exactly once.

Concurrent callers targeting the same destination, whether threads or
separate processes, serialize through a lock file. One caller performs the
fetch while the others poll until the file appears or their wait budget
runs out. A destination that already exists is returned without locking.

Example:
    >>> from fetchlock import DownloadOptions, download_with_lock
    >>> result = download_with_lock(
    ...     "https://example.com/file.tar.gz",
    ...     "/tmp/downloads/file.tar.gz",
    ...     DownloadOptions(lock_timeout=60, retries=3),
    ... )
    >>> result.size
"""

import logging
import os
import stat
import time
import uuid
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, Field

from ..config import FetchLockConfig
from ..constants import (
    HTTP_RETRIES,
    HTTP_RETRY_DELAY,
    HTTP_TIMEOUT,
    LOCK_TIMEOUT,
    PART_SUFFIX,
    POLL_INTERVAL,
    STALE_TIMEOUT,
)
from ..errors import LockTimeoutError
from ..http import ProgressCallback, fetch_to_file, validate_url
from ..models import DownloadResult, LockRecord
from .lock_manager import (
    default_locks_dir,
    is_stale,
    lock_age,
    lock_path_for,
    read_lock,
    remove_lock,
    remove_stale_lock,
    try_create_lock,
)

logger = logging.getLogger(__name__)


class DownloadOptions(BaseModel):
    """Options for :func:`download_with_lock`. Durations are in seconds."""

    locks_dir: Path | None = Field(default=None, description="Locks directory override")
    lock_timeout: float = Field(default=LOCK_TIMEOUT, ge=0, description="Max wait for the lock")
    poll_interval: float = Field(default=POLL_INTERVAL, gt=0, description="Delay between retries")
    stale_timeout: float = Field(
        default=STALE_TIMEOUT, gt=0, description="Age after which a held lock is abandoned"
    )
    headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    timeout: float = Field(default=HTTP_TIMEOUT, gt=0, description="Per-request timeout")
    retries: int = Field(default=HTTP_RETRIES, ge=0, description="Extra fetch attempts")
    retry_delay: float = Field(default=HTTP_RETRY_DELAY, ge=0, description="Base backoff delay")

    @classmethod
    def from_config(cls, config: FetchLockConfig, **overrides: Any) -> "DownloadOptions":
        """Build options from loaded configuration.

        Keyword overrides whose value is None are ignored, so CLI flags that
        were not given fall back to the configuration.
        """
        values: dict[str, Any] = {
            "locks_dir": config.lock.dir,
            "lock_timeout": config.lock.timeout,
            "poll_interval": config.lock.poll_interval,
            "stale_timeout": config.lock.stale_timeout,
            "headers": dict(config.http.headers),
            "timeout": config.http.timeout,
            "retries": config.http.retries,
            "retry_delay": config.http.retry_delay,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)


def _existing_result(dest: Path) -> DownloadResult | None:
    """Result for an already-present destination file, else None."""
    try:
        st = dest.stat()
    except FileNotFoundError:
        return None
    if not stat.S_ISREG(st.st_mode):
        return None
    return DownloadResult(path=dest, size=st.st_size, downloaded=False)


def _acquire_lock(
    url: str, dest: Path, lock_path: Path, options: DownloadOptions
) -> DownloadResult | None:
    """Wait for and take the lock guarding ``dest``.

    Returns:
        None once this process holds the lock, or the existing file's result
        if ``dest`` appeared while waiting (another holder produced it)

    Raises:
        LockTimeoutError: If the lock stays held for longer than lock_timeout
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    started = time.monotonic()

    while True:
        if try_create_lock(lock_path, LockRecord.for_current_process(url)):
            return None

        record = read_lock(lock_path)
        if record is None:
            age = lock_age(lock_path)
            if age is None:
                # Released between our create and read
                continue
            # Unreadable payload: no owner to probe, judge by file age
            stale = age > options.stale_timeout
        else:
            stale = is_stale(record, options.stale_timeout)

        if stale:
            logger.info(
                "Reclaiming stale lock %s (pid %s)",
                lock_path,
                record.pid if record is not None else "unknown",
            )
            remove_stale_lock(lock_path, record, options.stale_timeout)
            continue

        holder_pid = record.pid if record is not None else None
        elapsed = time.monotonic() - started
        if elapsed >= options.lock_timeout:
            logger.warning("Timed out waiting for lock %s (pid %s)", lock_path, holder_pid)
            raise LockTimeoutError(lock_path, options.lock_timeout, holder_pid)

        logger.debug("Lock %s held by pid %s, waiting", lock_path, holder_pid)
        time.sleep(min(options.poll_interval, options.lock_timeout - elapsed))

        existing = _existing_result(dest)
        if existing is not None:
            return existing


def _download_holding(
    url: str,
    dest: Path,
    options: DownloadOptions,
    client: httpx.Client | None,
    on_progress: ProgressCallback | None,
) -> DownloadResult:
    """Fetch ``url`` to ``dest`` while holding its lock."""
    # Another holder may have finished between our last poll and our create
    existing = _existing_result(dest)
    if existing is not None:
        return existing

    dest.parent.mkdir(parents=True, exist_ok=True)
    part = dest.with_name(f".{dest.name}.{os.getpid()}.{uuid.uuid4().hex[:8]}{PART_SUFFIX}")
    try:
        size = fetch_to_file(
            url,
            part,
            client=client,
            headers=options.headers,
            timeout=options.timeout,
            retries=options.retries,
            retry_delay=options.retry_delay,
            on_progress=on_progress,
        )
        os.replace(part, dest)
    finally:
        part.unlink(missing_ok=True)

    logger.info("Downloaded %s -> %s (%d bytes)", url, dest, size)
    return DownloadResult(path=dest, size=size, downloaded=True)


def download_with_lock(
    url: str,
    dest_path: str | os.PathLike[str],
    options: DownloadOptions | None = None,
    *,
    client: httpx.Client | None = None,
    on_progress: ProgressCallback | None = None,
) -> DownloadResult:
    """Download ``url`` to ``dest_path`` unless it is already there.

    If another caller is already downloading to the same destination, this
    waits for it to finish (up to ``lock_timeout``) and returns the file it
    produced instead of fetching again. The lock is always released before
    returning or raising.

    Args:
        url: http(s) URL to fetch
        dest_path: Destination file path
        options: Lock and HTTP options (defaults if omitted)
        client: Optional HTTPX client used for the fetch
        on_progress: Called with (downloaded, total) bytes during the fetch

    Returns:
        Absolute destination path and file size

    Raises:
        InvalidURLError: If ``url`` is malformed (before any lock is taken)
        LockTimeoutError: If the lock could not be acquired in time
        DownloadError: If the fetch failed
        OSError: On filesystem failures
    """
    validate_url(url)
    if options is None:
        options = DownloadOptions()
    dest = Path(os.path.abspath(dest_path))

    existing = _existing_result(dest)
    if existing is not None:
        logger.info("%s already present (%d bytes)", dest, existing.size)
        return existing

    locks_dir = options.locks_dir if options.locks_dir is not None else default_locks_dir(dest)
    lock_path = lock_path_for(dest, locks_dir)

    existing = _acquire_lock(url, dest, lock_path, options)
    if existing is not None:
        logger.info("%s produced by another process (%d bytes)", dest, existing.size)
        return existing

    try:
        return _download_holding(url, dest, options, client, on_progress)
    finally:
        remove_lock(lock_path)
