"""Lock file manager for download coordination.

Provides PID-based file locking so that only one process at a time
produces a given destination path. Includes stale lock detection for
crash recovery.

Uses atomic file creation (O_CREAT | O_EXCL) to prevent TOCTOU races.
Every function tolerates the lock file appearing or disappearing between
steps; only genuine I/O failures (permission denied, disk full) raise.
"""

import contextlib
import hashlib
import logging
import os
import re
import sys
import time
from pathlib import Path

from pydantic import ValidationError

from ..constants import LOCK_SUFFIX, LOCKS_DIR_NAME, STALE_TIMEOUT
from ..models import LockRecord, now_ms

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")
_DIGEST_LENGTH = 16
_MAX_PREFIX_LENGTH = 200  # keeps "<prefix>-<digest>.lock" under 255 bytes


def default_locks_dir(dest_path: str | os.PathLike[str]) -> Path:
    """Default locks directory: ``.locks`` beside the destination."""
    return Path(os.path.abspath(dest_path)).parent / LOCKS_DIR_NAME


def lock_path_for(dest_path: str | os.PathLike[str], locks_dir: str | os.PathLike[str]) -> Path:
    """Get path to the lock file guarding ``dest_path``.

    The file name is a filesystem-safe rendering of the absolute destination
    path followed by a digest of that path, so distinct destinations never
    share a lock file and the same destination always maps to the same one.

    Args:
        dest_path: Destination file path
        locks_dir: Directory holding lock files

    Returns:
        Path of the lock file (not created)
    """
    absolute = os.path.abspath(dest_path)
    prefix = _UNSAFE_CHARS.sub("_", absolute)[-_MAX_PREFIX_LENGTH:]
    digest = hashlib.sha256(absolute.encode("utf-8", "surrogateescape")).hexdigest()
    return Path(locks_dir) / f"{prefix}-{digest[:_DIGEST_LENGTH]}{LOCK_SUFFIX}"


def is_pid_running(pid: int) -> bool:
    """Check if a process with given PID is running.

    When the answer cannot be determined (no permission to signal the
    process, or no signal-0 probe on this platform) the process is assumed
    alive so that an active lock is never reclaimed by mistake.
    """
    if pid <= 0:
        return False
    if sys.platform == "win32":
        # os.kill() on Windows terminates rather than probes
        return True
    try:
        os.kill(pid, 0)  # Signal 0 doesn't kill, just checks
    except ProcessLookupError:
        return False
    except OSError:
        # PermissionError: the process exists but belongs to another user
        return True
    return True


def try_create_lock(lock_path: Path, record: LockRecord) -> bool:
    """Attempt atomic lock file creation.

    Uses O_CREAT | O_EXCL flags for atomicity - if file exists,
    open() fails immediately rather than overwriting.

    Returns:
        True if lock was created, False if file already exists

    Raises:
        OSError: For failures other than the file already existing
    """
    try:
        fd = os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return False

    try:
        try:
            os.write(fd, record.to_json().encode())
        finally:
            os.close(fd)
    except OSError:
        # Don't leave an empty lock behind that nobody owns
        with contextlib.suppress(FileNotFoundError):
            lock_path.unlink()
        raise

    logger.debug("Created lock %s (pid %d)", lock_path, record.pid)
    return True


def read_lock(lock_path: Path) -> LockRecord | None:
    """Read the record stored in a lock file.

    Args:
        lock_path: Path to lock file

    Returns:
        Parsed record, or None if the file is gone or its content is not a
        valid record (e.g. still being written, truncated, corrupted)

    Raises:
        OSError: For read failures other than the file not existing
    """
    try:
        content = lock_path.read_bytes()
    except FileNotFoundError:
        return None

    try:
        return LockRecord.model_validate_json(content)
    except ValidationError:
        logger.debug("Unreadable lock file %s", lock_path)
        return None


def is_stale(
    record: LockRecord,
    stale_timeout: float = STALE_TIMEOUT,
    now: int | None = None,
) -> bool:
    """Check if lock is stale (PID dead or timeout exceeded).

    Either condition alone is sufficient: a dead owner's lock is reclaimable
    at any age, and an old lock is reclaimable even if its pid has been
    reused by an unrelated process.

    Args:
        record: Lock record to check
        stale_timeout: Max lock age in seconds
        now: Current time in epoch milliseconds (defaults to wall clock)

    Returns:
        True if lock is stale and may be removed
    """
    if now is None:
        now = now_ms()

    if now - record.start_time > stale_timeout * 1000:
        return True

    return not is_pid_running(record.pid)


def lock_age(lock_path: Path, now: float | None = None) -> float | None:
    """Seconds since the lock file was last modified, or None if it is gone."""
    try:
        mtime = lock_path.stat().st_mtime
    except FileNotFoundError:
        return None
    if now is None:
        now = time.time()
    return max(0.0, now - mtime)


def remove_lock(lock_path: Path) -> None:
    """Remove a lock file. A missing file is not an error."""
    lock_path.unlink(missing_ok=True)


def remove_stale_lock(
    lock_path: Path, seen: LockRecord | None, stale_timeout: float = STALE_TIMEOUT
) -> bool:
    """Remove a lock judged stale, unless it changed since it was judged.

    Another contender may have reclaimed the lock and created its own in the
    meantime. The file is read again and only removed if it still holds the
    record that was judged stale, or, for an unreadable lock, if it is still
    unreadable and still older than ``stale_timeout``.

    Args:
        lock_path: Path to lock file
        seen: Record read when the lock was judged stale (None if unreadable)
        stale_timeout: Max lock age in seconds

    Returns:
        True if the lock file was removed
    """
    current = read_lock(lock_path)
    if seen is None:
        age = lock_age(lock_path)
        unchanged = current is None and age is not None and age > stale_timeout
    else:
        unchanged = current == seen
    if not unchanged:
        logger.debug("Lock %s changed since judged stale, leaving it", lock_path)
        return False
    remove_lock(lock_path)
    return True


def list_locks(locks_dir: Path) -> list[tuple[Path, LockRecord | None]]:
    """List lock files in a locks directory.

    Args:
        locks_dir: Directory holding lock files

    Returns:
        Sorted (path, record) pairs; record is None for unreadable locks
    """
    if not locks_dir.is_dir():
        return []
    return [(path, read_lock(path)) for path in sorted(locks_dir.glob(f"*{LOCK_SUFFIX}"))]


def clean_stale_locks(locks_dir: Path, stale_timeout: float = STALE_TIMEOUT) -> list[Path]:
    """Remove every stale lock in a locks directory.

    Unreadable locks are judged by file age since they carry no owner.

    Returns:
        Paths of the removed lock files
    """
    removed = []
    for path, record in list_locks(locks_dir):
        if record is None:
            age = lock_age(path)
            stale = age is not None and age > stale_timeout
        else:
            stale = is_stale(record, stale_timeout)
        if stale and remove_stale_lock(path, record, stale_timeout):
            removed.append(path)
            logger.info("Removed stale lock %s", path)
    return removed
