"""Exceptions raised by fetchlock.

Filesystem failures other than "already exists" / "does not exist" are not
wrapped; they surface as the original ``OSError``.
"""

from pathlib import Path


class FetchLockError(Exception):
    """Base exception for fetchlock errors."""


class LockTimeoutError(FetchLockError):
    """Raised when a lock could not be acquired within the wait budget."""

    def __init__(self, lock_path: Path, timeout: float, holder_pid: int | None = None) -> None:
        self.lock_path = lock_path
        self.timeout = timeout
        self.holder_pid = holder_pid
        message = f"Lock acquisition timed out after {timeout:g}s"
        if holder_pid is not None:
            message += f" (held by PID {holder_pid})"
        super().__init__(message)


class DownloadError(FetchLockError):
    """Raised when the fetch fails (non-2xx status or transport error)."""

    def __init__(self, message: str, url: str, status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class InvalidURLError(FetchLockError, ValueError):
    """Raised for a malformed or unsupported URL."""


class ConfigError(FetchLockError):
    """Raised when the configuration file cannot be loaded."""
