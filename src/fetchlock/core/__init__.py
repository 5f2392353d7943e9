"""Core locking and download coordination for fetchlock."""

from .downloader import DownloadOptions, download_with_lock
from .lock_manager import (
    clean_stale_locks,
    default_locks_dir,
    is_pid_running,
    is_stale,
    list_locks,
    lock_age,
    lock_path_for,
    read_lock,
    remove_lock,
    remove_stale_lock,
    try_create_lock,
)

__all__ = [
    "DownloadOptions",
    "clean_stale_locks",
    "default_locks_dir",
    "download_with_lock",
    "is_pid_running",
    "is_stale",
    "list_locks",
    "lock_age",
    "lock_path_for",
    "read_lock",
    "remove_lock",
    "remove_stale_lock",
    "try_create_lock",
]
