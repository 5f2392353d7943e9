"""Pydantic data models for fetchlock.

This package defines the data structures shared by the lock manager and
the download coordinator:
- Lock file payload (LockRecord)
- Download outcome (DownloadResult)

Example:
    >>> from fetchlock.models import LockRecord
    >>> record = LockRecord(pid=1234, url="https://example.com/a.tgz")
    >>> record.to_json()
"""

from .lock import LockRecord, now_ms
from .result import DownloadResult

__all__ = [
    "DownloadResult",
    "LockRecord",
    "now_ms",
]
