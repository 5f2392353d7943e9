"""Lock record model for cross-process download coordination.

The existence of a lock file is the lock itself. The record written into
it only carries enough metadata to decide whether the lock is stale.
"""

import os
import time

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class LockRecord(BaseModel):
    """Payload written to ``<locks_dir>/<sanitized-dest>.lock``.

    Attributes:
        pid: Process ID of the lock holder.
        start_time: When the lock was acquired (epoch milliseconds).
        url: Resource being fetched. Diagnostic only.
    """

    model_config = ConfigDict(populate_by_name=True)

    pid: int = Field(description="Process ID holding the lock")
    start_time: int = Field(
        default_factory=now_ms,
        alias="startTime",
        description="Acquisition time in epoch milliseconds",
    )
    url: str = Field(default="", description="URL being downloaded")

    @classmethod
    def for_current_process(cls, url: str) -> "LockRecord":
        """Build a record owned by this process, stamped now."""
        return cls(pid=os.getpid(), start_time=now_ms(), url=url)

    def to_json(self) -> str:
        """Serialize using the on-disk key names."""
        return self.model_dump_json(by_alias=True, indent=2)
