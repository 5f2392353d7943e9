"""Download result model."""

from pathlib import Path

from pydantic import BaseModel, Field


class DownloadResult(BaseModel):
    """Outcome of a locked download.

    Attributes:
        path: Absolute destination path.
        size: Final file size in bytes.
        downloaded: True if this call performed the fetch, False if the
            file was already present or produced by a concurrent holder.
    """

    path: Path = Field(description="Absolute destination path")
    size: int = Field(ge=0, description="File size in bytes")
    downloaded: bool = Field(default=False, description="Whether this call fetched the file")
