"""fetchlock: download a URL to a path exactly once across processes."""

__version__ = "0.1.0"

from .core import DownloadOptions, download_with_lock  # noqa: E402
from .errors import (  # noqa: E402
    DownloadError,
    FetchLockError,
    InvalidURLError,
    LockTimeoutError,
)
from .models import DownloadResult, LockRecord  # noqa: E402

__all__ = [
    "DownloadError",
    "DownloadOptions",
    "DownloadResult",
    "FetchLockError",
    "InvalidURLError",
    "LockRecord",
    "LockTimeoutError",
    "__version__",
    "download_with_lock",
]
