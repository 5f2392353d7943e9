"""HTTP transport for fetchlock.

Streams a GET response body to a local file using HTTPX. Transient
failures can be retried with exponential backoff through Tenacity; by
default no retry is made and the first failure is reported.

Example:
    >>> import httpx
    >>> from fetchlock.http import fetch_to_file
    >>> with httpx.Client() as client:
    ...     size = fetch_to_file("https://example.com/a.tgz", Path("a.tgz"), client=client)
"""

import logging
from collections.abc import Callable, Mapping
from pathlib import Path

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from . import __version__
from .constants import CHUNK_SIZE, HTTP_RETRIES, HTTP_RETRY_DELAY, HTTP_TIMEOUT
from .errors import DownloadError, InvalidURLError

logger = logging.getLogger(__name__)

USER_AGENT = f"fetchlock/{__version__}"

ProgressCallback = Callable[[int, int], None]


def validate_url(url: str) -> httpx.URL:
    """Parse and check a download URL.

    Raises:
        InvalidURLError: If the URL is malformed, has no host, or is not http(s)
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise InvalidURLError(f"Invalid URL: {url!r}") from exc

    if parsed.scheme not in ("http", "https"):
        raise InvalidURLError(f"Unsupported URL scheme: {url!r}")
    if not parsed.host:
        raise InvalidURLError(f"URL has no host: {url!r}")
    return parsed


def _content_length(response: httpx.Response) -> int:
    """Declared body size, or 0 when absent or malformed."""
    try:
        return max(0, int(response.headers.get("Content-Length", "0")))
    except ValueError:
        return 0


def _fetch_once(
    url: str,
    target: Path,
    client: httpx.Client | None,
    headers: Mapping[str, str],
    timeout: float,
    on_progress: ProgressCallback | None,
) -> int:
    """Single download attempt. Returns bytes written to ``target``."""
    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=timeout, follow_redirects=True)

    request_headers = {"User-Agent": USER_AGENT, **headers}
    try:
        with client.stream(
            "GET", url, headers=request_headers, timeout=timeout, follow_redirects=True
        ) as response:
            if not response.is_success:
                raise DownloadError(
                    f"Download failed: HTTP {response.status_code} {response.reason_phrase}",
                    url=url,
                    status_code=response.status_code,
                )

            total = _content_length(response)
            downloaded = 0
            with open(target, "wb") as f:
                for chunk in response.iter_bytes(CHUNK_SIZE):
                    f.write(chunk)
                    downloaded += len(chunk)
                    if on_progress is not None and total > 0:
                        on_progress(downloaded, total)
            return downloaded
    except httpx.TimeoutException as exc:
        raise DownloadError(f"Download timed out after {timeout:g}s", url=url) from exc
    except httpx.RequestError as exc:
        raise DownloadError(f"HTTP download failed: {exc}", url=url) from exc
    finally:
        if owns_client:
            client.close()


def fetch_to_file(
    url: str,
    target: Path,
    *,
    client: httpx.Client | None = None,
    headers: Mapping[str, str] | None = None,
    timeout: float = HTTP_TIMEOUT,
    retries: int = HTTP_RETRIES,
    retry_delay: float = HTTP_RETRY_DELAY,
    on_progress: ProgressCallback | None = None,
) -> int:
    """Download ``url`` into ``target``.

    ``target`` is truncated and rewritten on every attempt. Redirects are
    followed.

    Args:
        url: http(s) URL to GET
        target: File to write the body to
        client: Optional HTTPX client; used as-is and left open
        headers: Extra request headers
        timeout: Per-request timeout in seconds
        retries: Additional attempts after the first failure
        retry_delay: Base backoff delay; attempt n waits retry_delay * 2**n
        on_progress: Called with (downloaded, total) when total is known

    Returns:
        Number of bytes written

    Raises:
        DownloadError: Non-2xx response or transport failure after all attempts
        OSError: If writing ``target`` fails
    """
    retrying = Retrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential(multiplier=retry_delay, exp_base=2),
        retry=retry_if_exception_type(DownloadError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(_fetch_once, url, target, client, headers or {}, timeout, on_progress)
