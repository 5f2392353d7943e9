"""Get command: locked download of a single URL."""

from pathlib import Path

import typer
from rich.markup import escape

from ..config import FetchLockConfig
from ..core import DownloadOptions, download_with_lock
from ..errors import DownloadError, InvalidURLError, LockTimeoutError
from ..output import get_output_context

# Exit codes
EXIT_DOWNLOAD_FAILED = 1
EXIT_INVALID_INPUT = 2
EXIT_LOCK_TIMEOUT = 3
EXIT_IO_ERROR = 4


def parse_headers(values: list[str]) -> dict[str, str]:
    """Parse ``"Name: value"`` strings into a header mapping.

    Raises:
        typer.BadParameter: If an entry has no colon or an empty name
    """
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(
                f"Expected 'Name: value', got {value!r}", param_hint="--header"
            )
        headers[name.strip()] = content.strip()
    return headers


def get(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="URL to download"),
    dest: Path = typer.Argument(..., help="Destination file path"),
    locks_dir: Path | None = typer.Option(
        None,
        "--locks-dir",
        help="Directory for lock files (default: .locks beside DEST)",
    ),
    lock_timeout: float | None = typer.Option(
        None,
        "--lock-timeout",
        min=0,
        help="Seconds to wait for a concurrent download before giving up",
    ),
    poll_interval: float | None = typer.Option(
        None,
        "--poll-interval",
        min=0.001,
        help="Seconds between lock acquisition attempts",
    ),
    stale_timeout: float | None = typer.Option(
        None,
        "--stale-timeout",
        min=0.001,
        help="Seconds after which a held lock is considered abandoned",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        min=0.001,
        help="HTTP request timeout in seconds",
    ),
    retries: int | None = typer.Option(
        None,
        "--retries",
        min=0,
        help="Extra download attempts on failure",
    ),
    header: list[str] = typer.Option(
        [],
        "--header",
        "-H",
        help="Extra request header, 'Name: value' (repeatable)",
    ),
) -> None:
    """Download URL to DEST unless DEST already exists."""
    out = get_output_context()
    config: FetchLockConfig = ctx.obj or FetchLockConfig()

    options = DownloadOptions.from_config(
        config,
        locks_dir=locks_dir,
        lock_timeout=lock_timeout,
        poll_interval=poll_interval,
        stale_timeout=stale_timeout,
        timeout=timeout,
        retries=retries,
    )
    if header:
        options.headers.update(parse_headers(header))

    try:
        result = download_with_lock(url, dest, options)
    except InvalidURLError as e:
        out.error(str(e), {"url": url})
        raise typer.Exit(EXIT_INVALID_INPUT) from None
    except LockTimeoutError as e:
        out.error(str(e), {"lock_path": str(e.lock_path), "holder_pid": e.holder_pid})
        raise typer.Exit(EXIT_LOCK_TIMEOUT) from None
    except DownloadError as e:
        out.error(str(e), {"url": e.url, "status_code": e.status_code})
        raise typer.Exit(EXIT_DOWNLOAD_FAILED) from None
    except OSError as e:
        out.error(f"I/O error: {e}", {"path": str(dest)})
        raise typer.Exit(EXIT_IO_ERROR) from None

    verb = "Downloaded" if result.downloaded else "Already present"
    out.result(
        result.model_dump(mode="json"),
        f"[green]{verb}:[/green] {escape(str(result.path))} ({result.size} bytes)",
    )
