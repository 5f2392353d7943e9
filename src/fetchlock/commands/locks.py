"""Locks commands: inspect and clean a locks directory."""

import time
from datetime import datetime
from pathlib import Path

import typer

from ..config import FetchLockConfig
from ..core import clean_stale_locks, is_stale, list_locks, lock_age
from ..models import now_ms
from ..output import get_output_context

locks_app = typer.Typer(help="Lock file inspection commands")


def _stale_timeout(ctx: typer.Context, override: float | None) -> float:
    """Effective stale timeout: flag, else config."""
    if override is not None:
        return override
    config: FetchLockConfig = ctx.obj or FetchLockConfig()
    return config.lock.stale_timeout


@locks_app.command("list")
def locks_list(
    ctx: typer.Context,
    locks_dir: Path = typer.Argument(..., help="Locks directory"),
    stale_timeout: float | None = typer.Option(
        None,
        "--stale-timeout",
        min=0.001,
        help="Seconds after which a held lock is considered abandoned",
    ),
) -> None:
    """List lock files with their owner and staleness."""
    out = get_output_context()
    timeout = _stale_timeout(ctx, stale_timeout)
    now = now_ms()

    rows = []
    for path, record in list_locks(locks_dir):
        if record is None:
            age = lock_age(path)
            if age is None:
                # Released while listing
                continue
            # No payload to read; the file's mtime stands in for the start time
            started = datetime.fromtimestamp(time.time() - age)
            pid, url, stale = "?", "?", age > timeout
        else:
            started = datetime.fromtimestamp(record.start_time / 1000)
            pid, url, stale = str(record.pid), record.url, is_stale(record, timeout, now)
        rows.append([path.name, pid, url, started.strftime("%Y-%m-%d %H:%M:%S"), str(stale)])

    if not rows and not out.json_mode:
        out.print(f"No locks in {locks_dir}")
        return
    out.table(f"Locks in {locks_dir}", ["lock", "pid", "url", "started", "stale"], rows)


@locks_app.command("clean")
def locks_clean(
    ctx: typer.Context,
    locks_dir: Path = typer.Argument(..., help="Locks directory"),
    stale_timeout: float | None = typer.Option(
        None,
        "--stale-timeout",
        min=0.001,
        help="Seconds after which a held lock is considered abandoned",
    ),
) -> None:
    """Remove stale lock files."""
    out = get_output_context()
    removed = clean_stale_locks(locks_dir, _stale_timeout(ctx, stale_timeout))
    out.result(
        {"removed": [str(p) for p in removed]},
        f"Removed {len(removed)} stale lock(s) from {locks_dir}",
    )
