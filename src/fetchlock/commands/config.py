"""Config commands."""

from pathlib import Path

import typer

from ..config import write_config_template
from ..output import get_output_context

config_app = typer.Typer(help="Configuration commands")


@config_app.command("init")
def config_init(
    path: Path = typer.Argument(..., help="Where to write the TOML template"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a configuration template with the default settings."""
    out = get_output_context()
    if path.exists() and not force:
        out.error(f"Config already exists: {path}", {"path": str(path)})
        raise typer.Exit(1)
    written = write_config_template(path)
    out.result({"path": str(written)}, f"[green]Created config template:[/green] {written}")
