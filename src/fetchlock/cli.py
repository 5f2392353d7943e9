"""fetchlock CLI: download a URL to a path exactly once across processes."""

from pathlib import Path

import typer
from rich.console import Console

from fetchlock import __version__

from .commands import config_app, get, locks_app
from .config import load_config
from .errors import ConfigError
from .logging import configure_logging
from .output import OutputContext, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"fetchlock {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="fetchlock",
    help="Download a URL to a path exactly once, even across processes",
    no_args_is_help=True,
)

app.command("get")(get)
app.add_typer(locks_app, name="locks")
app.add_typer(config_app, name="config")


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file",
    ),
) -> None:
    """fetchlock - locked, idempotent downloads."""
    configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    out = OutputContext(console=Console(no_color=no_color), json_mode=json_output)
    set_output_context(out)

    try:
        ctx.obj = load_config(config_path)
    except ConfigError as e:
        out.error(str(e))
        raise typer.Exit(2) from None


def run() -> None:
    """Console script entry point."""
    app()
