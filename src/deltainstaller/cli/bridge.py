"""CLI for the stdio/socket bridge."""

import typer

from deltainstaller.core.bridge import run_bridge
from deltainstaller.utils.output import console

app = typer.Typer(
    name="deltainstaller-bridge",
    help="Relay stdio to a command served on a loopback port.",
    add_completion=False,
)


@app.command(
    context_settings={
        # Everything after PORT belongs to the remote command
        "allow_interspersed_args": False,
        "ignore_unknown_options": True,
    },
)
def main(
    port: int = typer.Argument(
        ...,
        help="Loopback TCP port of the command server.",
    ),
    command: list[str] = typer.Argument(
        ...,
        help="Remote command line, sent joined by single spaces.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress diagnostics on stderr.",
    ),
) -> None:
    """Run COMMAND remotely, relaying stdin, stdout and its exit code."""
    console.set_quiet(quiet)
    raise typer.Exit(run_bridge(port, command))


if __name__ == "__main__":
    app()
