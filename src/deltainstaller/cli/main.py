"""Root CLI application for the on-device installer."""

import sys

import typer

from deltainstaller.core.installer import run_installer

app = typer.Typer(
    name="deltainstaller",
    help="Apply APK deltas directly into a package install session.",
    add_completion=False,
)


@app.command(
    context_settings={
        # Environment flags use a single dash (-cmd=X), so they reach us raw
        "allow_extra_args": True,
        "ignore_unknown_options": True,
        # Everything from the verb on, "--" and "--help" included, is ours
        "allow_interspersed_args": False,
        "help_option_names": [],
    },
)
def main(ctx: typer.Context) -> None:
    """deltainstaller [env parameters] command [command_parameters]

    The framed response is written to stdout on every path.
    """
    binary_name = sys.argv[0] if sys.argv and sys.argv[0] else "deltainstaller"
    code = run_installer([binary_name, *ctx.args])
    raise typer.Exit(code)


if __name__ == "__main__":
    app()
