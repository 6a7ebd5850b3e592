"""Rich console helpers for diagnostics on standard error.

Standard output carries the framed response, so nothing human-readable may
ever be printed there.
"""

from rich.console import Console as RichConsole
from rich.markup import escape


class Console:
    """Wrapper around rich.Console bound to stderr with convenience methods."""

    def __init__(self) -> None:
        self._console = RichConsole(stderr=True)
        self._quiet = False

    def set_quiet(self, enabled: bool) -> None:
        """Enable or disable quiet mode (suppresses all output)."""
        self._quiet = enabled

    def print_error(self, message: str) -> None:
        """Print an error message in red."""
        if not self._quiet:
            self._console.print(f"[red]✗[/red] {escape(message)}")

    def print_warning(self, message: str) -> None:
        """Print a warning message in yellow."""
        if not self._quiet:
            self._console.print(f"[yellow]⚠[/yellow] {escape(message)}")


# Global console instance
console = Console()
