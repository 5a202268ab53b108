"""Terminal output with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (the token from ``weblogin token``, the
  email from ``weblogin whoami``).
* **stderr** -- everything else: the login URL, the spinner, status,
  warnings and errors.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

Besides the :class:`OutputManager` and its module-level shortcuts, this
module provides the terminal implementations of the capabilities the login
flow takes as parameters: :class:`SpinnerProgress` (a
:class:`~weblogin.poller.ProgressReporter`) and :func:`browser_notifier`.
"""

from __future__ import annotations

import logging
import os
import sys
import webbrowser
from typing import Callable, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.status import Status


class OutputManager:
    """Central manager for all CLI output.

    Maintains one Rich :class:`~rich.console.Console` for stdout (data) and
    one for stderr (diagnostics).

    Args:
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential informational messages on stderr.
        verbose: Enable debug-level messages on stderr.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._stdout = Console(file=sys.stdout, no_color=self._no_color)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        return self._stderr

    def print_data(self, text: str) -> None:
        """Print raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(message)

    def success(self, message: str) -> None:
        """Print a green success message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. NOT suppressed by ``--quiet``."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Print a dimmed next-step suggestion to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            formatted = f"→ {message}"
            if self._no_color:
                print(formatted, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]{formatted}[/dim]")


class SpinnerProgress:
    """Rich status spinner on stderr, shown while waiting for the login.

    Nothing is drawn when stderr is not a terminal or output is quiet; the
    final message is still printed so logs show that the wait ended.
    """

    def __init__(self, output: OutputManager) -> None:
        self._output = output
        self._status: Optional[Status] = None

    def start(self, message: str) -> None:
        console = self._output.stderr_console
        if self._output.is_quiet or not console.is_terminal:
            return
        self._status = console.status(message, spinner="dots")
        self._status.start()

    def stop(self, final_message: Optional[str] = None) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
        if final_message:
            self._output.info(final_message)


def browser_notifier(
    output: OutputManager,
    open_browser: bool = True,
    opener: Callable[[str], bool] = webbrowser.open,
) -> Callable[[str], None]:
    """Build the callback that hands the login URL to the human.

    The returned callable tries to open *url* in a browser and always
    prints it, so the login can be finished on another machine.
    """

    def notify(url: str) -> None:
        if open_browser and not opener(url):
            output.warning(
                f"failed opening browser. Copy the url ({url}) into a browser and continue"
            )
        output.info(f"Opening {url} ...\n")

    return notify


def configure_logging(output: OutputManager) -> None:
    """Route the ``weblogin`` loggers to *output*'s stderr console.

    Only warnings are shown by default; a verbose manager (``--verbose``)
    shows debug output such as each poll attempt. Log records are
    printed on the same console as the waiting spinner.
    """
    root = logging.getLogger("weblogin")
    root.handlers.clear()
    handler = RichHandler(
        console=output.stderr_console,
        show_path=False,
        show_time=output.is_verbose,
    )
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if output.is_verbose else logging.WARNING)
    root.propagate = False


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager`. Used by the test suite."""
    global _output
    _output = None


def print_data(text: str) -> None:
    get_output().print_data(text)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)
