"""Typer application and CLI entry point for weblogin.

Commands::

    weblogin login     log in through the browser and store the token
    weblogin signup    same, starting at the signup page
    weblogin logout    forget the stored token
    weblogin whoami    print the email of the stored token's user
    weblogin token     print the stored token

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Errors derived from
:class:`~weblogin.exceptions.LoginError` exit with their ``exit_code``;
anything else is written to a crash log under the data directory.
"""

from __future__ import annotations

import contextlib
import signal
import sys
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

import typer

from weblogin import __version__
from weblogin.exceptions import LoginError
from weblogin.exit_codes import EXIT_AUTH_FAILURE, EXIT_CANCELLED, EXIT_GENERIC_FAILURE
from weblogin.output import (
    OutputManager,
    SpinnerProgress,
    browser_notifier,
    configure_logging,
    error,
    get_output,
    info,
    print_data,
    set_output,
    success,
    suggest,
)

app = typer.Typer(
    name="weblogin",
    help="Log in to the platform through your browser.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"weblogin {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Authorization service URL."
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file holding settings and the token."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Initialise output and logging, and stash shared options in ``ctx.obj``."""
    output = OutputManager(no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url
    ctx.obj["config"] = config


def _config_path(ctx: typer.Context) -> Path:
    from weblogin.config import get_config_file

    return ctx.obj.get("config") or get_config_file()


def _fail(exc: LoginError) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


@contextlib.contextmanager
def _cancel_on_interrupt(cancel: threading.Event) -> Iterator[None]:
    """Turn the first Ctrl-C into a cancellation of *cancel*.

    A second Ctrl-C while the wait is winding down interrupts as usual.
    """

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        if cancel.is_set():
            raise KeyboardInterrupt
        cancel.set()

    installed = False
    previous: Any = None
    try:
        previous = signal.signal(signal.SIGINT, _handler)
        installed = True
    except ValueError:
        # Not in the main thread; leave signal handling alone.
        pass
    try:
        yield
    finally:
        if installed:
            signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)


def _run_login(ctx: typer.Context, signup: bool, hostname: Optional[str], no_browser: bool) -> None:
    from weblogin.client import build_http_client
    from weblogin.config import default_agent_socket, resolve_settings
    from weblogin.flow import WebLogin

    config_path = _config_path(ctx)
    output = get_output()
    cancel = threading.Event()

    try:
        settings = resolve_settings(ctx.obj.get("base_url"), config_path)
        with contextlib.ExitStack() as stack:
            session_http = stack.enter_context(
                build_http_client(settings.base_url, settings.request_timeout)
            )
            api_http = stack.enter_context(
                build_http_client(settings.identity_url, settings.request_timeout)
            )
            stack.enter_context(_cancel_on_interrupt(cancel))

            flow = WebLogin.from_settings(
                settings,
                session_http,
                api_http,
                config_path=config_path,
                agent_socket=default_agent_socket(),
                notify=browser_notifier(output, open_browser=not no_browser),
                progress=SpinnerProgress(output),
                hostname=hostname,
            )
            identity = flow.login(signup=signup, cancel=cancel)
    except LoginError as exc:
        raise _fail(exc) from None

    success(f"successfully logged in as {identity.email}")


@app.command("login")
def login_command(
    ctx: typer.Context,
    hostname: Optional[str] = typer.Option(
        None, "--hostname", help="Session name shown in the browser (default: this host)."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Only print the login URL."
    ),
) -> None:
    """Log in through the browser and store the access token."""
    _run_login(ctx, signup=False, hostname=hostname, no_browser=no_browser)


@app.command("signup")
def signup_command(
    ctx: typer.Context,
    hostname: Optional[str] = typer.Option(
        None, "--hostname", help="Session name shown in the browser (default: this host)."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Only print the signup URL."
    ),
) -> None:
    """Create an account through the browser and store the access token."""
    _run_login(ctx, signup=True, hostname=hostname, no_browser=no_browser)


@app.command("logout")
def logout_command(ctx: typer.Context) -> None:
    """Forget the stored access token and stop the local agent."""
    from weblogin.agent import AgentClient
    from weblogin.config import default_agent_socket, resolve_settings
    from weblogin.credentials import CredentialStore
    from weblogin.exceptions import PersistenceError

    config_path = _config_path(ctx)
    try:
        settings = resolve_settings(ctx.obj.get("base_url"), config_path)
        agent = AgentClient(settings.agent_socket or default_agent_socket())
        with contextlib.suppress(OSError):
            agent.kill()
        store = CredentialStore(config_path)
        try:
            store.clear()
        except OSError as exc:
            raise PersistenceError(f"failed clearing {store.key} in {store.path}: {exc}") from exc
    except LoginError as exc:
        raise _fail(exc) from None

    info("Logged out.")


def _stored_token(config_path: Path) -> str:
    from weblogin.credentials import CredentialStore

    token = CredentialStore(config_path).get_access_token()
    if not token:
        error("Not logged in.")
        suggest("Log in: weblogin login")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)
    return token


@app.command("whoami")
def whoami_command(ctx: typer.Context) -> None:
    """Print the email of the user the stored token belongs to."""
    from weblogin.client import ViewerResolver, build_http_client
    from weblogin.config import resolve_settings

    config_path = _config_path(ctx)
    try:
        settings = resolve_settings(ctx.obj.get("base_url"), config_path)
        token = _stored_token(config_path)
        with build_http_client(settings.identity_url, settings.request_timeout) as http:
            identity = ViewerResolver(http).current_user(token)
    except LoginError as exc:
        raise _fail(exc) from None

    print_data(identity.email)


@app.command("token")
def token_command(ctx: typer.Context) -> None:
    """Print the stored access token."""
    try:
        token = _stored_token(_config_path(ctx))
    except LoginError as exc:
        raise _fail(exc) from None
    print_data(token)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from weblogin.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``weblogin`` console script.

    Unhandled :class:`~weblogin.exceptions.LoginError` instances cause a
    clean exit with the error's ``exit_code``. Other exceptions produce a
    crash log and a generic failure exit.
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except LoginError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
