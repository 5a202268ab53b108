"""Wait for a login session to be authorized.

:class:`TokenPoller` queries the session state until it carries an access
token, the deadline elapses, or the caller cancels::

    Waiting --token--> Authorized   (returns the token)
    Waiting --deadline--> TimedOut  (raises TimeoutError_)
    Waiting --cancel--> Cancelled   (raises CancelledError)

Every failed query -- transport error, undecodable body, 404, unexpected
status -- keeps the poller in ``Waiting``. A session id the service will
never know is therefore indistinguishable from one nobody has authorized
yet; both end at the deadline.

The deadline and the cancellation flag are checked between attempts only.
A request already in flight runs until it completes or hits the HTTP
client's own timeout.

Time is read and spent through an injected :class:`Clock`, so tests can
drive the loop without real delays.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Protocol

from weblogin.exceptions import CancelledError, LoginError, TimeoutError_
from weblogin.models import DEFAULT_DEADLINE, DEFAULT_POLL_INTERVAL

WAITING_MESSAGE = "Waiting for session..."


class Clock(Protocol):
    """Source of monotonic time and of cancellable sleeps."""

    def monotonic(self) -> float: ...

    def sleep(self, seconds: float, cancel: threading.Event) -> None:
        """Sleep for *seconds*, returning early once *cancel* is set."""
        ...


class SystemClock:
    """Wall-clock implementation of :class:`Clock`."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel: threading.Event) -> None:
        cancel.wait(seconds)


class ProgressReporter(Protocol):
    """Something that shows the human we are still waiting (a spinner)."""

    def start(self, message: str) -> None: ...

    def stop(self, final_message: Optional[str] = None) -> None: ...


class NullProgress:
    """A :class:`ProgressReporter` that shows nothing."""

    def start(self, message: str) -> None:
        pass

    def stop(self, final_message: Optional[str] = None) -> None:
        pass


class TokenSource(Protocol):
    def get_access_token(self, session_id: str) -> str: ...


class TokenPoller:
    """Poll a session until an access token appears.

    Args:
        sessions: Anything with ``get_access_token(session_id)``, normally a
            :class:`~weblogin.client.SessionClient`.
        poll_interval: Default seconds between queries.
        deadline: Default seconds before giving up.
        clock: Time source. Defaults to :class:`SystemClock`.
        progress: Progress reporter. Defaults to :class:`NullProgress`.
        logger: Logger for per-attempt diagnostics.
    """

    def __init__(
        self,
        sessions: TokenSource,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        deadline: float = DEFAULT_DEADLINE,
        clock: Optional[Clock] = None,
        progress: Optional[ProgressReporter] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._sessions = sessions
        self._poll_interval = poll_interval
        self._deadline = deadline
        self._clock = clock or SystemClock()
        self._progress = progress or NullProgress()
        self._log = logger or logging.getLogger(__name__)

    def wait_for_token(
        self,
        session_id: str,
        deadline: Optional[float] = None,
        poll_interval: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """Block until the session is authorized and return its access token.

        Args:
            session_id: Id of the session returned at creation.
            deadline: Seconds to keep trying. Defaults to the poller's.
            poll_interval: Seconds between attempts. Defaults to the poller's.
            cancel: Event another thread sets to abandon the wait.

        Returns:
            The non-empty access token.

        Raises:
            TimeoutError_: If the deadline elapsed first.
            CancelledError: If *cancel* was set first.
        """
        deadline = self._deadline if deadline is None else deadline
        poll_interval = self._poll_interval if poll_interval is None else poll_interval
        cancel = cancel or threading.Event()

        token = ""
        self._progress.start(WAITING_MESSAGE)
        try:
            token = self._poll(session_id, deadline, poll_interval, cancel)
        finally:
            self._progress.stop(f"{WAITING_MESSAGE} Done" if token else None)
        return token

    def _poll(
        self,
        session_id: str,
        deadline: float,
        poll_interval: float,
        cancel: threading.Event,
    ) -> str:
        expires_at = self._clock.monotonic() + deadline
        attempt = 0

        while not cancel.is_set() and self._clock.monotonic() < expires_at:
            attempt += 1
            try:
                token = self._sessions.get_access_token(session_id)
            except LoginError as exc:
                self._log.debug("failed retrieving token (attempt %d): %s", attempt, exc)
            else:
                if token:
                    self._log.debug("retrieved access token after %d attempt(s).", attempt)
                    return token
                self._log.debug("session %s not authorized yet (attempt %d)", session_id, attempt)

            remaining = expires_at - self._clock.monotonic()
            if remaining > 0:
                self._clock.sleep(min(poll_interval, remaining), cancel)

        if cancel.is_set():
            raise CancelledError("Login cancelled")
        raise TimeoutError_(f"No token for session {session_id} after {deadline:g}s")
