"""The browser login flow, end to end.

:class:`WebLogin` composes the pieces::

    SessionClient.start_web_auth_session   create the session
    notify(url)                            hand the URL to the human
    TokenPoller.wait_for_token             wait for the token
    save_token                             persist and verify it

How the URL reaches the human (browser, terminal) and how waiting is shown
(spinner) are injected, so this module performs no terminal I/O itself.
"""

from __future__ import annotations

import logging
import socket
import threading
from pathlib import Path
from typing import Callable, Optional

import httpx

from weblogin.agent import AgentClient
from weblogin.client import SessionClient, ViewerResolver
from weblogin.credentials import Agent, CredentialStore, IdentityResolver, save_token
from weblogin.exceptions import LoginError, TimeoutError_
from weblogin.models import Identity, LoginSettings
from weblogin.poller import Clock, ProgressReporter, TokenPoller

UrlNotifier = Callable[[str], None]


class WebLogin:
    """Run a browser login against the authorization service.

    Args:
        sessions: Client for the session endpoints.
        poller: Poller waiting on the created session.
        store: Where the obtained token is persisted.
        resolver: Verifies the token by resolving the current user.
        agent: Local agent told to drop its cached credentials.
        notify: Called once with the session URL. Defaults to logging it.
        hostname: Session name. Defaults to :func:`socket.gethostname`.
        logger: Logger for diagnostics.
    """

    def __init__(
        self,
        sessions: SessionClient,
        poller: TokenPoller,
        store: CredentialStore,
        resolver: IdentityResolver,
        agent: Optional[Agent] = None,
        notify: Optional[UrlNotifier] = None,
        hostname: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._sessions = sessions
        self._poller = poller
        self._store = store
        self._resolver = resolver
        self._agent = agent
        self._log = logger or logging.getLogger(__name__)
        self._notify = notify or self._log_url
        self._hostname = hostname or socket.gethostname()

    @classmethod
    def from_settings(
        cls,
        settings: LoginSettings,
        session_http: httpx.Client,
        api_http: httpx.Client,
        config_path: Path,
        agent_socket: Path,
        notify: Optional[UrlNotifier] = None,
        progress: Optional[ProgressReporter] = None,
        clock: Optional[Clock] = None,
        hostname: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> WebLogin:
        """Wire a :class:`WebLogin` from settings and caller-owned HTTP clients."""
        sessions = SessionClient(session_http, staging=settings.staging, logger=logger)
        poller = TokenPoller(
            sessions,
            poll_interval=settings.poll_interval,
            deadline=settings.deadline,
            clock=clock,
            progress=progress,
            logger=logger,
        )
        return cls(
            sessions,
            poller,
            CredentialStore(config_path),
            ViewerResolver(api_http, logger=logger),
            agent=AgentClient(settings.agent_socket or agent_socket),
            notify=notify,
            hostname=hostname,
            logger=logger,
        )

    @property
    def hostname(self) -> str:
        return self._hostname

    def _log_url(self, url: str) -> None:
        self._log.info("Complete the login at %s", url)

    def run(self, signup: bool = False, cancel: Optional[threading.Event] = None) -> str:
        """Create a session, hand out its URL, and wait for the token.

        Args:
            signup: Send the human to the signup page instead of login.
            cancel: Event that abandons the wait when set.

        Returns:
            The access token.

        Raises:
            TimeoutError_: "Login expired, please try again".
            CancelledError: If *cancel* was set.
            LoginError: Any error from session creation, unchanged, or a
                generic failure if the wait ended without a token.
        """
        session = self._sessions.start_web_auth_session(self._hostname, signup=signup)
        self._log.debug("created login session %s", session.id)

        self._notify(session.url)

        try:
            token = self._poller.wait_for_token(session.id, cancel=cancel)
        except TimeoutError_ as exc:
            raise TimeoutError_("Login expired, please try again") from exc

        if not token:
            raise LoginError("failed to log in, please try again")
        return token

    def login(self, signup: bool = False, cancel: Optional[threading.Event] = None) -> Identity:
        """Run the flow and save the resulting token.

        Returns:
            The :class:`~weblogin.models.Identity` the new token belongs to.

        Raises:
            PersistenceError: If the token could not be stored.
            VerificationError: If the stored token could not be verified.
        """
        token = self.run(signup=signup, cancel=cancel)
        return save_token(
            token,
            self._store,
            self._resolver,
            agent=self._agent,
            logger=self._log,
        )
