"""HTTP calls against the authorization service.

This module provides two thin wrappers around an injected
:class:`httpx.Client`:

- :class:`SessionClient` -- creates CLI login sessions and reads their
  state back (``/api/v1/cli_sessions``).
- :class:`ViewerResolver` -- resolves an access token to the
  :class:`~weblogin.models.Identity` it belongs to.

Both perform exactly one request per call. Retrying is the caller's
decision: :class:`~weblogin.poller.TokenPoller` retries session lookups,
nothing retries session creation.

Error mapping::

    httpx.RequestError        -> TransportError
    malformed success body    -> DecodeError
    404 on session lookup     -> NotFoundError
    401 / 403 on identity     -> AuthError
    anything else unexpected  -> UnknownError
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote

import httpx

from weblogin.exceptions import (
    AuthError,
    DecodeError,
    InvalidUsageError,
    NotFoundError,
    TransportError,
    UnknownError,
)
from weblogin.models import Identity, Session

SESSIONS_PATH = "/api/v1/cli_sessions"
STAGING_HEADER = "x-staging"
VIEWER_QUERY = "query { viewer { id email } }"


def build_http_client(base_url: str, timeout: float = 30.0) -> httpx.Client:
    """Create the :class:`httpx.Client` used against *base_url*.

    The caller owns the client and is expected to close it, typically by
    using it as a context manager.
    """
    return httpx.Client(
        base_url=base_url,
        timeout=timeout,
        follow_redirects=True,
        headers={"Accept": "application/json"},
    )


def build_session_request(name: str, extra_args: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
    """Build the JSON body for a session creation request.

    ``name`` is applied last, so it always wins over a ``name`` key in
    *extra_args*. The caller's mapping is left untouched.

    Raises:
        InvalidUsageError: If *name* is empty.
    """
    if not name:
        raise InvalidUsageError("A session name is required (usually the hostname)")
    body = dict(extra_args or {})
    body["name"] = name
    return body


def _error_payload(response: httpx.Response) -> Optional[Any]:
    """Decode an error body if possible. Failures are not an error here."""
    try:
        return response.json()
    except ValueError:
        return None


def _send(
    http: httpx.Client,
    log: logging.Logger,
    method: str,
    path: str,
    **kwargs: Any,
) -> httpx.Response:
    try:
        response = http.request(method, path, **kwargs)
    except httpx.RequestError as exc:
        log.debug("%s %s failed: %s", method, path, exc)
        raise TransportError(f"{method} {path} failed: {exc}") from exc
    log.debug("%s %s -> %s", method, path, response.status_code)
    return response


class SessionClient:
    """Client for the CLI session endpoints.

    Args:
        http: Client whose ``base_url`` points at the authorization service.
        staging: Send the ``x-staging: 1`` marker header on every request.
        logger: Logger for request diagnostics. Defaults to this module's.

    Example::

        with build_http_client("http://localhost:4000") as http:
            sessions = SessionClient(http)
            session = sessions.create_session("my-laptop", {"target": "auth"})
    """

    def __init__(
        self,
        http: httpx.Client,
        staging: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._http = http
        self._staging = staging
        self._log = logger or logging.getLogger(__name__)

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = dict(extra)
        if self._staging:
            headers[STAGING_HEADER] = "1"
        return headers

    def create_session(
        self, name: str, extra_args: Optional[Mapping[str, Any]] = None
    ) -> Session:
        """Create a new login session.

        Args:
            name: Session name shown to the human, usually the hostname.
            extra_args: Additional body fields (``signup``, ``target``, ...).

        Returns:
            The new :class:`~weblogin.models.Session`; its ``access_token``
            is empty at this point.

        Raises:
            InvalidUsageError: If *name* is empty.
            TransportError: If the request never got a response.
            UnknownError: On any status other than 201.
            DecodeError: If the 201 body is not a valid session.
        """
        body = build_session_request(name, extra_args)
        response = _send(
            self._http,
            self._log,
            "POST",
            SESSIONS_PATH,
            json=body,
            headers=self._headers(**{"content-type": "application/json"}),
        )

        if response.status_code != 201:
            payload = _error_payload(response)
            self._log.debug("session creation rejected: %s", payload)
            raise UnknownError(
                f"Could not create a login session (HTTP {response.status_code})",
                status_code=response.status_code,
                payload=payload,
            )

        session = self._decode(response)
        if not session.id or not session.url:
            raise DecodeError("Failed to decode session, please try again: missing id or url")
        return session

    def start_web_auth_session(self, name: str, signup: bool = False) -> Session:
        """Create a session targeted at the browser login (or signup) page."""
        return self.create_session(name, {"signup": signup, "target": "auth"})

    def get_session_state(self, session_id: str) -> Session:
        """Fetch the current state of a session.

        Raises:
            TransportError: If the request never got a response.
            NotFoundError: On HTTP 404.
            UnknownError: On any status other than 200 or 404.
            DecodeError: If the 200 body is not a valid session.
        """
        path = f"{SESSIONS_PATH}/{quote(session_id, safe='')}"
        response = _send(self._http, self._log, "GET", path, headers=self._headers())

        if response.status_code == 200:
            return self._decode(response)
        if response.status_code == 404:
            raise NotFoundError(f"Login session {session_id} not found")
        raise UnknownError(
            f"Unexpected response for login session {session_id} (HTTP {response.status_code})",
            status_code=response.status_code,
            payload=_error_payload(response),
        )

    def get_access_token(self, session_id: str) -> str:
        """Return the session's access token, empty while not yet authorized."""
        return self.get_session_state(session_id).access_token

    @staticmethod
    def _decode(response: httpx.Response) -> Session:
        try:
            return Session.model_validate(response.json())
        except ValueError as exc:
            raise DecodeError(f"Failed to decode session, please try again: {exc}") from exc


class ViewerResolver:
    """Resolve an access token to the current user via the GraphQL API.

    Args:
        http: Client whose ``base_url`` points at the API host.
        logger: Logger for request diagnostics.
    """

    def __init__(self, http: httpx.Client, logger: Optional[logging.Logger] = None) -> None:
        self._http = http
        self._log = logger or logging.getLogger(__name__)

    def current_user(self, token: str) -> Identity:
        """Return the :class:`~weblogin.models.Identity` behind *token*.

        Raises:
            TransportError: If the request never got a response.
            AuthError: If the API rejects the token.
            UnknownError: On other statuses or GraphQL errors.
            DecodeError: If the response carries no usable viewer.
        """
        response = _send(
            self._http,
            self._log,
            "POST",
            "/graphql",
            json={"query": VIEWER_QUERY},
            headers={"Authorization": f"Bearer {token}"},
        )

        if response.status_code in (401, 403):
            raise AuthError(f"Access token rejected (HTTP {response.status_code})")
        if response.status_code != 200:
            raise UnknownError(
                f"Failed retrieving current user (HTTP {response.status_code})",
                status_code=response.status_code,
                payload=_error_payload(response),
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise DecodeError(f"Invalid current user response: {exc}") from exc
        if not isinstance(body, dict):
            raise DecodeError("Invalid current user response: expected a JSON object")

        errors = body.get("errors")
        if errors:
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
            )
            raise UnknownError(f"Failed retrieving current user: {messages}", payload=errors)

        data = body.get("data")
        viewer = data.get("viewer") if isinstance(data, dict) else None
        if viewer is None:
            raise DecodeError("Current user response has no 'viewer'")
        try:
            return Identity.model_validate(viewer)
        except ValueError as exc:
            raise DecodeError(f"Invalid current user response: {exc}") from exc
