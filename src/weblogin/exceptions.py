"""Exception hierarchy for weblogin.

All exceptions inherit from :class:`LoginError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`weblogin.exit_codes`.
The top-level handler in :func:`weblogin.app.main` catches ``LoginError``
and exits with that code; anything else produces a crash log.

Subclass hierarchy::

    LoginError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    +-- VerificationError   (exit 3)
    +-- NotFoundError       (exit 4)
    +-- UnknownError        (exit 5)
    +-- DecodeError         (exit 5)
    +-- TransportError      (exit 6)
    +-- TimeoutError_       (exit 7)
    +-- PersistenceError    (exit 8)
    +-- CancelledError      (exit 130)
    +-- ConfigError         (exit 1)
"""

from __future__ import annotations

from typing import Any, Optional

from weblogin.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LOGIN_EXPIRED,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
    EXIT_STORAGE_ERROR,
)


class LoginError(Exception):
    """Base exception for all weblogin errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(LoginError):
    """Raised for invalid arguments, such as an empty session name."""

    exit_code = EXIT_INVALID_USAGE


class TransportError(LoginError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class DecodeError(LoginError):
    """Raised when a success response carries a body that is not a valid session or user."""

    exit_code = EXIT_SERVER_ERROR


class NotFoundError(LoginError):
    """Raised when the service answers HTTP 404 for a session lookup."""

    exit_code = EXIT_NOT_FOUND


class UnknownError(LoginError):
    """Raised for any status the caller did not expect.

    Args:
        message: Human-readable error description.
        status_code: The HTTP status the service answered with.
        payload: The decoded JSON error body, when the body could be
            decoded. ``None`` otherwise.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class AuthError(LoginError):
    """Raised when the service rejects a token (HTTP 401/403)."""

    exit_code = EXIT_AUTH_FAILURE


class TimeoutError_(LoginError):
    """Raised when the poll deadline elapses before the session is authorized.

    Named with a trailing underscore to avoid shadowing the built-in
    ``TimeoutError``.
    """

    exit_code = EXIT_LOGIN_EXPIRED


class CancelledError(LoginError):
    """Raised when the caller cancels the wait for a token."""

    exit_code = EXIT_CANCELLED


class PersistenceError(LoginError):
    """Raised when the access token cannot be written to the local config file."""

    exit_code = EXIT_STORAGE_ERROR


class VerificationError(LoginError):
    """Raised when a freshly stored token cannot be resolved to a user."""

    exit_code = EXIT_AUTH_FAILURE


class ConfigError(LoginError):
    """Raised for configuration problems (invalid JSON, bad settings values)."""

    exit_code = EXIT_GENERIC_FAILURE
