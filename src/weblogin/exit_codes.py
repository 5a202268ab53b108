"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to an error category and is referenced by the
corresponding :class:`~weblogin.exceptions.LoginError` subclass, so shell
wrappers can tell a network failure from an expired login without parsing
stderr.
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""The token was rejected or could not be verified."""

EXIT_NOT_FOUND = 4
"""The login session is unknown to the service (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The service answered with an unexpected status or an undecodable body."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_LOGIN_EXPIRED = 7
"""Nobody completed the login in the browser before the deadline."""

EXIT_STORAGE_ERROR = 8
"""The token could not be written to the local config file."""

EXIT_CANCELLED = 130
"""The login was interrupted (Ctrl-C)."""
