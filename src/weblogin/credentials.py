"""Local access token storage and the post-login save sequence.

The token lives in ``config.json`` under the ``access_token`` key, next to
the settings. :class:`CredentialStore` owns that one key and leaves every
other key in the file alone. Writes go through
:func:`~weblogin.config.atomic_write` with ``0o600`` permissions.

The store is not locked. Two logins finishing at the same time race and
the last write wins, which is acceptable for a single-user tool.

:func:`save_token` runs the sequence that follows a successful login:
stop the local agent, clear the old token, persist the new one, and verify
it by resolving the current user. The token is persisted *before* it is
verified, so a verification failure leaves the unverified token on disk.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, Union

from weblogin.config import read_config_file, write_config_file
from weblogin.exceptions import ConfigError, LoginError, PersistenceError, VerificationError
from weblogin.models import Identity

ACCESS_TOKEN_KEY = "access_token"


class IdentityResolver(Protocol):
    def current_user(self, token: str) -> Identity: ...


class Agent(Protocol):
    def kill(self) -> None: ...


class CredentialStore:
    """Read and write the access token in a config file.

    Args:
        path: The config file holding the token.
        key: The key the token is stored under.

    Example::

        store = CredentialStore(get_config_file())
        store.set_access_token("tok_xyz")
        assert store.get_access_token() == "tok_xyz"
    """

    def __init__(self, path: Union[str, Path], key: str = ACCESS_TOKEN_KEY) -> None:
        self._path = Path(path)
        self._key = key

    @property
    def path(self) -> Path:
        return self._path

    @property
    def key(self) -> str:
        return self._key

    def get_access_token(self) -> Optional[str]:
        """Return the stored token, or ``None`` if there is none.

        Raises:
            ConfigError: If the config file is not valid JSON.
        """
        value = read_config_file(self._path).get(self._key)
        return value or None

    def set_access_token(self, token: str) -> None:
        """Store *token*, replacing any previous value.

        Raises:
            OSError: If the config file cannot be written.
            ConfigError: If the existing config file is not valid JSON.
        """
        data = read_config_file(self._path)
        data[self._key] = token
        write_config_file(self._path, data)

    def clear(self) -> None:
        """Remove the stored token.

        Other keys are kept. A file that cannot be parsed is removed
        altogether, as is a file left with no keys.

        Raises:
            OSError: If the file cannot be rewritten or removed.
        """
        if not self._path.exists():
            return
        try:
            data = read_config_file(self._path)
        except ConfigError:
            self._path.unlink()
            return

        if self._key not in data:
            return
        del data[self._key]
        if data:
            write_config_file(self._path, data)
        else:
            self._path.unlink()


def save_token(
    token: str,
    store: CredentialStore,
    resolver: IdentityResolver,
    agent: Optional[Agent] = None,
    logger: Optional[logging.Logger] = None,
) -> Identity:
    """Persist a freshly obtained token and verify it.

    Steps, in order:

    1. Ask the local agent to exit (best effort, failures are ignored).
    2. Clear the stored token.
    3. Store *token*.
    4. Resolve the current user with *token*.

    Args:
        token: The access token from the login session.
        store: Where to persist the token.
        resolver: Resolves a token to an :class:`~weblogin.models.Identity`.
        agent: The local agent to stop, if any.
        logger: Logger for diagnostics.

    Returns:
        The :class:`~weblogin.models.Identity` the token belongs to.

    Raises:
        PersistenceError: If clearing or writing the config file fails.
            The file is left without a token.
        VerificationError: If the user cannot be resolved. The token
            stays stored.
    """
    log = logger or logging.getLogger(__name__)

    if agent is not None:
        try:
            agent.kill()
        except Exception as exc:
            log.debug("could not signal the agent: %s", exc)

    try:
        store.clear()
        store.set_access_token(token)
    except (OSError, ConfigError) as exc:
        raise PersistenceError(
            f"failed persisting {store.key} in {store.path}: {exc}"
        ) from exc
    log.debug("stored access token in %s", store.path)

    try:
        identity = resolver.current_user(token)
    except LoginError as exc:
        raise VerificationError(f"failed retrieving current user: {exc}") from exc

    log.debug("token belongs to %s", identity.email)
    return identity
