"""Pydantic models shared across weblogin.

- :class:`Session` -- one pending login attempt as the service reports it.
- :class:`Identity` -- the user a token resolves to.
- :class:`LoginSettings` -- everything configurable about the handshake.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_URL = "http://localhost:4000"
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_DEADLINE = 15 * 60.0


class Session(BaseModel):
    """A CLI login session as returned by ``/api/v1/cli_sessions``.

    The service assigns ``id`` and ``url`` when the session is created;
    ``access_token`` stays empty until a human completes the login in a
    browser. Missing or ``null`` fields decode to ``""``; a creation
    response must still carry a non-empty ``id`` and ``url``, which
    :meth:`~weblogin.client.SessionClient.create_session` checks. Instances
    are frozen: a newer state is obtained by fetching the session again,
    never by mutating a local copy.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Opaque, server-assigned session id")
    url: str = Field(default="", description="Where the human completes the login")
    access_token: str = Field(default="", description="Empty until authorized")

    @field_validator("id", "url", "access_token", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Identity(BaseModel):
    """The current user behind an access token. Never persisted."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str


class LoginSettings(BaseModel):
    """Settings for the login handshake.

    Loaded from ``config.json`` by :func:`weblogin.config.load_settings`.
    The same file also holds the stored ``access_token``; that key is not
    part of this model and is ignored on load.
    """

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Base URL of the authorization service",
    )
    api_url: Optional[str] = Field(
        default=None,
        description="Base URL for identity lookups (defaults to base_url)",
    )
    staging: bool = Field(
        default=True,
        description="Send the x-staging marker header",
    )
    poll_interval: float = Field(
        default=DEFAULT_POLL_INTERVAL,
        gt=0,
        description="Seconds between session state queries",
    )
    deadline: float = Field(
        default=DEFAULT_DEADLINE,
        gt=0,
        description="Seconds to wait for the human before giving up",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request HTTP timeout in seconds",
    )
    agent_socket: Optional[str] = Field(
        default=None,
        description="Unix socket of the local background agent",
    )

    @property
    def identity_url(self) -> str:
        return self.api_url or self.base_url
