"""Shared test fixtures for weblogin.

Provides an isolated config environment, a fake clock for driving the
poll loop without real delays, and a stub authorization service built on
:class:`httpx.MockTransport`.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from weblogin.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches sys.stdout/sys.stderr at creation time; a
    manager created under Typer's CliRunner would otherwise keep pointing
    at closed streams.
    """
    yield
    reset_output()
    weblogin_logger = logging.getLogger("weblogin")
    weblogin_logger.handlers.clear()
    weblogin_logger.propagate = True
    weblogin_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at subdirectories of tmp_path and clears
    all WEBLOGIN_* environment variables.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("weblogin.config._is_xdg_platform", lambda: True)

    for var in [
        "WEBLOGIN_CONFIG",
        "WEBLOGIN_BASE_URL",
        "WEBLOGIN_API_URL",
        "WEBLOGIN_POLL_INTERVAL",
        "WEBLOGIN_DEADLINE",
    ]:
        monkeypatch.delenv(var, raising=False)

    return tmp_path


# ---------------------------------------------------------------------------
# Fake clock
# ---------------------------------------------------------------------------


class FakeClock:
    """A :class:`~weblogin.poller.Clock` whose sleeps only advance a counter.

    Args:
        on_sleep: Optional callback ``(sleep_count, cancel_event)`` run
            after every sleep, e.g. to cancel the wait mid-poll.
    """

    def __init__(self, on_sleep: Optional[Callable[[int, threading.Event], None]] = None) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []
        self.on_sleep = on_sleep

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float, cancel: threading.Event) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        if self.on_sleep is not None:
            self.on_sleep(len(self.sleeps), cancel)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Stub authorization service
# ---------------------------------------------------------------------------


class StubAuthService:
    """In-memory authorization service behind an :class:`httpx.MockTransport`.

    ``lookups`` is consumed one entry per session lookup; each entry is
    either an HTTP status code (answered with an empty-bodied error) or a
    token string (answered 200 with that ``access_token``). The last entry
    repeats once the list is exhausted.
    """

    def __init__(self) -> None:
        self.session_id = "sess_123"
        self.session_url = "https://auth.example.com/cli/sess_123"
        self.create_status = 201
        self.lookups: list[Any] = [""]
        self.viewer: Optional[dict[str, str]] = {"id": "USER1", "email": "a@b.com"}
        self.viewer_status = 200
        self.requests: list[httpx.Request] = []

    @property
    def created_bodies(self) -> list[dict[str, Any]]:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.method == "POST" and r.url.path == "/api/v1/cli_sessions"
        ]

    @property
    def lookup_count(self) -> int:
        return sum(1 for r in self.requests if r.method == "GET")

    def _session(self, token: str = "") -> dict[str, str]:
        return {"id": self.session_id, "url": self.session_url, "access_token": token}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/api/v1/cli_sessions":
            if self.create_status != 201:
                return httpx.Response(self.create_status, json={"error": "nope"})
            return httpx.Response(201, json=self._session())

        if request.method == "GET" and path.startswith("/api/v1/cli_sessions/"):
            index = min(self.lookup_count - 1, len(self.lookups) - 1)
            outcome = self.lookups[index]
            if isinstance(outcome, int):
                return httpx.Response(outcome)
            return httpx.Response(200, json=self._session(outcome))

        if request.method == "POST" and path == "/graphql":
            if self.viewer_status != 200:
                return httpx.Response(self.viewer_status, json={"errors": [{"message": "unauthorized"}]})
            return httpx.Response(200, json={"data": {"viewer": self.viewer}})

        return httpx.Response(404)

    def client(self, base_url: str = "http://auth.test") -> httpx.Client:
        return httpx.Client(base_url=base_url, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def auth_service() -> StubAuthService:
    return StubAuthService()
