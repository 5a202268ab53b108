"""Tests for the local agent control socket client."""

from __future__ import annotations

import socket
import tempfile
import threading
from pathlib import Path

import pytest

from weblogin.agent import AgentClient

pytestmark = pytest.mark.skipif(
    not hasattr(socket, "AF_UNIX"), reason="Unix domain sockets unavailable"
)


@pytest.fixture()
def socket_dir():
    # Short path: Unix socket paths are limited to ~100 bytes.
    with tempfile.TemporaryDirectory(prefix="wl") as path:
        yield Path(path)


def test_kill_sends_command(socket_dir: Path) -> None:
    path = socket_dir / "agent.sock"
    received: list[bytes] = []

    server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    server.bind(str(path))
    server.listen(1)

    def _serve() -> None:
        conn, _ = server.accept()
        with conn:
            received.append(conn.recv(64))

    thread = threading.Thread(target=_serve)
    thread.start()
    try:
        AgentClient(path).kill()
        thread.join(timeout=5)
    finally:
        server.close()

    assert received == [b"kill\n"]


def test_kill_without_agent_raises_oserror(socket_dir: Path) -> None:
    with pytest.raises(OSError):
        AgentClient(socket_dir / "missing.sock").kill()
