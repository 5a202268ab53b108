"""Talk to the local background agent.

The agent is a separate long-running process that caches credentials for
other commands. After a new login its cache is stale, so the login flow
asks it to exit; the next command that needs it starts a fresh one.
"""

from __future__ import annotations

import socket
from pathlib import Path
from typing import Union

_KILL_COMMAND = b"kill\n"


class AgentClient:
    """Client for the agent's Unix-domain control socket.

    Args:
        socket_path: Path of the socket the agent listens on.
        timeout: Seconds to wait for connect and send.
    """

    def __init__(self, socket_path: Union[str, Path], timeout: float = 2.0) -> None:
        self._socket_path = str(socket_path)
        self._timeout = timeout

    @property
    def socket_path(self) -> str:
        return self._socket_path

    def kill(self) -> None:
        """Ask the agent to exit.

        Raises:
            OSError: If no agent is listening or the socket cannot be written.
        """
        if not hasattr(socket, "AF_UNIX"):
            raise OSError("Unix domain sockets are not available on this platform")
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(self._timeout)
            sock.connect(self._socket_path)
            sock.sendall(_KILL_COMMAND)
