"""weblogin -- browser-delegated login for command-line tools.

A command-line agent asks the authorization service for a *CLI session*,
sends the human to the session's URL in a browser, and polls the service
until the session carries an access token. The token is then written to the
local config file and verified by resolving the current user.

Typical workflow::

    weblogin login        # opens the browser, waits, stores the token
    weblogin whoami       # shows who the stored token belongs to

Modules:
    client: HTTP calls against the session and identity endpoints.
    poller: The wait-for-token loop with deadline and cancellation.
    credentials: Local token persistence and verification.
    flow: The orchestrator tying the three together.
    config: XDG-aware settings resolution.
    exceptions: Exception hierarchy with exit-code mapping.
"""

__version__ = "0.1.0"
