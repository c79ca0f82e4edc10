"""Console transport errors.

Transports raise these; the server registry catches them at its seams,
records them in the ``errors`` log category and flips the connected flag.
"""

from __future__ import annotations


class ConsoleError(RuntimeError):
    """Base class for console transport failures."""


class ConnectionFailedError(ConsoleError):
    def __init__(self, message: str) -> None:
        super().__init__(f"PTY connection failed: {message}")


class NotConnectedError(ConsoleError):
    def __init__(self) -> None:
        super().__init__("Not connected to PTY")
