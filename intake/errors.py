from __future__ import annotations


class ParseFailure(ValueError):
    """Oracle output could not be read as the expected JSON object."""


class OracleUnavailable(RuntimeError):
    """Oracle call failed (network, auth, provider error or deadline)."""


class ConflictDetected(RuntimeError):
    """The session was terminated by a conflict-of-interest match."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
