"""
Exception types shared by the update and relay loops.

Loops never let these escape; they are caught at the cycle boundary,
logged, and the loop carries on with its next scheduled cycle.
"""


class CommsError(Exception):
    """Base exception for the communications core."""


class ConfigurationError(CommsError):
    """The configuration file is missing required values or is malformed."""


class TransportError(CommsError):
    """No response, a timeout, or a non-2xx status from the server."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class PayloadError(CommsError):
    """A server body or local artifact could not be decoded."""


class RestoreError(CommsError):
    """Captured result content could not be put back after a failed upload.

    This is the one rotation failure that can lose data, so it is raised
    rather than folded into a RelayResult.
    """

    def __init__(self, path, original):
        super().__init__(f"Could not restore {path}: {original}")
        self.path = path
        self.original = original
