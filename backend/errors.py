"""
Error taxonomy for the sleep tracker core.
Routers map these to HTTP responses (see main.py).
"""


class SleepTrackerError(Exception):
    """Base class for every error raised by the tracker."""


class StoreUnavailable(SleepTrackerError):
    """The session store could not be read or written."""


class ValidationFailure(SleepTrackerError):
    """A command was given a time range that breaks the session rules."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvariantViolation(SleepTrackerError):
    """Stored data breaks an invariant, e.g. two sessions are active at once."""
