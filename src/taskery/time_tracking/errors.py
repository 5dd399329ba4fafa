"""Errors raised by time entry stores.

Stores raise these; the timer engine catches them at its boundary and
turns them into user-visible notices.
"""


class TimeTrackingError(Exception):
    """Base class for time tracking failures."""


class Unauthenticated(TimeTrackingError):
    """No signed-in user for an operation that needs one."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class StoreError(TimeTrackingError):
    """The backing store failed to carry out a request."""


class NotFound(StoreError):
    """A referenced time entry no longer exists."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Time entry {entry_id} not found")
        self.entry_id = entry_id
