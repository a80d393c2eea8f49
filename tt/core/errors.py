"""Exception types raised by the tracker core."""


class TimeTrackerError(Exception):
    """Base class for everything the core raises on purpose."""


class ValidationError(TimeTrackerError):
    pass


class SessionValidationError(ValidationError):
    """Raised when a user-entered session has start_time >= end_time."""


class ProjectValidationError(ValidationError):
    """Raised when a project name is empty after trimming."""


class RepositoryError(TimeTrackerError):
    """Storage failure. Callers may retry or report; the core never retries."""


class DuplicateIdError(RepositoryError):
    pass


class ProjectNotFoundError(RepositoryError):
    pass


class SessionNotFoundError(RepositoryError):
    pass


class PreferenceError(TimeTrackerError):
    """preferences.json couldn't be written. The in-memory value is rolled back."""
