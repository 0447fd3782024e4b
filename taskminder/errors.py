from typing import Optional


class TaskminderError(Exception):
    """Base class for errors raised by taskminder."""


class ValidationError(TaskminderError):
    """User input was rejected; nothing was changed."""


class TaskNotFound(TaskminderError):
    pass


class MailError(TaskminderError):
    """The reminder transport failed to deliver a message."""


class BackendError(TaskminderError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BackendUnavailable(BackendError):
    """The backend could not be reached at all."""
