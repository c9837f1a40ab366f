"""
Exceptions raised by the upload pipeline.
"""


class UploadError(Exception):
    """Base class for all upload pipeline errors."""


class InvalidTransitionError(UploadError):
    """Raised when a task is asked to move to a state it cannot reach."""


class TaskNotRemovableError(UploadError):
    """Raised when removing a task that is in flight or already stored."""


class IngestionError(UploadError):
    """An error that maps onto an HTTP error response.

    Args:
        message: Human readable message returned to the caller
        status_code: HTTP status code for the response
    """

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class RequestError(IngestionError):
    """Malformed or missing input, or an oversize payload."""

    status_code = 400


class StorageError(IngestionError):
    """The object store rejected or failed the write."""

    status_code = 500


class NameCollisionError(StorageError):
    """The object store refused the write because the name already exists."""
