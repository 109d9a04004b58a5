"""
Exception classes for the application.

Every error carries a human readable ``message`` so the API boundary can render
it as a dismissible notification.
"""

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base class for application errors."""

    title: str = "Error"

    def __init__(self, status_code: int, message: str):
        super().__init__(status_code=status_code, detail=message)
        self.message = message


class ValidationError(AppError):
    """Raised when input validation fails (bad file, bad index, unknown color)."""

    title = "Validation error"

    def __init__(self, message: str):
        super().__init__(status.HTTP_422_UNPROCESSABLE_ENTITY, message)


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    title = "Not found"

    def __init__(self, resource_type: str, resource_id):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource_type} not found")
        self.resource_id = resource_id


class SelectionError(AppError):
    """Raised when an operation needs a product and/or color selection that is missing."""

    title = "Nothing selected"

    def __init__(self, message: str = "Select a product and a color first"):
        super().__init__(status.HTTP_409_CONFLICT, message)


class UnsavedChangesError(AppError):
    """Raised when a selection change would discard staged images under the confirm policy."""

    title = "Unsaved changes"

    def __init__(self, message: str = "There are unsaved image changes"):
        super().__init__(status.HTTP_409_CONFLICT, message)


class RemoteError(AppError):
    """Raised when the data store rejects a query or mutation."""

    title = "Database error"

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(status.HTTP_502_BAD_GATEWAY, message)


class UploadError(AppError):
    """Raised when the file host rejects an upload or cannot be reached."""

    title = "Upload failed"

    def __init__(self, reason: str):
        super().__init__(status.HTTP_502_BAD_GATEWAY, reason)
        self.reason = reason
