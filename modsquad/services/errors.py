"""Domain errors raised by the service layer.

Each error carries the HTTP status the API surfaces it with; the single
exception handler installed in ``modsquad.main`` turns any of them into a
``{"detail": message}`` payload.
"""

from fastapi import status


class ModSquadError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ModSquadError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFound(ModSquadError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class LastImageError(ModSquadError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Cannot delete the last image. A build must have at least one image."


class TooManyImages(ModSquadError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "A build cannot have more than the maximum number of images"


class InvalidMediaType(ModSquadError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid file type. Only JPEG, PNG and GIF are allowed."


class PayloadTooLarge(ModSquadError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_message = "File exceeds max size"


class Conflict(ModSquadError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User with this email or username already exists"


class PermissionDenied(ModSquadError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class StorageError(ModSquadError):
    default_message = "Failed to store file"


class RepositoryError(ModSquadError):
    default_message = "Database operation failed"
