"""Errors raised by catalog operations, each bound to an HTTP status."""


class CatalogError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """A required field is missing or a submitted value is malformed."""

    status_code = 400


class ConflictError(CatalogError):
    """The requested id is already taken by another record."""

    status_code = 409


class NotFoundError(CatalogError):
    status_code = 404


class StorageFailure(CatalogError):
    """An underlying store call failed; the cause is kept in the message."""

    status_code = 500
