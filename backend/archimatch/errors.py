"""Domain errors raised by the service layer.

Routes never build error responses for these by hand: the handler in
``archimatch.main`` turns any ``ArchimatchError`` into an ``ErrorResponse``
body with the class's status code.
"""


class ArchimatchError(Exception):
    status_code = 500
    code = "internal_error"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ArchimatchError):
    """Referenced entity is absent, inactive, or owned by another architect."""

    status_code = 404
    code = "not_found"


class InvalidArgumentError(ArchimatchError):
    status_code = 400
    code = "invalid_argument"


class ConflictError(ArchimatchError):
    status_code = 409
    code = "conflict"


class UnauthorizedError(ArchimatchError):
    status_code = 401
    code = "unauthorized"


class StorageError(ArchimatchError):
    """Object storage write failed."""

    status_code = 500
    code = "storage_error"
    retryable = True
