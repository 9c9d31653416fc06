class StorageError(Exception):
    """Base for failures that carry a client-facing message and status."""

    status_code = 500
    default_message = "Storage error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(StorageError):
    status_code = 400
    default_message = "Invalid input"


class NotFound(StorageError):
    status_code = 404
    default_message = "File not found or empty"


class StorageFailure(StorageError):
    status_code = 500
    default_message = "Storage operation failed"
