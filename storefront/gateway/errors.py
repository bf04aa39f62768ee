"""Gateway exceptions."""


class GatewayError(Exception):
    """Base exception for storage and change-feed failures."""

    def __init__(self, message: str, table: str | None = None) -> None:
        self.message = message
        self.table = table
        super().__init__(message)


class GatewayUnavailableError(GatewayError):
    """Storage could not be reached or the statement failed."""


class RecordNotFoundError(GatewayError):
    """The referenced row does not exist."""

    def __init__(self, message: str, table: str | None = None, record_id: str | None = None) -> None:
        super().__init__(message, table)
        self.record_id = record_id


class PermissionDeniedError(GatewayError):
    """The caller does not own the target row."""


class StaleWriteError(GatewayError):
    """A conditional update matched no row because the row changed first."""

    def __init__(self, message: str, table: str | None = None, current: str | None = None) -> None:
        super().__init__(message, table)
        self.current = current


class ConstraintViolationError(GatewayError):
    """A uniqueness or integrity rule rejected the write."""
