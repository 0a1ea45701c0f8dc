class BackendError(RuntimeError):
    """Raised when the table store rejects or fails a request."""


class RecordNotFoundError(BackendError):
    """Raised when a single-row request matches no row."""

    def __init__(self, table: str, record_id: str) -> None:
        super().__init__(f"No {table} row found for id {record_id}")
        self.table = table
        self.record_id = record_id


class AuthError(Exception):
    """Raised by the auth layer; carries the HTTP status the routers answer with."""

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
