"""Application-layer exceptions. Do not reuse domain exceptions."""


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TransactionFailedError(ApplicationError):
    """Raised when a write batch fails in the database. Business rows and audit rows are both rolled back."""
