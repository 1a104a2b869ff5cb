from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StaleLedgerError(ServiceError):
    """The student fee changed between reading its ledger and writing to it."""

    def __init__(self, message: str = "Fee record was modified concurrently, reload and try again") -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
