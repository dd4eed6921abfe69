AUTHORIZATION_REQUIRED_MESSAGE = "Admin session required to modify the library."
GENERIC_TRANSPORT_MESSAGE = "Request failed. Please try again."


class LibrarySyncError(Exception):
    """Base class for every failure surfaced by library_sync."""


class ValidationError(LibrarySyncError, ValueError):
    pass


class AuthorizationError(LibrarySyncError):
    def __init__(self, message: str = AUTHORIZATION_REQUIRED_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class AuthError(LibrarySyncError):
    REJECTED = "rejected"

    def __init__(self, reason: str = REJECTED, detail: str | None = None) -> None:
        super().__init__(detail or f"authorization {reason}")
        self.reason = reason
        self.detail = detail


class TransportError(LibrarySyncError):
    def __init__(self, message: str | None = None, status: int | None = None) -> None:
        self.message = message or GENERIC_TRANSPORT_MESSAGE
        self.status = status
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"TransportError(status={self.status!r}, message={self.message!r})"
