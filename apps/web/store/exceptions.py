"""Store client exceptions."""

# PostgREST code for "JSON object requested, multiple (or no) rows returned"
NOT_FOUND_CODE = "PGRST116"


class StoreError(Exception):
    """Base exception for hosted store errors (network, permission, server)."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(StoreError):
    """A single-row read matched zero rows."""

    def __init__(self, message: str = "No rows found", table: str | None = None) -> None:
        super().__init__(message, code=NOT_FOUND_CODE, status_code=406)
        self.table = table


class AuthError(StoreError):
    """Sign-in, sign-up or sign-out was rejected by the auth service."""


class ValidationError(Exception):
    """Required fields missing or malformed; raised before any network call."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        self.message = message
        self.fields = fields or []
        super().__init__(message)


class RegistrationError(Exception):
    """A registration step failed after earlier steps were written."""

    def __init__(self, message: str, step: str | None = None) -> None:
        self.message = message
        self.step = step
        super().__init__(message)
