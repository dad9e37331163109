"""Base store client protocol - interface to the hosted auth/database/storage service."""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from delivery_schemas import AuthEvent, AuthSession, SignUpResult

AuthCallback = Callable[[AuthEvent, AuthSession | None], None]


class AuthSubscription:
    """Handle returned by ``on_auth_state_change``; call ``unsubscribe`` on teardown."""

    def __init__(self, listeners: list[AuthCallback], callback: AuthCallback) -> None:
        self._listeners = listeners
        self.callback = callback

    def unsubscribe(self) -> None:
        if self.callback in self._listeners:
            self._listeners.remove(self.callback)


@runtime_checkable
class StoreClient(Protocol):
    """
    Protocol for the hosted store the screens read from and write to.

    Reads return flat rows; relationships are joined in code by the caller.
    All I/O methods are async.
    """

    # =========================================================================
    # Authentication
    # =========================================================================

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Sign in with e-mail and password.

        Raises:
            AuthError: If the credentials are rejected.
        """
        ...

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> SignUpResult:
        """
        Create an account.

        Returns:
            The new user, with a session unless e-mail confirmation is pending.

        Raises:
            AuthError: If sign-up is rejected.
        """
        ...

    async def sign_out(self) -> None:
        """End the current session."""
        ...

    async def get_session(self) -> AuthSession | None:
        """Current session, or None when signed out."""
        ...

    def on_auth_state_change(self, callback: AuthCallback) -> AuthSubscription:
        """Register a listener fired on every session transition."""
        ...

    # =========================================================================
    # Database
    # =========================================================================

    async def select_one(self, table: str, *, eq: dict[str, Any]) -> dict[str, Any]:
        """
        Read exactly one row.

        Raises:
            NotFoundError: If no row matched.
            StoreError: For any other failure, including multiple matches.
        """
        ...

    async def select_many(
        self,
        table: str,
        *,
        columns: str = "*",
        eq: dict[str, Any] | None = None,
        in_: dict[str, list[Any]] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Read rows matching every equality and membership filter."""
        ...

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored."""
        ...

    async def update(
        self, table: str, patch: dict[str, Any], *, eq: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Apply ``patch`` to matching rows and return them."""
        ...

    async def delete(self, table: str, *, eq: dict[str, Any]) -> None:
        """Delete matching rows."""
        ...

    # =========================================================================
    # Storage
    # =========================================================================

    async def get_public_url(self, bucket: str, key: str) -> str | None:
        """Public address of an object, or None if it cannot be resolved."""
        ...

    async def close(self) -> None:
        """Release any held connections."""
        ...
