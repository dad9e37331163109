"""In-memory store client for development and testing."""

import asyncio
import itertools
import uuid
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import Any

from delivery_schemas import AuthEvent, AuthSession, AuthUser, SignUpResult

from apps.web.store.base import AuthCallback, AuthSubscription
from apps.web.store.exceptions import AuthError, NotFoundError, StoreError

MOCK_STORAGE_URL = "https://mock.storage.local/object/public"


def _same(stored: Any, wanted: Any) -> bool:
    if stored is None or wanted is None:
        return stored is wanted
    return stored == wanted or str(stored) == str(wanted)


def _matches(
    row: dict[str, Any],
    eq: dict[str, Any] | None,
    in_: dict[str, list[Any]] | None,
) -> bool:
    for column, value in (eq or {}).items():
        if not _same(row.get(column), value):
            return False
    for column, values in (in_ or {}).items():
        if not any(_same(row.get(column), v) for v in values):
            return False
    return True


class MockStore:
    """
    In-memory store for development and testing.

    Provides configurable behavior for simulating:
    - Table rows (seeded per table)
    - Accounts, with or without pending e-mail confirmation
    - Transient and not-found failures on any operation
    - Which storage buckets hold which object keys

    Every call is recorded in ``calls`` as ``(operation, table)``.

    Usage:
        store = MockStore(tables={"restaurants": [...]})
        store.fail_next("select_one", "restaurants", NotFoundError(), times=3)
    """

    def __init__(
        self,
        tables: dict[str, list[dict[str, Any]]] | None = None,
        buckets: dict[str, set[str]] | None = None,
        require_email_confirmation: bool = False,
        api_delay_ms: int = 0,
    ) -> None:
        """
        Initialize the mock store.

        Args:
            tables: Initial rows per table name.
            buckets: Object keys per storage bucket. None resolves every key.
            require_email_confirmation: Sign-up returns no session when True.
            api_delay_ms: Simulated latency per call in milliseconds.
        """
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for name, rows in (tables or {}).items():
            self.tables[name] = [dict(row) for row in rows]
        self.buckets = buckets
        self.require_email_confirmation = require_email_confirmation
        self._api_delay_ms = api_delay_ms

        self.calls: list[tuple[str, str | None]] = []
        self._failures: dict[tuple[str, str | None], list[Exception]] = defaultdict(list)
        self._ids = itertools.count(1)

        self._accounts: dict[str, tuple[str, AuthUser]] = {}
        self._session: AuthSession | None = None
        self._listeners: list[AuthCallback] = []

    # =========================================================================
    # Configuration methods (for test setup)
    # =========================================================================

    def seed(self, table: str, rows: list[dict[str, Any]]) -> None:
        """Append rows to a table."""
        self.tables[table].extend(dict(row) for row in rows)

    def add_account(
        self,
        email: str,
        password: str,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuthUser:
        """Register an account that can sign in immediately."""
        user = AuthUser(
            id=user_id or str(uuid.uuid4()),
            email=email,
            user_metadata=metadata or {},
        )
        self._accounts[email] = (password, user)
        return user

    def fail_next(
        self,
        operation: str,
        table: str | None = None,
        error: Exception | None = None,
        times: int = 1,
    ) -> None:
        """Make the next ``times`` calls of ``operation`` on ``table`` raise."""
        failure = error or StoreError("Mock store failure", status_code=500)
        self._failures[(operation, table)].extend([failure] * times)

    def calls_for(self, table: str, operation: str | None = None) -> list[tuple[str, str | None]]:
        """Recorded calls touching ``table``, optionally of one operation."""
        return [
            call
            for call in self.calls
            if call[1] == table and (operation is None or call[0] == operation)
        ]

    async def _enter(self, operation: str, table: str | None) -> None:
        self.calls.append((operation, table))
        if self._api_delay_ms > 0:
            await asyncio.sleep(self._api_delay_ms / 1000)
        pending = self._failures.get((operation, table))
        if pending:
            raise pending.pop(0)

    # =========================================================================
    # Authentication
    # =========================================================================

    def on_auth_state_change(self, callback: AuthCallback) -> AuthSubscription:
        self._listeners.append(callback)
        return AuthSubscription(self._listeners, callback)

    def _emit(self, event: AuthEvent, session: AuthSession | None) -> None:
        for listener in list(self._listeners):
            listener(event, session)

    def _open_session(self, user: AuthUser) -> AuthSession:
        self._session = AuthSession(
            access_token=f"mock-token-{uuid.uuid4().hex[:8]}",
            refresh_token=f"mock-refresh-{uuid.uuid4().hex[:8]}",
            expires_at=datetime.now(UTC) + timedelta(hours=1),
            user=user,
        )
        self._emit(AuthEvent.SIGNED_IN, self._session)
        return self._session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        await self._enter("sign_in", None)
        account = self._accounts.get(email)
        if account is None or account[0] != password:
            raise AuthError("Invalid login credentials", code="invalid_credentials", status_code=400)
        return self._open_session(account[1])

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> SignUpResult:
        await self._enter("sign_up", None)
        if email in self._accounts:
            raise AuthError("User already registered", code="user_already_exists", status_code=422)

        user = self.add_account(email, password, metadata=metadata)
        if self.require_email_confirmation:
            return SignUpResult(user=user, session=None)
        return SignUpResult(user=user, session=self._open_session(user))

    async def sign_out(self) -> None:
        await self._enter("sign_out", None)
        self._session = None
        self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_session(self) -> AuthSession | None:
        await self._enter("get_session", None)
        return self._session

    # =========================================================================
    # Database
    # =========================================================================

    async def select_one(self, table: str, *, eq: dict[str, Any]) -> dict[str, Any]:
        await self._enter("select_one", table)
        rows = [row for row in self.tables[table] if _matches(row, eq, None)]
        if not rows:
            raise NotFoundError(f"No rows in {table} matched {eq}", table=table)
        if len(rows) > 1:
            raise StoreError(
                f"{table}: {len(rows)} rows matched, expected one",
                code="PGRST116",
                status_code=406,
            )
        return dict(rows[0])

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
        await self._enter("select_many", table)
        rows = [dict(row) for row in self.tables[table] if _matches(row, eq, in_)]
        if order_by:
            present = [row for row in rows if row.get(order_by) is not None]
            missing = [row for row in rows if row.get(order_by) is None]
            present.sort(key=lambda row: row[order_by], reverse=descending)
            rows = present + missing
        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            rows = [{c: row.get(c) for c in wanted} for row in rows]
        return rows

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        await self._enter("insert", table)
        stored = dict(row)
        stored.setdefault("id", next(self._ids))
        self.tables[table].append(stored)
        return dict(stored)

    async def update(
        self, table: str, patch: dict[str, Any], *, eq: dict[str, Any]
    ) -> list[dict[str, Any]]:
        await self._enter("update", table)
        updated = []
        for row in self.tables[table]:
            if _matches(row, eq, None):
                row.update(patch)
                updated.append(dict(row))
        return updated

    async def delete(self, table: str, *, eq: dict[str, Any]) -> None:
        await self._enter("delete", table)
        self.tables[table] = [row for row in self.tables[table] if not _matches(row, eq, None)]

    # =========================================================================
    # Storage
    # =========================================================================

    async def get_public_url(self, bucket: str, key: str) -> str | None:
        await self._enter("get_public_url", bucket)
        if self.buckets is not None and key not in self.buckets.get(bucket, set()):
            return None
        return f"{MOCK_STORAGE_URL}/{bucket}/{key}"

    async def close(self) -> None:
        return None
