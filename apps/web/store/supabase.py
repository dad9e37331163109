"""Supabase store client - PostgREST, GoTrue and Storage over HTTP."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import quote

import httpx

from delivery_schemas import AuthEvent, AuthSession, AuthUser, SignUpResult

from apps.web.store.base import AuthCallback, AuthSubscription
from apps.web.store.exceptions import (
    NOT_FOUND_CODE,
    AuthError,
    NotFoundError,
    StoreError,
)

logger = logging.getLogger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


def _format_value(value: Any) -> str:
    """Render a filter value the way PostgREST expects it in a query string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote_list_value(value: Any) -> str:
    text = _format_value(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def build_filters(
    eq: dict[str, Any] | None = None,
    in_: dict[str, list[Any]] | None = None,
) -> list[tuple[str, str]]:
    """
    Translate equality and membership filters to PostgREST query params.

    ``None`` in an equality filter becomes ``is.null``.
    """
    params: list[tuple[str, str]] = []
    for column, value in (eq or {}).items():
        if value is None:
            params.append((column, "is.null"))
        else:
            params.append((column, f"eq.{_format_value(value)}"))
    for column, values in (in_ or {}).items():
        joined = ",".join(_quote_list_value(v) for v in values)
        params.append((column, f"in.({joined})"))
    return params


def _parse_user(data: dict[str, Any]) -> AuthUser:
    return AuthUser(
        id=data["id"],
        email=data.get("email"),
        user_metadata=data.get("user_metadata") or {},
    )


def _parse_session(data: dict[str, Any]) -> AuthSession:
    expires_at: datetime | None = None
    if data.get("expires_at"):
        expires_at = datetime.fromtimestamp(int(data["expires_at"]), UTC)
    elif data.get("expires_in"):
        expires_at = datetime.now(UTC) + timedelta(seconds=int(data["expires_in"]))

    return AuthSession(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        expires_at=expires_at,
        user=_parse_user(data["user"]),
    )


def _error_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


class SupabaseStore:
    """
    Store client for a hosted Supabase project.

    Talks to the project's REST endpoints directly:
    - ``/auth/v1`` for password sign-in, sign-up and sign-out
    - ``/rest/v1`` for table reads and writes (row-level policies apply)
    - ``/storage/v1`` for public object URLs

    The session lives in memory on this instance; listeners registered with
    ``on_auth_state_change`` fire on every transition.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        verify_public_urls: bool = False,
        email_redirect_to: str | None = None,
    ) -> None:
        """
        Initialize the store client.

        Args:
            url: Project base URL, e.g. ``https://xyz.supabase.co``.
            anon_key: Public anon API key.
            http_client: Optional HTTP client for dependency injection (testing).
            timeout: Request timeout in seconds when we create the client.
            verify_public_urls: HEAD-probe public URLs before returning them.
            email_redirect_to: Where confirmation e-mails send the user back to.
        """
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.verify_public_urls = verify_public_urls
        self.email_redirect_to = email_redirect_to
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None
        self._session: AuthSession | None = None
        self._listeners: list[AuthCallback] = []

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.url}/auth/v1"

    @property
    def storage_url(self) -> str:
        return f"{self.url}/storage/v1"

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    def _headers(self, **extra: str) -> dict[str, str]:
        token = self._session.access_token if self._session else self.anon_key
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token}",
            **extra,
        }

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise StoreError(f"Request to store failed: {e}") from e

    def _raise_for_error(self, response: httpx.Response, table: str) -> None:
        if response.status_code < 400:
            return

        payload = _error_payload(response)
        code = payload.get("code")
        message = payload.get("message") or response.text or "Store request failed"
        details = payload.get("details") or ""

        if code == NOT_FOUND_CODE and " 0 rows" in details:
            raise NotFoundError(message, table=table)

        raise StoreError(
            f"{table}: {message}",
            code=str(code) if code is not None else None,
            status_code=response.status_code,
        )

    # =========================================================================
    # Authentication
    # =========================================================================

    def on_auth_state_change(self, callback: AuthCallback) -> AuthSubscription:
        self._listeners.append(callback)
        return AuthSubscription(self._listeners, callback)

    def _emit(self, event: AuthEvent, session: AuthSession | None) -> None:
        for listener in list(self._listeners):
            listener(event, session)

    async def _auth_post(
        self, path: str, payload: dict[str, Any], params: dict[str, str] | None = None
    ) -> dict[str, Any]:
        response = await self._send(
            "POST",
            f"{self.auth_url}/{path}",
            json=payload,
            params=params,
            headers={"apikey": self.anon_key},
        )

        if response.status_code >= 400:
            body = _error_payload(response)
            message = (
                body.get("error_description")
                or body.get("msg")
                or body.get("message")
                or f"Auth request failed: {response.status_code}"
            )
            raise AuthError(
                message,
                code=body.get("error_code") or body.get("error"),
                status_code=response.status_code,
            )

        return response.json()

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._auth_post(
            "token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        self._session = _parse_session(data)
        self._emit(AuthEvent.SIGNED_IN, self._session)
        return self._session

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> SignUpResult:
        params = {"redirect_to": self.email_redirect_to} if self.email_redirect_to else None
        data = await self._auth_post(
            "signup",
            {"email": email, "password": password, "data": metadata or {}},
            params=params,
        )

        # With confirmations enabled the response is the bare user object
        if "access_token" not in data:
            return SignUpResult(user=_parse_user(data), session=None)

        self._session = _parse_session(data)
        self._emit(AuthEvent.SIGNED_IN, self._session)
        return SignUpResult(user=self._session.user, session=self._session)

    async def sign_out(self) -> None:
        if self._session is not None:
            response = await self._send(
                "POST",
                f"{self.auth_url}/logout",
                headers=self._headers(),
            )
            # An already-expired token still ends the local session
            if response.status_code >= 400 and response.status_code not in (401, 403, 404):
                raise AuthError(
                    f"Sign-out failed: {response.status_code}",
                    status_code=response.status_code,
                )
        self._session = None
        self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_session(self) -> AuthSession | None:
        return self._session

    # =========================================================================
    # Database
    # =========================================================================

    async def select_one(self, table: str, *, eq: dict[str, Any]) -> dict[str, Any]:
        response = await self._send(
            "GET",
            f"{self.rest_url}/{table}",
            params=[("select", "*"), *build_filters(eq)],
            headers=self._headers(Accept=SINGLE_OBJECT),
        )
        self._raise_for_error(response, table)
        return response.json()

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
        params = [("select", columns), *build_filters(eq, in_)]
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))

        response = await self._send(
            "GET",
            f"{self.rest_url}/{table}",
            params=params,
            headers=self._headers(),
        )
        self._raise_for_error(response, table)
        return list(response.json())

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        response = await self._send(
            "POST",
            f"{self.rest_url}/{table}",
            json=row,
            headers=self._headers(Prefer="return=representation"),
        )
        self._raise_for_error(response, table)
        rows = response.json()
        return rows[0] if rows else dict(row)

    async def update(
        self, table: str, patch: dict[str, Any], *, eq: dict[str, Any]
    ) -> list[dict[str, Any]]:
        response = await self._send(
            "PATCH",
            f"{self.rest_url}/{table}",
            params=build_filters(eq),
            json=patch,
            headers=self._headers(Prefer="return=representation"),
        )
        self._raise_for_error(response, table)
        return list(response.json())

    async def delete(self, table: str, *, eq: dict[str, Any]) -> None:
        response = await self._send(
            "DELETE",
            f"{self.rest_url}/{table}",
            params=build_filters(eq),
            headers=self._headers(),
        )
        self._raise_for_error(response, table)

    # =========================================================================
    # Storage
    # =========================================================================

    async def get_public_url(self, bucket: str, key: str) -> str | None:
        if not key:
            return None

        public_url = f"{self.storage_url}/object/public/{bucket}/{quote(key)}"
        if not self.verify_public_urls:
            return public_url

        response = await self._send("HEAD", public_url)
        if response.status_code < 300:
            return public_url
        if response.status_code in (400, 404):
            return None

        raise StoreError(
            f"Storage probe failed for {bucket}/{key}: {response.status_code}",
            status_code=response.status_code,
        )
