"""Store clients - implementations of the hosted auth/database/storage contract."""

from typing import Any

from apps.web.config.settings import Settings
from apps.web.store.base import AuthSubscription, StoreClient
from apps.web.store.mock import MockStore
from apps.web.store.supabase import SupabaseStore


def get_store(settings: Settings, **kwargs: Any) -> StoreClient:
    """
    Get a store client for the configured backend.

    This is the main entry point for obtaining a store client. Build one
    at startup and pass it to every controller; there is no shared
    module-level client.

    Args:
        settings: Validated settings from ``load_settings()``.
        **kwargs: Additional arguments passed to the client constructor.
            For SupabaseStore: http_client=... to inject a transport.

    Returns:
        A client implementing the StoreClient protocol.

    Raises:
        ValueError: If the backend is not supported.

    Example:
        store = get_store(load_settings())
        session = await store.sign_in(email, password)
    """
    if settings.store_backend == "mock":
        return MockStore(**kwargs)
    elif settings.store_backend == "supabase":
        return SupabaseStore(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.http_timeout,
            verify_public_urls=settings.verify_public_urls,
            email_redirect_to=settings.site_url,
            **kwargs,
        )
    else:
        raise ValueError(
            f"Unsupported store backend: {settings.store_backend}. Supported: mock, supabase"
        )


__all__ = [
    "AuthSubscription",
    "MockStore",
    "StoreClient",
    "SupabaseStore",
    "get_store",
]
