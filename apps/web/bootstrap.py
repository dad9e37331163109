"""
Application bootstrap - one place where settings reach the screens.

Usage:
    settings, store = bootstrap()
    dashboard = owner_dashboard(store, settings)
    history = order_history(store, settings)
"""

import logging
from pathlib import Path
from typing import Any

from apps.web.config.settings import Settings, configure_logging, load_settings
from apps.web.core.preferences import PreferenceStore
from apps.web.customer.history import OrderHistory
from apps.web.customer.images import ImageResolver
from apps.web.owner.dashboard import OwnerDashboard
from apps.web.store import get_store
from apps.web.store.base import StoreClient

logger = logging.getLogger(__name__)


def bootstrap(env_file: str | Path | None = None, **store_kwargs: Any) -> tuple[Settings, StoreClient]:
    """
    Load settings, configure logging and build the store client.

    Raises:
        ImproperlyConfigured: If the settings are invalid.
    """
    settings = load_settings(env_file)
    configure_logging(settings.log_level)
    store = get_store(settings, **store_kwargs)
    logger.info("Using %s store backend", settings.store_backend)
    return settings, store


def image_resolver(store: StoreClient, settings: Settings) -> ImageResolver:
    return ImageResolver(store, settings.storage_buckets)


def order_history(store: StoreClient, settings: Settings) -> OrderHistory:
    """Customer order history resolving images against the configured buckets."""
    return OrderHistory(store, image_resolver(store, settings))


def owner_dashboard(store: StoreClient, settings: Settings, **kwargs: Any) -> OwnerDashboard:
    """Owner dashboard persisting its status filter under the configured path."""
    return OwnerDashboard(
        store,
        preferences=PreferenceStore(settings.preferences_path),
        **kwargs,
    )
