"""Core - view lifecycle and local preferences shared by every screen."""

from apps.web.core.lifecycle import Sleep, ViewScope
from apps.web.core.preferences import (
    ALL_STATUSES,
    STATUS_FILTER_KEY,
    PreferenceStore,
    StatusFilterPreference,
)

__all__ = [
    "ALL_STATUSES",
    "STATUS_FILTER_KEY",
    "PreferenceStore",
    "Sleep",
    "StatusFilterPreference",
    "ViewScope",
]
