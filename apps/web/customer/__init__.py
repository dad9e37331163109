"""Customer screens - order history and checkout helpers."""

from apps.web.customer.history import (
    HistoryState,
    OrderHistory,
    OrderHistoryResult,
    build_history,
    fetch_history_items,
    format_order_date,
    segment_order,
)
from apps.web.customer.images import ImageResolver, is_direct_address, normalize_image_ref
from apps.web.customer.maps import map_embed_url, map_label

__all__ = [
    "HistoryState",
    "ImageResolver",
    "OrderHistory",
    "OrderHistoryResult",
    "build_history",
    "fetch_history_items",
    "format_order_date",
    "is_direct_address",
    "map_embed_url",
    "map_label",
    "normalize_image_ref",
    "segment_order",
]
