"""Image reference resolution - turns stored image references into display URLs."""

import logging
import re
from collections.abc import Sequence

from delivery_schemas import ImageRef

from apps.web.store.base import StoreClient
from apps.web.store.exceptions import StoreError

logger = logging.getLogger(__name__)

DEFAULT_BUCKETS: tuple[str, ...] = ("food-images", "restaurant-images")

# Keys an uploader may have used when the reference was saved as an object
IMAGE_OBJECT_KEYS = ("url", "path", "publicUrl", "public_url", "publicURL")

_DIRECT_ADDRESS = re.compile(r"^https?://", re.IGNORECASE)


def normalize_image_ref(raw: ImageRef) -> str | None:
    """Reduce a stored reference to a trimmed string, or None if empty."""
    if not raw:
        return None

    value: object = raw
    if isinstance(raw, dict):
        value = next((raw[k] for k in IMAGE_OBJECT_KEYS if raw.get(k)), None)
    if not value:
        return None

    text = str(value).strip()
    return text or None


def is_direct_address(value: str) -> bool:
    """True for fully-qualified http(s) URLs and inline ``data:`` payloads."""
    return bool(_DIRECT_ADDRESS.match(value)) or value.startswith("data:")


class ImageResolver:
    """
    Resolve image references against the store's public buckets.

    Direct addresses are returned as-is. Anything else is a storage key,
    probed in bucket order; the first bucket that yields a public URL wins.
    A failing probe moves on to the next bucket.
    """

    def __init__(self, store: StoreClient, buckets: Sequence[str] = DEFAULT_BUCKETS) -> None:
        self._store = store
        self.buckets = tuple(buckets)

    async def resolve(self, raw: ImageRef) -> str | None:
        value = normalize_image_ref(raw)
        if value is None:
            return None
        if is_direct_address(value):
            return value

        key = value.lstrip("/")
        if not key:
            return None

        for bucket in self.buckets:
            try:
                public_url = await self._store.get_public_url(bucket, key)
            except StoreError as e:
                logger.debug("Image probe failed for %s/%s: %s", bucket, key, e)
                continue
            if public_url:
                return public_url

        return None
