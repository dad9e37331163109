"""Address map preview - embed URL for the checkout address."""

from urllib.parse import quote

CITY = "Iligan City"
MAPS_EMBED_BASE = "https://www.google.com/maps?q="


def map_embed_url(barangay: str | None = None, address_detail: str | None = None) -> str:
    """Maps embed URL centred on the address within the city."""
    query = f"{CITY} {barangay or ''} {address_detail or ''}".strip()
    return f"{MAPS_EMBED_BASE}{quote(query, safe='')}&output=embed"


def map_label(barangay: str | None = None) -> str:
    return barangay or CITY
