"""Persisted local preferences - small string settings kept between sessions."""

import json
import logging
from pathlib import Path

from delivery_schemas import ORDER_STATUSES

logger = logging.getLogger(__name__)

STATUS_FILTER_KEY = "restaurant_owner_status_filter"
ALL_STATUSES = "all"


class PreferenceStore:
    """
    JSON file of string preferences.

    Read on demand and rewritten on every change. A missing or unreadable
    file reads as empty; preferences are advisory and never block a view.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable preferences file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._load().get(key, default)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")


class StatusFilterPreference:
    """The owner dashboard's order status filter: a status value or ``"all"``."""

    CHOICES = frozenset([ALL_STATUSES, *(status.value for status in ORDER_STATUSES)])

    def __init__(self, store: PreferenceStore) -> None:
        self._store = store

    def load(self) -> str:
        value = self._store.get(STATUS_FILTER_KEY, ALL_STATUSES)
        if value not in self.CHOICES:
            logger.info("Unknown stored status filter %r, using %r", value, ALL_STATUSES)
            return ALL_STATUSES
        return value

    def save(self, value: str) -> None:
        if value not in self.CHOICES:
            raise ValueError(f"Unknown status filter: {value}")
        self._store.set(STATUS_FILTER_KEY, value)
