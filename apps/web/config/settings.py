"""
Settings for the delivery screens.

Secrets come from the environment - never hardcode credentials.
Values come from the process environment or a .env file.
"""

import logging.config
from pathlib import Path

import environ  # type: ignore[import-untyped]
from environ.compat import ImproperlyConfigured  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict

PLACEHOLDER_URL = "YOUR_SUPABASE_URL"
PLACEHOLDER_KEY = "YOUR_SUPABASE_ANON_KEY"

DEFAULT_BUCKETS = ["food-images", "restaurant-images"]
DEFAULT_PREFERENCES_PATH = Path.home() / ".iligan-delivery" / "preferences.json"


class Settings(BaseModel):
    """Validated settings, passed explicitly to everything that needs them."""

    model_config = ConfigDict(frozen=True)

    store_backend: str = "supabase"
    supabase_url: str = ""
    supabase_anon_key: str = ""
    storage_buckets: tuple[str, ...] = tuple(DEFAULT_BUCKETS)
    verify_public_urls: bool = False
    preferences_path: Path = DEFAULT_PREFERENCES_PATH
    site_url: str | None = None
    http_timeout: float = 30.0
    log_level: str = "INFO"


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Read and validate settings from the environment once, at startup.

    Args:
        env_file: Optional ``.env`` file; real environment variables win.

    Returns:
        Validated settings.

    Raises:
        ImproperlyConfigured: If the hosted store is selected and its URL or
            key is missing or still a placeholder.
    """
    if env_file:
        environ.Env.read_env(str(env_file))

    env = environ.Env(
        STORE_BACKEND=(str, "supabase"),
        STORAGE_VERIFY_PUBLIC_URLS=(bool, False),
        HTTP_TIMEOUT=(float, 30.0),
        LOG_LEVEL=(str, "INFO"),
    )

    backend = env("STORE_BACKEND").lower()
    if backend not in ("supabase", "mock"):
        raise ImproperlyConfigured(f"Unknown STORE_BACKEND: {backend}")

    url = ""
    anon_key = ""
    if backend == "supabase":
        url = env("SUPABASE_URL")
        anon_key = env("SUPABASE_ANON_KEY")
        if not url or url == PLACEHOLDER_URL:
            raise ImproperlyConfigured("SUPABASE_URL is not configured")
        if not anon_key or anon_key == PLACEHOLDER_KEY:
            raise ImproperlyConfigured("SUPABASE_ANON_KEY is not configured")

    return Settings(
        store_backend=backend,
        supabase_url=url,
        supabase_anon_key=anon_key,
        storage_buckets=tuple(env.list("STORAGE_BUCKETS", default=DEFAULT_BUCKETS)),
        verify_public_urls=env("STORAGE_VERIFY_PUBLIC_URLS"),
        preferences_path=Path(
            env.str("PREFERENCES_PATH", default=str(DEFAULT_PREFERENCES_PATH))
        ).expanduser(),
        site_url=env.str("SITE_URL", default="") or None,
        http_timeout=env("HTTP_TIMEOUT"),
        log_level=env("LOG_LEVEL").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Send application logs to the console at ``level``."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "apps.web": {"handlers": ["console"], "level": level},
            },
        }
    )
