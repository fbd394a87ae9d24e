"""
Feed system constants - endpoints, page sizes, cache settings.

Centralised here so every sub-module imports from one place.
"""

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
DEFAULT_BASE_URL = "https://apigw.sboxdc.com"
HOME_FEEDS_PATH = "/ecm/v2/super/feeds/zee5-home/details"
DEFAULT_IMAGE_HOST = "https://static01.sboxdc.com/images"

# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------
DEFAULT_PAGE_LIMIT = 10

# ---------------------------------------------------------------------------
# Image cache
# ---------------------------------------------------------------------------
DEFAULT_CACHE_EXPIRATION_SECONDS = 1800
DEFAULT_CACHE_DIR_NAME = "ImageCache"
DEFAULT_MEMORY_CACHE_MB = 100

# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_POOL_WORKERS = 4


def image_url_for(source_path: str, image_host: str = DEFAULT_IMAGE_HOST) -> str:
    """Return the absolute image URL for an asset's source path."""
    return image_host.rstrip("/") + source_path
