"""
Settings manager for the feed core.

Uses QSettings for persistent storage. Values read back from an INI file
come back as strings, so callers should prefer the typed getters.
"""
from typing import Any, Callable, Dict, List, Optional
import threading
from pathlib import Path
from PySide6.QtCore import QSettings, QObject, Signal
from core.logging.logger import get_logger, is_verbose_logging
from feeds.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_CACHE_EXPIRATION_SECONDS,
    DEFAULT_IMAGE_HOST,
    DEFAULT_MEMORY_CACHE_MB,
    DEFAULT_PAGE_LIMIT,
    DEFAULT_POOL_WORKERS,
    DEFAULT_TIMEOUT_SECONDS,
)
from utils.image_cache import ExpirationPolicy, default_cache_directory

logger = get_logger('SettingsManager')


DEFAULT_SETTINGS: Dict[str, Any] = {
    # Network
    'network.base_url': DEFAULT_BASE_URL,
    'network.image_host': DEFAULT_IMAGE_HOST,
    'network.timeout_seconds': DEFAULT_TIMEOUT_SECONDS,
    'network.pool_workers': DEFAULT_POOL_WORKERS,

    # Feeds
    'feeds.page_limit': DEFAULT_PAGE_LIMIT,

    # Image cache
    'cache.expiration_seconds': DEFAULT_CACHE_EXPIRATION_SECONDS,  # 0 = never
    'cache.directory': '',  # '' = platform cache location
    'cache.max_memory_mb': DEFAULT_MEMORY_CACHE_MB,
}


class SettingsManager(QObject):
    """
    Centralized settings management.

    Uses QSettings for persistent storage with organization/application name,
    or an explicit INI file when ``settings_file`` is given.
    Thread-safe with change notifications.
    """

    # Signal emitted when settings change
    settings_changed = Signal(str, object)  # key, new_value

    def __init__(self, organization: str = "SugarBox",
                 application: str = "FeedCore",
                 settings_file: Optional[str] = None):
        super().__init__()

        if settings_file:
            self._settings = QSettings(str(settings_file), QSettings.Format.IniFormat)
        else:
            self._settings = QSettings(organization, application)
        self._organization = organization
        self._application = application
        self._lock = threading.RLock()
        self._change_handlers: Dict[str, List[Callable]] = {}

        self._set_defaults()
        logger.info("SettingsManager initialized (%s)", self._settings.fileName())

    def _set_defaults(self) -> None:
        """Set default values if not already present."""
        with self._lock:
            for key, value in DEFAULT_SETTINGS.items():
                if not self._settings.contains(key):
                    self._settings.setValue(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting value.

        Args:
            key: Setting key in dot notation (e.g., 'feeds.page_limit')
            default: Default value if key not found

        Returns:
            Setting value or default
        """
        with self._lock:
            return self._settings.value(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        raw = self.get(key, default)
        if isinstance(raw, bool):
            return int(raw)
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("Setting %s is not an integer: %r", key, raw)
            return default

    @staticmethod
    def to_bool(value: Any, default: bool = False) -> bool:
        """Normalize a stored setting value to bool.

        Accepts common string forms ("true", "1", "yes", "on") as True and
        ("false", "0", "no", "off") as False.
        """
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            v = value.strip().lower()
            if v in ("true", "1", "yes", "on"):
                return True
            if v in ("false", "0", "no", "off"):
                return False
            return default
        if value is None:
            return default
        return bool(value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Convenience wrapper around get() that normalizes to bool."""
        raw = self.get(key, default)
        return self.to_bool(raw, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a setting value.

        Args:
            key: Setting key in dot notation
            value: Value to set
        """
        with self._lock:
            old_value = self._settings.value(key)
            self._settings.setValue(key, value)

            self.settings_changed.emit(key, value)

            for handler in self._change_handlers.get(key, []):
                try:
                    handler(value, old_value)
                except Exception as e:
                    logger.error(f"Error in change handler for {key}: {e}")

        if is_verbose_logging():
            logger.debug("Setting changed: %s: %r -> %r", key, old_value, value)
        else:
            logger.debug("Setting changed: %s", key)

    def save(self) -> None:
        """Force save settings to persistent storage."""
        with self._lock:
            self._settings.sync()
        logger.debug("Settings saved")

    def on_changed(self, key: str, handler: Callable[[Any, Any], None]) -> None:
        """
        Register a handler for when a specific setting changes.

        Args:
            key: Setting key to watch
            handler: Callback function(new_value, old_value)
        """
        with self._lock:
            self._change_handlers.setdefault(key, []).append(handler)

        logger.debug(f"Registered change handler for {key}")

    def reset_to_defaults(self) -> None:
        """Clear everything and write the defaults back."""
        with self._lock:
            self._settings.clear()
            for key, value in DEFAULT_SETTINGS.items():
                self._settings.setValue(key, value)
            self._settings.sync()

        logger.info("Settings reset to defaults")
        self.settings_changed.emit('*', None)  # Signal that all changed

    def contains(self, key: str) -> bool:
        """Check if a setting key exists."""
        with self._lock:
            return self._settings.contains(key)

    def remove(self, key: str) -> None:
        """Remove a setting key."""
        with self._lock:
            self._settings.remove(key)
        logger.debug(f"Removed setting: {key}")

    def clear(self) -> None:
        """Clear all settings (use with caution)."""
        with self._lock:
            self._settings.clear()
        logger.warning("All settings cleared")

    # ------------------------------------------------------------------
    # Typed helpers for the image cache
    # ------------------------------------------------------------------

    def expiration_policy(self) -> ExpirationPolicy:
        seconds = self.get_int('cache.expiration_seconds', DEFAULT_CACHE_EXPIRATION_SECONDS)
        if seconds <= 0:
            return ExpirationPolicy.never()
        return ExpirationPolicy.after(seconds)

    def cache_directory(self) -> Path:
        configured = str(self.get('cache.directory', '') or '').strip()
        if configured:
            return Path(configured).expanduser()
        return default_cache_directory()
