"""
Wiring for the home screen.

Builds the repository, image cache and view model from settings so the
entry point and tests share one construction path. Nothing here is a
singleton; callers own the returned objects and shut them down.
"""
from dataclasses import dataclass
from typing import Optional

from core.logging.logger import get_logger
from core.network.path_monitor import NetworkPathMonitor
from core.settings.settings_manager import SettingsManager
from core.threading.manager import ThreadManager, ThreadPoolType
from engine.home_view_model import HomeViewModel
from feeds.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_IMAGE_HOST,
    DEFAULT_MEMORY_CACHE_MB,
    DEFAULT_PAGE_LIMIT,
    DEFAULT_POOL_WORKERS,
    DEFAULT_TIMEOUT_SECONDS,
    image_url_for,
)
from feeds.repository import FeedRepository
from utils.image_cache import ImageCache

logger = get_logger(__name__)


@dataclass
class HomeContext:
    settings: SettingsManager
    thread_manager: ThreadManager
    repository: FeedRepository
    image_cache: ImageCache
    view_model: HomeViewModel
    image_host: str = DEFAULT_IMAGE_HOST

    def image_url(self, source_path: str) -> str:
        return image_url_for(source_path, self.image_host)

    def shutdown(self) -> None:
        self.view_model.unbind()
        self.repository.cancel_all()
        self.image_cache.cancel_all()
        self.thread_manager.shutdown(wait=False)
        logger.info("[HOME_VM] Home context shut down")


def build_home_context(settings: SettingsManager,
                       thread_manager: Optional[ThreadManager] = None,
                       path_monitor: Optional[NetworkPathMonitor] = None) -> HomeContext:
    """Construct every home screen collaborator from ``settings``."""
    if thread_manager is None:
        workers = settings.get_int('network.pool_workers', DEFAULT_POOL_WORKERS)
        thread_manager = ThreadManager({
            ThreadPoolType.NETWORK: workers,
            ThreadPoolType.IMAGE: workers,
        })

    timeout = settings.get_int('network.timeout_seconds', DEFAULT_TIMEOUT_SECONDS)
    repository = FeedRepository(
        thread_manager,
        path_monitor=path_monitor,
        base_url=str(settings.get('network.base_url', DEFAULT_BASE_URL)),
        timeout=timeout,
    )
    image_cache = ImageCache(
        thread_manager,
        cache_dir=settings.cache_directory(),
        expiration=settings.expiration_policy(),
        timeout=timeout,
        memory_max_mb=settings.get_int('cache.max_memory_mb', DEFAULT_MEMORY_CACHE_MB),
    )
    view_model = HomeViewModel(
        repository,
        page_limit=settings.get_int('feeds.page_limit', DEFAULT_PAGE_LIMIT),
    )
    return HomeContext(
        settings=settings,
        thread_manager=thread_manager,
        repository=repository,
        image_cache=image_cache,
        view_model=view_model,
        image_host=str(settings.get('network.image_host', DEFAULT_IMAGE_HOST)),
    )
