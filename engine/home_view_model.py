"""
Home screen view model.

Glues the Paginator, FeedRepository and HomeModel together and reports
progress through ``status_changed``. Everything here runs on the UI
thread; repository results are marshalled back with
``ThreadManager.run_on_ui_thread`` before they touch the model.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from PySide6.QtCore import QObject, Signal

from core.logging.logger import get_logger
from core.threading.manager import TaskResult, ThreadManager
from feeds.constants import DEFAULT_PAGE_LIMIT
from feeds.home_model import HomeModel, HomeSection, HomeThumbnailRailWithHeader
from feeds.models import AssetSubType
from feeds.paginator import Paginator
from feeds.repository import FeedRepository, FeedRepositoryError, RepositoryErrorKind

logger = get_logger(__name__)


class HomeStatusKind(Enum):
    RESET = auto()
    FETCHING_PAGE = auto()
    FETCHED = auto()
    EMPTY = auto()
    FAILED = auto()


@dataclass(frozen=True)
class HomeStatus:
    """One status update. ``page`` is set for FETCHING_PAGE, ``error`` for FAILED."""
    kind: HomeStatusKind
    page: Optional[int] = None
    error: Optional[RepositoryErrorKind] = None

    @classmethod
    def reset(cls) -> "HomeStatus":
        return cls(HomeStatusKind.RESET)

    @classmethod
    def fetching_page(cls, page: int) -> "HomeStatus":
        return cls(HomeStatusKind.FETCHING_PAGE, page=page)

    @classmethod
    def fetched(cls) -> "HomeStatus":
        return cls(HomeStatusKind.FETCHED)

    @classmethod
    def empty(cls) -> "HomeStatus":
        return cls(HomeStatusKind.EMPTY)

    @classmethod
    def failed(cls, error: RepositoryErrorKind) -> "HomeStatus":
        return cls(HomeStatusKind.FAILED, error=error)


class HomeViewModel(QObject):
    """
    Drives the home screen.

    Signals:
    - status_changed: HomeStatus for every state transition
    """

    status_changed = Signal(object)  # HomeStatus

    def __init__(self, repository: FeedRepository,
                 paginator: Optional[Paginator] = None,
                 page_limit: int = DEFAULT_PAGE_LIMIT,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self.repository = repository
        self.paginator = paginator or Paginator()
        self.page_limit = page_limit
        self.model = HomeModel()
        self._bind_token: Optional[int] = None
        # Bumped on reset so results from an abandoned chain are ignored.
        self._generation = 0
        self._last_status: Optional[HomeStatus] = None

    @property
    def status(self) -> Optional[HomeStatus]:
        return self._last_status

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def bind(self) -> None:
        """Start listening for page requests."""
        if self._bind_token is not None:
            return
        self._bind_token = self.paginator.bind(self._on_paginate)

    def unbind(self) -> None:
        if self._bind_token is not None:
            self.paginator.unbind(self._bind_token)
            self._bind_token = None

    def reset(self) -> None:
        """Drop everything and start again from page 0."""
        logger.info("[HOME_VM] Reset")
        self._generation += 1
        self.repository.cancel_all()
        self.model.clear()
        self._emit(HomeStatus.reset())
        self.paginator.reset()

    def viewing_item_at(self, row: int) -> None:
        """Forward a visible-row notification to the paginator."""
        self.paginator.viewing_item_at(row, len(self.model))

    # ------------------------------------------------------------------
    # Row accessors
    # ------------------------------------------------------------------

    def row_count(self) -> int:
        return len(self.model)

    def section_kind(self, row: int) -> Optional[HomeSection]:
        return self.model.section_at(row)

    def rail_data(self, row: int) -> HomeThumbnailRailWithHeader:
        return self.model.fetch_home_rail(row)

    def rail_assets(self, row: int) -> List[str]:
        return self.model.fetch_asset(row, AssetSubType.THUMBNAIL_LIST)

    def carousel_assets(self, row: int) -> List[str]:
        return self.model.fetch_asset(row, AssetSubType.THUMBNAIL)

    # ------------------------------------------------------------------
    # Paging
    # ------------------------------------------------------------------

    def _on_paginate(self, page: int, _paginator: Paginator) -> None:
        if page == 0:
            self.model.clear()
        self._emit(HomeStatus.fetching_page(page))

        generation = self._generation

        def _on_result(result: TaskResult) -> None:
            ThreadManager.run_on_ui_thread(self._apply_result, page, generation, result)

        self.repository.fetch_home_feeds(page, self.page_limit, _on_result)

    def _apply_result(self, page: int, generation: int, result: TaskResult) -> None:
        if generation != self._generation:
            logger.debug("[HOME_VM] Dropping stale result for page %d", page)
            return

        if not result.success:
            error = result.error
            kind = error.kind if isinstance(error, FeedRepositoryError) else RepositoryErrorKind.UNKNOWN
            logger.warning("[HOME_VM] Page %d failed: %s", page, kind.value)
            self._emit(HomeStatus.failed(kind))
            return

        response = result.result
        self.model.append(response.data)
        logger.debug("[HOME_VM] Page %d: +%d feeds (total %d)", page, len(response.data), len(self.model))
        if self.model.is_empty():
            self._emit(HomeStatus.empty())
        else:
            self._emit(HomeStatus.fetched())

    def _emit(self, status: HomeStatus) -> None:
        self._last_status = status
        self.status_changed.emit(status)
