"""
Paginator - turns "viewing item I of N" into "fetch page P" requests.

The observation hook may fire on every layout pass, so a page is requested
only once per genuine "reached the last known item" event: the viewed index
must be the last one AND the item count must differ from the count that
triggered the previous page.
"""
import itertools
from typing import Callable, Dict

from core.logging.logger import get_logger, is_verbose_logging

logger = get_logger(__name__)

PaginateObserver = Callable[[int, "Paginator"], None]

UNSET_PAGE = -1


class Paginator:
    """Page counter with observer registration.

    Observers are called as ``observer(page, paginator)``. Intended for use
    from the UI thread only.
    """

    def __init__(self):
        self._page = UNSET_PAGE
        self._previous_item_count = -1
        self._observers: Dict[int, PaginateObserver] = {}
        self._tokens = itertools.count(1)

    @property
    def page(self) -> int:
        return self._page

    @property
    def previous_item_count(self) -> int:
        return self._previous_item_count

    def bind(self, observer: PaginateObserver) -> int:
        """Register ``observer`` and replay the current page to it.

        The replay is not unconditional: while the page is still
        ``UNSET_PAGE`` (before the first ``reset``) nothing is sent, so an
        early observer does not receive a meaningless -1. It hears about
        page 0 from ``reset`` like every other observer.
        Returns a token for ``unbind``.
        """
        if not callable(observer):
            raise ValueError("Observer must be callable")
        token = next(self._tokens)
        self._observers[token] = observer
        if self._page != UNSET_PAGE:
            self._notify_one(observer, self._page)
        return token

    def unbind(self, token: int) -> None:
        if self._observers.pop(token, None) is None:
            logger.warning("[PAGINATOR] Unbind called with unknown token: %s", token)

    def reset(self) -> None:
        """Go back to page 0 and request it."""
        self._page = 0
        self._previous_item_count = -1
        logger.debug("[PAGINATOR] Reset to page 0")
        self._emit(self._page)

    def viewing_item_at(self, section_index: int, current_item_count: int) -> None:
        """Report that ``section_index`` is visible out of ``current_item_count`` items."""
        if section_index != current_item_count - 1:
            return
        if current_item_count == self._previous_item_count:
            if is_verbose_logging():
                logger.debug("[PAGINATOR] Already paginated at count=%d", current_item_count)
            return
        self._page += 1
        self._previous_item_count = current_item_count
        logger.debug("[PAGINATOR] Reached item %d, requesting page %d", section_index, self._page)
        self._emit(self._page)

    def _emit(self, page: int) -> None:
        for observer in list(self._observers.values()):
            self._notify_one(observer, page)

    def _notify_one(self, observer: PaginateObserver, page: int) -> None:
        try:
            observer(page, self)
        except Exception as e:
            logger.error("[PAGINATOR] Observer failed for page %d: %s", page, e, exc_info=True)
