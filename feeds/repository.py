"""
FeedRepository - decides where home feeds come from and what failures mean.

Every request is chained after the previous one issued by the same
repository, so completions arrive strictly in request order. Transport
errors collapse to two domain kinds: no internet, or anything else.
"""
from enum import Enum
from typing import Callable, Optional

import requests

from core.logging.logger import get_logger
from core.network.api import APICollection, HTTPMethod
from core.network.errors import NoInternetError
from core.network.network_service import NetworkService
from core.network.path_monitor import NetworkPathMonitor
from core.threading.manager import TaskResult, ThreadManager, ThreadPoolType
from core.threading.operation import OperationQueue
from feeds.constants import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS, HOME_FEEDS_PATH
from feeds.models import HomeFeedsResponse

logger = get_logger(__name__)


def home_feeds_api(page: int, limit: int, base_url: str = DEFAULT_BASE_URL) -> APICollection:
    """Request descriptor for one page of home feeds."""
    return APICollection(
        name="fetch_home_feeds",
        base_url=base_url,
        path=HOME_FEEDS_PATH,
        method=HTTPMethod.GET,
        query={"page": page, "perPage": limit},
    )


class RepositoryErrorKind(Enum):
    """What the consumer can distinguish about a failed fetch."""
    NO_INTERNET = "no_internet"
    UNKNOWN = "unknown"


class FeedRepositoryError(Exception):
    """A failed feed fetch, reduced to a RepositoryErrorKind."""

    def __init__(self, kind: RepositoryErrorKind, cause: Optional[BaseException] = None):
        super().__init__(kind.value)
        self.kind = kind
        self.cause = cause

    @classmethod
    def from_network_error(cls, error: Optional[BaseException]) -> "FeedRepositoryError":
        if isinstance(error, NoInternetError):
            return cls(RepositoryErrorKind.NO_INTERNET, error)
        return cls(RepositoryErrorKind.UNKNOWN, error)


class FeedRepository:
    """Fetches home feed pages through a serialized request chain."""

    def __init__(
        self,
        thread_manager: ThreadManager,
        path_monitor: Optional[NetworkPathMonitor] = None,
        session_factory: Optional[Callable[[], requests.Session]] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._queue = OperationQueue(thread_manager, ThreadPoolType.NETWORK, name="home_feeds")
        self._path_monitor = path_monitor or NetworkPathMonitor()
        self._session_factory = session_factory
        self.base_url = base_url
        self.timeout = timeout
        self._last_request: Optional[NetworkService] = None
        self._counter = 0

    @property
    def last_request(self) -> Optional[NetworkService]:
        return self._last_request

    def fetch_home_feeds(self, page: int, limit: int,
                         completion: Callable[[TaskResult], None]) -> NetworkService:
        """Fetch one page; ``completion`` gets a TaskResult whose ``result`` is a
        HomeFeedsResponse or whose ``error`` is a FeedRepositoryError."""

        def _on_result(result: TaskResult) -> None:
            if result.success:
                completion(result)
                return
            error = FeedRepositoryError.from_network_error(result.error)
            logger.info("[FEED_REPO] Page %d failed: %s (%s)", page, error.kind.value, result.error)
            completion(TaskResult(
                success=False,
                error=error,
                execution_time=result.execution_time,
                task_id=result.task_id,
            ))

        session = self._session_factory() if self._session_factory else None
        request = NetworkService(
            home_feeds_api(page, limit, base_url=self.base_url),
            decoder=HomeFeedsResponse.from_dict,
            completion=_on_result,
            path_monitor=self._path_monitor,
            session=session,
            timeout=self.timeout,
            identifier=self._next_identifier(page),
        )
        if self._last_request is not None:
            request.add_dependency(self._last_request)

        request.resume(self._queue)
        self._last_request = request
        logger.debug("[FEED_REPO] Queued page=%d limit=%d (%s)", page, limit, request.identifier)
        return request

    def cancel_all(self) -> None:
        """Cancel every request this repository still has in flight."""
        self._queue.cancel_all()

    def _next_identifier(self, page: int) -> str:
        self._counter += 1
        return f"home_feeds_{id(self):x}_{self._counter}_p{page}"
