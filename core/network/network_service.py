"""
NetworkService - one HTTP request wrapped as a cancellable AsyncOperation.

Responsibilities:
    - Probe connectivity first; report NoInternetError without touching the
      network when there is no route
    - Build the request from an APICollection entry (URL, query, headers,
      optional JSON body)
    - Issue exactly one request via requests and decode the body into a
      typed response
    - Invoke the completion at most once with a TaskResult, never after
      cancellation, then finish the operation
    - On cancel, close the in-flight response and finish immediately so the
      next request in a chain is not held up by a stalled transfer
"""
import json
import threading
from typing import Any, Callable, Generic, Optional, TypeVar
from urllib.parse import urlparse

import requests

from core.logging.logger import get_logger, is_verbose_logging
from core.network.api import APICollection
from core.network.errors import (
    DecodingError,
    EncodingError,
    InvalidURLError,
    NetworkError,
    NetworkServiceError,
    NoInternetError,
    UnknownError,
)
from core.network.path_monitor import NetworkPathMonitor
from core.threading.manager import TaskResult
from core.threading.operation import AsyncOperation, OperationQueue

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30
_CHUNK_SIZE = 8192


class NetworkService(AsyncOperation, Generic[T]):
    """Fetch and decode one APICollection request.

    ``decoder`` turns the parsed JSON payload into ``T`` and raises
    DecodingError (or KeyError/TypeError/ValueError) when it cannot.
    """

    def __init__(
        self,
        api: APICollection,
        decoder: Callable[[Any], T],
        completion: Callable[[TaskResult], None],
        path_monitor: Optional[NetworkPathMonitor] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        identifier: Optional[str] = None,
    ):
        super().__init__(identifier=identifier)
        self.api = api
        self._decoder = decoder
        self._completion = completion
        self._path_monitor = path_monitor or NetworkPathMonitor()
        self._owns_session = session is None
        self._session = session or requests.Session()
        self.timeout = timeout
        self._completed = False
        self._response_lock = threading.Lock()
        self._response: Optional[requests.Response] = None

    def resume(self, queue: OperationQueue) -> None:
        """Schedule this request on ``queue``."""
        queue.add_operation(self)

    def on_cancel(self) -> None:
        with self._response_lock:
            response = self._response
        if response is not None:
            # Closing the response shuts its socket so a blocked read returns.
            response.close()
        if self._owns_session:
            self._session.close()
        if self.interrupted:
            # The worker may still be parked in connect or header wait; release
            # the chain now, its eventual result is dropped by _complete.
            logger.info("[NET] %s cancelled in flight", self.identifier)
            self.finish()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def main(self) -> None:
        if not self._probe_connectivity():
            if self.is_cancelled:
                self.finish()
                return
            logger.info("[NET] %s: no internet, skipping request", self.identifier)
            self._complete(TaskResult(success=False, error=NoInternetError(), task_id=self.identifier))
            return

        if self.is_cancelled:
            self.finish()
            return

        try:
            url = self._build_url()
            data, headers = self._encode_body()
        except NetworkServiceError as e:
            self._complete(TaskResult(success=False, error=e, task_id=self.identifier))
            return

        self._perform(url, data, headers)

    def _probe_connectivity(self) -> bool:
        verdict = {}
        answered = threading.Event()

        def _on_path(connected: bool) -> None:
            if answered.is_set():
                return
            verdict["connected"] = bool(connected)
            answered.set()

        self._path_monitor.check_internet_connectivity(_on_path)
        answered.wait()
        return verdict["connected"]

    def _build_url(self) -> str:
        url = self.api.base_url.rstrip("/") + "/" + self.api.path.lstrip("/")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidURLError(f"Invalid URL: {url!r}")
        return url

    def _encode_body(self):
        headers = dict(self.api.headers)
        if self.api.body is None:
            return None, headers
        try:
            data = json.dumps(self.api.body)
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Cannot encode request body: {e}") from e
        headers.setdefault("Content-Type", "application/json")
        return data, headers

    def _perform(self, url: str, data: Optional[str], headers: dict) -> None:
        if is_verbose_logging():
            logger.debug("[NET] %s %s %s params=%s", self.identifier, self.api.method.value, url, self.api.query)

        try:
            resp = self._session.request(
                self.api.method.value,
                url,
                params=self.api.query or None,
                data=data,
                headers=headers,
                timeout=self.timeout,
                stream=True,
            )
            with self._response_lock:
                self._response = resp
            if self.is_cancelled:
                resp.close()
                self.finish()
                return
            resp.raise_for_status()
            chunks = []
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                if self.is_cancelled:
                    logger.info("[NET] %s cancelled during download", self.identifier)
                    resp.close()
                    self.finish()
                    return
                if chunk:
                    chunks.append(chunk)
            body = b"".join(chunks)
        except requests.RequestException as e:
            if self.is_cancelled:
                self.finish()
                return
            logger.warning("[NET] %s transport failure: %s", self.identifier, e)
            self._complete(TaskResult(success=False, error=NetworkError(e), task_id=self.identifier))
            return
        except Exception:
            # A response closed under a blocked read fails with whatever the
            # transport raises; only cancellation makes that expected.
            if self.is_cancelled:
                self.finish()
                return
            raise
        finally:
            with self._response_lock:
                self._response = None

        if not body:
            self._complete(TaskResult(success=False, error=UnknownError("Empty response body"),
                                      task_id=self.identifier))
            return

        try:
            decoded = self._decoder(json.loads(body))
        except DecodingError as e:
            logger.warning("[NET] %s decode failed: %s", self.identifier, e)
            self._complete(TaskResult(success=False, error=e, task_id=self.identifier))
            return
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("[NET] %s decode failed: %s", self.identifier, e)
            self._complete(TaskResult(success=False, error=DecodingError(str(e)), task_id=self.identifier))
            return

        self._complete(TaskResult(success=True, result=decoded, task_id=self.identifier))

    def _complete(self, result: TaskResult) -> None:
        if self._completed:
            return
        self._completed = True
        try:
            if self.is_cancelled:
                logger.debug("[NET] %s finished after cancel, dropping result", self.identifier)
                return
            try:
                self._completion(result)
            except Exception as e:
                logger.exception("[NET] Completion for %s raised: %s", self.identifier, e)
        finally:
            if self._owns_session:
                self._session.close()
            self.finish()
