"""
Two-tier image cache: in-memory LRU in front of an on-disk directory.

Image bytes are looked up synchronously (memory, then disk) before any
network attempt. Misses are downloaded on the IMAGE pool, stored in memory
immediately and on disk best effort. Entries older than the expiration
window are purged from both tiers on the access that finds them stale;
there is no background sweep.

Concurrent fetches of the same URL share one download.
"""
import hashlib
import os
import tempfile
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import requests
from PySide6.QtCore import QStandardPaths

from core.logging.logger import get_logger, is_verbose_logging
from core.threading.manager import ThreadManager, ThreadPoolType
from core.threading.operation import AsyncOperation, OperationQueue
from feeds.constants import (
    DEFAULT_CACHE_DIR_NAME,
    DEFAULT_CACHE_EXPIRATION_SECONDS,
    DEFAULT_MEMORY_CACHE_MB,
    DEFAULT_TIMEOUT_SECONDS,
)

logger = get_logger(__name__)

ImageCompletion = Callable[[Optional[bytes]], None]


@dataclass(frozen=True)
class ExpirationPolicy:
    """How long a cached image stays valid. ``seconds=None`` means forever."""
    seconds: Optional[float] = None

    @classmethod
    def never(cls) -> "ExpirationPolicy":
        return cls(None)

    @classmethod
    def after(cls, seconds: float) -> "ExpirationPolicy":
        if seconds <= 0:
            raise ValueError("Expiration window must be positive")
        return cls(float(seconds))

    def is_expired(self, written_at: float, now: Optional[float] = None) -> bool:
        if self.seconds is None:
            return False
        return ((now if now is not None else time.time()) - written_at) > self.seconds


@dataclass(frozen=True)
class CacheEntry:
    data: bytes
    timestamp: float


def validate_image_bytes(data: bytes) -> bool:
    """Quick validation via magic bytes."""
    if not data:
        return False
    return (
        data[:2] == b"\xff\xd8"                              # JPEG
        or data[:8] == b"\x89PNG\r\n\x1a\n"                  # PNG
        or (data[:4] == b"RIFF" and data[8:12] == b"WEBP")   # WebP
        or data[:6] in (b"GIF87a", b"GIF89a")                # GIF
        or data[:2] == b"BM"                                 # BMP
    )


def default_cache_directory() -> Path:
    """Platform cache location, falling back to the temp dir."""
    base = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.CacheLocation)
    if not base:
        base = tempfile.gettempdir()
    return Path(base) / DEFAULT_CACHE_DIR_NAME


class MemoryImageCache:
    """
    LRU memory tier for image bytes.

    Features:
    - No item limit by default; evicts least recently used entries only
      once ``max_memory_mb`` is exceeded
    - Thread-safe
    - Hit/miss/eviction counters for ``get_stats``
    """

    def __init__(self, max_memory_mb: int = DEFAULT_MEMORY_CACHE_MB,
                 max_items: Optional[int] = None):
        self.max_items = max_items
        self.max_memory_bytes = max_memory_mb * 1024 * 1024

        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._current_memory = 0
        self._hit_count = 0
        self._miss_count = 0
        self._evict_count = 0
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._miss_count += 1
                return None
            self._cache.move_to_end(key)
            self._hit_count += 1
            return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            old = self._cache.pop(key, None)
            if old is not None:
                self._current_memory -= len(old.data)
            self._cache[key] = entry
            self._current_memory += len(entry.data)

            # Always keep the entry just written.
            while len(self._cache) > 1 and self._should_evict_locked():
                self._evict_oldest_locked()

    def remove(self, key: str) -> bool:
        with self._lock:
            entry = self._cache.pop(key, None)
            if entry is None:
                return False
            self._current_memory -= len(entry.data)
            return True

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._current_memory = 0

    def memory_usage(self) -> int:
        with self._lock:
            return self._current_memory

    def get_stats(self) -> dict:
        with self._lock:
            total = self._hit_count + self._miss_count
            return {
                'item_count': len(self._cache),
                'memory_usage_mb': self._current_memory / (1024 * 1024),
                'max_memory_mb': self.max_memory_bytes / (1024 * 1024),
                'hits': self._hit_count,
                'misses': self._miss_count,
                'hit_rate_percent': (self._hit_count / total * 100.0) if total else 0.0,
                'evictions': self._evict_count,
            }

    def _should_evict_locked(self) -> bool:
        if self.max_items is not None and len(self._cache) > self.max_items:
            return True
        return self._current_memory > self.max_memory_bytes

    def _evict_oldest_locked(self) -> None:
        key, entry = self._cache.popitem(last=False)
        self._current_memory -= len(entry.data)
        self._evict_count += 1
        logger.debug("[IMG_CACHE] Evicted from memory: %s", key)


class ImageRequest(AsyncOperation):
    """One image download shared by every caller waiting on the same URL."""

    def __init__(self, url: str, cache: "ImageCache"):
        super().__init__(identifier=f"image_{hashlib.md5(url.encode()).hexdigest()[:12]}_{id(self):x}")
        self.url = url
        self._cache = cache
        self._waiters: List[ImageCompletion] = []
        self._waiters_lock = threading.Lock()
        self._delivered = False
        self._result: Optional[bytes] = None
        self._response_lock = threading.Lock()
        self._response: Optional[requests.Response] = None

    def add_completion(self, completion: Optional[ImageCompletion]) -> None:
        if completion is None:
            return
        with self._waiters_lock:
            if not self._delivered:
                self._waiters.append(completion)
                return
            result = self._result
        self._cache.dispatch(completion, result)

    def main(self) -> None:
        data = None
        try:
            data = self._cache.download(self.url, should_continue=lambda: not self.is_cancelled,
                                        on_response=self._track_response)
            if self.is_cancelled:
                logger.debug("[IMG_CACHE] Download cancelled: %s", self.url)
                return
            if data is not None:
                self._cache.set(self.url, data)
        finally:
            with self._response_lock:
                self._response = None
            # Waiters always hear back unless the request was cancelled.
            if not self.is_cancelled:
                self._deliver(data)
            self.finish()

    def on_cancel(self) -> None:
        with self._response_lock:
            response = self._response
        if response is not None:
            response.close()
        if self.interrupted:
            self.finish()

    def _track_response(self, response: requests.Response) -> None:
        with self._response_lock:
            self._response = response
        if self.is_cancelled:
            response.close()

    def _deliver(self, data: Optional[bytes]) -> None:
        with self._waiters_lock:
            self._delivered = True
            self._result = data
            waiters = self._waiters
            self._waiters = []
        for completion in waiters:
            self._cache.dispatch(completion, data)


class ImageCache:
    """Memory + disk image cache with expiring entries.

    Construct one per process and pass it to whoever renders images.
    """

    def __init__(
        self,
        thread_manager: ThreadManager,
        cache_dir: Optional[Path] = None,
        expiration: ExpirationPolicy = ExpirationPolicy.after(DEFAULT_CACHE_EXPIRATION_SECONDS),
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        memory_max_mb: int = DEFAULT_MEMORY_CACHE_MB,
        dispatcher: Optional[Callable[..., None]] = None,
    ):
        self.cache_dir = Path(cache_dir) if cache_dir else default_cache_directory()
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("[IMG_CACHE] Failed to create cache dir %s: %s", self.cache_dir, e)

        self.expiration = expiration
        self.timeout = timeout
        self._session = session or requests.Session()
        self._memory = MemoryImageCache(max_memory_mb=memory_max_mb)
        self._queue = OperationQueue(thread_manager, ThreadPoolType.IMAGE, name="images")
        self._dispatcher = dispatcher or ThreadManager.run_on_ui_thread
        self._inflight: Dict[str, ImageRequest] = {}
        self._inflight_lock = threading.Lock()

        logger.info("[IMG_CACHE] Initialised at %s (expiration=%s)", self.cache_dir,
                    "never" if expiration.seconds is None else f"{expiration.seconds:.0f}s")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, url: str) -> Optional[bytes]:
        """Return cached bytes for ``url`` or None. Never touches the network."""
        now = time.time()
        entry = self._memory.get(url)
        if entry is not None:
            if not self.expiration.is_expired(entry.timestamp, now):
                return entry.data
            logger.debug("[IMG_CACHE] Expired (memory): %s", url)
            self.remove(url)
            return None

        path = self.get_cache_path(url)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("[IMG_CACHE] Cannot stat %s: %s", path.name, e)
            return None

        if self.expiration.is_expired(mtime, now):
            logger.debug("[IMG_CACHE] Expired (disk): %s", url)
            self.remove(url)
            return None

        try:
            data = path.read_bytes()
        except OSError as e:
            logger.warning("[IMG_CACHE] Cannot read %s: %s", path.name, e)
            return None
        if not validate_image_bytes(data):
            logger.info("[IMG_CACHE] Removing corrupt cache file %s", path.name)
            self._safe_unlink(path)
            return None

        self._memory.put(url, CacheEntry(data, mtime))
        return data

    def fetch(self, url: str, completion: Optional[ImageCompletion] = None) -> Optional[ImageRequest]:
        """Get ``url`` from cache or the network.

        A cache hit calls ``completion`` synchronously and returns None.
        Otherwise the download runs on the IMAGE pool and ``completion``
        receives the bytes (or None on failure) on the UI thread. The
        returned request can be cancelled.
        """
        cached = self.get(url)
        if cached is not None:
            if is_verbose_logging():
                logger.debug("[IMG_CACHE] Hit: %s", url)
            if completion is not None:
                completion(cached)
            return None

        with self._inflight_lock:
            request = self._inflight.get(url)
            if request is not None and not request.is_finished and not request.is_cancelled:
                request.add_completion(completion)
                logger.debug("[IMG_CACHE] Joined in-flight download: %s", url)
                return request
            request = ImageRequest(url, self)
            request.add_completion(completion)
            self._inflight[url] = request

        request.add_done_callback(self._forget_inflight)
        self._queue.add_operation(request)
        return request

    def set(self, url: str, data: bytes) -> None:
        """Store ``data`` in memory now and on disk best effort."""
        now = time.time()
        self._memory.put(url, CacheEntry(data, now))
        self._write_to_disk(url, data)

    def remove(self, url: str) -> None:
        """Drop ``url`` from both tiers."""
        self._memory.remove(url)
        self._safe_unlink(self.get_cache_path(url))

    def clear(self) -> int:
        """Remove every cached image. Returns the number of files removed."""
        self._memory.clear()
        removed = 0
        try:
            for f in self.cache_dir.glob("*"):
                if f.is_file():
                    f.unlink()
                    removed += 1
        except OSError as e:
            logger.error("[IMG_CACHE] clear failed: %s", e)
        return removed

    def cancel_all(self) -> None:
        self._queue.cancel_all()

    def get_cache_path(self, url: str) -> Path:
        """Disk location for ``url`` (whether or not it exists)."""
        return self.cache_dir / hashlib.md5(url.encode()).hexdigest()

    def get_stats(self) -> dict:
        stats = self._memory.get_stats()
        with self._inflight_lock:
            stats['in_flight'] = len(self._inflight)
        return stats

    # ------------------------------------------------------------------
    # Internals used by ImageRequest
    # ------------------------------------------------------------------

    def download(self, url: str, should_continue: Callable[[], bool],
                 on_response: Optional[Callable[[requests.Response], None]] = None) -> Optional[bytes]:
        """Download ``url``; None on failure, non-image payload, or abort.

        ``on_response`` receives the streaming response before the body is
        read, so a canceller can close it under a blocked read.
        """
        try:
            resp = self._session.get(url, timeout=self.timeout, stream=True)
            if on_response is not None:
                on_response(resp)
            resp.raise_for_status()
            chunks = []
            for chunk in resp.iter_content(chunk_size=8192):
                if not should_continue():
                    resp.close()
                    return None
                if chunk:
                    chunks.append(chunk)
        except requests.RequestException as e:
            if not should_continue():
                return None
            logger.warning("[IMG_CACHE] Download failed for %s: %s", url, e)
            return None
        except Exception:
            if not should_continue():
                return None
            raise

        data = b"".join(chunks)
        if not validate_image_bytes(data):
            logger.warning("[IMG_CACHE] Not an image payload (%d bytes): %s", len(data), url)
            return None
        logger.debug("[IMG_CACHE] Downloaded %s (%d bytes)", url, len(data))
        return data

    def dispatch(self, completion: ImageCompletion, data: Optional[bytes]) -> None:
        try:
            self._dispatcher(completion, data)
        except Exception as e:
            logger.error("[IMG_CACHE] Completion dispatch failed: %s", e)

    def _write_to_disk(self, url: str, data: bytes) -> None:
        path = self.get_cache_path(url)
        temp = path.with_name(f".tmp.{path.name}.{threading.get_ident()}")
        try:
            temp.write_bytes(data)
            os.replace(str(temp), str(path))
        except OSError as e:
            # Memory tier still serves this session.
            logger.warning("[IMG_CACHE] Disk write failed for %s: %s", path.name, e)
            self._safe_unlink(temp)

    def _forget_inflight(self, request: ImageRequest) -> None:
        with self._inflight_lock:
            if self._inflight.get(request.url) is request:
                del self._inflight[request.url]

    @staticmethod
    def _safe_unlink(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.debug("[IMG_CACHE] Unlink failed for %s: %s", path, e)
