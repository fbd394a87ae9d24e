"""
Thread Manager for the feed core.

Centralized thread management with bounded pools for feed requests and
image downloads, plus dispatch of callbacks onto the Qt UI thread.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional
from PySide6.QtCore import QObject, QThread, QCoreApplication, Signal
from core.logging.logger import get_logger, is_verbose_logging

logger = get_logger(__name__)


# UI-thread invoker for reliable main thread dispatch
class _UiInvoker(QObject):
    invoke = Signal(object, object, object)

    def __init__(self):
        super().__init__()
        self.invoke.connect(self._on_invoke)

    def _on_invoke(self, func, args, kwargs):
        try:
            func(*args, **(kwargs or {}))
        except Exception as e:
            logger.exception("UI invoker callable raised: %s", e)


_ui_invoker: Optional[_UiInvoker] = None
_ui_invoker_lock = threading.Lock()


def _ensure_ui_invoker() -> Optional[_UiInvoker]:
    global _ui_invoker
    app = QCoreApplication.instance()
    if app is None:
        return None
    with _ui_invoker_lock:
        if _ui_invoker is None:
            inv = _UiInvoker()
            inv.moveToThread(app.thread())
            _ui_invoker = inv
        return _ui_invoker


class ThreadPoolType(Enum):
    """Thread pool types for feed core workloads"""
    NETWORK = "network"     # Feed page requests
    IMAGE = "image"         # Image downloads and disk cache writes


@dataclass
class TaskResult:
    """Container for task execution results"""
    success: bool
    result: Any = None
    error: Optional[Exception] = None
    execution_time: float = 0.0
    task_id: Optional[str] = None


class Task:
    """Wrapper for executable tasks with metadata"""
    def __init__(self, func: Callable, *args, task_id: str = None, **kwargs):
        self.func = func
        self.args = args
        self.kwargs = kwargs
        self.task_id = task_id or f"task_{id(self)}"
        self.created_at = time.time()
        self.pool_type: Optional[ThreadPoolType] = None


class ThreadManager:
    """
    Centralized thread manager for the feed core.

    Features:
    - Separate NETWORK and IMAGE thread pools (bounded)
    - Task result callbacks
    - Per-pool submitted/completed/failed statistics
    - UI thread dispatch utilities
    """
    def __init__(self, config: Optional[Dict[ThreadPoolType, int]] = None):
        """
        Initialize thread manager.

        Args:
            config: Dictionary mapping ThreadPoolType to max_workers count
        """
        self._shutdown = False
        default_config = {
            ThreadPoolType.NETWORK: 4,
            ThreadPoolType.IMAGE: 4,
        }
        self.config = {**default_config, **(config or {})}

        self._lock = threading.Lock()
        self._executors: Dict[ThreadPoolType, ThreadPoolExecutor] = {}
        self._stats = {pool_type: {'submitted': 0, 'completed': 0, 'failed': 0}
                       for pool_type in ThreadPoolType}

        self._initialize_pools()

        logger.info("ThreadManager initialized with NETWORK=%d, IMAGE=%d workers",
                    self.config[ThreadPoolType.NETWORK], self.config[ThreadPoolType.IMAGE])

    def _initialize_pools(self):
        """Initialize thread pools based on configuration."""
        for pool_type, max_workers in self.config.items():
            try:
                self._executors[pool_type] = ThreadPoolExecutor(
                    max_workers=max_workers,
                    thread_name_prefix=f"{pool_type.value}_pool"
                )
                logger.debug("Initialized %s pool with %d workers", pool_type.value, max_workers)
            except Exception as e:
                logger.error("Failed to initialize %s pool: %s", pool_type.value, e)
                self.shutdown()
                raise RuntimeError(f"Failed to initialize {pool_type.value} thread pool") from e

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def submit_task(self, pool_type: ThreadPoolType, func: Callable, *args,
                    task_id: str = None,
                    callback: Callable[[TaskResult], None] = None, **kwargs) -> str:
        """
        Submit a task to the specified thread pool.

        Args:
            pool_type: Which thread pool to use
            func: Function to execute
            *args: Positional arguments for func
            task_id: Optional unique identifier
            callback: Optional callback for result (runs on the worker thread)
            **kwargs: Keyword arguments for func

        Returns:
            str: Task ID for tracking
        """
        if self._shutdown:
            raise RuntimeError("Thread manager is shut down")

        task = Task(func, *args, task_id=task_id, **kwargs)
        task.pool_type = pool_type
        executor = self._executors[pool_type]

        def wrapped_func():
            start_time = time.time()
            try:
                result = task.func(*task.args, **task.kwargs)
                task_result = TaskResult(
                    success=True,
                    result=result,
                    execution_time=time.time() - start_time,
                    task_id=task.task_id
                )
                self._record(pool_type, 'completed')
            except Exception as e:
                task_result = TaskResult(
                    success=False,
                    error=e,
                    execution_time=time.time() - start_time,
                    task_id=task.task_id
                )
                logger.error("Task %s failed: %s", task.task_id, e)
                self._record(pool_type, 'failed')

            if callback:
                try:
                    callback(task_result)
                except Exception as e:
                    logger.error("Callback for task %s failed: %s", task.task_id, e)

            return task_result

        self._record(pool_type, 'submitted')
        executor.submit(wrapped_func)

        if is_verbose_logging():
            logger.debug("Submitted task %s to %s pool", task.task_id, pool_type.value)
        return task.task_id

    def submit_network_task(self, func: Callable, *args, **kwargs) -> str:
        """Convenience method for NETWORK pool submissions"""
        return self.submit_task(ThreadPoolType.NETWORK, func, *args, **kwargs)

    def submit_image_task(self, func: Callable, *args, **kwargs) -> str:
        """Convenience method for IMAGE pool submissions"""
        return self.submit_task(ThreadPoolType.IMAGE, func, *args, **kwargs)

    def get_pool_stats(self) -> Dict[str, Dict[str, int]]:
        """Get statistics for all thread pools"""
        with self._lock:
            return {pool_type.value: stats.copy()
                    for pool_type, stats in self._stats.items()}

    def shutdown(self, wait: bool = True):
        """
        Shutdown all thread pools.

        Args:
            wait: Whether to wait for running tasks; queued tasks are
                cancelled when False.
        """
        if self._shutdown:
            return
        self._shutdown = True
        logger.info("Shutting down thread manager...")

        for pool_type, executor in self._executors.items():
            try:
                executor.shutdown(wait=wait, cancel_futures=not wait)
            except Exception as e:
                logger.error("Error shutting down %s pool: %s", pool_type.value, e)

        self._executors.clear()
        logger.info("Thread manager shut down complete")

    def _record(self, pool_type: ThreadPoolType, kind: str) -> None:
        with self._lock:
            self._stats[pool_type][kind] += 1

    # UI dispatch utilities ----------------------------------------------
    @staticmethod
    def run_on_ui_thread(func: Callable, *args, **kwargs) -> None:
        """Dispatch a callable to the Qt UI thread.

        Calls made on the UI thread run immediately; calls from workers are
        queued in submission order. Without a Qt application there is no UI
        thread, so the callable runs inline on the caller.
        """
        app = QCoreApplication.instance()
        if app is None:
            logger.debug("[THREADING] run_on_ui_thread without QCoreApplication, running inline")
            func(*args, **kwargs)
            return

        if QThread.currentThread() is app.thread():
            func(*args, **kwargs)
            return

        inv = _ensure_ui_invoker()
        if inv is None:
            raise RuntimeError("UI invoker unavailable")
        inv.invoke.emit(func, args, kwargs)
