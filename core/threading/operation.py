"""
Cancellable asynchronous units of work and the queue that runs them.

An AsyncOperation moves PENDING -> RUNNING -> FINISHED, or through CANCELLED
on its way to FINISHED. All state reads and writes happen under one lock so
``is_executing``/``is_finished`` are always observed as a consistent pair.
Completion is observed through ``add_done_callback`` or ``wait``.

Operations may depend on other operations. The OperationQueue only hands an
operation to the shared ThreadManager pool once every dependency has
finished, which gives strict FIFO order along a dependency chain.
"""
import threading
import uuid
from enum import Enum, auto
from typing import Callable, Dict, List, Optional

from core.logging.logger import get_logger, is_verbose_logging
from core.threading.manager import ThreadManager, ThreadPoolType

logger = get_logger(__name__)


class OperationState(Enum):
    """Lifecycle states of an AsyncOperation."""
    PENDING = auto()
    RUNNING = auto()
    CANCELLED = auto()
    FINISHED = auto()


class AsyncOperation:
    """A unit of asynchronous work.

    ``work`` receives the operation itself and must eventually call
    ``finish()``; subclasses may override ``main()`` instead.
    """

    def __init__(self, work: Optional[Callable[["AsyncOperation"], None]] = None,
                 identifier: Optional[str] = None):
        self.identifier = identifier or f"op_{uuid.uuid4().hex[:8]}"
        self._work = work
        self._lock = threading.Lock()
        self._state = OperationState.PENDING
        self._cancelled = False
        self._interrupted = False
        self._finished_event = threading.Event()
        self._done_callbacks: List[Callable[["AsyncOperation"], None]] = []
        self._dependencies: List["AsyncOperation"] = []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.identifier} {self.state.name}>"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> OperationState:
        with self._lock:
            return self._state

    @property
    def is_executing(self) -> bool:
        with self._lock:
            return self._state is OperationState.RUNNING

    @property
    def is_finished(self) -> bool:
        with self._lock:
            return self._state is OperationState.FINISHED

    @property
    def is_cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    @property
    def interrupted(self) -> bool:
        """True when cancel() arrived while the operation was running."""
        with self._lock:
            return self._interrupted

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def add_dependency(self, operation: "AsyncOperation") -> None:
        """Do not start until ``operation`` has finished, whatever its outcome."""
        if operation is self:
            raise ValueError("An operation cannot depend on itself")
        with self._lock:
            if self._state is not OperationState.PENDING:
                raise RuntimeError(f"Cannot add dependency to {self._state.name} operation")
            self._dependencies.append(operation)

    @property
    def dependencies(self) -> List["AsyncOperation"]:
        with self._lock:
            return list(self._dependencies)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run the operation. Cancelled operations finish without running."""
        with self._lock:
            if self._state is OperationState.FINISHED:
                return
            if self._state is OperationState.RUNNING:
                logger.warning("[OPQ] %s started twice, ignoring", self.identifier)
                return
            skip = self._cancelled
            # Dependencies only gate the start; drop them so chains can be collected.
            self._dependencies = []
            if not skip:
                self._state = OperationState.RUNNING

        if skip:
            logger.debug("[OPQ] %s cancelled before start", self.identifier)
            self.finish()
            return

        try:
            self.main()
        except Exception as e:
            logger.exception("[OPQ] %s raised in main(): %s", self.identifier, e)
            self.finish()

    def main(self) -> None:
        if self._work is not None:
            self._work(self)
        else:
            self.finish()

    def cancel(self) -> bool:
        """Cancel the operation. Returns False if it had already finished."""
        with self._lock:
            if self._state is OperationState.FINISHED:
                return False
            already = self._cancelled
            if not already:
                self._interrupted = self._state is OperationState.RUNNING
            self._cancelled = True
            self._state = OperationState.CANCELLED
        if not already:
            logger.debug("[OPQ] %s cancelled", self.identifier)
            self.on_cancel()
        return True

    def on_cancel(self) -> None:
        """Hook for subclasses to abort in-flight work."""

    def finish(self) -> None:
        """Mark the operation finished and notify observers. Idempotent."""
        with self._lock:
            if self._state is OperationState.FINISHED:
                return
            self._state = OperationState.FINISHED
            callbacks = self._done_callbacks
            self._done_callbacks = []
        self._finished_event.set()

        for callback in callbacks:
            self._invoke_callback(callback)

    # ------------------------------------------------------------------
    # Completion observation
    # ------------------------------------------------------------------

    def add_done_callback(self, callback: Callable[["AsyncOperation"], None]) -> None:
        """Call ``callback(operation)`` once finished (immediately if already)."""
        with self._lock:
            if self._state is not OperationState.FINISHED:
                self._done_callbacks.append(callback)
                return
        self._invoke_callback(callback)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until finished. Returns False on timeout."""
        return self._finished_event.wait(timeout)

    def _invoke_callback(self, callback: Callable[["AsyncOperation"], None]) -> None:
        try:
            callback(self)
        except Exception as e:
            logger.error("[OPQ] Done callback for %s failed: %s", self.identifier, e)


class OperationQueue:
    """Runs AsyncOperations on a ThreadManager pool, honouring dependencies."""

    def __init__(self, thread_manager: ThreadManager,
                 pool_type: ThreadPoolType = ThreadPoolType.NETWORK,
                 name: str = "default"):
        self._thread_manager = thread_manager
        self._pool_type = pool_type
        self.name = name
        self._lock = threading.Lock()
        self._operations: Dict[str, AsyncOperation] = {}

    @property
    def operation_count(self) -> int:
        with self._lock:
            return len(self._operations)

    @property
    def operations(self) -> List[AsyncOperation]:
        with self._lock:
            return list(self._operations.values())

    def add_operation(self, operation: AsyncOperation) -> None:
        """Schedule ``operation`` to start once its dependencies have finished."""
        with self._lock:
            if operation.identifier in self._operations:
                raise ValueError(f"Operation {operation.identifier} already queued")
            self._operations[operation.identifier] = operation
        operation.add_done_callback(self._forget)

        pending = [dep for dep in operation.dependencies if not dep.is_finished]
        if not pending:
            self._submit(operation)
            return

        remaining = [len(pending)]
        remaining_lock = threading.Lock()

        def _dependency_done(_dep: AsyncOperation) -> None:
            with remaining_lock:
                remaining[0] -= 1
                ready = remaining[0] == 0
            if ready:
                self._submit(operation)

        if is_verbose_logging():
            logger.debug("[OPQ] %s waiting on %d dependencies", operation.identifier, len(pending))
        for dep in pending:
            dep.add_done_callback(_dependency_done)

    def add_work(self, work: Callable[[AsyncOperation], None]) -> AsyncOperation:
        """Wrap ``work`` in an AsyncOperation and schedule it."""
        operation = AsyncOperation(work)
        self.add_operation(operation)
        return operation

    def cancel_all(self) -> None:
        for operation in self.operations:
            operation.cancel()

    def _submit(self, operation: AsyncOperation) -> None:
        if self._thread_manager.is_shutdown:
            logger.warning("[OPQ] %s dropped: thread manager shut down", operation.identifier)
            operation.cancel()
            operation.finish()
            return
        self._thread_manager.submit_task(
            self._pool_type, operation.start, task_id=operation.identifier
        )

    def _forget(self, operation: AsyncOperation) -> None:
        with self._lock:
            self._operations.pop(operation.identifier, None)
