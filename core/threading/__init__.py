"""Worker pools, UI dispatch and cancellable operations."""

from .manager import ThreadManager, ThreadPoolType, TaskResult, Task
from .operation import AsyncOperation, OperationQueue, OperationState

__all__ = [
    'ThreadManager', 'ThreadPoolType', 'TaskResult', 'Task',
    'AsyncOperation', 'OperationQueue', 'OperationState',
]
