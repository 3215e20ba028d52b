"""
Completion and cancellation hooks for the task draining a scanner.
"""

import threading
from typing import Callable

from loguru import logger

CompletionListener = Callable[["TaskContext"], None]


class TaskContext:
    """Lifecycle of one worker task.

    Resources register a completion listener; the worker (or whoever cancels
    it) calls :meth:`mark_completed` or :meth:`cancel`, and every listener
    runs exactly once. A listener added after completion runs immediately.
    """

    def __init__(self, partition_index: int | None = None):
        self.partition_index = partition_index
        self._lock = threading.Lock()
        self._listeners: list[CompletionListener] = []
        self._completed = False
        self._cancelled = False

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def add_completion_listener(self, listener: CompletionListener) -> "TaskContext":
        with self._lock:
            if not self._completed:
                self._listeners.append(listener)
                return self
        self._run(listener)
        return self

    def mark_completed(self) -> None:
        with self._lock:
            if self._completed:
                return
            self._completed = True
            listeners, self._listeners = self._listeners, []
        for listener in listeners:
            self._run(listener)

    def cancel(self) -> None:
        """Flag the task as cancelled and run the completion listeners now."""
        self._cancelled = True
        logger.debug(f"Task for partition {self.partition_index} cancelled")
        self.mark_completed()

    def _run(self, listener: CompletionListener) -> None:
        try:
            listener(self)
        except Exception as e:
            logger.error(f"Error in completion listener of partition {self.partition_index}: {e}")
