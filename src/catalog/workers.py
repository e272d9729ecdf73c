# catalog/workers.py
from __future__ import annotations

import logging
from typing import Any, Callable

from PySide6.QtCore import QObject, QThread, Signal, Slot

logger = logging.getLogger(__name__)


class CatalogTask(QThread):
    succeeded = Signal(object, object)   # callback, result
    failed = Signal(object, object)      # callback, exception

    def __init__(self, fn: Callable[[], Any], on_success, on_error, parent=None):
        super().__init__(parent)
        self.fn = fn
        self.on_success = on_success
        self.on_error = on_error

    def run(self):
        try:
            result = self.fn()
        except Exception as e:
            # delivered as data; the owner decides what the user sees
            logger.debug("Catalog task failed: %r", e)
            self.failed.emit(self.on_error, e)
            return
        self.succeeded.emit(self.on_success, result)


class CatalogTaskRunner(QObject):
    """
    Runs blocking catalog calls on worker threads.

    Results come back through queued connections to this object, so the
    callbacks always run on the thread that owns the runner (the UI thread).
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._tasks: set[CatalogTask] = set()

    def submit(self, fn: Callable[[], Any], on_success, on_error) -> None:
        task = CatalogTask(fn, on_success, on_error)
        task.succeeded.connect(self._deliver)
        task.failed.connect(self._deliver)
        task.finished.connect(self._on_task_finished)
        self._tasks.add(task)
        task.start()

    def fire_and_forget(self, fn: Callable[[], Any], what: str = "background call") -> None:
        def _log_failure(e):
            logger.debug("%s failed: %s", what, e)

        self.submit(fn, lambda _result: None, _log_failure)

    @Slot(object, object)
    def _deliver(self, callback, payload) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception:
            logger.exception("Catalog callback raised")

    @Slot()
    def _on_task_finished(self) -> None:
        task = self.sender()
        if task in self._tasks:
            # finished is emitted just before the thread exits
            task.wait()
            self._tasks.discard(task)
            task.deleteLater()

    def pending(self) -> int:
        return len(self._tasks)
