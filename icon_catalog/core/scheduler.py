"""
Cooperative idle-time stepping on the Qt event loop.

A step is a callable returning True while it has more work. QtIdleScheduler
runs one step per active task on every tick of a zero-interval QTimer, so the
event loop processes input and paints between steps.
"""

import logging
from typing import Callable, List

from PyQt6.QtCore import QMutex, QMutexLocker, QObject, QTimer, pyqtSignal


class ScheduledStep:
    """Handle for a repeating step. cancel() stops it before its next run."""

    def __init__(self, step: Callable[[], bool], name: str = ""):
        self._step = step
        self.name = name or getattr(step, "__name__", "step")
        self.active = True
        self.runs = 0

    def __repr__(self):
        return f"ScheduledStep({self.name!r}, active={self.active}, runs={self.runs})"

    def run_once(self) -> bool:
        """Run the step once; returns whether it wants to run again."""
        if not self.active:
            return False

        self.runs += 1
        try:
            keep_going = bool(self._step())
        except Exception as e:
            logging.error(f"Scheduled step '{self.name}' failed: {e}", exc_info=True)
            keep_going = False

        if not keep_going:
            self.active = False
        return self.active

    def cancel(self):
        self.active = False


class QtIdleScheduler(QObject):
    """Runs scheduled steps from the thread that owns the scheduler.

    schedule() may be called from any thread; the timer is always started in
    the scheduler's own thread through a queued signal.
    """

    _task_added = pyqtSignal()

    def __init__(self, interval_ms: int = 0, parent=None):
        super().__init__(parent)
        self._mutex = QMutex()
        self._tasks: List[ScheduledStep] = []

        self._timer = QTimer(self)
        self._timer.setInterval(max(0, int(interval_ms)))
        self._timer.timeout.connect(self._run_pending)
        self._task_added.connect(self._ensure_running)

    def schedule(self, step: Callable[[], bool], name: str = "") -> ScheduledStep:
        task = ScheduledStep(step, name)
        with QMutexLocker(self._mutex):
            self._tasks.append(task)
        self._task_added.emit()
        return task

    def cancel_all(self):
        with QMutexLocker(self._mutex):
            tasks = list(self._tasks)
            self._tasks.clear()
        for task in tasks:
            task.cancel()
        self._timer.stop()

    def _ensure_running(self):
        if not self._timer.isActive():
            self._timer.start()

    def _run_pending(self):
        with QMutexLocker(self._mutex):
            tasks = [task for task in self._tasks if task.active]

        # Steps run without the lock so they may schedule or cancel work
        for task in tasks:
            task.run_once()

        with QMutexLocker(self._mutex):
            self._tasks = [task for task in self._tasks if task.active]
            idle = not self._tasks
        if idle:
            self._timer.stop()
