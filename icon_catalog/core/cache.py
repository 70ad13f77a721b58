"""
Memoized access to the icon catalog.

CatalogCache keeps at most one CatalogBuilder running. Every get() issued
while a build is in flight receives the same Future, and once the catalog is
published every later get() receives the same completed Future wrapping the
same Catalog object. Each build reads the icon theme afresh, so invalidate()
followed by get() picks up icons installed in the meantime.
"""

import logging
from concurrent.futures import Future
from typing import Optional

from PyQt6.QtCore import QMutex, QMutexLocker, QObject, Qt, pyqtSignal

from icon_catalog.core.builder import CatalogBuilder, DEFAULT_CHUNK_SIZE, SnapshotSource
from icon_catalog.core.errors import BuildCancelledError
from icon_catalog.core.icon_theme import IconThemeSnapshot
from icon_catalog.core.scheduler import QtIdleScheduler
from icon_catalog.models.icon_model import BuildPhase, Catalog


class CatalogCache(QObject):
    """Owner of the build state and of the published catalog."""

    catalog_ready = pyqtSignal(object)  # Catalog
    build_progress = pyqtSignal(int, int)  # processed, total
    state_changed = pyqtSignal(str)  # BuildPhase value

    def __init__(self, snapshot_source: SnapshotSource, scheduler=None,
                 chunk_size: int = DEFAULT_CHUNK_SIZE, step_interval_ms: int = 0, parent=None):
        super().__init__(parent)
        self._snapshot_source = snapshot_source
        self._owns_scheduler = scheduler is None
        if self._owns_scheduler:
            scheduler = QtIdleScheduler(step_interval_ms, parent=self)
        self._scheduler = scheduler
        self.chunk_size = chunk_size

        self._mutex = QMutex()
        self._builder: Optional[CatalogBuilder] = None
        self._future: Optional[Future] = None
        self._ready_future: Optional[Future] = None
        self._catalog: Optional[Catalog] = None
        # Future of a cancelled build, handed to the next build so its waiters still get a result
        self._carried_over: Optional[Future] = None
        self._prewarm_task = None
        self._build_count = 0

    @property
    def state(self) -> BuildPhase:
        with QMutexLocker(self._mutex):
            if self._catalog is not None:
                return BuildPhase.READY
            if self._builder is not None:
                return BuildPhase.BUILDING
            return BuildPhase.IDLE

    @property
    def catalog(self) -> Optional[Catalog]:
        with QMutexLocker(self._mutex):
            return self._catalog

    @property
    def build_count(self) -> int:
        """Number of builds started since the cache was created."""
        with QMutexLocker(self._mutex):
            return self._build_count

    @property
    def scheduler(self):
        return self._scheduler

    def get(self) -> Future:
        """Return a Future resolving to the catalog, starting a build if needed."""
        with QMutexLocker(self._mutex):
            if self._ready_future is not None:
                return self._ready_future
            if self._future is not None:
                return self._future

            future = self._carried_over if self._carried_over is not None else Future()
            self._carried_over = None
            if not future.running():
                future.set_running_or_notify_cancel()

            builder = CatalogBuilder(self._take_snapshot, self._scheduler, self.chunk_size)
            builder.progress_updated.connect(self.build_progress, type=Qt.ConnectionType.DirectConnection)
            builder.build_finished.connect(
                lambda catalog, b=builder: self._on_build_finished(b, catalog),
                type=Qt.ConnectionType.DirectConnection,
            )
            builder.build_failed.connect(
                lambda message, b=builder: self._on_build_failed(b, message),
                type=Qt.ConnectionType.DirectConnection,
            )

            self._builder = builder
            self._future = future
            self._build_count += 1
            build_number = self._build_count

        logging.debug(f"Icon catalog build #{build_number} requested")
        self.state_changed.emit(BuildPhase.BUILDING.value)
        # Started outside the lock: a synchronous scheduler may finish the build right here
        builder.start()
        return future

    def invalidate(self):
        """Drop the published catalog and cancel any build in flight.

        Callers still waiting on a cancelled build are not woken with a partial
        result; their Future is completed by the next build instead.
        """
        with QMutexLocker(self._mutex):
            builder = self._builder
            had_state = builder is not None or self._catalog is not None
            if self._future is not None:
                self._carried_over = self._future
            self._builder = None
            self._future = None
            self._ready_future = None
            self._catalog = None
            prewarm_task = self._prewarm_task
            self._prewarm_task = None

        if prewarm_task is not None:
            prewarm_task.cancel()
        if builder is not None:
            builder.cancel()
        if had_state:
            logging.info("Icon catalog invalidated")
            self.state_changed.emit(BuildPhase.IDLE.value)

    def prewarm(self):
        """Start building on the next idle tick so the catalog is ready when the picker opens."""
        with QMutexLocker(self._mutex):
            if self._prewarm_task is not None or self._builder is not None or self._catalog is not None:
                return
            self._prewarm_task = self._scheduler.schedule(self._prewarm_step, "icon-catalog-prewarm")

    def close(self):
        """Teardown: cancel all scheduled work and fail callers still waiting."""
        self.invalidate()
        if self._owns_scheduler:
            self._scheduler.cancel_all()
        with QMutexLocker(self._mutex):
            pending = self._carried_over
            self._carried_over = None
        if pending is not None and not pending.done():
            pending.set_exception(BuildCancelledError("Icon catalog cache was closed"))

    def _take_snapshot(self) -> IconThemeSnapshot:
        source = self._snapshot_source
        snapshot = source() if callable(source) else source
        # A rebuild must not reuse names or folder indexes read by an earlier build
        return snapshot.refreshed()

    def _prewarm_step(self) -> bool:
        with QMutexLocker(self._mutex):
            self._prewarm_task = None
        self.get()
        return False

    def _on_build_finished(self, builder: CatalogBuilder, catalog: Catalog):
        with QMutexLocker(self._mutex):
            if builder is not self._builder:
                return
            future = self._future
            self._builder = None
            self._future = None
            self._catalog = catalog
            self._ready_future = future

        future.set_result(catalog)
        self.state_changed.emit(BuildPhase.READY.value)
        self.catalog_ready.emit(catalog)

    def _on_build_failed(self, builder: CatalogBuilder, message: str):
        with QMutexLocker(self._mutex):
            if builder is not self._builder:
                return
            future = self._future
            self._builder = None
            self._future = None

        logging.warning(f"Icon catalog unavailable, serving an empty catalog: {message}")
        future.set_result(Catalog())
        self.state_changed.emit(BuildPhase.IDLE.value)
