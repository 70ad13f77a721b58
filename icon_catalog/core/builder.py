"""
Chunked construction of the icon catalog.

A full icon theme holds several thousand names and resolving each one touches
the filesystem, so the work is cut into chunks that run as separate scheduler
steps: first the theme folders are read, a chunk of files at a time, then the
names are resolved a chunk at a time. Between two chunks the event loop is
free to handle input.
"""

import logging
import time
from typing import Callable, List, Optional, Sequence, Set, Union

from PyQt6.QtCore import QObject, pyqtSignal

from icon_catalog.core.classifier import classify, classify_bundled
from icon_catalog.core.errors import ItemResolutionError, ProviderUnavailableError
from icon_catalog.core.icon_theme import IconThemeSnapshot
from icon_catalog.models.icon_model import Catalog, IconRecord, sort_records

DEFAULT_CHUNK_SIZE = 400

SnapshotSource = Union[IconThemeSnapshot, Callable[[], IconThemeSnapshot]]


class CatalogBuilder(QObject):
    """Builds one Catalog from an icon theme snapshot, one chunk per step.

    ``snapshot`` may be a snapshot or a zero-argument factory; a factory is
    called on the first step so a failing provider is reported like any other
    build failure.
    """

    progress_updated = pyqtSignal(int, int)  # processed names, total names
    build_finished = pyqtSignal(object)  # Catalog
    build_failed = pyqtSignal(str)  # error message

    def __init__(self, snapshot: SnapshotSource, scheduler, chunk_size: int = DEFAULT_CHUNK_SIZE, parent=None):
        super().__init__(parent)
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self._snapshot_source = snapshot
        self.snapshot: Optional[IconThemeSnapshot] = snapshot if isinstance(snapshot, IconThemeSnapshot) else None
        self.scheduler = scheduler
        self.chunk_size = chunk_size

        self.is_cancelled = False
        self.is_finished = False
        self.skipped_count = 0

        self._task = None
        self._index_steps = None
        self._names: Optional[Sequence[str]] = None
        self._cursor = 0
        self._records: List[IconRecord] = []
        self._seen_bundled: Set[str] = set()
        self._seen_provider: Set[str] = set()
        self._started_at = None

    @property
    def processed(self) -> int:
        return self._cursor

    @property
    def total(self) -> int:
        return len(self._names) if self._names is not None else 0

    def start(self):
        """Schedule the build; returns the scheduler's step handle."""
        if self._task is not None:
            raise RuntimeError("CatalogBuilder can only be started once")

        self._started_at = time.monotonic()
        logging.info(f"Starting icon catalog build (chunk size {self.chunk_size})")
        self._task = self.scheduler.schedule(self.step, "icon-catalog-build")
        return self._task

    def cancel(self):
        """Stop scheduling chunks and drop everything gathered so far."""
        if self.is_finished or self.is_cancelled:
            return

        self.is_cancelled = True
        if self._task is not None:
            self._task.cancel()
        self._records = []
        logging.info(f"Icon catalog build cancelled after {self._cursor}/{self.total} names")

    def step(self) -> bool:
        """Process the next chunk. Returns True while more chunks remain."""
        if self.is_cancelled or self.is_finished:
            return False

        try:
            if self._index_steps is None:
                self._prepare()

            if self._names is None:
                if self._index_chunk():
                    return True
                if self.is_cancelled:
                    return False
                self._names = self.snapshot.names()
                logging.debug(f"Icon theme lists {len(self._names)} names, {len(self._records)} bundled icons")

            end = min(self._cursor + self.chunk_size, len(self._names))
            for name in self._names[self._cursor:end]:
                if self.is_cancelled:
                    return False
                self._add_provider_icon(name)
            self._cursor = end

        except ProviderUnavailableError as e:
            self._fail(f"Icon theme unavailable: {e}")
            return False
        except Exception as e:
            logging.error(f"Icon catalog build failed: {e}", exc_info=True)
            self._fail(str(e))
            return False

        logging.debug(f"Icon catalog progress: {self._cursor}/{len(self._names)}")
        self.progress_updated.emit(self._cursor, len(self._names))

        if self._cursor < len(self._names):
            return True

        if not self.is_cancelled:
            self._finish()
        return False

    def _prepare(self):
        if self.snapshot is None:
            self.snapshot = self._snapshot_source()

        # Bundled icons go first; the final sort makes this invisible to consumers
        for name, display_icon in self.snapshot.bundled_entries():
            if name in self._seen_bundled:
                continue
            self._seen_bundled.add(name)
            self._records.append(IconRecord(name, display_icon, classify_bundled(name)))

        self._index_steps = iter(self.snapshot.index_steps())

    def _index_chunk(self) -> bool:
        """Read theme folders until about one chunk of files was seen. True while folders remain."""
        scanned = 0
        for found in self._index_steps:
            if self.is_cancelled:
                return False
            scanned += found
            if scanned >= self.chunk_size:
                return True
        return False

    def _add_provider_icon(self, name: str):
        if name in self._seen_provider:
            return

        try:
            handle = self.snapshot.resolve(name)
        except ItemResolutionError as e:
            self.skipped_count += 1
            logging.debug(f"Skipping icon: {e}")
            return

        self._seen_provider.add(name)
        self._records.append(IconRecord(name, handle.display_icon, classify(handle.path)))

    def _finish(self):
        catalog = Catalog(sort_records(self._records))
        self._records = []
        self.is_finished = True

        elapsed_ms = int((time.monotonic() - (self._started_at or time.monotonic())) * 1000)
        logging.info(f"Build icon catalog time: {elapsed_ms}ms")
        logging.info(f"Total icons gathered: {len(catalog)} ({self.skipped_count} skipped)")
        self.build_finished.emit(catalog)

    def _fail(self, message: str):
        self._records = []
        self.is_finished = True
        logging.error(message)
        self.build_failed.emit(message)
