"""
Core catalog machinery.

- icon_theme: icon theme provider and per-build snapshot
- classifier: path to category classification
- scheduler: cooperative idle-time stepping on the Qt event loop
- builder: chunked catalog construction
- cache: memoized, single-flight access to the catalog
- filtering: category/search predicate over a catalog
"""

from .builder import CatalogBuilder, DEFAULT_CHUNK_SIZE
from .cache import CatalogCache
from .classifier import classify, classify_bundled
from .errors import BuildCancelledError, IconCatalogError, ItemResolutionError, ProviderUnavailableError
from .filtering import filter_catalog, matches
from .icon_theme import FreedesktopIconTheme, IconHandle, IconThemeProvider, IconThemeSnapshot
from .scheduler import QtIdleScheduler, ScheduledStep

__all__ = [
    'CatalogBuilder',
    'DEFAULT_CHUNK_SIZE',
    'CatalogCache',
    'classify',
    'classify_bundled',
    'BuildCancelledError',
    'IconCatalogError',
    'ItemResolutionError',
    'ProviderUnavailableError',
    'filter_catalog',
    'matches',
    'FreedesktopIconTheme',
    'IconHandle',
    'IconThemeProvider',
    'IconThemeSnapshot',
    'QtIdleScheduler',
    'ScheduledStep',
]
