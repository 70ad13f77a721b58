"""
Icon catalog for desktop icon pickers.

Enumerates the host icon theme, classifies every icon into a category and
serves the sorted result through a memoized cache that never blocks the
Qt event loop.
"""

__version__ = "1.0.0"
