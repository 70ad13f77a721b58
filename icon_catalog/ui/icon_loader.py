"""
Icon lookup for catalog records and registration of the bundled icon set.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from PyQt6.QtGui import QIcon

from icon_catalog.core.icon_theme import BUNDLED_ICON_SUBDIR
from icon_catalog.models.icon_model import IconRecord

ICON_DIR = Path(__file__).resolve().parent.parent / "assets" / "icons"


def register_bundled_icons(icon_dir=ICON_DIR) -> bool:
    """Make the bundled icons resolvable by name through QIcon.fromTheme()."""
    folder = str(Path(icon_dir) / BUNDLED_ICON_SUBDIR)
    if not os.path.isdir(folder):
        logging.warning("Bundled icon folder %s does not exist", folder)
        return False

    paths = QIcon.fallbackSearchPaths()
    if folder not in paths:
        QIcon.setFallbackSearchPaths(paths + [folder])
    return True


@lru_cache(maxsize=None)
def _load_icon(display_icon: str) -> Optional[QIcon]:
    if os.path.isabs(display_icon):
        if os.path.exists(display_icon):
            return QIcon(display_icon)
        logging.warning("Icon file '%s' not found", display_icon)
        return None

    icon = QIcon.fromTheme(display_icon)
    return None if icon.isNull() else icon


def record_icon(record: IconRecord, fallback: Optional[QIcon] = None) -> QIcon:
    """
    Return the icon for a catalog record, falling back to the provided QIcon (or empty icon).
    """

    icon = _load_icon(record.display_icon)
    if icon is not None and not icon.isNull():
        return icon
    return fallback if fallback is not None else QIcon()


def clear_icon_cache():
    """Forget loaded icons, e.g. after the icon theme changed."""
    _load_icon.cache_clear()
