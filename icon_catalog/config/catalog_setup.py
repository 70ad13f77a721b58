"""Builds a ready-to-use CatalogCache from the loaded configuration."""

import logging

from icon_catalog.core.builder import DEFAULT_CHUNK_SIZE
from icon_catalog.core.cache import CatalogCache
from icon_catalog.core.icon_theme import DEFAULT_ICON_SIZE, FreedesktopIconTheme, IconThemeSnapshot
from icon_catalog.ui.icon_loader import ICON_DIR, register_bundled_icons


def create_icon_theme(config):
    """Icon theme provider for the configured theme, extra search paths first."""
    theme_config = config.get("icon_theme", {})
    extra_paths = theme_config.get("search_paths") or []

    if not theme_config.get("use_system_paths", True):
        return FreedesktopIconTheme(theme_config.get("theme_name"), extra_paths, fallback_paths=[])

    provider = FreedesktopIconTheme(theme_config.get("theme_name"))
    if extra_paths:
        provider = provider.with_search_paths(list(extra_paths) + list(provider.search_paths), provider.fallback_paths)
    return provider


def create_catalog_cache(config, scheduler=None, parent=None):
    theme_config = config.get("icon_theme", {})
    catalog_config = config.get("catalog", {})

    bundled_root = str(theme_config.get("bundled_icon_dir") or ICON_DIR)
    icon_size = theme_config.get("icon_size", DEFAULT_ICON_SIZE)
    register_bundled_icons(bundled_root)

    def take_snapshot():
        # Provider follows the config as it is when the build starts
        return IconThemeSnapshot(create_icon_theme(config), bundled_root, icon_size)

    cache = CatalogCache(
        take_snapshot,
        scheduler,
        chunk_size=catalog_config.get("chunk_size", DEFAULT_CHUNK_SIZE),
        step_interval_ms=catalog_config.get("step_interval_ms", 0),
        parent=parent,
    )

    if catalog_config.get("prewarm"):
        cache.prewarm()

    logging.debug(f"Icon catalog cache created (bundled icons: {bundled_root}, icon size {icon_size})")
    return cache
