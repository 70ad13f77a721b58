"""
Tests for the Qt item models and icon loading.
"""

from pathlib import Path

import pytest
from PyQt6.QtCore import QModelIndex, Qt
from PyQt6.QtGui import QIcon

from icon_catalog.core.cache import CatalogCache
from icon_catalog.core.icon_theme import IconThemeSnapshot
from icon_catalog.models.icon_model import Catalog, Category, FilterQuery, IconRecord
from icon_catalog.ui.catalog_model import IconCatalogModel, IconFilterProxyModel
from icon_catalog.ui.icon_loader import clear_icon_cache, record_icon, register_bundled_icons

from conftest import SAMPLE_ICONS


@pytest.fixture
def catalog():
    return Catalog([
        IconRecord("distro-ubuntu", "/opt/icons/distro-ubuntu.svg", Category.DISTRO),
        IconRecord("document-save", "document-save", Category.ACTIONS),
        IconRecord("edit-copy", "edit-copy", Category.ACTIONS),
        IconRecord("firefox", "firefox", Category.APPS),
        IconRecord("folder", "folder", Category.PLACES),
    ])


@pytest.fixture
def model(qapp, catalog):
    return IconCatalogModel(catalog)


@pytest.fixture
def proxy(model):
    proxy = IconFilterProxyModel()
    proxy.setSourceModel(model)
    return proxy


def proxy_names(proxy):
    return [proxy.data(proxy.index(row, 0)) for row in range(proxy.rowCount())]


@pytest.mark.gui
class TestIconCatalogModel:
    """Test the list model over a catalog."""

    def test_rows(self, model, catalog):
        assert model.rowCount() == len(catalog)
        assert model.rowCount(model.index(0, 0)) == 0
        assert model.record_at(0) is catalog[0]
        assert model.record_at(99) is None
        assert model.record_at(-1) is None

    def test_roles(self, model):
        index = model.index(1, 0)
        assert model.data(index) == "document-save"
        assert model.data(index, Qt.ItemDataRole.ToolTipRole) == "document-save"
        assert model.data(index, IconCatalogModel.NameRole) == "document-save"
        assert model.data(index, IconCatalogModel.CategoryRole) == "actions"
        assert model.data(index, IconCatalogModel.DisplayIconRole) == "document-save"
        assert model.data(index, IconCatalogModel.RecordRole).name == "document-save"
        assert isinstance(model.data(index, Qt.ItemDataRole.DecorationRole), QIcon)
        assert model.data(QModelIndex()) is None

    def test_role_names(self, model):
        names = model.roleNames()
        assert names[IconCatalogModel.NameRole] == b"name"
        assert names[IconCatalogModel.CategoryRole] == b"category"
        assert names[IconCatalogModel.DisplayIconRole] == b"displayIcon"

    def test_empty_by_default(self, qapp):
        assert IconCatalogModel().rowCount() == 0

    def test_set_catalog_resets(self, model, qtbot):
        with qtbot.waitSignal(model.modelReset, timeout=1000):
            model.set_catalog(Catalog())
        assert model.rowCount() == 0

    def test_bind_cache(self, qapp, fake_theme, manual_scheduler):
        cache = CatalogCache(IconThemeSnapshot(fake_theme), manual_scheduler)
        model = IconCatalogModel()

        model.bind_cache(cache)
        assert model.rowCount() == 0
        assert cache.build_count == 1

        manual_scheduler.run_until_idle()
        assert model.rowCount() == len(SAMPLE_ICONS)
        assert model.catalog is cache.catalog

        # Rebuilds replace the rows
        fake_theme.icons["new-icon"] = "/usr/share/icons/hicolor/48x48/apps/new-icon.png"
        cache.invalidate()
        cache.get()
        manual_scheduler.run_until_idle()
        assert model.rowCount() == len(SAMPLE_ICONS) + 1
        cache.close()

    def test_bind_ready_cache(self, qapp, fake_theme, manual_scheduler):
        cache = CatalogCache(IconThemeSnapshot(fake_theme), manual_scheduler)
        cache.get()
        manual_scheduler.run_until_idle()

        model = IconCatalogModel()
        model.bind_cache(cache)
        assert model.catalog is cache.catalog
        assert cache.build_count == 1


@pytest.mark.gui
class TestIconFilterProxyModel:
    """Test category and search filtering through the proxy."""

    def test_all_by_default(self, proxy, catalog):
        assert proxy.query == FilterQuery()
        assert proxy.rowCount() == len(catalog)

    def test_category(self, proxy):
        proxy.set_category(Category.ACTIONS)
        assert proxy_names(proxy) == ["document-save", "edit-copy"]

    def test_search_text(self, proxy):
        proxy.set_search_text("  FOL ")
        assert proxy_names(proxy) == ["folder"]

    def test_category_and_search(self, proxy):
        proxy.set_category(Category.ACTIONS)
        proxy.set_search_text("copy")
        assert proxy_names(proxy) == ["edit-copy"]
        proxy.set_category(Category.APPS)
        assert proxy_names(proxy) == []

    def test_query_changed_signal(self, proxy, qtbot):
        received = []
        proxy.query_changed.connect(received.append)

        proxy.set_query(FilterQuery(Category.DISTRO))
        proxy.set_query(FilterQuery(Category.DISTRO))
        assert received == [FilterQuery(Category.DISTRO)]
        assert proxy_names(proxy) == ["distro-ubuntu"]

    def test_follows_source_reset(self, proxy, model):
        proxy.set_category(Category.PLACES)
        model.set_catalog(Catalog([IconRecord("folder-music", "folder-music", Category.PLACES)]))
        assert proxy_names(proxy) == ["folder-music"]


@pytest.mark.gui
class TestIconLoader:
    """Test icon lookup for records."""

    def test_absolute_path(self, qapp, bundled_dir):
        clear_icon_cache()
        path = str(Path(bundled_dir) / "scalable" / "actions" / "distro-ubuntu.svg")
        icon = record_icon(IconRecord("distro-ubuntu", path, Category.DISTRO))
        assert isinstance(icon, QIcon)

    def test_missing_file_uses_fallback(self, qapp, temp_dir):
        clear_icon_cache()
        fallback = QIcon()
        record = IconRecord("gone", str(Path(temp_dir) / "gone.svg"), Category.CUSTOM)
        assert record_icon(record, fallback) is fallback
        assert record_icon(record).isNull()

    def test_unknown_theme_name(self, qapp):
        clear_icon_cache()
        record = IconRecord("no-such-icon-anywhere-xyz", "no-such-icon-anywhere-xyz", Category.OTHER)
        assert record_icon(record).isNull()

    def test_register_bundled_icons(self, qapp, bundled_dir):
        folder = str(Path(bundled_dir) / "scalable" / "actions")
        assert register_bundled_icons(bundled_dir) is True
        assert register_bundled_icons(bundled_dir) is True
        assert QIcon.fallbackSearchPaths().count(folder) == 1

    def test_register_missing_folder(self, qapp, temp_dir):
        assert register_bundled_icons(Path(temp_dir) / "missing") is False
