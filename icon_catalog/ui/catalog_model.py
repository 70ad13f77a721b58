"""Qt item models that put a Catalog behind a picker view."""

from typing import Optional

from PyQt6.QtCore import QAbstractListModel, QModelIndex, QSortFilterProxyModel, Qt, pyqtSignal

from icon_catalog.core.filtering import matches
from icon_catalog.models.icon_model import Catalog, Category, FilterQuery, IconRecord
from icon_catalog.ui.icon_loader import record_icon


def _role_value(role):
    return getattr(role, "value", role)


class IconCatalogModel(QAbstractListModel):
    """Read-only list model over a published Catalog."""

    NameRole = Qt.ItemDataRole.UserRole.value + 1
    CategoryRole = Qt.ItemDataRole.UserRole.value + 2
    DisplayIconRole = Qt.ItemDataRole.UserRole.value + 3
    RecordRole = Qt.ItemDataRole.UserRole.value + 4

    def __init__(self, catalog: Optional[Catalog] = None, parent=None):
        super().__init__(parent)
        self._catalog = catalog if catalog is not None else Catalog()

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def set_catalog(self, catalog: Catalog):
        self.beginResetModel()
        self._catalog = catalog
        self.endResetModel()

    def bind_cache(self, cache):
        """Follow ``cache``: show its catalog now if published, else when it is."""
        cache.catalog_ready.connect(self.set_catalog)
        if cache.catalog is not None:
            self.set_catalog(cache.catalog)
        else:
            cache.get()

    def record_at(self, row: int) -> Optional[IconRecord]:
        if 0 <= row < len(self._catalog):
            return self._catalog[row]
        return None

    def rowCount(self, parent=QModelIndex()):
        if parent.isValid():
            return 0
        return len(self._catalog)

    def data(self, index, role=Qt.ItemDataRole.DisplayRole):
        record = self.record_at(index.row()) if index.isValid() else None
        if record is None:
            return None

        role = _role_value(role)
        if role in (Qt.ItemDataRole.DisplayRole.value, Qt.ItemDataRole.ToolTipRole.value, self.NameRole):
            return record.name
        if role == Qt.ItemDataRole.DecorationRole.value:
            return record_icon(record)
        if role == self.CategoryRole:
            return record.category.value
        if role == self.DisplayIconRole:
            return record.display_icon
        if role == self.RecordRole:
            return record
        return None

    def roleNames(self):
        roles = super().roleNames()
        roles[self.NameRole] = b"name"
        roles[self.CategoryRole] = b"category"
        roles[self.DisplayIconRole] = b"displayIcon"
        return roles


class IconFilterProxyModel(QSortFilterProxyModel):
    """Applies a FilterQuery to an IconCatalogModel."""

    query_changed = pyqtSignal(object)  # FilterQuery

    def __init__(self, parent=None):
        super().__init__(parent)
        self._query = FilterQuery()

    @property
    def query(self) -> FilterQuery:
        return self._query

    def set_query(self, query: FilterQuery):
        if query == self._query:
            return
        self._query = query
        self.invalidateFilter()
        self.query_changed.emit(query)

    def set_category(self, category: Category):
        self.set_query(FilterQuery(category, self._query.search_text))

    def set_search_text(self, text: str):
        self.set_query(FilterQuery(self._query.category, text))

    def filterAcceptsRow(self, source_row, source_parent):
        source = self.sourceModel()
        record = source.record_at(source_row) if isinstance(source, IconCatalogModel) else None
        return record is not None and matches(record, self._query)
