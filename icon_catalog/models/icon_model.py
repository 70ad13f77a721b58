"""Value types shared by the catalog builder, the cache and the picker models."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from functools import cmp_to_key
from typing import Dict, Iterable, Iterator, List, Optional

from PyQt6.QtCore import QCollator, QLocale


class Category(str, Enum):
    """Closed set of icon categories. ALL only ever appears in queries."""
    ALL = "all"
    CUSTOM = "custom"
    DISTRO = "distro"
    ACTIONS = "actions"
    APPS = "apps"
    CATEGORIES = "categories"
    DEVICES = "devices"
    EMBLEMS = "emblems"
    EMOTES = "emotes"
    MIMETYPES = "mimetypes"
    OTHER = "other"
    PLACES = "places"
    SCALABLE = "scalable"
    STATUS = "status"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    Category.ALL: "All",
    Category.CUSTOM: "Custom",
    Category.DISTRO: "Distros",
    Category.ACTIONS: "Actions",
    Category.APPS: "Applications",
    Category.CATEGORIES: "Categories",
    Category.DEVICES: "Devices",
    Category.EMBLEMS: "Emblems",
    Category.EMOTES: "Emotes",
    Category.MIMETYPES: "Mimetypes",
    Category.OTHER: "Other",
    Category.PLACES: "Places",
    Category.SCALABLE: "Scalable",
    Category.STATUS: "Status",
}


class BuildPhase(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    READY = "ready"


@dataclass(frozen=True)
class IconRecord:
    name: str
    display_icon: str
    category: Category


@dataclass(frozen=True)
class FilterQuery:
    """Category plus substring filter applied to a catalog by the picker."""
    category: Category = Category.ALL
    search_text: str = ""

    def __post_init__(self):
        object.__setattr__(self, "search_text", (self.search_text or "").strip().casefold())


def locale_compare(left: str, right: str, locale: Optional[QLocale] = None) -> int:
    """Compare two names the way the user's locale orders them.

    Ties under the collator (e.g. names differing only by case on some
    backends) are broken by code point so the ordering stays total.
    """
    collator = QCollator(locale if locale is not None else QLocale())
    result = collator.compare(left, right)
    if result:
        return -1 if result < 0 else 1
    return (left > right) - (left < right)


def sort_records(records: Iterable[IconRecord], locale: Optional[QLocale] = None) -> List[IconRecord]:
    collator = QCollator(locale if locale is not None else QLocale())

    def compare(a: IconRecord, b: IconRecord) -> int:
        result = collator.compare(a.name, b.name)
        if result:
            return result
        return (a.name > b.name) - (a.name < b.name)

    return sorted(records, key=cmp_to_key(compare))


class Catalog(Sequence):
    """Immutable, sorted result of one successful build."""

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[IconRecord] = ()):
        self._records = tuple(records)

    def __getitem__(self, index):
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[IconRecord]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"Catalog({len(self._records)} icons)"

    @property
    def records(self):
        return self._records

    def names(self) -> List[str]:
        return [record.name for record in self._records]

    def find(self, name: str) -> Optional[IconRecord]:
        for record in self._records:
            if record.name == name:
                return record
        return None

    def count_by_category(self) -> Dict[Category, int]:
        counts: Dict[Category, int] = {}
        for record in self._records:
            counts[record.category] = counts.get(record.category, 0) + 1
        return counts
