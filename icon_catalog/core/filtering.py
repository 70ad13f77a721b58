"""Picker-side filtering over a published catalog."""

from typing import Iterable, Iterator

from icon_catalog.models.icon_model import Category, FilterQuery, IconRecord


def matches(record: IconRecord, query: FilterQuery) -> bool:
    if query.category != Category.ALL and record.category != query.category:
        return False

    if query.search_text and query.search_text not in record.name.casefold():
        return False

    return True


def filter_catalog(catalog: Iterable[IconRecord], query: FilterQuery) -> Iterator[IconRecord]:
    """Lazily yield the records of ``catalog`` accepted by ``query``, in catalog order."""
    return (record for record in catalog if matches(record, query))
