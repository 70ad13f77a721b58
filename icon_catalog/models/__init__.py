from .icon_model import BuildPhase, Catalog, Category, FilterQuery, IconRecord, locale_compare, sort_records

__all__ = [
    'BuildPhase',
    'Catalog',
    'Category',
    'FilterQuery',
    'IconRecord',
    'locale_compare',
    'sort_records',
]
