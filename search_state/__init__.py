"""
Search state package for paginated, filterable tables.

This package keeps filter selections, keywords, sort order and page position
consistent with each other, builds API query mappings, and produces the
snapshots persisted between visits to a table.
"""

from .models import (
    CodedOption,
    IdentifiedOption,
    RawOption,
    Option,
    DateValue,
    DateFilter,
    FilterModel,
    PaginationState,
    SearchResult,
    Snapshot,
    as_option,
)
from .helpers import (
    build_api_query,
    options_equal,
    page_size_array,
    remove_selected_option,
    toggle_filter_visibility,
)
from .engine import SearchStateEngine

__all__ = [
    'CodedOption',
    'IdentifiedOption',
    'RawOption',
    'Option',
    'DateValue',
    'DateFilter',
    'FilterModel',
    'PaginationState',
    'SearchResult',
    'Snapshot',
    'as_option',
    'build_api_query',
    'options_equal',
    'page_size_array',
    'remove_selected_option',
    'toggle_filter_visibility',
    'SearchStateEngine',
]
