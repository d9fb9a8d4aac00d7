"""
Helper utilities for table search state.

Pure functions over filters and pagination: option comparison, API query
building, selection clearing/toggling, page size tiers, and conversion
between live filters and persisted snapshots.
"""

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .models import (
    CodedOption,
    DateFilter,
    FilterModel,
    FilterSnapshot,
    IdentifiedOption,
    Option,
    PaginationState,
    Snapshot,
    as_option,
    as_date,
    is_option_value,
)


_MISSING = object()

DEFAULT_PAGE_SIZE_TIERS = (10, 25, 50, 100)
DEFAULT_MIN_PAGE_SIZE = 10


# Option comparison

def _identity_field(option: Option, name: str) -> Any:
    """Read ``code`` or ``_id`` off an option, including extra attributes."""
    if name == option.kind:
        return option.identity
    attributes = getattr(option, 'attributes', {})
    return attributes.get(name, _MISSING)


def options_equal(a: Any, b: Any) -> bool:
    """
    Compare two selection values the way selection controls expect.

    Coded options compare by ``code``, identified options by ``_id``, and
    anything else by value. A missing side only equals another missing side.
    """
    if a is None or b is None:
        return a is b
    if not is_option_value(a) or not is_option_value(b):
        return a == b

    a, b = as_option(a), as_option(b)
    if isinstance(a, CodedOption):
        return _identity_field(b, 'code') == a.code
    if isinstance(a, IdentifiedOption):
        return _identity_field(b, '_id') == a.id
    return a == b


def remove_selected_option(filter_model: FilterModel, item: Any) -> FilterModel:
    """Remove every selected option equal to ``item``."""
    filter_model.selected_options = [
        as_option(option) for option in filter_model.selected_options or []
        if not options_equal(option, item)
    ]
    return filter_model


# Selection state

def clear_all_selections(filters: Iterable[FilterModel]) -> List[FilterModel]:
    """Empty every filter's selections. Date bounds are left untouched."""
    filters = list(filters)
    for filter_model in filters:
        filter_model.selected_options = []
    return filters


def toggle_filter_visibility(filters: Iterable[FilterModel], target: FilterModel) -> List[FilterModel]:
    """Flip ``target`` open or closed and close every differently named filter."""
    filters = list(filters)
    target.active = not target.active
    for other in filters:
        if other.name != target.name:
            other.active = False
    return filters


# API query

def _identity_text(option: Option) -> str:
    identity = option.identity
    if identity is None:
        return ''
    # Integral floats print without a decimal part, as in a JSON payload
    if isinstance(identity, float) and identity.is_integer():
        return str(int(identity))
    return str(identity)


def build_api_query(filters: Iterable[FilterModel]) -> Dict[str, str]:
    """
    Build the flat query mapping sent to a search endpoint.

    Selected options are comma-joined in selection order under the filter
    id; date bounds go under the date filter's start/end field names.
    Empty entries are omitted.
    """
    query: Dict[str, str] = {}
    for filter_model in filters:
        if filter_model.selected_options:
            joined = ','.join(_identity_text(as_option(option)) for option in filter_model.selected_options)
            if joined:
                query[filter_model.id] = joined

        date_filter = DateFilter.from_value(filter_model.date_filter)
        if date_filter:
            start_date = as_date(filter_model.start_date)
            end_date = as_date(filter_model.end_date)
            if start_date:
                query[date_filter.start_date_id] = start_date.format()
            if end_date:
                query[date_filter.end_date_id] = end_date.format()

    return query


def search_signature(keywords: Optional[str], api_query: Optional[Mapping[str, str]]) -> str:
    """Order-sensitive serialization used to tell two searches apart."""
    return json.dumps([keywords, api_query])


# Pagination

def page_size_array(
    total_list_items: int,
    tiers: Sequence[int] = DEFAULT_PAGE_SIZE_TIERS,
    min_page_size: int = DEFAULT_MIN_PAGE_SIZE
) -> List[int]:
    """Page sizes offered to the user: the standard tiers plus the total count."""
    candidates = set(tiers)
    candidates.add(total_list_items)
    return sorted(size for size in candidates if size >= min_page_size)


# Snapshots

def build_snapshot(
    filters: Iterable[FilterModel],
    keywords: Optional[str],
    pagination: PaginationState
) -> Snapshot:
    """Capture filters, keywords and pagination as a plain persisted mapping."""
    return Snapshot(
        filters={filter_model.id: filter_model.selection_snapshot() for filter_model in filters},
        keywords=keywords,
        pagination_data=pagination.to_dict(),
    )


def restore_filters(
    filters: Iterable[FilterModel],
    persisted: Optional[Mapping[str, FilterSnapshot]]
) -> List[FilterModel]:
    """Overwrite filter selections from persisted entries; missing entries clear."""
    filters = list(filters)
    persisted = persisted or {}
    for filter_model in filters:
        filter_model.restore_selection(persisted.get(filter_model.id))
    return filters
