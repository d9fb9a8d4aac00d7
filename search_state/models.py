"""
State models for table search, filtering and pagination.

This module defines the typed value objects the search engine works with:
filter options (a tagged union of coded, identified and raw values), date
bounds, filters, pagination bookkeeping, and the persisted snapshot shapes.
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union
from typing_extensions import TypedDict

from core.exceptions import ValidationError


# Option tagged union

@dataclass(frozen=True)
class CodedOption:
    """Option identified by a ``code`` (constant tables, enumerations)."""
    code: str
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    kind = 'code'

    @property
    def identity(self) -> Any:
        return self.code

    def to_value(self) -> Dict[str, Any]:
        return {**self.attributes, 'code': self.code}


@dataclass(frozen=True)
class IdentifiedOption:
    """Option identified by a database ``_id``."""
    id: str
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    kind = '_id'

    @property
    def identity(self) -> Any:
        return self.id

    def to_value(self) -> Dict[str, Any]:
        return {**self.attributes, '_id': self.id}


@dataclass(frozen=True)
class RawOption:
    """Plain scalar option compared by value."""
    value: Union[str, int, float]

    kind = 'raw'

    @property
    def identity(self) -> Any:
        return self.value

    def to_value(self) -> Union[str, int, float]:
        return self.value


Option = Union[CodedOption, IdentifiedOption, RawOption]
OPTION_TYPES = (CodedOption, IdentifiedOption, RawOption)


def is_option_value(value: Any) -> bool:
    """Return True if ``value`` can be normalized into an Option."""
    if isinstance(value, OPTION_TYPES):
        return True
    if isinstance(value, Mapping):
        return 'code' in value or '_id' in value
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def as_option(value: Any) -> Option:
    """
    Normalize a selection value into an Option.

    Mappings carrying ``code`` become CodedOption (``code`` wins when both
    identity fields are present), mappings carrying ``_id`` become
    IdentifiedOption, and plain scalars become RawOption.
    """
    if isinstance(value, OPTION_TYPES):
        return value

    if isinstance(value, Mapping):
        if 'code' in value:
            return CodedOption(
                code=value['code'],
                attributes={k: v for k, v in value.items() if k != 'code'}
            )
        if '_id' in value:
            return IdentifiedOption(
                id=value['_id'],
                attributes={k: v for k, v in value.items() if k != '_id'}
            )
        raise ValidationError("Option mapping needs a 'code' or '_id' field", value=value)

    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return RawOption(value)

    raise ValidationError("Unsupported option value", value=value)


# Dates

@dataclass(frozen=True)
class DateValue:
    """Calendar date as picked in a date filter."""
    year: int
    month: int
    day: int

    def format(self) -> str:
        """Format as ``YYYY-M-D`` without zero padding."""
        return f"{self.year}-{self.month}-{self.day}"

    def to_dict(self) -> Dict[str, int]:
        return {'year': self.year, 'month': self.month, 'day': self.day}

    @classmethod
    def from_value(cls, value: Any) -> 'DateValue':
        if isinstance(value, DateValue):
            return value
        if isinstance(value, datetime.date):
            return cls(value.year, value.month, value.day)
        if isinstance(value, Mapping):
            try:
                return cls(int(value['year']), int(value['month']), int(value['day']))
            except (KeyError, TypeError, ValueError):
                raise ValidationError("Date needs integer 'year', 'month' and 'day'", value=value)
        raise ValidationError("Unsupported date value", value=value)


def as_date(value: Any) -> Optional[DateValue]:
    if value is None:
        return None
    return DateValue.from_value(value)


def _date_dict(value: Any) -> Optional[Dict[str, int]]:
    date = as_date(value)
    return date.to_dict() if date else None


@dataclass(frozen=True)
class DateFilter:
    """Names of the API fields a date filter writes its bounds to."""
    start_date_id: str
    end_date_id: str

    def to_dict(self) -> Dict[str, str]:
        return {'start_date_id': self.start_date_id, 'end_date_id': self.end_date_id}

    @classmethod
    def from_value(cls, value: Any) -> Optional['DateFilter']:
        if value is None or isinstance(value, DateFilter):
            return value
        if isinstance(value, Mapping):
            try:
                return cls(value['start_date_id'], value['end_date_id'])
            except KeyError as e:
                raise ValidationError(f"Date filter is missing {e}", field='date_filter')
        raise ValidationError("Unsupported date filter value", field='date_filter', value=value)


# Persisted shapes

class FilterSnapshot(TypedDict, total=False):
    """Persisted selection of one filter."""
    selected_options: List[Any]
    start_date: Optional[Dict[str, int]]
    end_date: Optional[Dict[str, int]]


class PaginationData(TypedDict):
    """Plain mapping form of PaginationState."""
    current_page: int
    page_size: int
    total_list_items: int
    sort_by: Optional[str]
    default_sort_by: Optional[str]
    previous_filters: Optional[Dict[str, str]]
    previous_keyword: Optional[str]
    baseline_captured: bool


class Snapshot(TypedDict):
    """Persisted search state for one persistence id."""
    filters: Dict[str, FilterSnapshot]
    keywords: Optional[str]
    pagination_data: PaginationData


# Filters

@dataclass
class FilterModel:
    """
    One filterable dimension of a table.

    ``active`` only tracks whether the filter's panel is expanded in the host.
    """
    id: str
    name: str
    selected_options: List[Option] = field(default_factory=list)
    date_filter: Optional[DateFilter] = None
    start_date: Optional[DateValue] = None
    end_date: Optional[DateValue] = None
    active: bool = False

    def __post_init__(self):
        self.selected_options = [as_option(option) for option in (self.selected_options or [])]
        self.date_filter = DateFilter.from_value(self.date_filter)
        self.start_date = as_date(self.start_date)
        self.end_date = as_date(self.end_date)

    @property
    def is_date_filter(self) -> bool:
        return self.date_filter is not None

    def contributes(self) -> bool:
        """Whether this filter adds anything to an API query."""
        if self.selected_options:
            return True
        return self.is_date_filter and (self.start_date is not None or self.end_date is not None)

    def selection_snapshot(self) -> FilterSnapshot:
        entry = FilterSnapshot(
            selected_options=[as_option(option).to_value() for option in self.selected_options or []]
        )
        if self.is_date_filter:
            entry['start_date'] = _date_dict(self.start_date)
            entry['end_date'] = _date_dict(self.end_date)
        return entry

    def restore_selection(self, entry: Optional[Mapping[str, Any]]) -> None:
        entry = entry or {}
        self.selected_options = [as_option(option) for option in entry.get('selected_options') or []]
        if self.is_date_filter:
            self.start_date = as_date(entry.get('start_date'))
            self.end_date = as_date(entry.get('end_date'))

    def to_dict(self) -> Dict[str, Any]:
        date_filter = DateFilter.from_value(self.date_filter)
        return {
            'id': self.id,
            'name': self.name,
            'selected_options': [as_option(option).to_value() for option in self.selected_options],
            'date_filter': date_filter.to_dict() if date_filter else None,
            'start_date': _date_dict(self.start_date),
            'end_date': _date_dict(self.end_date),
            'active': self.active,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FilterModel':
        if 'id' not in data:
            raise ValidationError("Filter needs an 'id'", value=data)
        return cls(
            id=data['id'],
            name=data.get('name', data['id']),
            selected_options=list(data.get('selected_options') or []),
            date_filter=data.get('date_filter'),
            start_date=data.get('start_date'),
            end_date=data.get('end_date'),
            active=bool(data.get('active', False)),
        )


# Pagination

def _coerce_int(value: Any, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Expected an integer", field=field_name, value=value)


@dataclass
class PaginationState:
    """
    Cursor, size and sort bookkeeping of a table, plus the last committed
    search used to detect when a new search should reset the cursor.
    """
    current_page: int = 1
    page_size: int = 10
    total_list_items: int = 0
    sort_by: Optional[str] = None
    default_sort_by: Optional[str] = None
    previous_filters: Optional[Dict[str, str]] = None
    previous_keyword: Optional[str] = None
    baseline_captured: bool = False

    def capture_baseline(self) -> bool:
        """Record the default sort once; returns False if already captured."""
        if self.baseline_captured:
            return False
        self.previous_filters = None
        self.previous_keyword = None
        self.default_sort_by = self.sort_by
        self.baseline_captured = True
        return True

    def reset(self) -> None:
        self.current_page = 1
        self.sort_by = self.default_sort_by

    def to_dict(self) -> PaginationData:
        return PaginationData(
            current_page=self.current_page,
            page_size=self.page_size,
            total_list_items=self.total_list_items,
            sort_by=self.sort_by,
            default_sort_by=self.default_sort_by,
            previous_filters=dict(self.previous_filters) if self.previous_filters is not None else None,
            previous_keyword=self.previous_keyword,
            baseline_captured=self.baseline_captured,
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'PaginationState':
        """
        Build pagination state from a mapping.

        Numeric fields may arrive as strings. Data that already carries a
        ``previous_filters`` key counts as having a captured baseline.
        """
        if not data:
            return cls()

        previous_filters = data.get('previous_filters')
        return cls(
            current_page=_coerce_int(data.get('current_page', 1), 'current_page'),
            page_size=_coerce_int(data.get('page_size', 10), 'page_size'),
            total_list_items=_coerce_int(data.get('total_list_items', 0), 'total_list_items'),
            sort_by=data.get('sort_by'),
            default_sort_by=data.get('default_sort_by'),
            previous_filters=dict(previous_filters) if previous_filters is not None else None,
            previous_keyword=data.get('previous_keyword'),
            baseline_captured=bool(data.get('baseline_captured', 'previous_filters' in data)),
        )


@dataclass
class SearchResult:
    """Search package handed back to the host after ``search``."""
    api_query: Dict[str, str]
    keywords: Optional[str]
    reset_occurred: bool
