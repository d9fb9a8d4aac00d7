"""
Tests for search state helper functions.
"""

import datetime
import json
import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from search_state.helpers import (
    build_api_query,
    build_snapshot,
    clear_all_selections,
    options_equal,
    page_size_array,
    remove_selected_option,
    restore_filters,
    search_signature,
    toggle_filter_visibility,
)
from search_state.models import (
    DateFilter,
    DateValue,
    FilterModel,
    IdentifiedOption,
    PaginationState,
    RawOption,
)


def status_filter(*options):
    return FilterModel(id='status', name='Status', selected_options=list(options))


def created_filter(start=None, end=None):
    return FilterModel(
        id='created',
        name='Created',
        date_filter=DateFilter('createdStart', 'createdEnd'),
        start_date=start,
        end_date=end,
    )


class TestBuildApiQuery:
    """Test query building from filter selections"""

    def test_option_and_date_scenario(self):
        filters = [status_filter({'code': 'OPEN'}), created_filter(start=DateValue(2024, 3, 5))]
        assert build_api_query(filters) == {'status': 'OPEN', 'createdStart': '2024-3-5'}

    def test_start_date_field_name(self):
        filter_model = FilterModel(
            id='period', name='Period',
            date_filter=DateFilter('startDt', 'endDt'),
            start_date=DateValue(2024, 3, 5),
        )
        assert build_api_query([filter_model]) == {'startDt': '2024-3-5'}

    def test_both_date_bounds(self):
        query = build_api_query([created_filter(DateValue(2024, 1, 1), DateValue(2024, 12, 31))])
        assert query == {'createdStart': '2024-1-1', 'createdEnd': '2024-12-31'}

    def test_identity_preference_and_order(self):
        filter_model = status_filter({'code': 'B', '_id': 'ignored'}, {'_id': '7'}, 'raw', 12)
        assert build_api_query([filter_model]) == {'status': 'B,7,raw,12'}

    def test_unselected_filters_are_omitted(self):
        filters = [status_filter(), created_filter(), FilterModel(id='owner', name='Owner')]
        assert build_api_query(filters) == {}

    def test_empty_identity_is_omitted(self):
        assert build_api_query([status_filter({'code': ''})]) == {}

    def test_integral_float_identity_drops_decimal(self):
        assert build_api_query([status_filter({'code': 1.0}, 2.5, 3.0)]) == {'status': '1,2.5,3'}

    def test_dates_assigned_after_construction(self):
        filter_model = created_filter()
        filter_model.start_date = {'year': 2024, 'month': 3, 'day': 5}
        filter_model.end_date = datetime.date(2024, 4, 1)
        assert build_api_query([filter_model]) == {'createdStart': '2024-3-5', 'createdEnd': '2024-4-1'}

    def test_dates_ignored_without_date_filter(self):
        filter_model = FilterModel(id='status', name='Status', start_date=DateValue(2024, 3, 5))
        assert build_api_query([filter_model]) == {}

    def test_deterministic(self):
        def make_filters():
            return [
                status_filter({'code': 'OPEN'}, {'code': 'HOLD'}),
                created_filter(end=DateValue(2024, 6, 30)),
                FilterModel(id='owner', name='Owner', selected_options=[{'_id': 'u1'}]),
            ]

        first = build_api_query(make_filters())
        second = build_api_query(make_filters())
        assert first == second
        assert json.dumps(first) == json.dumps(second)

    def test_selection_order_matters(self):
        forward = build_api_query([status_filter('a', 'b')])
        backward = build_api_query([status_filter('b', 'a')])
        assert forward != backward


class TestOptionsEqual:
    """Test the option comparator used by selection controls"""

    @pytest.mark.parametrize('a, b, expected', [
        ({'code': 'A'}, {'code': 'A', '_id': '9'}, True),
        ({'code': 'A'}, {'code': 'B'}, False),
        ({'code': 'A'}, {'_id': 'A'}, False),
        ({'_id': '1'}, {'_id': '1', 'name': 'One'}, True),
        ({'_id': '1'}, {'code': 'X', '_id': '1'}, True),
        ({'_id': '1'}, {'_id': '2'}, False),
        ('x', 'x', True),
        ('x', 'y', False),
        ('x', {'code': 'x'}, False),
        (None, None, True),
        ({'code': 'A'}, None, False),
        (None, 'x', False),
        ({'label': 'a'}, {'label': 'a'}, True),
        ({'label': 'a'}, {'label': 'b'}, False),
    ])
    def test_comparisons(self, a, b, expected):
        assert options_equal(a, b) is expected


class TestSelectionHelpers:
    """Test clearing, toggling and removing selections"""

    def test_remove_identified_option(self):
        filter_model = status_filter({'_id': '1'}, {'_id': '2'})
        remove_selected_option(filter_model, {'_id': '1', 'label': 'a different copy'})
        assert [option.identity for option in filter_model.selected_options] == ['2']

    def test_remove_raw_option_removes_every_match(self):
        filter_model = status_filter('a', 'b', 'a')
        remove_selected_option(filter_model, 'a')
        assert filter_model.selected_options == [RawOption('b')]

    def test_remove_missing_option_is_noop(self):
        filter_model = status_filter({'code': 'OPEN'})
        remove_selected_option(filter_model, {'code': 'CLOSED'})
        assert len(filter_model.selected_options) == 1

    def test_remove_normalizes_remaining_options(self):
        filter_model = status_filter()
        filter_model.selected_options = [{'code': 'OPEN'}, {'_id': '7'}, 'raw']
        remove_selected_option(filter_model, {'code': 'OPEN'})
        assert filter_model.selected_options == [IdentifiedOption('7'), RawOption('raw')]

    def test_clear_keeps_dates(self):
        filters = [status_filter('OPEN'), created_filter(start=DateValue(2024, 3, 5))]
        filters[1].selected_options = ['x']

        clear_all_selections(filters)

        assert all(filter_model.selected_options == [] for filter_model in filters)
        assert filters[1].start_date == DateValue(2024, 3, 5)

    def test_toggle_single_open_panel(self):
        first = FilterModel(id='a', name='A')
        second = FilterModel(id='b', name='B', active=True)
        third = FilterModel(id='c', name='C')
        filters = [first, second, third]

        toggle_filter_visibility(filters, first)
        assert [f.active for f in filters] == [True, False, False]

        toggle_filter_visibility(filters, first)
        assert [f.active for f in filters] == [False, False, False]

        toggle_filter_visibility(filters, third)
        assert [f.active for f in filters] == [False, False, True]


class TestPageSizeArray:
    """Test page size tiers"""

    def test_small_totals_filtered_out(self):
        assert page_size_array(7) == [10, 25, 50, 100]

    def test_total_added_in_order(self):
        assert page_size_array(42) == [10, 25, 42, 50, 100]
        assert page_size_array(250) == [10, 25, 50, 100, 250]

    def test_no_duplicate_tier(self):
        assert page_size_array(25) == [10, 25, 50, 100]

    def test_custom_tiers(self):
        assert page_size_array(3, tiers=(5, 20), min_page_size=5) == [5, 20]


class TestSnapshots:
    """Test snapshot building and restoring"""

    def test_build_snapshot(self):
        filters = [status_filter({'code': 'OPEN'}), created_filter(start=DateValue(2024, 3, 5))]
        pagination = PaginationState(current_page=2, sort_by='name')

        snapshot = build_snapshot(filters, 'pump', pagination)

        assert snapshot['keywords'] == 'pump'
        assert snapshot['filters']['status'] == {'selected_options': [{'code': 'OPEN'}]}
        assert snapshot['filters']['created']['start_date'] == {'year': 2024, 'month': 3, 'day': 5}
        assert snapshot['pagination_data']['current_page'] == 2

    def test_restore_missing_entries_clear(self):
        filters = [status_filter('OPEN'), created_filter(start=DateValue(2024, 3, 5))]
        restore_filters(filters, {'status': {'selected_options': ['CLOSED']}})

        assert filters[0].selected_options == [RawOption('CLOSED')]
        assert filters[1].selected_options == []
        assert filters[1].start_date is None

    def test_search_signature_is_order_sensitive(self):
        assert search_signature('k', {'a': '1', 'b': '2'}) != search_signature('k', {'b': '2', 'a': '1'})
        assert search_signature(None, None) != search_signature(None, {})
