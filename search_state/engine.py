"""
SearchStateEngine - search, filter and pagination state machine for tables.

The host widget owns one engine per table instance. It mutates filter
selections and keywords, calls into the engine on user actions, and renders
whatever the engine hands back. The engine never issues the search request
itself; it only produces the API query and keeps pagination consistent with it.
"""

import logging
from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Tuple

from core.config import TableConfig
from core.exceptions import ValidationError

from . import helpers
from .models import FilterModel, PaginationState, SearchResult, Snapshot

if TYPE_CHECKING:
    from persistence_store import PersistenceStore

# Configure logging
logger = logging.getLogger(__name__)

_UNSET = object()


class SearchStateEngine:
    """
    Keeps filters, keywords, sort and page position of one table consistent.

    Persistence is active only when ``show_search`` is on, a store is
    supplied and the persistence id is non-empty.
    """

    def __init__(self, store: Optional['PersistenceStore'] = None,
                 persistence_id: Optional[str] = None,
                 show_search: bool = True,
                 config: Optional[TableConfig] = None):
        self.store = store
        self.persistence_id = persistence_id
        self.show_search = show_search
        self.config = config or TableConfig()

        self.filters: List[FilterModel] = []
        self.keywords: Optional[str] = None
        self.pagination = PaginationState(
            current_page=self.config.default_current_page,
            page_size=self.config.default_page_size
        )

        self.active_page = self.config.default_current_page
        self.active_page_size = self.config.default_page_size
        self.page_size_array: List[int] = []
        self.sort_column: Optional[str] = None
        self.searching = False

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.show_search and self.store is not None and self.persistence_id)

    def initialize(self, filters: Iterable[FilterModel],
                   pagination: Optional[PaginationState] = None,
                   keywords: Optional[str] = None,
                   persistence_id: Optional[str] = None
                   ) -> Tuple[List[FilterModel], Optional[str], PaginationState]:
        """
        Attach table state, restoring a persisted search when one exists.

        Args:
            filters: The table's filters
            pagination: Pagination data supplied with the first table load
            keywords: Initial free-text search
            persistence_id: Overrides the id given at construction

        Returns:
            The (possibly restored) filters, keywords and pagination state
        """
        if persistence_id is not None:
            self.persistence_id = persistence_id

        self.filters = list(filters)
        self.keywords = keywords
        if pagination is not None:
            self.pagination = pagination

        snapshot = self._load_snapshot()
        if snapshot is not None:
            helpers.restore_filters(self.filters, snapshot.get('filters'))
            self.keywords = snapshot.get('keywords')
            self.pagination = PaginationState.from_dict(snapshot.get('pagination_data'))
            logger.info(f"Restored search state for {self.persistence_id}")

        self._sync_page_controls()

        if self.show_search and self.pagination.capture_baseline():
            logger.debug(f"Captured default sort {self.pagination.default_sort_by!r}")

        return self.filters, self.keywords, self.pagination

    def _load_snapshot(self) -> Optional[Snapshot]:
        if not self.persistence_enabled:
            return None
        return self.store.get(self.persistence_id)

    def _sync_page_controls(self) -> None:
        self.active_page_size = self.pagination.page_size
        self.page_size_array = helpers.page_size_array(
            self.pagination.total_list_items,
            self.config.page_size_tiers,
            self.config.min_page_size
        )
        if self.active_page != self.pagination.current_page:
            self.active_page = self.pagination.current_page

    def build_api_query(self, filters: Optional[Iterable[FilterModel]] = None) -> dict:
        """Build the API query for ``filters`` (defaults to the attached ones)."""
        return helpers.build_api_query(self.filters if filters is None else filters)

    def search(self, keywords: Any = _UNSET) -> SearchResult:
        """
        Commit the current filters and keywords as a search.

        Pagination resets to page 1 and the default sort whenever the
        keywords or the computed query differ from the last committed search.
        The state is persisted either way.
        """
        if keywords is not _UNSET:
            self.keywords = keywords

        # A host that never initialized with search enabled still needs a default sort
        self.pagination.capture_baseline()

        api_query = self.build_api_query()
        previous = helpers.search_signature(self.pagination.previous_keyword, self.pagination.previous_filters)
        reset_occurred = previous != helpers.search_signature(self.keywords, api_query)

        if reset_occurred:
            self.pagination.reset()
            self.pagination.previous_filters = dict(api_query)
            self.pagination.previous_keyword = self.keywords
            self.active_page = self.pagination.current_page
            logger.debug(f"Search changed, pagination reset to page 1 sorted by {self.pagination.sort_by!r}")

        self.persist()
        self.searching = True

        return SearchResult(api_query=api_query, keywords=self.keywords, reset_occurred=reset_occurred)

    def load_results(self, pagination: PaginationState) -> PaginationState:
        """
        Accept fresh pagination data returned with a search response.

        The search baseline is carried over when the incoming data has none.
        """
        if not pagination.baseline_captured and self.pagination.baseline_captured:
            pagination.default_sort_by = self.pagination.default_sort_by
            pagination.previous_filters = self.pagination.previous_filters
            pagination.previous_keyword = self.pagination.previous_keyword
            pagination.baseline_captured = True

        self.pagination = pagination
        self.sort_column = pagination.sort_by
        self.searching = False
        self._sync_page_controls()
        return self.pagination

    def clear_all_filters(self) -> List[FilterModel]:
        """Clear keywords and every filter's selections, keeping dates, sort and page."""
        self.keywords = ''
        return helpers.clear_all_selections(self.filters)

    def toggle_filter_visibility(self, target: FilterModel) -> List[FilterModel]:
        return helpers.toggle_filter_visibility(self.filters, target)

    def remove_selected_option(self, filter_model: FilterModel, item: Any) -> FilterModel:
        return helpers.remove_selected_option(filter_model, item)

    @staticmethod
    def options_equal(a: Any, b: Any) -> bool:
        return helpers.options_equal(a, b)

    def update_page(self, page: int) -> int:
        """Move to ``page``, persist, and return the page the host should load."""
        if page < 1:
            raise ValidationError("Page numbers start at 1", field='current_page', value=page)

        self.pagination.current_page = page
        self.active_page = page
        self.persist()
        return page

    def update_page_size(self, page_size: int) -> int:
        """Change the page size, persist, and return page 1 for the host to load."""
        if page_size < 1:
            raise ValidationError("Page size must be positive", field='page_size', value=page_size)

        self.pagination.page_size = page_size
        self.pagination.current_page = 1
        self.active_page_size = page_size
        self.active_page = 1
        self.persist()
        return 1

    def snapshot(self) -> Snapshot:
        return helpers.build_snapshot(self.filters, self.keywords, self.pagination)

    def persist(self) -> bool:
        """Write the current search state to the store; returns False when disabled."""
        if not self.persistence_enabled:
            return False

        self.store.put(self.persistence_id, self.snapshot())
        return True

    def close(self) -> None:
        """Release the store's resources when the host owns it."""
        if self.store is not None:
            self.store.close()
