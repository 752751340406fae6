"""Filter and sort state for the library ("mine") pipeline."""

from __future__ import annotations

from typing import Any

from media_browser.models import (
    DEFAULT_FILTERS,
    MediaGeneralFilter,
    MediaSortBy,
    MediaSortOrder,
)
from media_browser.state import (
    MINE_COLLECTION,
    MINE_GENERAL_FILTER,
    MINE_SORT_BY,
    MINE_SORT_ORDER,
    PersistedState,
)


class FilterSortState:
    """Persisted general filter, sort key, sort direction and collection scope.

    Setters accept enum members or their string values and raise
    ``InvalidFilterValue`` without touching the stored value otherwise.
    """

    def __init__(self, state: PersistedState) -> None:
        self._state = state

    @property
    def general_filter(self) -> MediaGeneralFilter:
        return self._state.get(MINE_GENERAL_FILTER) or DEFAULT_FILTERS.general_filter

    @property
    def sort_by(self) -> MediaSortBy:
        return self._state.get(MINE_SORT_BY) or DEFAULT_FILTERS.sort_by

    @property
    def sort_order(self) -> MediaSortOrder:
        return self._state.get(MINE_SORT_ORDER) or DEFAULT_FILTERS.sort_order

    @property
    def collection_id(self) -> int | None:
        return self._state.get(MINE_COLLECTION)

    @property
    def is_filter_changed(self) -> bool:
        """True when any enumerated field differs from its default."""
        return (
            self.general_filter != DEFAULT_FILTERS.general_filter
            or self.sort_order != DEFAULT_FILTERS.sort_order
            or self.sort_by != DEFAULT_FILTERS.sort_by
        )

    def set_general_filter(self, value: MediaGeneralFilter | str) -> None:
        self._state.set(MINE_GENERAL_FILTER, value)

    def set_sort_by(self, value: MediaSortBy | str) -> None:
        self._state.set(MINE_SORT_BY, value)

    def set_sort_order(self, value: MediaSortOrder | str) -> None:
        self._state.set(MINE_SORT_ORDER, value)

    def toggle_sort_order(self) -> MediaSortOrder:
        if self.sort_order == MediaSortOrder.ASC:
            new_order = MediaSortOrder.DESC
        else:
            new_order = MediaSortOrder.ASC
        self._state.set(MINE_SORT_ORDER, new_order)
        return new_order

    def set_collection(self, collection_id: Any) -> None:
        """Scope the list to a collection id, or clear it with None."""
        self._state.set(MINE_COLLECTION, collection_id)

    def reset(self) -> None:
        """Restore the default filter tuple; collection and text query are kept."""
        self._state.set(MINE_GENERAL_FILTER, DEFAULT_FILTERS.general_filter)
        self._state.set(MINE_SORT_ORDER, DEFAULT_FILTERS.sort_order)
        self._state.set(MINE_SORT_BY, DEFAULT_FILTERS.sort_by)


__all__ = ["FilterSortState"]
