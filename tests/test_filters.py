"""Tests for the library pipeline's filter/sort state."""

from __future__ import annotations

import pytest

from media_browser.errors import InvalidFilterValue
from media_browser.filters import FilterSortState
from media_browser.models import (
    DEFAULT_FILTERS,
    MediaGeneralFilter,
    MediaSortBy,
    MediaSortOrder,
)
from media_browser.state import QUERY_TEXT


@pytest.fixture
def filters(state) -> FilterSortState:
    return FilterSortState(state)


def test_defaults(filters) -> None:
    assert filters.general_filter == MediaGeneralFilter.ALL
    assert filters.sort_order == MediaSortOrder.DESC
    assert filters.sort_by == MediaSortBy.LAST_SEEN
    assert filters.collection_id is None
    assert filters.is_filter_changed is False


def test_setters_accept_members_and_values(filters) -> None:
    filters.set_general_filter("DROPPED")
    filters.set_sort_by(MediaSortBy.RATING)
    filters.set_sort_order("ASC")

    assert filters.general_filter == MediaGeneralFilter.DROPPED
    assert filters.sort_by == MediaSortBy.RATING
    assert filters.sort_order == MediaSortOrder.ASC


@pytest.mark.parametrize(
    ("setter", "valid", "invalid", "attr"),
    [
        ("set_general_filter", "FINISHED", "WATCHING", "general_filter"),
        ("set_sort_by", "TITLE", "LAST_UPDATED", "sort_by"),
        ("set_sort_order", "ASC", "SIDEWAYS", "sort_order"),
    ],
)
def test_invalid_value_leaves_prior_value(filters, memory_store, setter, valid, invalid, attr):
    getattr(filters, setter)(valid)
    before = memory_store.snapshot()

    with pytest.raises(InvalidFilterValue) as excinfo:
        getattr(filters, setter)(invalid)

    assert excinfo.value.value == invalid
    assert getattr(filters, attr).value == valid
    assert memory_store.snapshot() == before


def test_set_collection(filters) -> None:
    filters.set_collection(5)
    assert filters.collection_id == 5

    filters.set_collection(None)
    assert filters.collection_id is None

    with pytest.raises(InvalidFilterValue):
        filters.set_collection("favourites")


def test_reset_restores_defaults_and_keeps_collection_and_query(filters, state) -> None:
    filters.set_general_filter("UNRATED")
    filters.set_sort_by("TITLE")
    filters.set_sort_order("ASC")
    filters.set_collection(9)
    state.set(QUERY_TEXT, "alien")
    assert filters.is_filter_changed is True

    filters.reset()

    assert filters.general_filter == DEFAULT_FILTERS.general_filter
    assert filters.sort_order == DEFAULT_FILTERS.sort_order
    assert filters.sort_by == DEFAULT_FILTERS.sort_by
    assert filters.collection_id == 9
    assert state.get(QUERY_TEXT) == "alien"
    assert filters.is_filter_changed is False


def test_collection_does_not_count_as_filter_change(filters) -> None:
    filters.set_collection(2)

    assert filters.is_filter_changed is False


def test_toggle_sort_order(filters) -> None:
    assert filters.toggle_sort_order() == MediaSortOrder.ASC
    assert filters.toggle_sort_order() == MediaSortOrder.DESC
    assert filters.sort_order == MediaSortOrder.DESC
