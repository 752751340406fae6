"""Dual-mode media list controller: your library and external search for one lot."""

from media_browser.controller import (
    ENABLEMENT_RULES,
    FetchPlan,
    Precondition,
    QueryController,
    plan_fetch,
)
from media_browser.errors import FetchFailed, GraphqlError, InvalidFilterValue, MediaBrowserError
from media_browser.models import (
    DEFAULT_FILTERS,
    PAGE_SIZE,
    CollectionSummary,
    ExternalSearchRequest,
    LibraryListRequest,
    ListDisplayMode,
    MediaGeneralFilter,
    MediaLot,
    MediaSortBy,
    MediaSortOrder,
    ResultPage,
    TabMode,
    resolve_lot,
)
from media_browser.pagination import page_offset, result_rank, total_pages
from media_browser.state import PersistedState
from media_browser.store import JsonFileStore, MemoryStore

__all__ = [
    "DEFAULT_FILTERS",
    "ENABLEMENT_RULES",
    "PAGE_SIZE",
    "CollectionSummary",
    "ExternalSearchRequest",
    "FetchFailed",
    "FetchPlan",
    "GraphqlError",
    "InvalidFilterValue",
    "JsonFileStore",
    "LibraryListRequest",
    "ListDisplayMode",
    "MediaBrowserError",
    "MediaGeneralFilter",
    "MediaLot",
    "MediaSortBy",
    "MediaSortOrder",
    "MemoryStore",
    "PersistedState",
    "Precondition",
    "QueryController",
    "ResultPage",
    "TabMode",
    "page_offset",
    "plan_fetch",
    "result_rank",
    "total_pages",
]
