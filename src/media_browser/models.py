"""Data models and constants for the media browser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# Application identity used for platformdirs config paths
CONFIG_APP_NAME = "media-browser"

# Results per page for both pipelines (fixed by the server)
PAGE_SIZE = 20

# Quiescence window before typed text is used for fetching, in seconds
SEARCH_DEBOUNCE_DELAY = 1.0


class MediaLot(str, Enum):
    """Content category a list page is scoped to."""

    AUDIO_BOOK = "AUDIO_BOOK"
    ANIME = "ANIME"
    BOOK = "BOOK"
    PODCAST = "PODCAST"
    MANGA = "MANGA"
    MOVIE = "MOVIE"
    SHOW = "SHOW"
    VIDEO_GAME = "VIDEO_GAME"


class TabMode(str, Enum):
    """Active tab; also names the two fetch pipelines."""

    MINE = "mine"
    SEARCH = "search"


class MediaSortBy(str, Enum):
    RELEASE_DATE = "RELEASE_DATE"
    RATING = "RATING"
    LAST_SEEN = "LAST_SEEN"
    TITLE = "TITLE"


class MediaSortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class MediaGeneralFilter(str, Enum):
    ALL = "ALL"
    RATED = "RATED"
    UNRATED = "UNRATED"
    DROPPED = "DROPPED"
    FINISHED = "FINISHED"
    UNSEEN = "UNSEEN"


class ListDisplayMode(str, Enum):
    GRID = "grid"
    POSTER = "poster"


def resolve_lot(raw: str | None) -> MediaLot | None:
    """Resolve a lot from an addressing value such as ``movie`` or ``video-game``.

    Returns None when the value does not name a known lot.
    """
    if not raw:
        return None
    normalized = raw.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return MediaLot(normalized)
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class FilterDefaults:
    """Initial and reset values for the library pipeline's filter/sort fields."""

    general_filter: MediaGeneralFilter
    sort_order: MediaSortOrder
    sort_by: MediaSortBy


DEFAULT_FILTERS = FilterDefaults(
    general_filter=MediaGeneralFilter.ALL,
    sort_order=MediaSortOrder.DESC,
    sort_by=MediaSortBy.LAST_SEEN,
)


@dataclass(slots=True)
class MediaSearchItem:
    """Summary of one media entry as returned by either pipeline."""

    identifier: str
    lot: MediaLot
    title: str
    image: str | None = None
    publish_year: int | None = None


@dataclass(slots=True)
class MediaListItem:
    """Library entry with the user's average rating."""

    data: MediaSearchItem
    average_rating: str | None = None  # decimal string, e.g. "72.50"


@dataclass(slots=True)
class MediaSearchResult:
    """External search hit, linked to the library when already present."""

    item: MediaSearchItem
    database_id: int | None = None


@dataclass(slots=True)
class ResultPage:
    """One page of results plus the total number of matches."""

    items: list[MediaListItem | MediaSearchResult] = field(default_factory=list)
    total: int = 0
    next_page: int | None = None


@dataclass(frozen=True, slots=True)
class CollectionSummary:
    """Collection option for the library pipeline's collection filter."""

    id: int
    name: str


@dataclass(frozen=True, slots=True)
class LibraryListRequest:
    """Fetch descriptor for the "mine" pipeline.

    Instances are compared by value: a response is applied only while its
    descriptor still equals the one the current state would build.
    """

    lot: MediaLot
    page: int
    sort_by: MediaSortBy
    sort_order: MediaSortOrder
    general_filter: MediaGeneralFilter
    collection_id: int | None = None
    query: str | None = None  # None when the settled text is empty


@dataclass(frozen=True, slots=True)
class ExternalSearchRequest:
    """Fetch descriptor for the "search" pipeline."""

    lot: MediaLot
    source: str
    query: str
    page: int


FetchRequest = LibraryListRequest | ExternalSearchRequest


__all__ = [
    "CONFIG_APP_NAME",
    "DEFAULT_FILTERS",
    "PAGE_SIZE",
    "SEARCH_DEBOUNCE_DELAY",
    "CollectionSummary",
    "ExternalSearchRequest",
    "FetchRequest",
    "FilterDefaults",
    "LibraryListRequest",
    "ListDisplayMode",
    "MediaGeneralFilter",
    "MediaListItem",
    "MediaLot",
    "MediaSearchItem",
    "MediaSearchResult",
    "MediaSortBy",
    "MediaSortOrder",
    "ResultPage",
    "TabMode",
    "resolve_lot",
]
