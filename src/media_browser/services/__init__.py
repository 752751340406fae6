"""Service layer between the query controller and the tracker API."""

from media_browser.services.media_api_service import (
    execute_query,
    fetch_collections,
    fetch_media_list,
    fetch_media_search,
    fetch_sources_for_lot,
)

__all__ = [
    "execute_query",
    "fetch_collections",
    "fetch_media_list",
    "fetch_media_search",
    "fetch_sources_for_lot",
]
