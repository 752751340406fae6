"""Internal GraphQL service helpers for the tracker's media endpoints."""

from __future__ import annotations

from typing import Any

import httpx

from media_browser.config import ClientSettings
from media_browser.errors import GraphqlError
from media_browser.models import (
    CollectionSummary,
    ExternalSearchRequest,
    LibraryListRequest,
    MediaLot,
    ResultPage,
)
from media_browser.parsing import (
    parse_collections,
    parse_media_list,
    parse_media_search,
    parse_sources,
)

_SEARCH_ITEM_FIELDS = "identifier lot title image publishYear"

MEDIA_LIST_QUERY = f"""
query MediaList($input: MediaListInput!) {{
  mediaList(input: $input) {{
    total
    nextPage
    items {{
      averageRating
      data {{ {_SEARCH_ITEM_FIELDS} }}
    }}
  }}
}}
"""

MEDIA_SEARCH_QUERY = f"""
query MediaSearch($lot: MetadataLot!, $source: MetadataSource!, $input: SearchInput!) {{
  mediaSearch(lot: $lot, source: $source, input: $input) {{
    total
    nextPage
    items {{
      databaseId
      item {{ {_SEARCH_ITEM_FIELDS} }}
    }}
  }}
}}
"""

MEDIA_SOURCES_FOR_LOT_QUERY = """
query MediaSourcesForLot($lot: MetadataLot!) {
  mediaSourcesForLot(lot: $lot)
}
"""

PARTIAL_COLLECTIONS_QUERY = """
query PartialCollections {
  collections {
    collectionDetails { id name }
  }
}
"""


def build_headers(settings: ClientSettings) -> dict[str, str]:
    headers = {"User-Agent": settings.user_agent}
    if settings.auth_token:
        headers["Authorization"] = f"Bearer {settings.auth_token}"
    return headers


def build_media_list_variables(request: LibraryListRequest) -> dict[str, Any]:
    """Build ``mediaList`` variables; absent query/collection are omitted."""
    media_filter: dict[str, Any] = {"general": request.general_filter.value}
    if request.collection_id is not None:
        media_filter["collection"] = request.collection_id
    payload: dict[str, Any] = {
        "lot": request.lot.value,
        "page": request.page,
        "sort": {"order": request.sort_order.value, "by": request.sort_by.value},
        "filter": media_filter,
    }
    if request.query:
        payload["query"] = request.query
    return {"input": payload}


def build_media_search_variables(request: ExternalSearchRequest) -> dict[str, Any]:
    return {
        "lot": request.lot.value,
        "source": request.source,
        "input": {"query": request.query, "page": request.page},
    }


async def execute_query(
    *,
    client: httpx.AsyncClient | None,
    settings: ClientSettings,
    query: str,
    variables: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """POST a GraphQL document and return its ``data`` object.

    Raises httpx.HTTPStatusError for non-2xx responses and GraphqlError
    when the response carries an ``errors`` list.
    """
    body: dict[str, Any] = {"query": query}
    if variables:
        body["variables"] = variables
    headers = build_headers(settings)

    if client is not None:
        response = await client.post(
            settings.endpoint,
            json=body,
            headers=headers,
            timeout=settings.timeout_seconds,
        )
    else:
        async with httpx.AsyncClient() as tmp_client:
            response = await tmp_client.post(
                settings.endpoint,
                json=body,
                headers=headers,
                timeout=settings.timeout_seconds,
            )

    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload, dict):
        raise ValueError("GraphQL response is not an object")
    errors = payload.get("errors")
    if errors:
        messages = [
            str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
        ]
        raise GraphqlError(messages)
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ValueError("GraphQL response has no data")
    return data


async def fetch_media_list(
    *,
    client: httpx.AsyncClient | None,
    settings: ClientSettings,
    request: LibraryListRequest,
) -> ResultPage:
    """Fetch one page of the user's library for a lot."""
    data = await execute_query(
        client=client,
        settings=settings,
        query=MEDIA_LIST_QUERY,
        variables=build_media_list_variables(request),
    )
    return parse_media_list(data.get("mediaList"))


async def fetch_media_search(
    *,
    client: httpx.AsyncClient | None,
    settings: ClientSettings,
    request: ExternalSearchRequest,
) -> ResultPage:
    """Fetch one page of external search results from a metadata source."""
    data = await execute_query(
        client=client,
        settings=settings,
        query=MEDIA_SEARCH_QUERY,
        variables=build_media_search_variables(request),
    )
    return parse_media_search(data.get("mediaSearch"))


async def fetch_sources_for_lot(
    *,
    client: httpx.AsyncClient | None,
    settings: ClientSettings,
    lot: MediaLot,
) -> list[str]:
    data = await execute_query(
        client=client,
        settings=settings,
        query=MEDIA_SOURCES_FOR_LOT_QUERY,
        variables={"lot": lot.value},
    )
    return parse_sources(data.get("mediaSourcesForLot"))


async def fetch_collections(
    *,
    client: httpx.AsyncClient | None,
    settings: ClientSettings,
) -> list[CollectionSummary]:
    data = await execute_query(client=client, settings=settings, query=PARTIAL_COLLECTIONS_QUERY)
    return parse_collections(data.get("collections"))


__all__ = [
    "build_headers",
    "build_media_list_variables",
    "build_media_search_variables",
    "execute_query",
    "fetch_collections",
    "fetch_media_list",
    "fetch_media_search",
    "fetch_sources_for_lot",
]
