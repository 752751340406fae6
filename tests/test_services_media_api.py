"""Tests for the GraphQL media service and its adapter."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from media_browser.config import ClientSettings
from media_browser.errors import GraphqlError
from media_browser.models import (
    CollectionSummary,
    ExternalSearchRequest,
    LibraryListRequest,
    MediaGeneralFilter,
    MediaLot,
    MediaSortBy,
    MediaSortOrder,
    ResultPage,
)
from media_browser.services.interfaces import (
    GraphqlMediaService,
    MediaService,
    build_default_media_service,
)
from media_browser.services.media_api_service import (
    build_media_list_variables,
    build_media_search_variables,
    execute_query,
    fetch_collections,
    fetch_media_list,
    fetch_media_search,
    fetch_sources_for_lot,
)

SETTINGS = ClientSettings(endpoint="https://tracker.test/graphql", auth_token="secret")

LIBRARY_REQUEST = LibraryListRequest(
    lot=MediaLot.BOOK,
    page=2,
    sort_by=MediaSortBy.TITLE,
    sort_order=MediaSortOrder.ASC,
    general_filter=MediaGeneralFilter.RATED,
    collection_id=4,
    query="dune",
)

SEARCH_REQUEST = ExternalSearchRequest(
    lot=MediaLot.MOVIE, source="TMDB", query="arrival", page=1
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _item(identifier="42", title="Dune", lot="BOOK") -> dict:
    return {
        "identifier": identifier,
        "lot": lot,
        "title": title,
        "image": None,
        "publishYear": 1965,
    }


def test_media_list_variables_include_filters() -> None:
    assert build_media_list_variables(LIBRARY_REQUEST) == {
        "input": {
            "lot": "BOOK",
            "page": 2,
            "sort": {"order": "ASC", "by": "TITLE"},
            "filter": {"general": "RATED", "collection": 4},
            "query": "dune",
        }
    }


def test_media_list_variables_omit_absent_query_and_collection() -> None:
    request = LibraryListRequest(
        lot=MediaLot.MOVIE,
        page=1,
        sort_by=MediaSortBy.LAST_SEEN,
        sort_order=MediaSortOrder.DESC,
        general_filter=MediaGeneralFilter.ALL,
    )

    payload = build_media_list_variables(request)["input"]

    assert "query" not in payload
    assert payload["filter"] == {"general": "ALL"}


def test_media_search_variables() -> None:
    assert build_media_search_variables(SEARCH_REQUEST) == {
        "lot": "MOVIE",
        "source": "TMDB",
        "input": {"query": "arrival", "page": 1},
    }


@pytest.mark.asyncio
async def test_fetch_media_list_posts_query_and_parses() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "data": {
                    "mediaList": {
                        "total": 21,
                        "nextPage": 3,
                        "items": [{"averageRating": "75.5", "data": _item()}],
                    }
                }
            },
        )

    async with _client(handler) as client:
        page = await fetch_media_list(client=client, settings=SETTINGS, request=LIBRARY_REQUEST)

    assert page.total == 21
    assert page.next_page == 3
    assert page.items[0].data.title == "Dune"
    assert page.items[0].average_rating == "75.5"

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == SETTINGS.endpoint
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["User-Agent"] == SETTINGS.user_agent
    body = json.loads(request.content)
    assert "mediaList" in body["query"]
    assert body["variables"] == build_media_list_variables(LIBRARY_REQUEST)


@pytest.mark.asyncio
async def test_fetch_media_search_parses_database_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": {
                    "mediaSearch": {
                        "total": 1,
                        "nextPage": None,
                        "items": [{"databaseId": 9, "item": _item(lot="MOVIE", title="Arrival")}],
                    }
                }
            },
        )

    async with _client(handler) as client:
        page = await fetch_media_search(client=client, settings=SETTINGS, request=SEARCH_REQUEST)

    assert page.items[0].database_id == 9
    assert page.items[0].item.lot == MediaLot.MOVIE
    assert page.next_page is None


@pytest.mark.asyncio
async def test_no_token_means_no_authorization_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": {"mediaSourcesForLot": ["TMDB"]}})

    async with _client(handler) as client:
        sources = await fetch_sources_for_lot(
            client=client, settings=ClientSettings(), lot=MediaLot.MOVIE
        )

    assert sources == ["TMDB"]
    assert "Authorization" not in seen[0].headers
    assert json.loads(seen[0].content)["variables"] == {"lot": "MOVIE"}


@pytest.mark.asyncio
async def test_fetch_collections_sends_no_variables() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={"data": {"collections": [{"collectionDetails": {"id": 1, "name": "Owned"}}]}},
        )

    async with _client(handler) as client:
        collections = await fetch_collections(client=client, settings=SETTINGS)

    assert collections == [CollectionSummary(id=1, name="Owned")]
    assert "variables" not in seen[0]


@pytest.mark.asyncio
async def test_graphql_errors_raise() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "Unknown source"}], "data": None})

    async with _client(handler) as client:
        with pytest.raises(GraphqlError) as excinfo:
            await execute_query(client=client, settings=SETTINGS, query="{ x }")

    assert excinfo.value.messages == ["Unknown source"]


@pytest.mark.asyncio
async def test_http_error_status_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    async with _client(handler) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await execute_query(client=client, settings=SETTINGS, query="{ x }")


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [[1, 2], {"data": None}, {"data": "nope"}])
async def test_malformed_payload_raises_value_error(payload) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async with _client(handler) as client:
        with pytest.raises(ValueError):
            await execute_query(client=client, settings=SETTINGS, query="{ x }")


def test_default_service_satisfies_protocol() -> None:
    service = build_default_media_service(SETTINGS)

    assert isinstance(service, GraphqlMediaService)
    assert isinstance(service, MediaService)


@pytest.mark.asyncio
async def test_adapter_delegates_to_function_service() -> None:
    client = object()
    service = GraphqlMediaService(SETTINGS, client)  # type: ignore[arg-type]
    page = ResultPage()

    with (
        patch(
            "media_browser.services.media_api_service.fetch_media_list",
            new=AsyncMock(return_value=page),
        ) as list_mock,
        patch(
            "media_browser.services.media_api_service.fetch_media_search",
            new=AsyncMock(return_value=page),
        ) as search_mock,
        patch(
            "media_browser.services.media_api_service.fetch_sources_for_lot",
            new=AsyncMock(return_value=["TMDB"]),
        ) as sources_mock,
        patch(
            "media_browser.services.media_api_service.fetch_collections",
            new=AsyncMock(return_value=[]),
        ) as collections_mock,
    ):
        assert await service.list_library(LIBRARY_REQUEST) is page
        assert await service.search_external(SEARCH_REQUEST) is page
        assert await service.list_sources_for_lot(MediaLot.MOVIE) == ["TMDB"]
        assert await service.list_collections() == []

    list_mock.assert_awaited_once_with(client=client, settings=SETTINGS, request=LIBRARY_REQUEST)
    search_mock.assert_awaited_once_with(client=client, settings=SETTINGS, request=SEARCH_REQUEST)
    sources_mock.assert_awaited_once_with(client=client, settings=SETTINGS, lot=MediaLot.MOVIE)
    collections_mock.assert_awaited_once_with(client=client, settings=SETTINGS)
