"""Service interface + default adapter consumed by the query controller."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from media_browser.config import ClientSettings
from media_browser.models import (
    CollectionSummary,
    ExternalSearchRequest,
    LibraryListRequest,
    MediaLot,
    ResultPage,
)
from media_browser.services import media_api_service as _media_api


@runtime_checkable
class MediaService(Protocol):
    """Interface for the four lookups the controller depends on."""

    async def list_library(self, request: LibraryListRequest) -> ResultPage:
        """Fetch one page of the user's library."""
        ...

    async def search_external(self, request: ExternalSearchRequest) -> ResultPage:
        """Fetch one page of external search results."""
        ...

    async def list_sources_for_lot(self, lot: MediaLot) -> list[str]:
        """List the metadata sources that can be searched for ``lot``, in order."""
        ...

    async def list_collections(self) -> list[CollectionSummary]:
        """List the user's collections."""
        ...


class GraphqlMediaService:
    """Default adapter that delegates to the function-based GraphQL service."""

    def __init__(
        self,
        settings: ClientSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client

    async def list_library(self, request: LibraryListRequest) -> ResultPage:
        return await _media_api.fetch_media_list(
            client=self._client,
            settings=self._settings,
            request=request,
        )

    async def search_external(self, request: ExternalSearchRequest) -> ResultPage:
        return await _media_api.fetch_media_search(
            client=self._client,
            settings=self._settings,
            request=request,
        )

    async def list_sources_for_lot(self, lot: MediaLot) -> list[str]:
        return await _media_api.fetch_sources_for_lot(
            client=self._client,
            settings=self._settings,
            lot=lot,
        )

    async def list_collections(self) -> list[CollectionSummary]:
        return await _media_api.fetch_collections(client=self._client, settings=self._settings)


def build_default_media_service(
    settings: ClientSettings,
    client: httpx.AsyncClient | None = None,
) -> MediaService:
    """Build the GraphQL-backed media service."""
    return GraphqlMediaService(settings, client)


__all__ = [
    "GraphqlMediaService",
    "MediaService",
    "build_default_media_service",
]
