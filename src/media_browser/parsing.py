"""Parse GraphQL response payloads into media browser models.

Each parser raises ValueError for a payload that does not have the expected
shape, so callers can treat malformed responses like any other fetch error.
"""

from __future__ import annotations

import logging
from typing import Any

from media_browser.models import (
    CollectionSummary,
    MediaListItem,
    MediaLot,
    MediaSearchItem,
    MediaSearchResult,
    ResultPage,
)

logger = logging.getLogger(__name__)


def _require_dict(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"Expected object for {what}, got {type(data).__name__}")
    return data


def _require_list(data: Any, what: str) -> list[Any]:
    if not isinstance(data, list):
        raise ValueError(f"Expected list for {what}, got {type(data).__name__}")
    return data


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def parse_search_item(data: Any) -> MediaSearchItem:
    """Parse a ``MediaSearchItem`` object."""
    item = _require_dict(data, "media item")
    identifier = item.get("identifier")
    title = item.get("title")
    if not isinstance(identifier, str) or not isinstance(title, str):
        raise ValueError("Media item is missing identifier or title")
    try:
        lot = MediaLot(item.get("lot"))
    except ValueError as e:
        raise ValueError(f"Unknown media lot {item.get('lot')!r}") from e
    image = item.get("image")
    return MediaSearchItem(
        identifier=identifier,
        lot=lot,
        title=title,
        image=image if isinstance(image, str) else None,
        publish_year=_optional_int(item.get("publishYear")),
    )


def _parse_total(data: dict[str, Any]) -> tuple[int, int | None]:
    total = data.get("total")
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise ValueError(f"Invalid result total {total!r}")
    return total, _optional_int(data.get("nextPage"))


def parse_media_list(data: Any) -> ResultPage:
    """Parse the ``mediaList`` field of a library listing response."""
    results = _require_dict(data, "mediaList")
    total, next_page = _parse_total(results)
    items: list[MediaListItem | MediaSearchResult] = []
    for entry in _require_list(results.get("items"), "mediaList.items"):
        entry = _require_dict(entry, "mediaList item")
        rating = entry.get("averageRating")
        items.append(
            MediaListItem(
                data=parse_search_item(entry.get("data")),
                average_rating=str(rating) if rating is not None else None,
            )
        )
    return ResultPage(items=items, total=total, next_page=next_page)


def parse_media_search(data: Any) -> ResultPage:
    """Parse the ``mediaSearch`` field of an external search response."""
    results = _require_dict(data, "mediaSearch")
    total, next_page = _parse_total(results)
    items: list[MediaListItem | MediaSearchResult] = []
    for entry in _require_list(results.get("items"), "mediaSearch.items"):
        entry = _require_dict(entry, "mediaSearch item")
        items.append(
            MediaSearchResult(
                item=parse_search_item(entry.get("item")),
                database_id=_optional_int(entry.get("databaseId")),
            )
        )
    return ResultPage(items=items, total=total, next_page=next_page)


def parse_sources(data: Any) -> list[str]:
    """Parse ``mediaSourcesForLot``, preserving the server's order."""
    sources = _require_list(data, "mediaSourcesForLot")
    result = [s.strip() for s in sources if isinstance(s, str) and s.strip()]
    if len(result) != len(sources):
        logger.warning("Dropped %d invalid source entries", len(sources) - len(result))
    return result


def parse_collections(data: Any) -> list[CollectionSummary]:
    """Parse ``collections`` entries into id/name pairs."""
    result: list[CollectionSummary] = []
    for entry in _require_list(data, "collections"):
        if not isinstance(entry, dict):
            continue
        details = entry.get("collectionDetails", entry)
        if not isinstance(details, dict):
            continue
        collection_id = _optional_int(details.get("id"))
        name = details.get("name")
        if collection_id is None or not isinstance(name, str):
            continue
        result.append(CollectionSummary(id=collection_id, name=name))
    return result


__all__ = [
    "parse_collections",
    "parse_media_list",
    "parse_media_search",
    "parse_search_item",
    "parse_sources",
]
