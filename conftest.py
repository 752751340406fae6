"""Shared test fixtures for media browser tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from media_browser.models import (
    CollectionSummary,
    ExternalSearchRequest,
    LibraryListRequest,
    MediaListItem,
    MediaLot,
    MediaSearchItem,
    MediaSearchResult,
    ResultPage,
)
from media_browser.state import PersistedState
from media_browser.store import MemoryStore

# ── Timers ───────────────────────────────────────────────────────────────────


class _FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeTimers:
    """Manual clock with a ``set_timer(delay, callback)`` factory."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[_FakeTimer] = []

    def set_timer(self, delay: float, callback: Callable[[], None]) -> _FakeTimer:
        timer = _FakeTimer(self.now + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.stopped)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.stopped and t.due <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self.now = timer.due
            timer.callback()
        self.now = target


@pytest.fixture
def fake_timers() -> FakeTimers:
    return FakeTimers()


# ── State ────────────────────────────────────────────────────────────────────


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def state(memory_store: MemoryStore) -> PersistedState:
    return PersistedState(memory_store)


# ── Factories ────────────────────────────────────────────────────────────────


@pytest.fixture
def make_item():
    """Factory fixture for MediaSearchItem instances."""

    def _make(
        identifier: str = "1",
        title: str = "Dune",
        lot: MediaLot = MediaLot.MOVIE,
        image: str | None = None,
        publish_year: int | None = 2021,
    ) -> MediaSearchItem:
        return MediaSearchItem(
            identifier=identifier,
            lot=lot,
            title=title,
            image=image,
            publish_year=publish_year,
        )

    return _make


class FakeMediaService:
    """In-memory MediaService recording every request it receives.

    Results echo the request so tests can tell which descriptor produced
    the page on display. ``hold(request)`` blocks that request until the
    returned event is set; ``fail[...]`` makes a lookup raise.
    """

    def __init__(self) -> None:
        self.sources: dict[MediaLot, list[str]] = {
            MediaLot.MOVIE: ["TMDB"],
            MediaLot.SHOW: ["TMDB"],
            MediaLot.BOOK: ["OPENLIBRARY", "GOOGLE_BOOKS"],
            MediaLot.PODCAST: ["ITUNES", "LISTENNOTES"],
            MediaLot.VIDEO_GAME: [],
        }
        self.collections = [CollectionSummary(id=1, name="Watchlist")]
        self.total = 45
        self.fail: dict[str, Exception] = {}
        self.library_calls: list[LibraryListRequest] = []
        self.search_calls: list[ExternalSearchRequest] = []
        self.source_calls: list[MediaLot] = []
        self.collection_calls = 0
        self._held: dict[object, asyncio.Event] = {}

    def hold(self, key: object) -> asyncio.Event:
        event = asyncio.Event()
        self._held[key] = event
        return event

    async def _maybe_wait(self, key: object) -> None:
        event = self._held.get(key)
        if event is not None:
            await event.wait()

    async def list_library(self, request: LibraryListRequest) -> ResultPage:
        self.library_calls.append(request)
        await self._maybe_wait(request)
        if "mine" in self.fail:
            raise self.fail["mine"]
        item = MediaSearchItem(
            identifier=f"lib-{request.page}",
            lot=request.lot,
            title=f"{request.general_filter.value}:{request.query or ''}:{request.page}",
        )
        return ResultPage(items=[MediaListItem(data=item, average_rating="80.00")], total=self.total)

    async def search_external(self, request: ExternalSearchRequest) -> ResultPage:
        self.search_calls.append(request)
        await self._maybe_wait(request)
        if "search" in self.fail:
            raise self.fail["search"]
        item = MediaSearchItem(
            identifier=f"ext-{request.page}",
            lot=request.lot,
            title=f"{request.source}:{request.query}:{request.page}",
        )
        return ResultPage(items=[MediaSearchResult(item=item, database_id=None)], total=self.total)

    async def list_sources_for_lot(self, lot: MediaLot) -> list[str]:
        self.source_calls.append(lot)
        await self._maybe_wait(lot)
        if "sources" in self.fail:
            raise self.fail["sources"]
        return list(self.sources.get(lot, []))

    async def list_collections(self) -> list[CollectionSummary]:
        self.collection_calls += 1
        if "collections" in self.fail:
            raise self.fail["collections"]
        return list(self.collections)


@pytest.fixture
def fake_service() -> FakeMediaService:
    return FakeMediaService()
