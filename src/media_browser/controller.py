"""Dual-pipeline query controller for one media lot.

The controller owns two fetch pipelines: "mine" lists the user's library and
"search" queries an external metadata source. Each is enabled only while the
preconditions in ``ENABLEMENT_RULES`` hold. Event handlers (typing, filter
changes, paging, tab switches) mutate persisted state synchronously and then
schedule whatever fetch the new state enables; responses are applied later,
and only while the descriptor they were built from still matches the
current state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

import httpx

from media_browser.debounce import DebouncedText, SetTimer
from media_browser.errors import FetchFailed
from media_browser.filters import FilterSortState
from media_browser.models import (
    SEARCH_DEBOUNCE_DELAY,
    CollectionSummary,
    ExternalSearchRequest,
    FetchRequest,
    LibraryListRequest,
    ListDisplayMode,
    MediaGeneralFilter,
    MediaLot,
    MediaSortBy,
    MediaSortOrder,
    ResultPage,
    TabMode,
)
from media_browser.pagination import Pagination
from media_browser.services.interfaces import MediaService
from media_browser.sources import SourceReconciler
from media_browser.state import (
    ACTIVE_TAB,
    LIST_DISPLAY_MODE,
    MINE_PAGE,
    QUERY_TEXT,
    SEARCH_PAGE,
    Err,
    PersistedState,
    decode_choice,
)

logger = logging.getLogger(__name__)

# Errors a collaborator may raise that are reported as FetchFailed
FETCH_ERRORS = (httpx.HTTPError, OSError, ValueError)

SOURCES_LOOKUP = "sources"
COLLECTIONS_LOOKUP = "collections"


class Precondition(str, Enum):
    """Conditions a pipeline needs before its fetch is enabled."""

    LOT_RESOLVED = "lot_resolved"
    TAB_ACTIVE = "tab_active"
    SOURCE_RESOLVED = "source_resolved"
    QUERY_PRESENT = "query_present"


@dataclass(frozen=True, slots=True)
class QuerySnapshot:
    """Everything a fetch descriptor is built from, captured at one instant."""

    lot: MediaLot | None
    tab: TabMode
    stable_query: str
    source: str | None
    mine_page: int
    search_page: int
    sort_by: MediaSortBy
    sort_order: MediaSortOrder
    general_filter: MediaGeneralFilter
    collection_id: int | None


ENABLEMENT_RULES: dict[TabMode, tuple[Precondition, ...]] = {
    TabMode.MINE: (Precondition.LOT_RESOLVED, Precondition.TAB_ACTIVE),
    TabMode.SEARCH: (
        Precondition.LOT_RESOLVED,
        Precondition.TAB_ACTIVE,
        Precondition.SOURCE_RESOLVED,
        Precondition.QUERY_PRESENT,
    ),
}

_CHECKS: dict[Precondition, Callable[[QuerySnapshot, TabMode], bool]] = {
    Precondition.LOT_RESOLVED: lambda snap, _pipeline: snap.lot is not None,
    Precondition.TAB_ACTIVE: lambda snap, pipeline: snap.tab == pipeline,
    Precondition.SOURCE_RESOLVED: lambda snap, _pipeline: snap.source is not None,
    Precondition.QUERY_PRESENT: lambda snap, _pipeline: bool(snap.stable_query),
}


@dataclass(frozen=True, slots=True)
class FetchPlan:
    """Outcome of evaluating one pipeline's enablement rules."""

    pipeline: TabMode
    request: FetchRequest | None
    unmet: frozenset[Precondition] = frozenset()

    @property
    def enabled(self) -> bool:
        return self.request is not None


def build_library_request(snap: QuerySnapshot) -> LibraryListRequest:
    if snap.lot is None:
        raise ValueError("Lot is not resolved")
    return LibraryListRequest(
        lot=snap.lot,
        page=snap.mine_page,
        sort_by=snap.sort_by,
        sort_order=snap.sort_order,
        general_filter=snap.general_filter,
        collection_id=snap.collection_id,
        query=snap.stable_query or None,
    )


def build_search_request(snap: QuerySnapshot) -> ExternalSearchRequest:
    if snap.lot is None or snap.source is None:
        raise ValueError("Lot and source must be resolved")
    return ExternalSearchRequest(
        lot=snap.lot,
        source=snap.source,
        query=snap.stable_query,
        page=snap.search_page,
    )


_BUILDERS: dict[TabMode, Callable[[QuerySnapshot], FetchRequest]] = {
    TabMode.MINE: build_library_request,
    TabMode.SEARCH: build_search_request,
}


def plan_fetch(snap: QuerySnapshot, pipeline: TabMode) -> FetchPlan:
    """Evaluate ``pipeline``'s rules against ``snap`` and build its descriptor."""
    unmet = frozenset(
        rule for rule in ENABLEMENT_RULES[pipeline] if not _CHECKS[rule](snap, pipeline)
    )
    if unmet:
        return FetchPlan(pipeline=pipeline, request=None, unmet=unmet)
    return FetchPlan(pipeline=pipeline, request=_BUILDERS[pipeline](snap))


class QueryController:
    """Composes filters, sources, pagination and debounced text for one lot.

    Nothing is fetched before ``start()``, which must run inside an asyncio
    event loop. ``on_update`` is called with ``"mine"``, ``"search"``,
    ``"sources"`` or ``"collections"`` whenever a result or error for that
    lookup changes.
    """

    def __init__(
        self,
        service: MediaService,
        state: PersistedState,
        *,
        lot: MediaLot | None = None,
        set_timer: SetTimer | None = None,
        debounce_delay: float = SEARCH_DEBOUNCE_DELAY,
        on_update: Callable[[str], None] | None = None,
    ) -> None:
        self._service = service
        self._state = state
        self._lot = lot
        self._on_update = on_update
        self.filters = FilterSortState(state)
        self.sources = SourceReconciler(state)
        self.pages: dict[TabMode, Pagination] = {
            TabMode.MINE: Pagination(state, MINE_PAGE),
            TabMode.SEARCH: Pagination(state, SEARCH_PAGE),
        }
        self.text = DebouncedText(
            state.get(QUERY_TEXT) or "",
            delay=debounce_delay,
            set_timer=set_timer,
            on_settled=self._on_query_settled,
        )
        self.errors: dict[str, FetchFailed] = {}
        self._results: dict[TabMode, ResultPage] = {}
        self._applied: dict[TabMode, FetchRequest] = {}
        self._inflight: dict[TabMode, FetchRequest] = {}
        self._collections: list[CollectionSummary] | None = None
        self._collections_pending = False
        self._background_tasks: set[asyncio.Task[None]] = set()
        self._started = False

    # ── State accessors ──────────────────────────────────────────────────

    @property
    def lot(self) -> MediaLot | None:
        return self._lot

    @property
    def tab(self) -> TabMode:
        return self._state.get(ACTIVE_TAB) or TabMode.MINE

    @property
    def display_mode(self) -> ListDisplayMode:
        return self._state.get(LIST_DISPLAY_MODE) or ListDisplayMode.GRID

    @property
    def collections(self) -> list[CollectionSummary] | None:
        """Collections for the filter selector; None until loaded."""
        return self._collections

    @property
    def active_result(self) -> ResultPage | None:
        return self.result(self.tab)

    def result(self, pipeline: TabMode | str) -> ResultPage | None:
        """The last page applied for ``pipeline``, while it still matches current state.

        Only the active tab is ignored, so a page survives a tab round trip.
        """
        pipeline = TabMode(pipeline)
        applied = self._applied.get(pipeline)
        if applied is None:
            return None
        snap = replace(self.snapshot(), tab=pipeline)
        if plan_fetch(snap, pipeline).request != applied:
            return None
        return self._results.get(pipeline)

    def snapshot(self) -> QuerySnapshot:
        return QuerySnapshot(
            lot=self._lot,
            tab=self.tab,
            stable_query=self.text.stable,
            source=self.sources.resolved,
            mine_page=self.pages[TabMode.MINE].current_page,
            search_page=self.pages[TabMode.SEARCH].current_page,
            sort_by=self.filters.sort_by,
            sort_order=self.filters.sort_order,
            general_filter=self.filters.general_filter,
            collection_id=self.filters.collection_id,
        )

    def plan(self, pipeline: TabMode | str) -> FetchPlan:
        return plan_fetch(self.snapshot(), TabMode(pipeline))

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start(self) -> None:
        """Begin fetching: collections, sources for the lot, then any enabled pipeline."""
        if self._started:
            return
        self._started = True
        if self._lot is not None:
            self._request_lookups(self._lot)
        self._sync()

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight. Pending debounce timers are not awaited."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def close(self) -> None:
        self.text.cancel()
        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ── Events ───────────────────────────────────────────────────────────

    def set_lot(self, lot: MediaLot | None) -> None:
        """Point the controller at another lot; its sources are re-fetched."""
        if lot == self._lot:
            return
        self._lot = lot
        self.sources.invalidate()
        self.errors.pop(SOURCES_LOOKUP, None)
        if self._started and lot is not None:
            self._request_lookups(lot)
        self._sync()

    def set_query_text(self, value: str) -> None:
        """Handle a keystroke: persist the raw text and restart the debounce."""
        self._state.set(QUERY_TEXT, value)
        self.text.set_raw(value)

    def submit_query(self) -> None:
        self.text.flush()

    def clear_query(self) -> None:
        self.set_query_text("")
        self.text.flush()

    def set_general_filter(self, value: MediaGeneralFilter | str) -> None:
        self.filters.set_general_filter(value)
        self._sync()

    def set_sort_by(self, value: MediaSortBy | str) -> None:
        self.filters.set_sort_by(value)
        self._sync()

    def set_sort_order(self, value: MediaSortOrder | str) -> None:
        self.filters.set_sort_order(value)
        self._sync()

    def toggle_sort_order(self) -> MediaSortOrder:
        new_order = self.filters.toggle_sort_order()
        self._sync()
        return new_order

    def set_collection(self, collection_id: int | None) -> None:
        self.filters.set_collection(collection_id)
        self._sync()

    def reset_filters(self) -> None:
        self.filters.reset()
        self._sync()

    def select_source(self, source: str) -> None:
        self.sources.select(source)
        self._sync()

    def set_page(self, pipeline: TabMode | str, page: int | str) -> None:
        self.pages[TabMode(pipeline)].set_page(page)
        self._sync()

    def switch_tab(self, mode: Any) -> bool:
        """Activate ``mode`` if it names a tab; other values are ignored."""
        decoded = decode_choice(TabMode, ACTIVE_TAB.key, mode)
        if isinstance(decoded, Err):
            logger.debug("Ignoring switch to unknown tab %r", mode)
            return False
        self._state.set(ACTIVE_TAB, decoded.value)
        self._sync()
        return True

    def toggle_display_mode(self) -> ListDisplayMode:
        if self.display_mode == ListDisplayMode.POSTER:
            new_mode = ListDisplayMode.GRID
        else:
            new_mode = ListDisplayMode.POSTER
        self._state.set(LIST_DISPLAY_MODE, new_mode)
        return new_mode

    async def refresh(self) -> ResultPage | None:
        """Re-issue the active tab's fetch if it is enabled.

        Lookups that previously failed are retried first. Raises FetchFailed
        when the collaborator fails. No persisted field is changed, except that
        a retried sources lookup may correct the search source. Returns the
        current page for the tab, which is not the fetched page when state
        changed while the fetch was in flight.
        """
        if self._lot is not None and SOURCES_LOOKUP in self.errors:
            await self._load_sources(self._lot)
        if self._lot is not None and COLLECTIONS_LOOKUP in self.errors:
            await self._load_collections()
        plan = self.plan(self.tab)
        if plan.request is None:
            logger.debug("Refresh skipped, unmet: %s", sorted(p.value for p in plan.unmet))
            return None
        page = await self._fetch(plan.pipeline, plan.request)
        if not self._apply(plan.pipeline, plan.request, page, materialize=False):
            return self.result(plan.pipeline)
        return page

    # ── Internals ────────────────────────────────────────────────────────

    def _on_query_settled(self, _value: str) -> None:
        self._sync()

    def _request_lookups(self, lot: MediaLot) -> None:
        # Collections are lot independent and loaded once per session.
        if self._collections is None and not self._collections_pending:
            self._collections_pending = True
            self._track_task(self._load_collections())
        self._track_task(self._load_sources(lot))

    def _notify(self, name: str) -> None:
        if self._on_update is not None:
            self._on_update(name)

    def _track_task(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        """Create an asyncio task and track it to prevent garbage collection."""
        task = asyncio.get_running_loop().create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        task.add_done_callback(self._on_task_done)
        return task

    @staticmethod
    def _on_task_done(task: asyncio.Task[None]) -> None:
        """Log unhandled exceptions from background tasks."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unhandled exception in background task: %s", exc, exc_info=exc)

    def _sync(self) -> None:
        """Schedule the fetch each pipeline's current state enables, if not already done."""
        if not self._started:
            return
        for pipeline in TabMode:
            plan = self.plan(pipeline)
            if plan.request is None:
                continue
            if plan.request in (self._applied.get(pipeline), self._inflight.get(pipeline)):
                continue
            self._inflight[pipeline] = plan.request
            self._track_task(self._run_fetch(pipeline, plan.request))

    def _is_current(self, pipeline: TabMode, request: FetchRequest) -> bool:
        return self.plan(pipeline).request == request

    async def _run_fetch(self, pipeline: TabMode, request: FetchRequest) -> None:
        try:
            page = await self._fetch(pipeline, request)
        except FetchFailed:
            # Already recorded in self.errors and reported via on_update
            return
        finally:
            if self._inflight.get(pipeline) == request:
                del self._inflight[pipeline]
        self._apply(pipeline, request, page, materialize=True)

    async def _fetch(self, pipeline: TabMode, request: FetchRequest) -> ResultPage:
        try:
            if isinstance(request, LibraryListRequest):
                page = await self._service.list_library(request)
            else:
                page = await self._service.search_external(request)
        except FETCH_ERRORS as exc:
            failure = FetchFailed(pipeline, exc)
            logger.warning("%s fetch failed: %s", failure.pipeline, exc, exc_info=True)
            if self._is_current(pipeline, request):
                self.errors[failure.pipeline] = failure
                self._notify(failure.pipeline)
            raise failure from exc
        return page

    def _apply(
        self,
        pipeline: TabMode,
        request: FetchRequest,
        page: ResultPage,
        *,
        materialize: bool,
    ) -> bool:
        # Ignore stale responses after the state they were built from changed.
        if not self._is_current(pipeline, request):
            logger.debug("Discarding stale %s response for %r", pipeline.value, request)
            return False
        self._results[pipeline] = page
        self._applied[pipeline] = request
        self.errors.pop(pipeline.value, None)
        if materialize:
            self.pages[pipeline].materialize()
        self._notify(pipeline.value)
        return True

    async def _load_sources(self, lot: MediaLot) -> None:
        try:
            sources = await self._service.list_sources_for_lot(lot)
        except FETCH_ERRORS as exc:
            logger.warning("Could not load sources for %s: %s", lot.value, exc, exc_info=True)
            if lot == self._lot:
                self.errors[SOURCES_LOOKUP] = FetchFailed(SOURCES_LOOKUP, exc)
                self._notify(SOURCES_LOOKUP)
            return
        if lot != self._lot:
            logger.debug("Discarding sources for previous lot %s", lot.value)
            return
        self.errors.pop(SOURCES_LOOKUP, None)
        self.sources.apply(sources)
        self._notify(SOURCES_LOOKUP)
        self._sync()

    async def _load_collections(self) -> None:
        if self._collections is not None:
            return
        try:
            collections = await self._service.list_collections()
        except FETCH_ERRORS as exc:
            logger.warning("Could not load collections: %s", exc, exc_info=True)
            self.errors[COLLECTIONS_LOOKUP] = FetchFailed(COLLECTIONS_LOOKUP, exc)
            self._notify(COLLECTIONS_LOOKUP)
            return
        finally:
            self._collections_pending = False
        self._collections = list(collections)
        self.errors.pop(COLLECTIONS_LOOKUP, None)
        self._notify(COLLECTIONS_LOOKUP)


__all__ = [
    "COLLECTIONS_LOOKUP",
    "ENABLEMENT_RULES",
    "FETCH_ERRORS",
    "SOURCES_LOOKUP",
    "FetchPlan",
    "Precondition",
    "QueryController",
    "QuerySnapshot",
    "build_library_request",
    "build_search_request",
    "plan_fetch",
]
