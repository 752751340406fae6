"""Command-line entry point: drive the query controller once and print the result."""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import sys
from collections.abc import Callable
from pathlib import Path

import httpx
from rich.console import Console
from rich.markup import escape as escape_markup
from rich.table import Table

from media_browser.config import (
    ClientSettings,
    get_config_dir,
    load_settings,
    open_state_store,
)
from media_browser.controller import COLLECTIONS_LOOKUP, SOURCES_LOOKUP, QueryController
from media_browser.errors import InvalidFilterValue
from media_browser.messages import build_actionable_error, describe_fetch_failure
from media_browser.models import (
    ListDisplayMode,
    MediaGeneralFilter,
    MediaListItem,
    MediaLot,
    MediaSortBy,
    MediaSortOrder,
    TabMode,
    resolve_lot,
)
from media_browser.pagination import result_rank, total_pages
from media_browser.services.interfaces import MediaService, build_default_media_service
from media_browser.state import PersistedState
from media_browser.store import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[ClientSettings, httpx.AsyncClient], MediaService]

_EMPTY_MESSAGES = {
    TabMode.MINE: "You do not have any saved yet",
    TabMode.SEARCH: "No media found :(",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="List your tracked media or search external sources for one lot"
    )
    parser.add_argument(
        "lot",
        help="Media lot, e.g. movie, show, book, video-game ("
        + ", ".join(lot.value.lower() for lot in MediaLot)
        + ")",
    )
    parser.add_argument("--tab", choices=[t.value for t in TabMode], help="Switch the active tab")
    parser.add_argument("--query", default=None, help="Text query (empty string clears it)")
    parser.add_argument("--page", type=int, default=None, help="Page of the active tab")
    parser.add_argument("--sort-by", choices=[s.value for s in MediaSortBy])
    parser.add_argument("--sort-order", choices=[o.value for o in MediaSortOrder])
    parser.add_argument("--filter", choices=[f.value for f in MediaGeneralFilter])
    collection = parser.add_mutually_exclusive_group()
    collection.add_argument("--collection", type=int, default=None, help="Collection id")
    collection.add_argument(
        "--no-collection", action="store_true", help="Clear the collection filter"
    )
    parser.add_argument(
        "--reset-filters",
        action="store_true",
        help="Restore the default filter, sort key and sort order",
    )
    parser.add_argument("--source", default=None, help="External search source, e.g. TMDB")
    parser.add_argument(
        "--toggle-display",
        action="store_true",
        help="Switch between grid and poster listings",
    )
    parser.add_argument(
        "--list-sources", action="store_true", help="Print search sources for the lot"
    )
    parser.add_argument(
        "--list-collections", action="store_true", help="Print your collections"
    )
    parser.add_argument("--endpoint", default=None, help="GraphQL endpoint URL")
    parser.add_argument("--token", default=None, help="API token sent as a bearer token")
    parser.add_argument(
        "--no-restore",
        action="store_true",
        help="Start from default state and do not save changes",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to file (~/.config/media-browser/debug.log)",
    )
    return parser


def _configure_logging(debug: bool) -> None:
    """Configure logging. When debug=True, logs to file at DEBUG level."""
    if not debug:
        logging.disable(logging.CRITICAL)
        return

    log_dir = get_config_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "debug.log"

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)


def _apply_arguments(controller: QueryController, args: argparse.Namespace) -> None:
    """Replay command-line choices as controller events. Raises InvalidFilterValue."""
    if args.tab:
        controller.switch_tab(args.tab)
    if args.reset_filters:
        controller.reset_filters()
    if args.filter:
        controller.set_general_filter(args.filter)
    if args.sort_by:
        controller.set_sort_by(args.sort_by)
    if args.sort_order:
        controller.set_sort_order(args.sort_order)
    if args.no_collection:
        controller.set_collection(None)
    elif args.collection is not None:
        controller.set_collection(args.collection)
    if args.source:
        controller.select_source(args.source)
    if args.page is not None:
        controller.set_page(controller.tab, args.page)
    if args.toggle_display:
        controller.toggle_display_mode()
    if args.query is not None:
        controller.set_query_text(args.query)
        controller.submit_query()


def render_result_page(console: Console, controller: QueryController) -> None:
    """Print the active tab's result page as a table."""
    pipeline = controller.tab
    page = controller.active_result
    if page is None:
        return
    if page.total <= 0:
        console.print(_EMPTY_MESSAGES[pipeline])
        return
    console.print(f"[bold]{page.total}[/] items found")

    current = controller.pages[pipeline].current_page
    poster = controller.display_mode == ListDisplayMode.POSTER
    table = Table(show_edge=False)
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Year", justify="right")
    table.add_column("Rating" if pipeline == TabMode.MINE else "In library")
    if poster:
        table.add_column("Poster", overflow="fold")

    for idx, entry in enumerate(page.items):
        if isinstance(entry, MediaListItem):
            item = entry.data
            extra = entry.average_rating or "-"
        else:
            item = entry.item
            extra = f"#{entry.database_id}" if entry.database_id is not None else ""
        row = [
            str(result_rank(current, idx)),
            escape_markup(item.title),
            str(item.publish_year or ""),
            escape_markup(extra),
        ]
        if poster:
            row.append(escape_markup(item.image or ""))
        table.add_row(*row)
    console.print(table)
    pages = total_pages(page.total)
    if pages:
        console.print(f"Page {current} of {pages}")


def _report_failures(controller: QueryController, names: list[str]) -> bool:
    failed = False
    for name in names:
        failure = controller.errors.get(name)
        if failure is not None:
            print(describe_fetch_failure(failure), file=sys.stderr)
            failed = True
    return failed


async def _run(
    args: argparse.Namespace,
    lot: MediaLot,
    settings: ClientSettings,
    store: KeyValueStore,
    service_factory: ServiceFactory,
    console: Console,
) -> int:
    async with httpx.AsyncClient() as client:
        controller = QueryController(
            service_factory(settings, client),
            PersistedState(store),
            lot=lot,
        )
        try:
            _apply_arguments(controller, args)
        except InvalidFilterValue as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        try:
            controller.start()
            await controller.wait_idle()
        finally:
            await controller.close()

    if args.list_sources:
        if _report_failures(controller, [SOURCES_LOOKUP]):
            return 1
        for source in controller.sources.sources or ():
            marker = "*" if source == controller.sources.resolved else " "
            console.print(f"{marker} {escape_markup(source)}")
    if args.list_collections:
        if _report_failures(controller, [COLLECTIONS_LOOKUP]):
            return 1
        for collection in controller.collections or []:
            console.print(f"{collection.id:>5}  {escape_markup(collection.name)}")

    tab = controller.tab
    if _report_failures(controller, [tab.value]):
        return 1
    plan = controller.plan(tab)
    if not plan.enabled:
        if tab == TabMode.SEARCH and _report_failures(controller, [SOURCES_LOOKUP]):
            return 1
        unmet = ", ".join(sorted(p.value.replace("_", " ") for p in plan.unmet))
        print(
            build_actionable_error(
                f"run the {tab.value} fetch",
                why=f"missing: {unmet}",
                next_step="pass --query TEXT (and --source) to search",
            ),
            file=sys.stderr,
        )
        return 2
    render_result_page(console, controller)
    return 0


def main(
    argv: list[str] | None = None,
    *,
    load_settings_fn: Callable[[], ClientSettings] = load_settings,
    open_store_fn: Callable[[], KeyValueStore] = open_state_store,
    service_factory: ServiceFactory = build_default_media_service,
    configure_logging_fn: Callable[[bool], None] = _configure_logging,
    console: Console | None = None,
) -> int:
    """Main entry point. Returns exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging_fn(args.debug)
    logger.debug("media-browser starting, cwd=%s", Path.cwd())

    lot = resolve_lot(args.lot)
    if lot is None:
        print(f"Error: unknown lot {args.lot!r}", file=sys.stderr)
        return 1

    settings = load_settings_fn()
    if args.endpoint:
        settings.endpoint = args.endpoint
    if args.token is not None:
        settings.auth_token = args.token

    store = MemoryStore() if args.no_restore else open_store_fn()
    return asyncio.run(_run(args, lot, settings, store, service_factory, console or Console()))


__all__ = [
    "_apply_arguments",
    "_build_parser",
    "_configure_logging",
    "main",
    "render_result_page",
]
