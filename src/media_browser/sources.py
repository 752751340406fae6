"""Keep the persisted external-search source valid for the current lot."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from media_browser.errors import InvalidFilterValue
from media_browser.state import SEARCH_SOURCE, PersistedState

logger = logging.getLogger(__name__)


def reconcile_source(current: str | None, sources: Sequence[str]) -> str | None:
    """Return the source that should be persisted for ``sources``.

    ``current`` is kept when it is in the list; otherwise the first listed
    source wins. Returns None only for an empty list.
    """
    if current is not None and current in sources:
        return current
    if sources:
        return sources[0]
    return None


class SourceReconciler:
    """Tracks the live source list and corrects the persisted selection."""

    def __init__(self, state: PersistedState) -> None:
        self._state = state
        self._sources: tuple[str, ...] | None = None

    @property
    def sources(self) -> tuple[str, ...] | None:
        """Sources for the current lot, or None until they have been fetched."""
        return self._sources

    @property
    def selected(self) -> str | None:
        """The persisted source, valid or not."""
        return self._state.get(SEARCH_SOURCE)

    @property
    def resolved(self) -> str | None:
        """The persisted source once it is confirmed by a fetched list."""
        current = self.selected
        if self._sources is None or current not in self._sources:
            return None
        return current

    def apply(self, sources: Sequence[str]) -> str | None:
        """Record a fresh source list and correct the persisted source if stale."""
        self._sources = tuple(s.strip() for s in sources if s.strip())
        current = self.selected
        valid = reconcile_source(current, self._sources)
        if valid is None:
            logger.info("No search sources available; search stays disabled")
            return None
        if valid != current:
            logger.info("Search source %r not available, switching to %r", current, valid)
            self._state.set(SEARCH_SOURCE, valid)
        return valid

    def invalidate(self) -> None:
        """Forget the source list, e.g. when the lot changes."""
        self._sources = None

    def select(self, source: str) -> None:
        """Persist a user-chosen source; it must be listed once the list is known."""
        if isinstance(source, str):
            source = source.strip()
        if self._sources is not None and source not in self._sources:
            raise InvalidFilterValue(SEARCH_SOURCE.key, source)
        self._state.set(SEARCH_SOURCE, source)


__all__ = ["SourceReconciler", "reconcile_source"]
