"""Per-pipeline page tracking and page arithmetic."""

from __future__ import annotations

from media_browser.models import PAGE_SIZE
from media_browser.state import PersistedField, PersistedState


def total_pages(total: int, page_size: int = PAGE_SIZE) -> int:
    """Number of pages needed for ``total`` results; 0 when there are none."""
    if total <= 0:
        return 0
    return -(-total // page_size)


def page_offset(page: int, page_size: int = PAGE_SIZE) -> int:
    """Zero-based index of the first result on ``page``."""
    return (max(page, 1) - 1) * page_size


def result_rank(page: int, index: int, page_size: int = PAGE_SIZE) -> int:
    """1-based overall rank of the ``index``-th result on ``page``."""
    return page_offset(page, page_size) + index + 1


class Pagination:
    """Current page of one pipeline, backed by a persisted field.

    The page stays absent in the store until the first successful result,
    at which point ``materialize`` records page 1. Nothing but ``set_page``
    changes it afterwards.
    """

    def __init__(self, state: PersistedState, page_field: PersistedField[int]) -> None:
        self._state = state
        self._field = page_field

    @property
    def current_page(self) -> int:
        return self._state.get(self._field) or 1

    @property
    def is_materialized(self) -> bool:
        return self._state.is_set(self._field)

    @property
    def offset(self) -> int:
        return page_offset(self.current_page)

    def set_page(self, page: int | str) -> None:
        self._state.set(self._field, page)

    def materialize(self) -> bool:
        """Persist page 1 if no page was ever stored; returns True when written."""
        if self.is_materialized:
            return False
        self._state.set(self._field, 1)
        return True


__all__ = ["Pagination", "page_offset", "result_rank", "total_pages"]
