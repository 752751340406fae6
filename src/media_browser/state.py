"""Typed persisted fields for controller state.

Every field the controller restores across sessions is declared once here
with its store key, decoder and default. ``PersistedState`` decodes all of
them when it is constructed and validates every write before it reaches
the store, so an out-of-range value is never persisted.

Decoders are total: they return ``Ok(value)`` or ``Err(InvalidFilterValue)``
instead of raising, which lets a restore discard bad data while setters turn
the same ``Err`` into an exception.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Generic, TypeVar

from media_browser.errors import InvalidFilterValue
from media_browser.models import (
    DEFAULT_FILTERS,
    ListDisplayMode,
    MediaGeneralFilter,
    MediaSortBy,
    MediaSortOrder,
    TabMode,
)
from media_browser.store import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=Enum)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Err:
    error: InvalidFilterValue


Decoder = Callable[[str, Any], "Ok[Any] | Err"]


def decode_choice(choices: type[E], field: str, raw: Any) -> Ok[E] | Err:
    """Decode ``raw`` into a member of ``choices`` by identity or value."""
    if isinstance(raw, choices):
        return Ok(raw)
    if isinstance(raw, str):
        try:
            return Ok(choices(raw))
        except ValueError:
            pass
    return Err(InvalidFilterValue(field, raw))


def _as_int(raw: Any) -> int | None:
    # bool is an int subclass; True must not decode as page 1
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw)
        except ValueError:
            return None
    return None


def decode_page(field: str, raw: Any) -> Ok[int] | Err:
    """Decode a 1-based page number; accepts ints and numeric strings."""
    value = _as_int(raw)
    if value is None or value < 1:
        return Err(InvalidFilterValue(field, raw))
    return Ok(value)


def decode_collection(field: str, raw: Any) -> Ok[int | None] | Err:
    """Decode a collection id; None (or an empty string) means no collection."""
    if raw is None or raw == "":
        return Ok(None)
    value = _as_int(raw)
    if value is None:
        return Err(InvalidFilterValue(field, raw))
    return Ok(value)


def decode_text(field: str, raw: Any) -> Ok[str] | Err:
    if isinstance(raw, str):
        return Ok(raw)
    return Err(InvalidFilterValue(field, raw))


def decode_identifier(field: str, raw: Any) -> Ok[str] | Err:
    if isinstance(raw, str) and raw.strip():
        return Ok(raw.strip())
    return Err(InvalidFilterValue(field, raw))


@dataclass(frozen=True, slots=True)
class PersistedField(Generic[T]):
    """A named value restored from and written to a ``KeyValueStore``.

    ``default`` applies while nothing valid has been persisted; None means
    the field starts out absent.
    """

    key: str
    decoder: Decoder
    default: T | None = None

    def decode(self, raw: Any) -> Ok[T] | Err:
        return self.decoder(self.key, raw)

    @staticmethod
    def encode(value: Any) -> Any:
        return value.value if isinstance(value, Enum) else value


ACTIVE_TAB: PersistedField[TabMode] = PersistedField(
    "active_tab", partial(decode_choice, TabMode), TabMode.MINE
)
MINE_PAGE: PersistedField[int] = PersistedField("mine_page", decode_page)
MINE_SORT_BY: PersistedField[MediaSortBy] = PersistedField(
    "mine_sort_by", partial(decode_choice, MediaSortBy), DEFAULT_FILTERS.sort_by
)
MINE_SORT_ORDER: PersistedField[MediaSortOrder] = PersistedField(
    "mine_sort_order", partial(decode_choice, MediaSortOrder), DEFAULT_FILTERS.sort_order
)
MINE_GENERAL_FILTER: PersistedField[MediaGeneralFilter] = PersistedField(
    "mine_general_filter",
    partial(decode_choice, MediaGeneralFilter),
    DEFAULT_FILTERS.general_filter,
)
MINE_COLLECTION: PersistedField[int] = PersistedField("mine_collection", decode_collection)
SEARCH_PAGE: PersistedField[int] = PersistedField("search_page", decode_page)
SEARCH_SOURCE: PersistedField[str] = PersistedField("search_source", decode_identifier)
QUERY_TEXT: PersistedField[str] = PersistedField("query", decode_text, "")
LIST_DISPLAY_MODE: PersistedField[ListDisplayMode] = PersistedField(
    "list_display_mode", partial(decode_choice, ListDisplayMode), ListDisplayMode.GRID
)

STATE_FIELDS: tuple[PersistedField[Any], ...] = (
    ACTIVE_TAB,
    MINE_PAGE,
    MINE_SORT_BY,
    MINE_SORT_ORDER,
    MINE_GENERAL_FILTER,
    MINE_COLLECTION,
    SEARCH_PAGE,
    SEARCH_SOURCE,
    QUERY_TEXT,
    LIST_DISPLAY_MODE,
)


class PersistedState:
    """Decoded view over a store for a fixed set of persisted fields."""

    def __init__(
        self,
        store: KeyValueStore,
        fields: Iterable[PersistedField[Any]] = STATE_FIELDS,
    ) -> None:
        self._store = store
        self._fields = {f.key: f for f in fields}
        self._values: dict[str, Any] = {}
        self._present: set[str] = set()
        for f in self._fields.values():
            self._restore(f)

    def _restore(self, f: PersistedField[Any]) -> None:
        raw = self._store.read(f.key)
        self._values[f.key] = f.default
        if raw is None:
            return
        decoded = f.decode(raw)
        if isinstance(decoded, Err):
            logger.warning("Discarding persisted %s: %s", f.key, decoded.error)
            return
        self._values[f.key] = decoded.value
        if decoded.value is not None:
            self._present.add(f.key)

    def _field(self, f: PersistedField[T]) -> PersistedField[T]:
        if f.key not in self._fields:
            raise KeyError(f"Unknown persisted field: {f.key}")
        return f

    def get(self, f: PersistedField[T]) -> T | None:
        return self._values[self._field(f).key]

    def is_set(self, f: PersistedField[Any]) -> bool:
        """True once a valid value has been persisted for ``f``."""
        return self._field(f).key in self._present

    def set(self, f: PersistedField[T], value: Any) -> T | None:
        """Validate and persist ``value``; raises InvalidFilterValue before writing."""
        decoded = self._field(f).decode(value)
        if isinstance(decoded, Err):
            raise decoded.error
        self._store.write(f.key, f.encode(decoded.value))
        self._values[f.key] = decoded.value
        if decoded.value is None:
            self._present.discard(f.key)
        else:
            self._present.add(f.key)
        return decoded.value


__all__ = [
    "ACTIVE_TAB",
    "LIST_DISPLAY_MODE",
    "MINE_COLLECTION",
    "MINE_GENERAL_FILTER",
    "MINE_PAGE",
    "MINE_SORT_BY",
    "MINE_SORT_ORDER",
    "QUERY_TEXT",
    "SEARCH_PAGE",
    "SEARCH_SOURCE",
    "STATE_FIELDS",
    "Err",
    "Ok",
    "PersistedField",
    "PersistedState",
    "decode_choice",
    "decode_collection",
    "decode_identifier",
    "decode_page",
    "decode_text",
]
