"""Exception types raised by the media browser."""

from __future__ import annotations

from typing import Any


class MediaBrowserError(Exception):
    """Base class for media browser errors."""


class InvalidFilterValue(MediaBrowserError, ValueError):
    """A setter received a value outside the field's closed set."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"Invalid value for {field}: {value!r}")
        self.field = field
        self.value = value


class FetchFailed(MediaBrowserError):
    """A collaborator failed to answer a fetch for ``pipeline``.

    ``pipeline`` is ``"mine"``, ``"search"``, ``"sources"`` or ``"collections"``.
    """

    def __init__(self, pipeline: str, cause: BaseException) -> None:
        # TabMode members are str subclasses; keep the plain value.
        name = getattr(pipeline, "value", pipeline)
        super().__init__(f"{name} fetch failed: {cause}")
        self.pipeline: str = name
        self.cause = cause


class GraphqlError(ValueError):
    """The GraphQL endpoint answered with an ``errors`` payload."""

    def __init__(self, messages: list[str]) -> None:
        super().__init__("; ".join(messages) or "unknown GraphQL error")
        self.messages = messages


__all__ = [
    "FetchFailed",
    "GraphqlError",
    "InvalidFilterValue",
    "MediaBrowserError",
]
