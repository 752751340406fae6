"""User-facing copy for fetch failures and empty states."""

from __future__ import annotations

import httpx

from media_browser.errors import FetchFailed, GraphqlError

_LOOKUP_ACTIONS = {
    "mine": "list your library",
    "search": "search external sources",
    "sources": "load search sources",
    "collections": "load collections",
}


def _ensure_sentence(text: str) -> str:
    """Return text with terminal sentence punctuation."""
    cleaned = text.strip()
    if not cleaned:
        return ""
    if cleaned.endswith((".", "!", "?")):
        return cleaned
    return f"{cleaned}."


def build_actionable_error(
    action: str,
    *,
    next_step: str,
    why: str | None = None,
) -> str:
    """Build a 2-3 line actionable error message."""
    lines = [f"Could not {action.strip()}."]
    if why:
        lines.append(f"Why: {_ensure_sentence(why)}")
    lines.append(f"Next step: {_ensure_sentence(next_step)}")
    return "\n".join(lines)


def describe_fetch_failure(failure: FetchFailed) -> str:
    """Explain a FetchFailed in terms of what the user can do next."""
    action = _LOOKUP_ACTIONS.get(failure.pipeline, f"run the {failure.pipeline} fetch")
    cause = failure.cause
    if isinstance(cause, httpx.HTTPStatusError):
        status_code = cause.response.status_code
        if status_code == 429:
            return build_actionable_error(
                action,
                why="the server is rate limiting requests (HTTP 429)",
                next_step="wait a few seconds and refresh",
            )
        if status_code in (401, 403):
            return build_actionable_error(
                action,
                why=f"the server rejected the credentials (HTTP {status_code})",
                next_step="set a valid token with --token or in config.json",
            )
        if status_code >= 500:
            return build_actionable_error(
                action,
                why=f"the server is unavailable right now (HTTP {status_code})",
                next_step="retry in a minute",
            )
        return build_actionable_error(
            action,
            why=f"the server rejected the request (HTTP {status_code})",
            next_step="check the endpoint and filters, then refresh",
        )
    if isinstance(cause, GraphqlError):
        return build_actionable_error(
            action,
            why=f"the server reported: {cause}",
            next_step="adjust the query or source and refresh",
        )
    if isinstance(cause, (httpx.HTTPError, OSError)):
        return build_actionable_error(
            action,
            why="a network or I/O error occurred",
            next_step="check connectivity and the endpoint, then refresh",
        )
    return build_actionable_error(
        action,
        why="the server sent a response that could not be read",
        next_step="check that the endpoint points at a compatible server",
    )


__all__ = ["build_actionable_error", "describe_fetch_failure"]
