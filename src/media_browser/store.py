"""Key-value stores that back persisted controller state."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Durable key-value storage.

    ``read`` never raises for a key that was never written; it returns None.
    """

    def read(self, key: str) -> Any | None: ...

    def write(self, key: str, value: Any) -> None: ...


class MemoryStore:
    """Process-local store, used for ``--no-restore`` runs and tests."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def read(self, key: str) -> Any | None:
        return self._data.get(key)

    def write(self, key: str, value: Any) -> None:
        self._data[key] = value

    def snapshot(self) -> dict[str, Any]:
        return dict(self._data)


def write_json_atomic(path: Path, data: Any, *, prefix: str) -> None:
    """Write ``data`` as JSON to ``path`` atomically.

    Uses write-to-tempfile + os.replace() so a crash mid-write never leaves
    a truncated file behind. Raises OSError on failure.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    json_str = json.dumps(data, indent=2, ensure_ascii=False)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix=prefix)
    closed = False
    try:
        os.write(fd, json_str.encode("utf-8"))
        os.close(fd)
        closed = True
        os.replace(tmp_path, path)
    except BaseException:
        if not closed:
            os.close(fd)
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class JsonFileStore:
    """Store persisted as a single JSON object on disk.

    The file is loaded lazily on first access. A missing, unreadable or
    corrupted file behaves like an empty store. Every write rewrites the
    file atomically; a failed write is logged and the value is kept in
    memory for the rest of the session.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._data: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        self._data = {}
        if not self._path.exists():
            return self._data
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("State file has invalid JSON, starting empty: %s", e)
            return self._data
        except OSError as e:
            logger.warning("Could not read state file, starting empty: %s", e)
            return self._data
        if not isinstance(raw, dict):
            logger.warning("State file root is %s, expected object", type(raw).__name__)
            return self._data
        self._data = raw
        return self._data

    def read(self, key: str) -> Any | None:
        return self._load().get(key)

    def write(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        try:
            write_json_atomic(self._path, data, prefix=".state-")
        except OSError as e:
            logger.error("Failed to save state: %s", e)


__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "write_json_atomic",
]
