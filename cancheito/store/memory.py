"""In-process store, used for offline runs against a database export and in tests.

Deliveries are scheduled on the running event loop rather than invoked
inline, so subscribers observe the same asynchronous arrival pattern as
with the hosted database.
"""

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any

from cancheito.store.base import (
    CollectionStore,
    ErrorCallback,
    ValueCallback,
    get_at,
    set_at,
    split_path,
)

logger = logging.getLogger(__name__)


class _MemorySubscription:
    def __init__(
        self,
        store: "MemoryStore",
        parts: list[str],
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._store = store
        self.parts = parts
        self._on_value = on_value
        self._on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if self._active:
            self._active = False
            self._store._subscriptions.discard(self)

    async def aclose(self) -> None:
        self.close()

    def deliver(self, value: Any) -> None:
        if self._active:
            self._on_value(value)

    def fail(self, error: Exception) -> None:
        if self._active:
            self.close()
            self._on_error(error)


class MemoryStore(CollectionStore):
    """Dictionary-backed CollectionStore.

    Usage::

        store = MemoryStore.from_json("export.json")
        sub = store.subscribe("ofertas", on_value, on_error)
        await store.update("ofertas/o1", {"estado": "CERRADA"})
        sub.close()
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._root: Any = copy.deepcopy(data) if data else {}
        self._subscriptions: set[_MemorySubscription] = set()
        self.writes: list[tuple[str, dict[str, Any]]] = []

    @classmethod
    def from_json(cls, path: str | Path) -> "MemoryStore":
        """Load a full database export (the JSON the console downloads)."""
        path = Path(path)
        if not path.exists():
            msg = f"Snapshot file not found: {path}"
            raise FileNotFoundError(msg)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            msg = f"Snapshot file is not valid JSON: {e}"
            raise ValueError(msg) from e
        return cls(data if isinstance(data, dict) else {})

    def subscribe(
        self,
        path: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> _MemorySubscription:
        sub = _MemorySubscription(self, split_path(path), on_value, on_error)
        self._subscriptions.add(sub)
        self._schedule(sub.deliver, copy.deepcopy(get_at(self._root, sub.parts)))
        return sub

    async def get(self, path: str) -> Any:
        return copy.deepcopy(get_at(self._root, split_path(path)))

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        parts = split_path(path)
        for key, value in fields.items():
            self._root = set_at(self._root, parts + split_path(key), value)
        self.writes.append(("/".join(parts), dict(fields)))
        logger.debug("Patched %s with %s", path, sorted(fields))
        self._notify(parts)

    def set_value(self, path: str, value: Any) -> None:
        """Replace the value at path, as an external writer would."""
        parts = split_path(path)
        self._root = set_at(self._root, parts, value)
        self._notify(parts)

    def fail(self, path: str, error: Exception) -> None:
        """Simulate a listener failure for every subscription at path."""
        parts = split_path(path)
        for sub in list(self._subscriptions):
            if sub.parts == parts:
                self._schedule(sub.fail, error)

    def _notify(self, changed: list[str]) -> None:
        for sub in list(self._subscriptions):
            n = min(len(sub.parts), len(changed))
            if sub.parts[:n] == changed[:n]:
                self._schedule(sub.deliver, copy.deepcopy(get_at(self._root, sub.parts)))

    @staticmethod
    def _schedule(callback: Any, arg: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback(arg)
            return
        loop.call_soon(callback, arg)
