"""Remote collection store contract.

A store is path-addressable: ``subscribe`` pushes the full value at a path
every time anything under it changes, ``get`` reads it once, ``update``
patches individual fields of the record at a path.
"""

import copy
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

ValueCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]


@runtime_checkable
class Subscription(Protocol):
    """Handle returned by ``CollectionStore.subscribe``."""

    @property
    def active(self) -> bool: ...

    def close(self) -> None: ...

    async def aclose(self) -> None:
        """Close without blocking the event loop on backend teardown."""
        ...


class CollectionStore(ABC):
    """Base class that every store backend must implement."""

    @abstractmethod
    def subscribe(
        self,
        path: str,
        on_value: ValueCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """Start listening at path.

        on_value receives the complete value at path (None when empty) once
        after subscribing and again after every change. on_error is called
        at most once if the listener fails; the subscription is dead after
        that. Both callbacks run on the event-loop thread.
        """

    @abstractmethod
    async def get(self, path: str) -> Any:
        """Read the current value at path once."""

    @abstractmethod
    async def update(self, path: str, fields: dict[str, Any]) -> None:
        """Patch the given fields of the record at path. None deletes a field."""


def split_path(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def set_at(root: Any, parts: list[str], value: Any) -> Any:
    """Write value at parts under root, returning the (possibly new) root.

    Mirrors realtime-database semantics: writing None removes the key, and
    writing below a scalar replaces the scalar with a mapping.
    """
    if not parts:
        return copy.deepcopy(value)
    if not isinstance(root, dict):
        root = {}
    node = root
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    if value is None:
        node.pop(parts[-1], None)
    else:
        node[parts[-1]] = copy.deepcopy(value)
    return root


def get_at(root: Any, parts: list[str]) -> Any:
    node = root
    for part in parts:
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node
