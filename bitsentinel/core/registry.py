"""
Copy-on-write definition registry with change notification.

Shared by the metric catalog and the anomaly definition table. Writers are
serialized by a lock and publish a fresh immutable snapshot; readers take the
current snapshot without locking, so a batch that started before a
registration keeps iterating the definitions it saw at start.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from .exceptions import RegistryError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[str, str], None]


class DefinitionRegistry(Generic[T]):
    """
    Ordered id -> definition table.

    Iteration order is registration order; replacing an existing id keeps its
    original slot. Listeners are called as listener(event, definition_id) after
    every mutation, outside the writer lock.
    """

    kind = "definition"

    def __init__(self, definitions: Optional[Iterable[T]] = None):
        self._lock = threading.Lock()
        self._items: Dict[str, T] = {}
        self._snapshot: Tuple[T, ...] = ()
        self._listeners: List[Listener] = []
        for definition in definitions or ():
            self._items[self._key(definition)] = definition
        self._snapshot = tuple(self._items.values())

    def _key(self, definition: T) -> str:
        return getattr(definition, "id")

    def _missing(self, definition_id: str) -> Exception:
        return RegistryError(f"Unknown {self.kind}: {definition_id}")

    def register(self, definition: T, replace: bool = False) -> T:
        definition_id = self._key(definition)
        with self._lock:
            if definition_id in self._items and not replace:
                raise RegistryError(f"Duplicate {self.kind} id: {definition_id}")
            items = dict(self._items)
            items[definition_id] = definition
            self._publish(items)
        self._notify("registered", definition_id)
        return definition

    def unregister(self, definition_id: str) -> T:
        with self._lock:
            if definition_id not in self._items:
                raise self._missing(definition_id)
            items = dict(self._items)
            removed = items.pop(definition_id)
            self._publish(items)
        self._notify("unregistered", definition_id)
        return removed

    def _replace(self, definition_id: str, update: Callable[[T], T], event: str) -> T:
        with self._lock:
            if definition_id not in self._items:
                raise self._missing(definition_id)
            items = dict(self._items)
            items[definition_id] = update(items[definition_id])
            self._publish(items)
        self._notify(event, definition_id)
        return items[definition_id]

    def _publish(self, items: Dict[str, T]) -> None:
        self._items = items
        self._snapshot = tuple(items.values())

    def get(self, definition_id: str) -> T:
        items = self._items
        if definition_id not in items:
            raise self._missing(definition_id)
        return items[definition_id]

    def __contains__(self, definition_id: object) -> bool:
        return definition_id in self._items

    def __len__(self) -> int:
        return len(self._snapshot)

    def definitions(self) -> Tuple[T, ...]:
        """Return the current immutable snapshot."""
        return self._snapshot

    @property
    def ids(self) -> List[str]:
        return [self._key(d) for d in self._snapshot]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners = self._listeners + [listener]

        def unsubscribe() -> None:
            with self._lock:
                self._listeners = [l for l in self._listeners if l is not listener]

        return unsubscribe

    def _notify(self, event: str, definition_id: str) -> None:
        for listener in self._listeners:
            try:
                listener(event, definition_id)
            except Exception:
                logger.exception("Registry listener failed on %s of %s", event, definition_id)
