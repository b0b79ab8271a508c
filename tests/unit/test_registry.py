"""
Unit tests for the copy-on-write definition registry.
"""

from dataclasses import dataclass

import pytest

from bitsentinel.core.exceptions import RegistryError
from bitsentinel.core.registry import DefinitionRegistry


@dataclass(frozen=True)
class Item:
    id: str
    value: int = 0


def test_register_preserves_order():
    registry = DefinitionRegistry([Item("a"), Item("b")])
    registry.register(Item("c"))
    assert registry.ids == ["a", "b", "c"]
    assert len(registry) == 3
    assert "b" in registry


def test_duplicate_id_is_rejected():
    registry = DefinitionRegistry([Item("a")])
    with pytest.raises(RegistryError):
        registry.register(Item("a", 1))


def test_replace_keeps_slot():
    registry = DefinitionRegistry([Item("a"), Item("b")])
    registry.register(Item("a", 5), replace=True)
    assert registry.ids == ["a", "b"]
    assert registry.get("a").value == 5


def test_unknown_lookups_raise():
    registry = DefinitionRegistry()
    with pytest.raises(RegistryError):
        registry.get("missing")
    with pytest.raises(RegistryError):
        registry.unregister("missing")


def test_snapshot_is_unaffected_by_later_writes():
    registry = DefinitionRegistry([Item("a")])
    snapshot = registry.definitions()
    registry.register(Item("b"))
    registry.unregister("a")
    assert [d.id for d in snapshot] == ["a"]
    assert registry.ids == ["b"]


def test_listeners_receive_events():
    registry = DefinitionRegistry()
    events = []
    unsubscribe = registry.subscribe(lambda event, item_id: events.append((event, item_id)))

    registry.register(Item("a"))
    registry.unregister("a")
    unsubscribe()
    registry.register(Item("b"))

    assert events == [("registered", "a"), ("unregistered", "a")]


def test_failing_listener_does_not_break_mutation(caplog):
    registry = DefinitionRegistry()

    def broken(event, item_id):
        raise RuntimeError("listener down")

    registry.subscribe(broken)
    registry.register(Item("a"))

    assert registry.ids == ["a"]
    assert "Registry listener failed" in caplog.text


def test_instances_are_isolated():
    first = DefinitionRegistry()
    second = DefinitionRegistry()
    first.register(Item("a"))
    assert "a" not in second
