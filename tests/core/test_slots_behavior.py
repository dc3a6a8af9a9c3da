"""Behavior tests for capabilities and surfaces."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from layerkit.core.slots import AttributeSurface, Capability, Slot, as_surface


def test_capability_dispatches_to_current_slot_implementation():
    ui = Capability("ui", {"banner": lambda: "vendor"})

    ui.set("banner", lambda: "downstream")

    assert ui.banner() == "downstream"


def test_capability_copy_is_independent():
    ui = Capability("ui", {"banner": lambda: "vendor"})

    copy = ui.copy()
    copy.set("banner", lambda: "downstream")

    assert ui.banner() == "vendor"
    assert copy.banner() == "downstream"


def test_capability_missing_member_raises_attribute_error():
    ui = Capability("ui")

    with pytest.raises(AttributeError):
        ui.banner  # noqa: B018

    assert ui.get("banner", "default") == "default"
    assert "banner" not in ui


def test_capability_members_keep_insertion_order():
    ui = Capability("ui", {"a": 1, "b": 2})
    ui.update({"c": 3, "a": 4})

    assert ui.members() == {"a": 4, "b": 2, "c": 3}
    assert list(ui) == ["a", "b", "c"]


def test_slot_swap_returns_previous_implementation():
    slot = Slot("greet", lambda name: f"hi {name}")

    previous = slot.swap(lambda name: f"hello {name}")

    assert previous("bob") == "hi bob"
    assert slot("bob") == "hello bob"


def test_slot_without_callable_raises_type_error():
    slot = Slot("greet", "not callable")

    with pytest.raises(TypeError):
        slot("bob")


def test_as_surface_mutates_plain_objects_in_place():
    module = SimpleNamespace(NAME="vendor")
    alias = module

    surface = as_surface(module)
    surface.set("NAME", "downstream")
    surface.update({"VERSION": "1.0"})

    assert isinstance(surface, AttributeSurface)
    assert alias.NAME == "downstream"
    assert alias.VERSION == "1.0"
    assert surface.get("missing") is None


def test_as_surface_uses_capability_directly():
    ui = Capability("ui")

    assert as_surface(ui) is ui
