"""Swappable member slots and the surfaces patches are applied through."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Protocol


class Surface(Protocol):
    """Member access used by the injector and patcher."""

    def get(self, name: str, default: Any = None) -> Any: ...

    def set(self, name: str, value: Any) -> None: ...

    def update(self, members: Mapping[str, Any]) -> None: ...


class AttributeSurface:
    """Surface over a module or plain object, mutated in place.

    Anyone else holding a reference to the object sees the changes.
    """

    __slots__ = ("target",)

    def __init__(self, target: Any) -> None:
        self.target = target

    def get(self, name: str, default: Any = None) -> Any:
        return getattr(self.target, name, default)

    def set(self, name: str, value: Any) -> None:
        setattr(self.target, name, value)

    def update(self, members: Mapping[str, Any]) -> None:
        for name, value in members.items():
            setattr(self.target, name, value)


class Slot:
    """An owned member whose implementation can be swapped."""

    __slots__ = ("name", "impl")

    def __init__(self, name: str, impl: Any = None) -> None:
        self.name = name
        self.impl = impl

    def swap(self, impl: Any) -> Any:
        """Install a new implementation and return the previous one."""
        previous, self.impl = self.impl, impl
        return previous

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if not callable(self.impl):
            raise TypeError(f"Slot {self.name!r} is not callable")
        return self.impl(*args, **kwargs)

    def __repr__(self) -> str:
        return f"Slot({self.name!r}, {self.impl!r})"


class Capability:
    """A named set of slots forming an explicit, patchable interface.

    Attribute access returns a slot's current implementation, so
    ``capability.greet("bob")`` calls whatever is installed in ``greet``.

    Example:
        ui = Capability("ui", {"banner": lambda: "vendor"})
        ui.set("banner", lambda: "downstream")
        ui.banner()  # "downstream"
    """

    __slots__ = ("name", "_slots")

    def __init__(self, name: str, members: Mapping[str, Any] | None = None) -> None:
        self.name = name
        self._slots: dict[str, Slot] = {}
        if members:
            self.update(members)

    def slot(self, name: str) -> Slot:
        """Get a slot, creating an empty one if needed."""
        if name not in self._slots:
            self._slots[name] = Slot(name)
        return self._slots[name]

    def get(self, name: str, default: Any = None) -> Any:
        slot = self._slots.get(name)
        return slot.impl if slot is not None else default

    def set(self, name: str, value: Any) -> None:
        self.slot(name).swap(value)

    def update(self, members: Mapping[str, Any]) -> None:
        for name, value in members.items():
            self.set(name, value)

    def members(self) -> dict[str, Any]:
        return {name: slot.impl for name, slot in self._slots.items()}

    def copy(self) -> Capability:
        """Independent capability with the same current implementations."""
        return Capability(self.name, self.members())

    def __getattr__(self, name: str) -> Any:
        slots = object.__getattribute__(self, "_slots")
        slot = slots.get(name)
        if slot is None:
            raise AttributeError(f"Capability {self.name!r} has no member {name!r}")
        return slot.impl

    def __contains__(self, name: str) -> bool:
        return name in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __repr__(self) -> str:
        return f"Capability({self.name!r}, {sorted(self._slots)!r})"


def as_surface(target: Any) -> Surface:
    """Surface for a patch target: capabilities act directly, anything else by attribute."""
    if isinstance(target, Capability):
        return target
    return AttributeSurface(target)
