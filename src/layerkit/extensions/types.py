"""Extension descriptors and lifecycle states."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ExtensionKind(StrEnum):
    """What part of the host application an extension plugs into."""

    COMMAND = "command"
    PROVIDER = "provider"
    TOOL = "tool"
    MIDDLEWARE = "middleware"


class ExtensionState(StrEnum):
    """Lifecycle of an extension in the registry."""

    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"


InitAction = Callable[[], Awaitable[None] | None]


async def _noop_init() -> None:
    return None


@dataclass(slots=True)
class Extension:
    """A named, independently initializable feature unit.

    ``init`` may be async or sync; it is called once per successful
    initialization.
    """

    name: str
    kind: ExtensionKind
    init: InitAction = field(default=_noop_init, repr=False)

    def __post_init__(self) -> None:
        # Accept plain strings ("command") from discovered modules
        self.kind = ExtensionKind(self.kind)

    @classmethod
    def coerce(cls, value: Any) -> Extension:
        """Build an Extension from an exported value.

        Accepts an Extension, a mapping with ``name``/``kind``/``init`` keys,
        or any object exposing those attributes.

        Raises:
            ValueError: The value has no name or an unknown kind
        """
        if isinstance(value, Extension):
            return value

        if isinstance(value, Mapping):
            name = value.get("name")
            kind = value.get("kind", value.get("type"))
            init = value.get("init")
        else:
            name = getattr(value, "name", None)
            kind = getattr(value, "kind", getattr(value, "type", None))
            init = getattr(value, "init", None)

        if not isinstance(name, str) or not name:
            raise ValueError("Extension is missing a name")
        if kind is None:
            raise ValueError(f"Extension {name} is missing a kind")
        if init is not None and not callable(init):
            raise ValueError(f"Extension {name} init is not callable")

        return cls(name=name, kind=ExtensionKind(kind), init=init or _noop_init)
