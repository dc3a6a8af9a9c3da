"""Host CLI adapters for command extensions."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Protocol

import typer


class CommandHost(Protocol):
    """A CLI builder that command extensions are wired into.

    ``builder`` and ``handler`` are opaque here; their shape belongs to the
    host's CLI framework.
    """

    def command(
        self,
        name: str,
        description: str,
        builder: Any,
        handler: Callable[..., Any],
    ) -> Any: ...


def _noop_handler() -> None:
    return None


@dataclass(slots=True)
class CommandSpec:
    """Conventional shape of a command module."""

    command: str
    describe: str = ""
    builder: Any = field(default_factory=dict)
    handler: Callable[..., Any] = _noop_handler
    aliases: list[str] = field(default_factory=list)


def command_spec(module: Any) -> CommandSpec | None:
    """Find the command definition a loaded command module exposes.

    Module-level ``command`` wins; otherwise the first class in the module
    carrying a string ``command`` attribute is used.
    """
    source = module
    if not isinstance(getattr(module, "command", None), str):
        source = None
        if isinstance(module, ModuleType):
            for value in vars(module).values():
                if inspect.isclass(value) and isinstance(getattr(value, "command", None), str):
                    source = value
                    break
    if source is None:
        return None

    return CommandSpec(
        command=source.command,
        describe=getattr(source, "describe", None) or "",
        builder=getattr(source, "builder", None) or {},
        handler=getattr(source, "handler", None) or _noop_handler,
        aliases=list(getattr(source, "aliases", None) or []),
    )


class TyperCommandHost:
    """Adapts a ``typer.Typer`` app to the CommandHost protocol.

    ``builder`` is a mapping of extra keyword arguments for
    ``Typer.command`` (``hidden``, ``context_settings``, ...). Options and
    arguments come from the handler's signature, as usual for Typer.
    """

    __slots__ = ("app",)

    def __init__(self, app: typer.Typer) -> None:
        self.app = app

    def command(
        self,
        name: str,
        description: str,
        builder: Any,
        handler: Callable[..., Any],
    ) -> Callable[..., Any]:
        options = dict(builder) if isinstance(builder, Mapping) else {}
        return self.app.command(name=name, help=description or None, **options)(handler)

    def alias(self, alias: str, name: str, handler: Callable[..., Any]) -> None:
        """Register a hidden alias for an already wired command."""
        self.app.command(name=alias, help=f"Alias for {name}", hidden=True)(handler)


def as_command_host(host: Any) -> Any:
    """Adapt known CLI builders; anything else is used as is."""
    if isinstance(host, typer.Typer):
        return TyperCommandHost(host)
    return host
