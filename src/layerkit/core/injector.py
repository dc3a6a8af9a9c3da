"""Dependency injector: declarative property/method/class injection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from layerkit.core.resolver import ResolutionError
from layerkit.core.slots import as_surface
from layerkit.core.state import PassError, PassReport, TargetQueue, TargetState
from layerkit.extensions.hosts import as_command_host, command_spec
from layerkit.extensions.types import ExtensionKind

if TYPE_CHECKING:
    from layerkit.core.resolver import ModuleResolver
    from layerkit.extensions.registry import ExtensionRegistry

logger = logging.getLogger(__name__)

COMMANDS_SUBDIR = "commands"


class InjectableKind(StrEnum):
    PROPERTY = "property"
    METHOD = "method"
    CLASS = "class"


@dataclass(slots=True)
class Injectable:
    """Instruction to set one member on a resolved module."""

    target: str
    property: str
    value: Any
    kind: InjectableKind = InjectableKind.PROPERTY

    def __post_init__(self) -> None:
        self.kind = InjectableKind(self.kind)


class DependencyInjector:
    """Applies registered injections to modules loaded through the resolver.

    Each target is applied at most once. Within a target, injectables apply
    in registration order, so a later value for the same property wins.
    """

    __slots__ = ("resolver", "extensions", "_queue")

    def __init__(self, resolver: ModuleResolver, extensions: ExtensionRegistry) -> None:
        self.resolver = resolver
        self.extensions = extensions
        self._queue: TargetQueue[Injectable] = TargetQueue()

    def register(self, injectable: Injectable) -> None:
        self._queue.add(injectable.target, injectable)
        logger.debug(
            "Registered %s injection %s for %s",
            injectable.kind,
            injectable.property,
            injectable.target,
        )

    def state(self, target: str) -> TargetState:
        return self._queue.state(target)

    def injections(self, target: str) -> list[Injectable]:
        return self._queue.items(target)

    async def apply_all(self) -> PassReport:
        """Apply injections to every target not applied yet.

        A target whose module cannot be resolved is reported and retried on
        the next call; other targets are unaffected.
        """
        report = PassReport()
        for target, injectables in self._queue.pending():
            report.merge(await self._apply_target(target, injectables))
        return report

    async def _apply_target(self, target: str, injectables: list[Injectable]) -> PassReport:
        report = PassReport()
        self._queue.mark(target, TargetState.APPLYING)

        try:
            module = await self.resolver.load(target)
        except ResolutionError as e:
            # Nothing was mutated, so the target can be retried
            self._queue.mark(target, TargetState.REGISTERED)
            logger.error("Failed to inject into %s: %s", target, e)
            report.errors.append(PassError(key=target, stage="resolve", message=str(e)))
            return report

        surface = as_surface(module)
        try:
            for injectable in injectables:
                if injectable.kind is not InjectableKind.PROPERTY and not callable(
                    injectable.value
                ):
                    logger.debug(
                        "Skipped non-callable %s %s for %s",
                        injectable.kind,
                        injectable.property,
                        target,
                    )
                    report.skipped.append(f"{target}:{injectable.property}")
                    continue

                surface.set(injectable.property, injectable.value)
                logger.debug("Injected %s %s into %s", injectable.kind, injectable.property, target)
        except Exception as e:
            logger.error("Failed to inject into %s: %s", target, e, exc_info=True)
            report.errors.append(PassError(key=target, stage="apply", message=str(e)))
        else:
            report.completed.append(target)
        finally:
            self._queue.mark(target, TargetState.APPLIED)

        return report

    async def inject_commands(self, host: Any) -> PassReport:
        """Wire command extensions into a host CLI builder.

        Each command module is loaded from ``<extensions>/commands/<name>``.
        One broken command does not stop the others.
        """
        report = PassReport()
        host = as_command_host(host)
        commands_dir = self.resolver.extensions_dir / COMMANDS_SUBDIR

        for extension in self.extensions.list(ExtensionKind.COMMAND):
            try:
                module = await self.resolver.load(str(commands_dir / extension.name))
                spec = command_spec(module)
                if spec is None:
                    logger.debug("Command module %s exposes no command", extension.name)
                    report.skipped.append(extension.name)
                    continue

                host.command(spec.command, spec.describe, spec.builder, spec.handler)
                if spec.aliases and hasattr(host, "alias"):
                    for alias in spec.aliases:
                        host.alias(alias, spec.command, spec.handler)
            except Exception as e:
                logger.error("Failed to inject command %s: %s", extension.name, e)
                stage = "load" if isinstance(e, ResolutionError) else "wire"
                report.errors.append(PassError(key=extension.name, stage=stage, message=str(e)))
                continue

            report.completed.append(extension.name)
            logger.debug("Injected command: %s", spec.command)

        return report

    async def inject_providers(self) -> list[str]:
        """Report provider extensions; wiring depends on the host's provider system."""
        names = [ext.name for ext in self.extensions.list(ExtensionKind.PROVIDER)]
        for name in names:
            logger.debug("Would inject provider: %s", name)
        return names

    async def inject_tools(self) -> list[str]:
        """Report tool extensions; wiring depends on the host's tool system."""
        names = [ext.name for ext in self.extensions.list(ExtensionKind.TOOL)]
        for name in names:
            logger.debug("Would inject tool: %s", name)
        return names
