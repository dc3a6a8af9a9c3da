"""Composition root wiring the resolver, injector, patcher, and extensions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from layerkit.core.injector import DependencyInjector, Injectable, InjectableKind
from layerkit.core.patcher import RuntimePatcher
from layerkit.core.resolver import ModuleResolver, SharedModuleResolver
from layerkit.core.sources import SourceRegistry
from layerkit.core.state import PassReport
from layerkit.extensions.registry import ExtensionRegistry

if TYPE_CHECKING:
    from layerkit.config import Config

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StartupReport:
    """Collected results of one startup run."""

    discovery_errors: list[str] = field(default_factory=list)
    injections: PassReport = field(default_factory=PassReport)
    patches: PassReport = field(default_factory=PassReport)
    extensions: PassReport = field(default_factory=PassReport)
    commands: PassReport = field(default_factory=PassReport)

    @property
    def ok(self) -> bool:
        return not self.discovery_errors and all(
            report.ok
            for report in (self.injections, self.patches, self.extensions, self.commands)
        )


@dataclass(slots=True)
class LayerContext:
    """Everything a host application needs to layer itself over a vendor tree.

    Components share only the resolver; nothing is process-global.
    """

    config: Config
    resolver: ModuleResolver
    injector: DependencyInjector
    patcher: RuntimePatcher
    extensions: ExtensionRegistry
    discovered: bool = False

    @classmethod
    def from_config(cls, config: Config) -> LayerContext:
        """Wire components from config and register configured properties.

        Raises:
            ManifestError: The configured source manifest is invalid
        """
        sources = None
        if config.sources == "roots":
            sources = SourceRegistry.from_roots(
                config.path(config.vendor_dir), config.path(config.overrides_dir)
            )
        if config.manifest is not None:
            manifest = SourceRegistry.from_manifest(config.path(config.manifest))
            sources = manifest if sources is None else sources.merge(manifest)
        # One module object per source, so every pass and the host share it
        resolver = SharedModuleResolver(
            root_dir=config.root_dir,
            vendor_dir=config.path(config.vendor_dir),
            overrides_dir=config.path(config.overrides_dir),
            extensions_dir=config.path(config.extensions_dir),
            namespace_prefix=config.namespace_prefix,
            sources=sources,
        )
        extensions = ExtensionRegistry(config.extension_subdirs)
        context = cls(
            config=config,
            resolver=resolver,
            injector=DependencyInjector(resolver, extensions),
            patcher=RuntimePatcher(resolver),
            extensions=extensions,
        )

        for target, values in config.properties.items():
            for name, value in values.items():
                context.injector.register(
                    Injectable(
                        target=target,
                        property=name,
                        value=value,
                        kind=InjectableKind.PROPERTY,
                    )
                )
        return context

    async def discover(self) -> list[str]:
        """Discover extensions once; later calls return no errors."""
        if self.discovered:
            return []
        self.discovered = True
        return await self.extensions.auto_discover(self.resolver.extensions_dir)

    async def startup(self, host: Any = None) -> StartupReport:
        """Run discovery and every apply/initialize pass in order.

        Args:
            host: Optional CLI builder to wire command extensions into
        """
        report = StartupReport()
        report.discovery_errors = await self.discover()
        report.injections = await self.injector.apply_all()
        report.patches = await self.patcher.apply_all()
        report.extensions = await self.extensions.initialize_all()
        if host is not None:
            report.commands = await self.injector.inject_commands(host)
        await self.injector.inject_providers()
        await self.injector.inject_tools()

        if not report.ok:
            logger.warning("Startup finished with errors")
        return report
