"""Core layering components."""

from layerkit.core.context import LayerContext, StartupReport
from layerkit.core.injector import DependencyInjector, Injectable, InjectableKind
from layerkit.core.patcher import Patch, PatchKind, RuntimePatcher, apply_patch
from layerkit.core.resolver import (
    DEFAULT_NAMESPACE,
    LayerkitError,
    ModuleResolver,
    ResolutionError,
    SharedModuleResolver,
    probe,
)
from layerkit.core.slots import AttributeSurface, Capability, Slot, Surface, as_surface
from layerkit.core.sources import Layer, ManifestError, SourceRegistry
from layerkit.core.state import PassError, PassReport, TargetState

__all__ = [
    # Composition root
    "LayerContext",
    "StartupReport",
    # Resolution
    "DEFAULT_NAMESPACE",
    "Layer",
    "LayerkitError",
    "ManifestError",
    "ModuleResolver",
    "SharedModuleResolver",
    "ResolutionError",
    "SourceRegistry",
    "probe",
    # Injection
    "DependencyInjector",
    "Injectable",
    "InjectableKind",
    # Patching
    "Patch",
    "PatchKind",
    "RuntimePatcher",
    "apply_patch",
    # Capabilities
    "AttributeSurface",
    "Capability",
    "Slot",
    "Surface",
    "as_surface",
    # State
    "PassError",
    "PassReport",
    "TargetState",
]
