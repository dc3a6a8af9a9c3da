"""layerkit - layer a downstream distribution over an unmodified vendor tree."""

__version__ = "0.1.0"

from layerkit.config import Config
from layerkit.core.context import LayerContext
from layerkit.core.injector import DependencyInjector, Injectable, InjectableKind
from layerkit.core.patcher import Patch, PatchKind, RuntimePatcher
from layerkit.core.resolver import ModuleResolver, ResolutionError
from layerkit.extensions import Extension, ExtensionKind, ExtensionRegistry

__all__ = [
    "Config",
    "DependencyInjector",
    "Extension",
    "ExtensionKind",
    "ExtensionRegistry",
    "Injectable",
    "InjectableKind",
    "LayerContext",
    "ModuleResolver",
    "Patch",
    "PatchKind",
    "ResolutionError",
    "RuntimePatcher",
]
