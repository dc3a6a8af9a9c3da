"""Test double: a source registry handing out one shared object per id."""

from __future__ import annotations

from typing import Any

from layerkit.core.sources import Layer, SourceRegistry


def shared_sources(modules: dict[str, Any]) -> SourceRegistry:
    """Registry whose factories always return the same object, like a cached import."""
    registry = SourceRegistry()
    for module_id, module in modules.items():
        registry.add(module_id, lambda module=module: module, Layer.VENDOR)
    return registry
