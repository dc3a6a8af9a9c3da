"""Source registry: logical module id -> factory, shadowed by layer."""

from __future__ import annotations

import importlib
import logging
import tomllib
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, model_validator

from layerkit.core.resolver import (
    PROBE_SUFFIXES,
    LayerkitError,
    ResolutionError,
    load_path,
    module_id_for,
)

logger = logging.getLogger(__name__)

SourceFactory = Callable[[], Any]


class Layer(IntEnum):
    """Source layers; a higher layer shadows a lower one for the same id."""

    VENDOR = 0
    EXTENSION = 1
    OVERRIDE = 2


class ManifestError(LayerkitError):
    """Raised when a source manifest cannot be read or is invalid."""


class ManifestEntry(BaseModel):
    """One module entry in a source manifest."""

    layer: Layer = Layer.VENDOR
    path: str | None = None
    object: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _parse_layer_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("layer"), str):
            name = data["layer"].upper()
            if name not in Layer.__members__:
                raise ValueError(f"Unknown layer: {data['layer']}")
            data = {**data, "layer": Layer[name]}
        return data

    @model_validator(mode="after")
    def _check_target(self) -> ManifestEntry:
        if (self.path is None) == (self.object is None):
            raise ValueError("Exactly one of 'path' or 'object' is required")
        return self


class Manifest(BaseModel):
    """Static manifest of module sources."""

    modules: dict[str, ManifestEntry] = {}


@dataclass(slots=True)
class SourceEntry:
    """A registered factory and the layer it came from."""

    factory: SourceFactory
    layer: Layer


def _file_factory(path: Path) -> SourceFactory:
    def factory() -> Any:
        return load_path(path)

    return factory


def _object_factory(reference: str) -> SourceFactory:
    module_name, _, attribute = reference.partition(":")

    def factory() -> Any:
        try:
            module = importlib.import_module(module_name)
            return getattr(module, attribute) if attribute else module
        except (ImportError, AttributeError) as e:
            raise ResolutionError(reference, e) from e

    return factory


class SourceRegistry:
    """Maps logical module ids to factories producing the module surface.

    Populated once at startup, so resolution never probes the filesystem.
    Factories run on every lookup; the registry does not cache modules.
    """

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: dict[str, SourceEntry] = {}

    def add(self, module_id: str, factory: SourceFactory, layer: Layer = Layer.VENDOR) -> bool:
        """Register a factory for a module id.

        Returns:
            True if the entry is now active, False if a higher layer shadows it
        """
        current = self._entries.get(module_id)
        if current is not None and current.layer > layer:
            logger.debug(
                "Source %s from %s shadowed by %s", module_id, layer.name, current.layer.name
            )
            return False
        self._entries[module_id] = SourceEntry(factory=factory, layer=layer)
        return True

    def get(self, module_id: str) -> SourceFactory | None:
        entry = self._entries.get(module_id)
        return entry.factory if entry else None

    def layer_of(self, module_id: str) -> Layer | None:
        entry = self._entries.get(module_id)
        return entry.layer if entry else None

    def ids(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, module_id: str) -> bool:
        return module_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def merge(self, other: SourceRegistry) -> SourceRegistry:
        """Add every entry of another registry (layer rules apply) and return self."""
        for module_id, entry in other._entries.items():
            self.add(module_id, entry.factory, entry.layer)
        return self

    def add_root(self, root: Path, layer: Layer) -> int:
        """Register every loadable file under a layer root.

        Returns:
            Number of entries that became active
        """
        if not root.is_dir():
            return 0

        count = 0
        for path in sorted(root.rglob("*")):
            if not path.is_file() or path.suffix not in PROBE_SUFFIXES:
                continue
            if "__pycache__" in path.parts:
                continue
            module_id = module_id_for(path.relative_to(root))
            if self.add(module_id, _file_factory(path), layer):
                count += 1
        return count

    @classmethod
    def from_roots(cls, vendor_dir: Path, overrides_dir: Path) -> SourceRegistry:
        """Build a registry from the vendor and override trees."""
        registry = cls()
        registry.add_root(vendor_dir, Layer.VENDOR)
        registry.add_root(overrides_dir, Layer.OVERRIDE)
        return registry

    @classmethod
    def from_manifest(cls, path: Path, base_dir: Path | None = None) -> SourceRegistry:
        """Build a registry from a YAML or TOML manifest.

        Example manifest (YAML):
            modules:
              app/cli/ui:
                layer: override
                path: overrides/app/cli/ui.py
              app/version:
                object: my_distribution.version:VERSION_MODULE

        Args:
            path: Manifest file
            base_dir: Directory relative ``path`` entries are taken from
                (defaults to the manifest's directory)

        Raises:
            ManifestError: The file is unreadable or fails validation
        """
        try:
            if path.suffix == ".toml":
                with open(path, "rb") as f:
                    data = tomllib.load(f)
            else:
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            manifest = Manifest.model_validate(data)
        except (OSError, ValueError, yaml.YAMLError) as e:
            # pydantic's ValidationError is a ValueError
            raise ManifestError(f"Invalid source manifest {path}: {e}") from e

        base_dir = base_dir or path.parent
        registry = cls()
        for module_id, entry in manifest.modules.items():
            if entry.path is not None:
                file_path = Path(entry.path)
                if not file_path.is_absolute():
                    file_path = base_dir / file_path
                factory = _file_factory(file_path)
            else:
                factory = _object_factory(entry.object or "")
            registry.add(module_id, factory, entry.layer)
        return registry

