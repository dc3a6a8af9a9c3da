"""Layered module resolution.

Priority when resolving a logical path:
1. Override tree (same relative path as the vendor file)
2. Namespace imports (``@layerkit/...``): override tree, then extensions tree
3. Unchanged (vendor file, or whatever the default import system finds)
"""

from __future__ import annotations

import hashlib
import importlib
import importlib.util
import json
import logging
import sys
import tomllib
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from layerkit.core.sources import SourceRegistry

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "@layerkit/"

SOURCE_SUFFIXES = (".py",)
DATA_SUFFIXES = (".json", ".toml", ".yaml", ".yml")
# Probe order matters: the first suffix that exists wins
PROBE_SUFFIXES = (*SOURCE_SUFFIXES, *DATA_SUFFIXES)
INDEX_STEM = "__init__"


class LayerkitError(Exception):
    """Base class for layerkit errors."""


class ResolutionError(LayerkitError):
    """Raised when no concrete module is found or its import fails."""

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        message = f"Could not load module: {path}"
        if cause is not None:
            message = f"{message} ({type(cause).__name__}: {cause})"
        super().__init__(message)


def probe(path: Path) -> Path | None:
    """Find the concrete file for a path.

    Checks the exact path, then the path with each known suffix, then an
    ``__init__`` index file inside it when it is a directory.
    """
    if path.is_file():
        return path

    for suffix in PROBE_SUFFIXES:
        candidate = Path(f"{path}{suffix}")
        if candidate.is_file():
            return candidate

    if path.is_dir():
        for suffix in PROBE_SUFFIXES:
            candidate = path / f"{INDEX_STEM}{suffix}"
            if candidate.is_file():
                return candidate

    return None


def module_name_for(path: Path, prefix: str = "layerkit_module") -> str:
    """Stable module name for a file: the same path always maps to the same name."""
    digest = hashlib.sha1(str(path.resolve()).encode("utf-8")).hexdigest()[:12]
    return f"{prefix}_{path.stem.replace('-', '_')}_{digest}"


def load_source(path: Path) -> ModuleType:
    """Execute a Python file as a fresh module.

    Every call produces a new module object; nothing is reused from a
    previous load of the same file. The sys.modules entry is keyed by path,
    so reloading a file replaces its entry instead of adding one.
    """
    module_name = module_name_for(path)

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ResolutionError(str(path))

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise ResolutionError(str(path), e) from e
    return module


def load_document(path: Path) -> ModuleType:
    """Parse a JSON/TOML/YAML file into a data module.

    Top-level keys of a mapping document become module attributes; any other
    document is exposed as ``module.data``.
    """
    try:
        if path.suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        elif path.suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ResolutionError(str(path), e) from e

    module = ModuleType(module_name_for(path, "layerkit_data"))
    module.__file__ = str(path)
    if isinstance(data, dict):
        for key, value in data.items():
            setattr(module, str(key), value)
    else:
        module.data = data
    return module


def load_path(path: Path) -> ModuleType:
    """Load a concrete file, picking the loader by suffix."""
    if path.suffix in SOURCE_SUFFIXES:
        return load_source(path)
    if path.suffix in DATA_SUFFIXES:
        return load_document(path)
    raise ResolutionError(str(path), ValueError(f"Unsupported module type: {path.suffix}"))


def module_id_for(relative: Path) -> str:
    """Module id for a file path relative to a layer root."""
    without_suffix = relative.with_suffix("") if relative.suffix in PROBE_SUFFIXES else relative
    if without_suffix.name == INDEX_STEM:
        without_suffix = without_suffix.parent
    return without_suffix.as_posix()


def _is_module_name(value: str) -> bool:
    return bool(value) and all(part.isidentifier() for part in value.split("."))


class ModuleResolver:
    """Maps logical module paths onto the override/vendor/extensions trees.

    The resolver only reads the filesystem. It performs no caching: each
    ``load`` re-executes the underlying module.
    """

    __slots__ = (
        "root_dir",
        "vendor_dir",
        "overrides_dir",
        "extensions_dir",
        "namespace_prefix",
        "sources",
    )

    def __init__(
        self,
        root_dir: Path,
        vendor_dir: Path | str = "vendor",
        overrides_dir: Path | str = "overrides",
        extensions_dir: Path | str = "extensions",
        namespace_prefix: str = DEFAULT_NAMESPACE,
        sources: SourceRegistry | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            root_dir: Project root; relative paths are taken from here
            vendor_dir: Root of the pristine vendor tree
            overrides_dir: Root of the override tree mirroring the vendor tree
            extensions_dir: Root of the extensions tree
            namespace_prefix: Reserved prefix for override/extension imports
            sources: Optional source registry consulted before the filesystem
        """
        self.root_dir = Path(root_dir)
        self.vendor_dir = self._absolute(vendor_dir)
        self.overrides_dir = self._absolute(overrides_dir)
        self.extensions_dir = self._absolute(extensions_dir)
        self.namespace_prefix = namespace_prefix
        self.sources = sources

    def _absolute(self, path: Path | str) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.root_dir / path

    def _vendor_subpath(self, logical_path: str) -> Path | None:
        try:
            return self._absolute(logical_path).relative_to(self.vendor_dir)
        except ValueError:
            return None

    def resolve(self, logical_path: str) -> str:
        """Resolve a logical path to the concrete path that should be loaded."""
        vendor_subpath = self._vendor_subpath(logical_path)
        if vendor_subpath is not None:
            override = probe(self.overrides_dir / vendor_subpath)
            if override is not None:
                logger.debug("Using override for %s: %s", logical_path, override)
                return str(override)

        if logical_path.startswith(self.namespace_prefix):
            subpath = logical_path[len(self.namespace_prefix) :]
            for root in (self.overrides_dir, self.extensions_dir):
                found = probe(root / subpath)
                if found is not None:
                    logger.debug("Resolved %s to %s", logical_path, found)
                    return str(found)

        return logical_path

    def locate(self, resolved_path: str) -> Path | None:
        """Find the file behind a resolved path (relative paths use root_dir)."""
        return probe(self._absolute(resolved_path))

    def module_id(self, logical_path: str) -> str | None:
        """Source registry id of a vendor path (``vendor/app/ui.py`` -> ``app/ui``)."""
        vendor_subpath = self._vendor_subpath(logical_path)
        if vendor_subpath is None or not vendor_subpath.parts:
            return None
        return module_id_for(vendor_subpath)

    def source_id(self, logical_path: str) -> str | None:
        """Registry id that serves a logical path, if the source registry has one.

        The logical path itself is tried first, then its vendor module id.
        """
        if self.sources is None:
            return None
        if logical_path in self.sources:
            return logical_path
        module_id = self.module_id(logical_path)
        if module_id is not None and module_id in self.sources:
            return module_id
        return None

    async def load(self, logical_path: str) -> Any:
        """Load a module through the layers.

        Raises:
            ResolutionError: No concrete module was found or its import failed
        """
        source_id = self.source_id(logical_path)
        if source_id is not None:
            try:
                return self.sources.get(source_id)()
            except ResolutionError:
                raise
            except Exception as e:
                raise ResolutionError(logical_path, e) from e

        resolved = self.resolve(logical_path)
        location = self.locate(resolved)
        if location is not None:
            return load_path(location)

        if _is_module_name(resolved):
            try:
                return importlib.import_module(resolved)
            except Exception as e:
                raise ResolutionError(resolved, e) from e

        logger.debug("No module found for %s (resolved to %s)", logical_path, resolved)
        raise ResolutionError(resolved)

    def list_overrides(self) -> list[str]:
        """List every file in the override tree, relative to its root."""
        if not self.overrides_dir.is_dir():
            return []

        return sorted(
            path.relative_to(self.overrides_dir).as_posix()
            for path in self.overrides_dir.rglob("*")
            if path.is_file() and "__pycache__" not in path.parts
        )


class SharedModuleResolver(ModuleResolver):
    """Resolver that hands out one module object per concrete source.

    The first successful load of a file (or registry entry) is kept and
    returned to every later caller, so injections and patches land on the
    module the host application gets back. Failed loads are not kept.
    """

    __slots__ = ("_modules",)

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._modules: dict[str, Any] = {}

    def cache_key(self, logical_path: str) -> str:
        """Key shared by every logical path that loads the same source."""
        source_id = self.source_id(logical_path)
        if source_id is not None:
            return f"source:{source_id}"
        location = self.locate(self.resolve(logical_path))
        if location is not None:
            return f"file:{location.resolve()}"
        return f"name:{logical_path}"

    async def load(self, logical_path: str) -> Any:
        key = self.cache_key(logical_path)
        if key not in self._modules:
            self._modules[key] = await super().load(logical_path)
            logger.debug("Loaded shared module %s", key)
        return self._modules[key]

    def forget(self, logical_path: str | None = None) -> None:
        """Drop one shared module, or all of them, so the next load re-executes."""
        if logical_path is None:
            self._modules.clear()
        else:
            self._modules.pop(self.cache_key(logical_path), None)
