"""Extension registry: registration, discovery, and initialization."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from layerkit.core.resolver import ResolutionError, load_source
from layerkit.core.state import PassError, PassReport
from layerkit.extensions.types import Extension, ExtensionKind, ExtensionState

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SUBDIRS = ("commands", "providers", "tools")

# Module-level name a discovered file exports its extension under
EXPORT_NAME = "extension"


def _carries_name(value: object) -> bool:
    if isinstance(value, Mapping):
        return "name" in value
    return value is not None and hasattr(value, "name")


class ExtensionRegistry:
    """Holds extensions by name and runs their initialization.

    The first registration of a name wins; later ones are discarded with a
    warning. A failed ``init()`` leaves the extension eligible for the next
    ``initialize_all()``.
    """

    __slots__ = ("_extensions", "_states", "subdirs")

    def __init__(self, subdirs: tuple[str, ...] | list[str] = DEFAULT_SUBDIRS) -> None:
        self._extensions: dict[str, Extension] = {}
        self._states: dict[str, ExtensionState] = {}
        self.subdirs = tuple(subdirs)

    def register(self, extension: Extension) -> bool:
        """Register an extension.

        Returns:
            True if registered, False if the name was already taken
        """
        if extension.name in self._extensions:
            logger.warning("Extension %s already registered", extension.name)
            return False

        self._extensions[extension.name] = extension
        self._states[extension.name] = ExtensionState.REGISTERED
        logger.debug("Registered %s: %s", extension.kind, extension.name)
        return True

    def get(self, name: str) -> Extension | None:
        return self._extensions.get(name)

    def list(self, kind: ExtensionKind | None = None) -> list[Extension]:
        """All extensions in registration order, optionally filtered by kind."""
        if kind is None:
            return list(self._extensions.values())
        return [ext for ext in self._extensions.values() if ext.kind == kind]

    def state(self, name: str) -> ExtensionState:
        return self._states.get(name, ExtensionState.UNREGISTERED)

    def __contains__(self, name: str) -> bool:
        return name in self._extensions

    def __len__(self) -> int:
        return len(self._extensions)

    async def initialize_all(self) -> PassReport:
        """Initialize every extension that is not initialized yet."""
        report = PassReport()

        # Snapshot: an init() may register further extensions for the next pass
        for name, extension in list(self._extensions.items()):
            if self._states[name] is ExtensionState.INITIALIZED:
                continue

            self._states[name] = ExtensionState.INITIALIZING
            try:
                result = extension.init()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._states[name] = ExtensionState.REGISTERED
                logger.error("Failed to initialize %s: %s", name, e, exc_info=True)
                report.errors.append(PassError(key=name, stage="init", message=str(e)))
                continue

            self._states[name] = ExtensionState.INITIALIZED
            report.completed.append(name)
            logger.debug("Initialized %s", name)

        return report

    async def auto_discover(self, extensions_dir: Path) -> list[str]:
        """Discover and register extensions from the kind subdirectories.

        Each ``*.py`` file (``_``-prefixed files are skipped) is executed and
        its module-level ``extension`` value registered when it carries a
        name. Missing directories count as "no extensions".

        Returns:
            List of error messages (empty if everything loaded)
        """
        errors: list[str] = []

        for subdir in self.subdirs:
            directory = extensions_dir / subdir
            try:
                paths = sorted(directory.glob("*.py")) if directory.is_dir() else []
            except OSError as e:
                logger.debug("Cannot read extension directory %s: %s", directory, e)
                paths = []

            if not paths:
                logger.debug("No extensions in %s", directory)
                continue

            for path in paths:
                if path.name.startswith("_"):
                    continue
                error = self._discover_file(path)
                if error:
                    errors.append(error)

        return errors

    def _discover_file(self, path: Path) -> str | None:
        try:
            module = load_source(path)
        except ResolutionError as e:
            logger.error("Failed to load %s: %s", path.name, e)
            return f"Error loading extension {path}: {e}"

        exported = getattr(module, EXPORT_NAME, None)
        if not _carries_name(exported):
            logger.debug("%s exports no extension", path.name)
            return None

        try:
            extension = Extension.coerce(exported)
        except ValueError as e:
            logger.error("Invalid extension in %s: %s", path.name, e)
            return f"Invalid extension {path}: {e}"

        self.register(extension)
        return None
