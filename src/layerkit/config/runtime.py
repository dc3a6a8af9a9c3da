"""Configuration loading (files + environment)."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from layerkit.core.resolver import DEFAULT_NAMESPACE
from layerkit.extensions.registry import DEFAULT_SUBDIRS

logger = logging.getLogger(__name__)

CONFIG_FILES = ("config.toml", "config.yaml", "config.yml")
SOURCE_MODES = ("files", "roots")


@dataclass(slots=True)
class Config:
    """Resolved layerkit config."""

    root_dir: Path = field(default_factory=Path.cwd)
    vendor_dir: Path = Path("vendor")
    overrides_dir: Path = Path("overrides")
    extensions_dir: Path = Path("extensions")
    namespace_prefix: str = DEFAULT_NAMESPACE
    extension_subdirs: list[str] = field(default_factory=lambda: list(DEFAULT_SUBDIRS))
    manifest: Path | None = None
    # "files": probe the trees on every load; "roots": scan them once into a source registry
    sources: str = "files"
    log_level: str = "WARNING"
    name: str = "layerkit"
    version: str = "0.1.0"
    # target -> {property: value}, registered as property injections at startup
    properties: dict[str, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def load(cls, cwd: Path | None = None) -> Config:
        """Load config from files and environment variables.

        Priority (highest to lowest):
        1. Environment variables (LAYERKIT_*)
        2. Project config (.layerkit/config.toml or .layerkit/config.yaml)
        3. Global config (~/.layerkit/config.toml or ~/.layerkit/config.yaml)
        4. Defaults
        """
        cwd = cwd or Path.cwd()
        config_data: dict[str, Any] = {}

        global_config_dir = Path.home() / ".layerkit"
        config_data = cls._merge_config(config_data, cls._load_config_file(global_config_dir))

        project_config_dir = cwd / ".layerkit"
        config_data = cls._merge_config(config_data, cls._load_config_file(project_config_dir))

        config_data = cls._apply_env_vars(config_data)
        return cls._from_dict(config_data, cwd)

    def path(self, value: Path) -> Path:
        """Absolute form of a configured path (relative paths use root_dir)."""
        return value if value.is_absolute() else self.root_dir / value

    @classmethod
    def _load_config_file(cls, config_dir: Path) -> dict[str, Any]:
        """Load the first config file found in a .layerkit directory."""
        for name in CONFIG_FILES:
            path = config_dir / name
            if not path.exists():
                continue
            if path.suffix == ".toml":
                with open(path, "rb") as f:
                    return tomllib.load(f)
            with open(path) as f:
                return yaml.safe_load(f) or {}
        return {}

    @classmethod
    def _merge_config(cls, base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
        """Deep merge a config layer over a base; nested tables merge key by key."""
        merged = dict(base)
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                value = cls._merge_config(current, value)
            merged[key] = value
        return merged

    @classmethod
    def _apply_env_vars(cls, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply LAYERKIT_* environment variables."""
        env_mappings = {
            "LAYERKIT_ROOT": "root_dir",
            "LAYERKIT_VENDOR_DIR": "vendor_dir",
            "LAYERKIT_OVERRIDES_DIR": "overrides_dir",
            "LAYERKIT_EXTENSIONS_DIR": "extensions_dir",
            "LAYERKIT_NAMESPACE": "namespace_prefix",
            "LAYERKIT_MANIFEST": "manifest",
            "LAYERKIT_SOURCES": "sources",
            "LAYERKIT_LOG_LEVEL": "log_level",
            "LAYERKIT_NAME": "name",
            "LAYERKIT_VERSION": "version",
        }

        for env_var, config_key in env_mappings.items():
            if value := os.environ.get(env_var):
                config_data[config_key] = value

        return config_data

    @classmethod
    def _from_dict(cls, data: dict[str, Any], cwd: Path) -> Config:
        """Create Config from dictionary."""
        root_dir = Path(data.get("root_dir", cwd)).expanduser()
        if not root_dir.is_absolute():
            root_dir = cwd / root_dir

        manifest = data.get("manifest")
        properties = {
            str(target): dict(values)
            for target, values in (data.get("properties") or {}).items()
            if isinstance(values, dict)
        }

        log_level = str(data.get("log_level", "WARNING")).upper()
        if log_level not in logging.getLevelNamesMapping():
            logger.warning("Unknown log level %r, using WARNING", log_level)
            log_level = "WARNING"

        sources = str(data.get("sources", "files")).lower()
        if sources not in SOURCE_MODES:
            logger.warning("Unknown sources mode %r, using files", sources)
            sources = "files"

        return cls(
            root_dir=root_dir,
            vendor_dir=Path(data.get("vendor_dir", "vendor")),
            overrides_dir=Path(data.get("overrides_dir", "overrides")),
            extensions_dir=Path(data.get("extensions_dir", "extensions")),
            namespace_prefix=data.get("namespace_prefix", DEFAULT_NAMESPACE),
            extension_subdirs=list(data.get("extension_subdirs", DEFAULT_SUBDIRS)),
            manifest=Path(manifest) if manifest else None,
            sources=sources,
            log_level=log_level,
            name=str(data.get("name", "layerkit")),
            version=str(data.get("version", "0.1.0")),
            properties=properties,
        )
