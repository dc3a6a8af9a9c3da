"""Behavior tests for the source registry."""

from __future__ import annotations

import json
import textwrap

import pytest

from layerkit.core.sources import Layer, ManifestError, SourceRegistry
from tests.conftest import write_module


def test_override_layer_shadows_vendor_regardless_of_order():
    registry = SourceRegistry()

    registry.add("app/ui", lambda: "override", Layer.OVERRIDE)
    accepted = registry.add("app/ui", lambda: "vendor", Layer.VENDOR)

    assert accepted is False
    assert registry.get("app/ui")() == "override"
    assert registry.layer_of("app/ui") is Layer.OVERRIDE


def test_same_layer_replaces_previous_entry():
    registry = SourceRegistry()

    registry.add("app/ui", lambda: "first", Layer.VENDOR)
    registry.add("app/ui", lambda: "second", Layer.VENDOR)

    assert registry.get("app/ui")() == "second"


def test_unknown_id_has_no_factory():
    registry = SourceRegistry()

    assert registry.get("missing") is None
    assert registry.layer_of("missing") is None
    assert "missing" not in registry


def test_from_roots_builds_ids_and_shadows_vendor(temp_dir):
    write_module(temp_dir / "vendor/app/ui.py", "BANNER = 'vendor'")
    write_module(temp_dir / "vendor/app/cli/__init__.py", "NAME = 'cli'")
    write_module(temp_dir / "overrides/app/ui.py", "BANNER = 'override'")

    registry = SourceRegistry.from_roots(temp_dir / "vendor", temp_dir / "overrides")

    assert registry.ids() == ["app/cli", "app/ui"]
    assert registry.layer_of("app/ui") is Layer.OVERRIDE
    assert registry.layer_of("app/cli") is Layer.VENDOR
    assert registry.get("app/ui")().BANNER == "override"
    assert registry.get("app/cli")().NAME == "cli"


def test_factories_run_on_every_lookup(temp_dir):
    write_module(temp_dir / "vendor/app/state.py", "items = []")
    registry = SourceRegistry.from_roots(temp_dir / "vendor", temp_dir / "overrides")

    factory = registry.get("app/state")

    assert factory() is not factory()


def test_from_manifest_yaml(temp_dir):
    write_module(temp_dir / "overrides/app/ui.py", "BANNER = 'override'")
    manifest = temp_dir / "sources.yaml"
    manifest.write_text(
        textwrap.dedent(
            """
            modules:
              app/ui:
                layer: override
                path: overrides/app/ui.py
              app/encoder:
                object: json:dumps
            """
        )
    )

    registry = SourceRegistry.from_manifest(manifest)

    assert registry.layer_of("app/ui") is Layer.OVERRIDE
    assert registry.get("app/ui")().BANNER == "override"
    assert registry.layer_of("app/encoder") is Layer.VENDOR
    assert registry.get("app/encoder")() is json.dumps


def test_from_manifest_toml(temp_dir):
    manifest = temp_dir / "sources.toml"
    manifest.write_text(
        textwrap.dedent(
            """
            [modules."app/json"]
            layer = "extension"
            object = "json"
            """
        )
    )

    registry = SourceRegistry.from_manifest(manifest)

    assert registry.layer_of("app/json") is Layer.EXTENSION
    assert registry.get("app/json")() is json


@pytest.mark.parametrize(
    "entry",
    [
        "{layer: override}",
        "{path: a.py, object: json}",
        "{layer: sideways, path: a.py}",
    ],
)
def test_from_manifest_rejects_invalid_entries(temp_dir, entry):
    manifest = temp_dir / "sources.yaml"
    manifest.write_text(f"modules:\n  app/ui: {entry}\n")

    with pytest.raises(ManifestError):
        SourceRegistry.from_manifest(manifest)


def test_from_manifest_missing_file(temp_dir):
    with pytest.raises(ManifestError):
        SourceRegistry.from_manifest(temp_dir / "missing.yaml")


def test_merge_keeps_layer_rules():
    scanned = SourceRegistry()
    scanned.add("app/ui", lambda: "override", Layer.OVERRIDE)
    scanned.add("app/cli", lambda: "vendor", Layer.VENDOR)
    manifest = SourceRegistry()
    manifest.add("app/ui", lambda: "manifest", Layer.VENDOR)
    manifest.add("app/cli", lambda: "manifest", Layer.EXTENSION)

    merged = scanned.merge(manifest)

    assert merged is scanned
    assert merged.get("app/ui")() == "override"
    assert merged.get("app/cli")() == "manifest"
