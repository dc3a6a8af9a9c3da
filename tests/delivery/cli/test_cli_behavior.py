"""Behavior tests for CLI commands via CLI runner boundary."""

from __future__ import annotations

import os
import textwrap
from typing import TYPE_CHECKING

from typer.testing import CliRunner

from layerkit import cli
from tests.conftest import write_module

if TYPE_CHECKING:
    from pathlib import Path


def make_project(temp_dir, monkeypatch) -> Path:
    home = temp_dir / "home"
    project = temp_dir / "project"
    home.mkdir()
    project.mkdir()
    project = project.resolve()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(project)
    for var in [name for name in os.environ if name.startswith("LAYERKIT_")]:
        monkeypatch.delenv(var)
    return project


def test_resolve_prints_override_file(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)
    write_module(project / "vendor/app/ui.py", "")
    override = write_module(project / "overrides/app/ui.py", "")

    result = CliRunner().invoke(cli.app, ["resolve", "vendor/app/ui"])

    assert result.exit_code == 0
    assert result.output.strip() == str(override)


def test_resolve_prints_vendor_file_without_override(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)
    vendor = write_module(project / "vendor/app/ui.py", "")

    result = CliRunner().invoke(cli.app, ["resolve", "vendor/app/ui"])

    assert result.exit_code == 0
    assert result.output.strip() == str(vendor)


def test_overrides_lists_override_tree(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)
    runner = CliRunner()

    empty = runner.invoke(cli.app, ["overrides"])
    write_module(project / "overrides/app/ui.py", "")
    listed = runner.invoke(cli.app, ["overrides"])

    assert "No overrides found" in empty.output
    assert listed.output.strip() == "app/ui.py"


def test_extensions_lists_and_initializes(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)
    write_module(
        project / "extensions/commands/hello.py",
        "extension = {'name': 'hello', 'kind': 'command'}",
    )

    result = CliRunner().invoke(cli.app, ["extensions", "--init"])

    assert result.exit_code == 0
    assert "hello" in result.output
    assert "initialized" in result.output


def test_apply_reports_and_strict_fails_on_errors(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)
    (project / ".layerkit").mkdir()
    (project / ".layerkit" / "config.toml").write_text(
        textwrap.dedent(
            """
            [properties."vendor/app/missing.py"]
            NAME = "Acme"
            """
        )
    )
    runner = CliRunner()

    relaxed = runner.invoke(cli.app, ["apply"])
    strict = runner.invoke(cli.app, ["apply", "--strict"])

    assert relaxed.exit_code == 0
    assert "Injections: 0 applied, 0 skipped, 1 failed" in relaxed.output
    assert "vendor/app/missing.py" in relaxed.output
    assert strict.exit_code == 1


def test_apply_succeeds_for_existing_targets(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)
    write_module(project / "vendor/app/install.py", "NAME = 'vendor'")
    (project / ".layerkit").mkdir()
    (project / ".layerkit" / "config.yaml").write_text(
        "properties:\n  vendor/app/install.py:\n    NAME: Acme\n"
    )

    result = CliRunner().invoke(cli.app, ["apply", "--strict"])

    assert result.exit_code == 0
    assert "Injections: 1 applied, 0 skipped, 0 failed" in result.output


def test_info_shows_layers(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)
    write_module(project / "overrides/app/ui.py", "")
    (project / ".layerkit").mkdir()
    (project / ".layerkit" / "config.toml").write_text('name = "acme"\nversion = "2.0"\n')

    result = CliRunner().invoke(cli.app, ["info", "--verbose"])

    assert result.exit_code == 0
    assert "acme 2.0" in result.output
    assert "(1 files)" in result.output
    assert "- app/ui.py" in result.output


def test_invalid_manifest_exits_with_error(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)
    (project / "sources.yaml").write_text("modules:\n  app/ui: {layer: override}\n")
    monkeypatch.setenv("LAYERKIT_MANIFEST", "sources.yaml")

    result = CliRunner().invoke(cli.app, ["overrides"])

    assert result.exit_code == 1


def test_config_show(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)

    result = CliRunner().invoke(cli.app, ["config-show"])

    assert result.exit_code == 0
    assert f"Root Dir: {project}" in result.output
    assert "Namespace Prefix: @layerkit/" in result.output


def test_config_show_with_unknown_log_level(temp_dir, monkeypatch):
    make_project(temp_dir, monkeypatch)
    monkeypatch.setenv("LAYERKIT_LOG_LEVEL", "loud")

    result = CliRunner().invoke(cli.app, ["config-show"])

    assert result.exit_code == 0
    assert "Log Level: WARNING" in result.output


def test_apply_with_roots_sources(temp_dir, monkeypatch):
    project = make_project(temp_dir, monkeypatch)
    write_module(project / "vendor/app/install.py", "NAME = 'vendor'")
    monkeypatch.setenv("LAYERKIT_SOURCES", "roots")
    (project / ".layerkit").mkdir()
    (project / ".layerkit" / "config.yaml").write_text(
        "properties:\n  vendor/app/install.py:\n    NAME: Acme\n"
    )

    result = CliRunner().invoke(cli.app, ["apply", "--strict"])

    assert result.exit_code == 0
    assert "Injections: 1 applied, 0 skipped, 0 failed" in result.output
