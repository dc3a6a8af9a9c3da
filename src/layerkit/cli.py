"""CLI entry point using Typer."""

import asyncio
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from layerkit.config import Config
from layerkit.core.context import LayerContext
from layerkit.core.resolver import LayerkitError
from layerkit.core.state import PassReport

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="layerkit",
    help="Layer a downstream distribution over an unmodified vendor tree",
    no_args_is_help=True,
)


def main() -> None:
    """Entry point for the CLI.

    Command extensions found in the extensions tree are wired into the app
    before dispatching.
    """
    config = Config.load()
    _configure_logging(config.log_level)
    try:
        context = LayerContext.from_config(config)
    except LayerkitError as e:
        logger.error("Could not set up extensions: %s", e)
    else:
        asyncio.run(_wire_commands(context))
    app()


async def _wire_commands(context: LayerContext) -> None:
    for error in await context.discover():
        logger.error(error)
    await context.injector.inject_commands(app)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_context() -> LayerContext:
    config = Config.load()
    try:
        return LayerContext.from_config(config)
    except LayerkitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e


def _echo_report(label: str, report: PassReport) -> None:
    typer.echo(
        f"  {label}: {len(report.completed)} applied, "
        f"{len(report.skipped)} skipped, {len(report.errors)} failed"
    )
    for error in report.errors:
        typer.echo(f"    [{error.stage}] {error.key}: {error.message}")


@app.callback()
def callback(
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Enable debug logging")] = False,
) -> None:
    """Layer overrides, patches, and extensions over a vendor tree."""
    if verbose:
        _configure_logging("DEBUG")


@app.command()
def resolve(
    path: Annotated[str, typer.Argument(help="Logical module path to resolve")],
) -> None:
    """Show which file a logical module path resolves to."""
    context = _load_context()
    resolved = context.resolver.resolve(path)
    location = context.resolver.locate(resolved)
    typer.echo(str(location) if location is not None else resolved)


@app.command()
def overrides() -> None:
    """List files in the override tree."""
    context = _load_context()
    files = context.resolver.list_overrides()
    if not files:
        typer.echo("No overrides found")
        return
    for path in files:
        typer.echo(path)


@app.command()
def extensions(
    init: Annotated[bool, typer.Option("--init", help="Initialize discovered extensions")] = False,
) -> None:
    """Discover and list extensions."""
    context = _load_context()
    errors = asyncio.run(context.discover())
    for error in errors:
        typer.echo(error, err=True)

    if init:
        report = asyncio.run(context.extensions.initialize_all())
        for error in report.errors:
            typer.echo(f"Failed to initialize {error.key}: {error.message}", err=True)

    found = context.extensions.list()
    if not found:
        typer.echo("No extensions found")
        return

    table = Table("Name", "Kind", "State")
    for extension in found:
        state = context.extensions.state(extension.name)
        table.add_row(extension.name, str(extension.kind), str(state))
    Console().print(table)


@app.command()
def apply(
    strict: Annotated[bool, typer.Option("--strict", help="Exit non-zero on any failure")] = False,
) -> None:
    """Run discovery, injections, patches, and extension initialization."""
    context = _load_context()
    report = asyncio.run(context.startup())

    typer.echo("Startup report:")
    for error in report.discovery_errors:
        typer.echo(f"  discovery: {error}")
    _echo_report("Injections", report.injections)
    _echo_report("Patches", report.patches)
    _echo_report("Extensions", report.extensions)

    if strict and not report.ok:
        raise typer.Exit(1)


@app.command()
def info(
    verbose: Annotated[
        bool, typer.Option("-v", "--verbose", help="List every layer entry")
    ] = False,
) -> None:
    """Show layer information."""
    context = _load_context()
    config = context.config
    resolver = context.resolver
    override_files = resolver.list_overrides()
    errors = asyncio.run(context.discover())

    typer.echo(f"{config.name} {config.version}")
    typer.echo("")
    typer.echo("Layers:")
    typer.echo(f"  1. Vendor     {resolver.vendor_dir}")
    typer.echo(f"  2. Overrides  {resolver.overrides_dir} ({len(override_files)} files)")
    typer.echo(f"  3. Extensions {resolver.extensions_dir} ({len(context.extensions)} found)")
    typer.echo(f"Namespace prefix: {resolver.namespace_prefix}")

    if verbose:
        typer.echo("")
        typer.echo("Overrides:")
        for path in override_files or ["[none]"]:
            typer.echo(f"  - {path}")
        typer.echo("Extensions:")
        for extension in context.extensions.list():
            typer.echo(f"  - {extension.name} ({extension.kind})")
        if not len(context.extensions):
            typer.echo("  - [none]")
        for error in errors:
            typer.echo(f"  ! {error}")


@app.command()
def config_show() -> None:
    """Show current configuration."""
    config = Config.load()

    typer.echo("Current configuration:")
    typer.echo(f"  Name: {config.name}")
    typer.echo(f"  Version: {config.version}")
    typer.echo(f"  Root Dir: {config.root_dir}")
    typer.echo(f"  Vendor Dir: {config.path(config.vendor_dir)}")
    typer.echo(f"  Overrides Dir: {config.path(config.overrides_dir)}")
    typer.echo(f"  Extensions Dir: {config.path(config.extensions_dir)}")
    typer.echo(f"  Extension Subdirs: {', '.join(config.extension_subdirs)}")
    typer.echo(f"  Namespace Prefix: {config.namespace_prefix}")
    typer.echo(f"  Manifest: {config.manifest or '[none]'}")
    typer.echo(f"  Sources: {config.sources}")
    typer.echo(f"  Log Level: {config.log_level}")

    if config.properties:
        typer.echo("\nConfigured properties:")
        for target, values in config.properties.items():
            typer.echo(f"  {target}:")
            for name, value in values.items():
                typer.echo(f"    {name} = {value!r}")


if __name__ == "__main__":
    main()
