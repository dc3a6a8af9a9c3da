from __future__ import annotations

import os

import typer

from layerkit.extensions import Extension, ExtensionKind


class LayerInfoCommand:
    command = "layer-info"
    describe = "Display distribution layer information"
    aliases = ["linfo"]

    @staticmethod
    def handler(
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed information"),
    ) -> None:
        typer.echo(f"Distribution version: {os.environ.get('LAYERKIT_VERSION', '0.1.0')}")
        typer.echo("Layers: vendor -> patches -> extensions -> overrides")
        if verbose:
            typer.echo("Extensions: layer-info (this command)")


async def _init() -> None:
    return None


extension = Extension(name="layer-info", kind=ExtensionKind.COMMAND, init=_init)
