"""Extension system for optional feature units.

Extensions can:
- Run an async init when the host starts up
- Add commands to the host CLI
- Declare providers, tools, and middleware for the host to wire
"""

from layerkit.extensions.hosts import CommandHost, CommandSpec, TyperCommandHost, command_spec
from layerkit.extensions.registry import ExtensionRegistry
from layerkit.extensions.types import Extension, ExtensionKind, ExtensionState

__all__ = [
    "CommandHost",
    "CommandSpec",
    "Extension",
    "ExtensionKind",
    "ExtensionRegistry",
    "ExtensionState",
    "TyperCommandHost",
    "command_spec",
]
