"""Runtime patcher: replace, wrap, extend, or inject into resolved modules."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from layerkit.core.resolver import ResolutionError
from layerkit.core.slots import Surface, as_surface
from layerkit.core.state import PassError, PassReport, TargetQueue, TargetState

if TYPE_CHECKING:
    from layerkit.core.resolver import ModuleResolver
    from layerkit.core.slots import Capability

logger = logging.getLogger(__name__)


class PatchKind(StrEnum):
    REPLACE = "replace"
    WRAP = "wrap"
    EXTEND = "extend"
    INJECT = "inject"


@dataclass(slots=True)
class Patch:
    """A change to a resolved module.

    ``body`` is called differently per kind:
    - replace: ``body(original) -> replacement``
    - wrap: ``body(original, owner, args) -> result`` on every call; keyword
      arguments of the call are already bound into ``original``
    - extend: ``body() -> mapping`` merged into the module
    - inject: ``body(module)`` for side effects
    """

    target: str
    kind: PatchKind
    body: Callable[..., Any]
    method: str | None = None

    def __post_init__(self) -> None:
        self.kind = PatchKind(self.kind)


def _wrap(original: Callable[..., Any], owner: Any, body: Callable[..., Any]) -> Callable[..., Any]:
    # original is captured here, once; it is never looked up again per call
    @functools.wraps(original)
    def wrapped(*args: Any, **kwargs: Any) -> Any:
        bound = functools.partial(original, **kwargs) if kwargs else original
        return body(bound, owner, args)

    return wrapped


def apply_patch(patch: Patch, surface: Surface, owner: Any) -> bool:
    """Apply one patch through a surface.

    Returns:
        False if the patch was skipped (no method name for replace/wrap, or
        wrap on a non-callable member)
    """
    if patch.kind in (PatchKind.REPLACE, PatchKind.WRAP) and not patch.method:
        logger.debug("Skipped %s patch without a method for %s", patch.kind, patch.target)
        return False

    match patch.kind:
        case PatchKind.REPLACE:
            original = surface.get(patch.method)
            surface.set(patch.method, patch.body(original))
            logger.debug("Replaced %s", patch.method)
        case PatchKind.WRAP:
            original = surface.get(patch.method)
            if not callable(original):
                logger.debug("Skipped wrap of non-callable %s", patch.method)
                return False
            surface.set(patch.method, _wrap(original, owner, patch.body))
            logger.debug("Wrapped %s", patch.method)
        case PatchKind.EXTEND:
            members = patch.body()
            if not isinstance(members, Mapping):
                raise TypeError(
                    f"extend patch for {patch.target} returned {type(members).__name__}, "
                    "expected a mapping"
                )
            surface.update(members)
            logger.debug("Extended module with %d members", len(members))
        case PatchKind.INJECT:
            patch.body(owner)
            logger.debug("Injected into module")
    return True


class RuntimePatcher:
    """Applies registered patches to modules loaded through the resolver.

    Patches for a target apply in one ordered pass, each seeing the effect
    of the earlier ones. Each target is patched at most once, so a wrap is
    never applied twice.
    """

    __slots__ = ("resolver", "_queue")

    def __init__(self, resolver: ModuleResolver) -> None:
        self.resolver = resolver
        self._queue: TargetQueue[Patch] = TargetQueue()

    def register(self, patch: Patch) -> None:
        self._queue.add(patch.target, patch)
        logger.debug("Registered %s patch for %s", patch.kind, patch.target)

    def state(self, target: str) -> TargetState:
        return self._queue.state(target)

    def patches(self, target: str) -> list[Patch]:
        return self._queue.items(target)

    async def apply_all(self) -> PassReport:
        """Apply patches to every target not patched yet."""
        report = PassReport()
        for target, patches in self._queue.pending():
            report.merge(await self._apply_target(target, patches))
        return report

    async def _apply_target(self, target: str, patches: list[Patch]) -> PassReport:
        report = PassReport()
        self._queue.mark(target, TargetState.APPLYING)

        try:
            module = await self.resolver.load(target)
        except ResolutionError as e:
            self._queue.mark(target, TargetState.REGISTERED)
            logger.error("Failed to patch %s: %s", target, e)
            report.errors.append(PassError(key=target, stage="resolve", message=str(e)))
            return report

        try:
            self._fold(target, patches, module, report)
        except Exception as e:
            # No rollback: earlier patches in this target stay applied
            logger.error("Failed to patch %s: %s", target, e, exc_info=True)
            report.errors.append(PassError(key=target, stage="apply", message=str(e)))
        else:
            report.completed.append(target)
            logger.debug("Applied %d patches to %s", len(patches), target)
        finally:
            self._queue.mark(target, TargetState.APPLIED)

        return report

    @staticmethod
    def _fold(target: str, patches: list[Patch], owner: Any, report: PassReport) -> None:
        surface = as_surface(owner)
        for patch in patches:
            if not apply_patch(patch, surface, owner):
                report.skipped.append(f"{target}:{patch.method or patch.kind}")

    def compose(self, target: str, capability: Capability) -> Capability:
        """Fold the target's patches into a copy of a capability.

        The input capability and the applied state are left untouched, so
        this can be called any number of times.
        """
        composed = capability.copy()
        self._fold(target, self._queue.items(target), composed, PassReport())
        return composed
