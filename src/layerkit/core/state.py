"""Apply-state tracking shared by the injector and the patcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Generic, Literal, TypeVar


class TargetState(StrEnum):
    """Lifecycle of a target inside an apply-once registry."""

    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    APPLYING = "applying"
    APPLIED = "applied"


@dataclass(slots=True)
class PassError:
    """A failure recorded during an apply/initialize pass."""

    key: str
    stage: Literal["resolve", "apply", "init", "load", "wire"]
    message: str


@dataclass(slots=True)
class PassReport:
    """Outcome of one apply-all style pass.

    Passes are best-effort and never raise for a single target; callers that
    want strict behavior inspect ``errors``.
    """

    completed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[PassError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def merge(self, other: PassReport) -> PassReport:
        """Fold another report into this one and return self."""
        self.completed.extend(other.completed)
        self.skipped.extend(other.skipped)
        self.errors.extend(other.errors)
        return self


T = TypeVar("T")


class TargetQueue(Generic[T]):
    """Ordered per-target queues with apply-once state.

    Targets keep their first-registration order; items for a target keep
    registration order.
    """

    __slots__ = ("_queues", "_states")

    def __init__(self) -> None:
        self._queues: dict[str, list[T]] = {}
        self._states: dict[str, TargetState] = {}

    def add(self, target: str, item: T) -> None:
        self._queues.setdefault(target, []).append(item)
        self._states.setdefault(target, TargetState.REGISTERED)

    def pending(self) -> list[tuple[str, list[T]]]:
        """Snapshot of targets that have not been applied yet."""
        return [
            (target, list(items))
            for target, items in self._queues.items()
            if self._states[target] is not TargetState.APPLIED
        ]

    def items(self, target: str) -> list[T]:
        return list(self._queues.get(target, []))

    def state(self, target: str) -> TargetState:
        return self._states.get(target, TargetState.UNREGISTERED)

    def mark(self, target: str, state: TargetState) -> None:
        self._states[target] = state

    def targets(self) -> list[str]:
        return list(self._queues)

    def __contains__(self, target: str) -> bool:
        return target in self._queues

    def __len__(self) -> int:
        return len(self._queues)
