"""Compensating actions for the release sequence.

Git has no transaction spanning commit, tag and push, so each mutating step
arms a guard that knows how to undo it. If a later step fails the armed
guards are unwound newest first; once the release tag is on the remote every
guard is disarmed instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from kudet.core.result import Err, Result
from kudet.output.console import ConsoleProtocol
from kudet.services.release.errors import ReleaseError

UndoAction = Callable[[], Result[None, ReleaseError]]


@dataclass(slots=True)
class RollbackGuard:
    """An armed compensating action.

    Attributes:
        label: What the guard undoes, for log output.
        undo: The compensating action.
        manual_command: What an operator runs if ``undo`` fails.
        armed: Cleared by ``disarm``; a disarmed guard is skipped on unwind.
    """

    label: str
    undo: UndoAction
    manual_command: str
    armed: bool = True

    def disarm(self) -> None:
        self.armed = False


def _empty_guards() -> list[RollbackGuard]:
    return []


@dataclass
class RollbackStack:
    guards: list[RollbackGuard] = field(default_factory=_empty_guards)

    def arm(self, label: str, undo: UndoAction, *, manual_command: str) -> RollbackGuard:
        guard = RollbackGuard(label=label, undo=undo, manual_command=manual_command)
        self.guards.append(guard)
        return guard

    @property
    def armed(self) -> list[RollbackGuard]:
        return [g for g in self.guards if g.armed]

    def disarm_all(self) -> None:
        for guard in self.guards:
            guard.disarm()

    def unwind(self, console: ConsoleProtocol) -> list[str]:
        """Run armed guards in reverse arming order.

        A failing guard is reported and unwinding continues with the next one.

        Returns:
            Labels of the guards whose undo failed.
        """
        failed: list[str] = []
        for guard in reversed(self.guards):
            if not guard.armed:
                continue
            guard.disarm()
            console.debug(f"rollback: {guard.label}")
            result = guard.undo()
            if isinstance(result, Err):
                failed.append(guard.label)
                console.error(
                    f"ACTION REQUIRED: failed to {guard.label} ({result.error.pretty()}). "
                    f"Please run '{guard.manual_command}' manually."
                )
        return failed
