from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from backgammon_clock.core.errors import EmptyHistory

if TYPE_CHECKING:
    from backgammon_clock.core.actions import Action


@dataclass
class HistoryBuffer:
    """
    Linear undo/redo over committed actions.

    The bottom of `undo_stack` is the action the session began from (the
    EndGame sentinel of a fresh match) and is never popped. Pushing always
    drops the redo stack, so history never branches.
    """

    base: Action
    undo_stack: list[Action] = field(init=False)
    redo_stack: list[Action] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.undo_stack = [self.base]

    def push(self, action: Action) -> None:
        self.undo_stack.append(action)
        self.redo_stack.clear()

    def can_undo(self) -> bool:
        return len(self.undo_stack) > 1

    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    @property
    def top(self) -> Action:
        return self.undo_stack[-1]

    def undo(self) -> Action:
        """Move the top action to the redo stack and return the one now on top."""
        if not self.can_undo():
            msg = "Nothing to undo"
            raise EmptyHistory(msg)
        self.redo_stack.append(self.undo_stack.pop())
        return self.undo_stack[-1]

    def redo(self) -> Action:
        """Move the most recently undone action back and return it."""
        if not self.can_redo():
            msg = "Nothing to redo"
            raise EmptyHistory(msg)
        action = self.redo_stack.pop()
        self.undo_stack.append(action)
        return action

    def clear(self, base: Action) -> None:
        self.base = base
        self.undo_stack = [base]
        self.redo_stack.clear()

    @property
    def depth(self) -> int:
        """Number of undoable actions."""
        return len(self.undo_stack) - 1
