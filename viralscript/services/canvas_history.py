"""
Canvas undo/redo history.

Standard linear history with no branching: a new edit clears the redo stack.
Each transition returns a new state.
"""

from typing import Tuple

from pydantic import BaseModel, Field


class CanvasHistoryState(BaseModel):
    """
    Immutable canvas history.

    Attributes:
        past: Undo stack, oldest first
        present: Current canvas text
        future: Redo stack, next redo first
    """
    past: Tuple[str, ...] = Field(default_factory=tuple)
    present: str = ""
    future: Tuple[str, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    def push(self, text: str) -> "CanvasHistoryState":
        """Record a new edit. Clears the redo stack; pushing the current text is a no-op."""
        if text == self.present:
            return self
        return CanvasHistoryState(past=self.past + (self.present,), present=text, future=())

    def undo(self) -> "CanvasHistoryState":
        if not self.past:
            return self
        return CanvasHistoryState(
            past=self.past[:-1],
            present=self.past[-1],
            future=(self.present,) + self.future,
        )

    def redo(self) -> "CanvasHistoryState":
        if not self.future:
            return self
        return CanvasHistoryState(
            past=self.past + (self.present,),
            present=self.future[0],
            future=self.future[1:],
        )
