"""
Tests for canvas undo/redo history.
"""

import pytest
from pydantic import ValidationError

from viralscript.services.canvas_history import CanvasHistoryState


class TestCanvasHistory:
    def test_push_undo_redo(self):
        history = CanvasHistoryState(present="v1").push("v2").push("v3")

        history = history.undo()
        assert history.present == "v2"
        history = history.undo()
        assert history.present == "v1"
        assert not history.can_undo

        history = history.redo()
        assert history.present == "v2"
        assert history.can_redo

    def test_new_edit_clears_redo(self):
        history = CanvasHistoryState(present="v1").push("v2").undo().push("v2b")
        assert history.future == ()
        assert history.past == ("v1",)
        assert not history.can_redo

    def test_pushing_same_text_is_noop(self):
        history = CanvasHistoryState(present="v1")
        assert history.push("v1") is history

    def test_undo_redo_at_bounds(self):
        history = CanvasHistoryState(present="only")
        assert history.undo() is history
        assert history.redo() is history

    def test_states_are_immutable(self):
        history = CanvasHistoryState(present="v1")
        history.push("v2")
        assert history.present == "v1"
        with pytest.raises(ValidationError):
            history.present = "changed"
