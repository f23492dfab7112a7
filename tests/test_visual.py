"""Tests for the headless visual board."""

import pytest
from pydantic import ValidationError

from chess_bridge.models import DrawShape, PieceView
from chess_bridge.visual import HeadlessBoard

WHITE_PAWN = PieceView(role="pawn", color="white")
BLACK_PAWN = PieceView(role="pawn", color="black")


@pytest.fixture
def board():
    """Board with one pawn each and e2-e4 allowed for white."""
    board = HeadlessBoard()
    board.set_pieces({"e2": WHITE_PAWN, "d7": BLACK_PAWN})
    board.set({"movable": {"color": "white", "dests": {"e2": ["e3", "e4"]}}})
    return board


class TestHeadlessBoard:
    """Test cases for HeadlessBoard class."""

    def test_initial_state(self) -> None:
        """Test the board starts from the default configuration."""
        board = HeadlessBoard(config={"orientation": "black"})
        assert board.state["orientation"] == "black"
        assert board.state["animation"] == {"enabled": True, "duration": 300}
        assert board.pieces == {}

    def test_set_merges(self, board) -> None:
        """Test partial configuration overlays the state."""
        board.set({"animation": {"duration": 50}})
        assert board.state["animation"] == {"enabled": True, "duration": 50}
        assert board.state["movable"]["dests"] == {"e2": ["e3", "e4"]}

    def test_set_pieces_none_empties_square(self, board) -> None:
        """Test a None value removes a piece."""
        board.set_pieces({"e2": None, "a1": None})
        assert board.pieces == {"d7": BLACK_PAWN}

    def test_move(self, board) -> None:
        """Test moving a piece and the move and change events."""
        calls = []
        board.set({"events": {
            "move": lambda orig, dest, captured: calls.append(("move", orig, dest, captured)),
            "change": lambda: calls.append(("change",)),
        }})
        assert board.move("e2", "e4") is True
        assert board.pieces == {"e4": WHITE_PAWN, "d7": BLACK_PAWN}
        assert board.state["last_move"] == ["e2", "e4"]
        assert calls == [("move", "e2", "e4", None), ("change",)]

    def test_move_from_empty_square(self, board) -> None:
        """Test moving nothing fails."""
        assert board.move("a1", "a2") is False

    def test_user_move_calls_after_hook(self, board) -> None:
        """Test a legal gesture moves the piece and calls movable.events.after."""
        calls = []
        board.set({"movable": {"events": {"after": lambda *args: calls.append(args)}}})
        assert board.user_move("e2", "e4") is True
        assert calls == [("e2", "e4", {"premove": False, "captured": None})]

    def test_user_move_refused(self, board) -> None:
        """Test gestures outside the destinations or by the wrong side."""
        assert board.user_move("e2", "e5") is False
        assert board.user_move("d7", "d5") is False
        board.set({"view_only": True})
        assert board.user_move("e2", "e4") is False

    def test_free_movement(self, board) -> None:
        """Test free mode ignores destinations."""
        board.set({"movable": {"free": True, "color": "both"}})
        assert board.can_move("d7", "a1") is True

    def test_premove_set_played_and_cancelled(self, board) -> None:
        """Test queueing a premove when it is not the player's turn."""
        calls = []
        board.set({
            "turn_color": "black",
            "premovable": {"events": {
                "set": lambda orig, dest: calls.append(("set", orig, dest)),
                "unset": lambda: calls.append(("unset",)),
            }},
        })
        assert board.user_move("e2", "e4") is False
        assert board.state["premovable"]["current"] == ["e2", "e4"]
        assert board.play_premove() is False
        assert calls == [("set", "e2", "e4"), ("unset",)]

        board.user_move("e2", "e4")
        board.set({"turn_color": "white"})
        assert board.play_premove() is True
        assert "e4" in board.pieces

        board.set({"turn_color": "black"})
        board.user_move("e4", "e5")
        board.cancel_premove()
        assert board.state["premovable"]["current"] is None
        assert calls[-1] == ("unset",)

    def test_async_hook_is_scheduled(self, board) -> None:
        """Test an async hook runs on scheduler flush."""
        calls = []

        async def after(orig, dest, metadata):
            calls.append((orig, dest))

        board.set({"movable": {"events": {"after": after}}})
        board.user_move("e2", "e4")
        assert calls == []
        board.scheduler.flush()
        assert calls == [("e2", "e4")]

    def test_set_shapes(self, board) -> None:
        """Test shapes given as dicts are validated."""
        board.set_shapes([{"orig": "e2", "dest": "e4", "brush": "red"}, DrawShape(orig="d7")])
        assert board.shapes == [DrawShape(orig="e2", dest="e4", brush="red"), DrawShape(orig="d7")]
        with pytest.raises(ValidationError):
            board.set_shapes([{"dest": "e4"}])

    def test_toggle_orientation(self, board) -> None:
        """Test flipping the board twice."""
        board.toggle_orientation()
        assert board.state["orientation"] == "black"
        board.toggle_orientation()
        assert board.state["orientation"] == "white"
