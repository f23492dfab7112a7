"""Visual-board interface and an in-memory board for terminal hosts and tests."""

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional, Sequence, Union

from chess_bridge.config import deep_merge_config
from chess_bridge.defaults import BOARD_POLICY, default_board_config
from chess_bridge.models import BLACK, WHITE, DrawShape, PieceView
from chess_bridge.scheduling import CooperativeScheduler

logger = logging.getLogger(__name__)

ShapeLike = Union[DrawShape, Mapping]


class VisualBoard(ABC):
    """
    Rendering and interaction component the bridge keeps in sync.

    ``state`` is the board's configuration tree (same shape as the default
    board configuration) and ``pieces`` maps square keys to piece views.
    """

    state: Dict[str, Any]
    pieces: Dict[str, PieceView]

    @abstractmethod
    def set(self, config: Mapping) -> None:
        """Overlay a partial configuration; None resets a field."""

    @abstractmethod
    def set_pieces(self, diff: Mapping) -> None:
        """Apply a key to piece mapping; a None value empties the square."""

    @abstractmethod
    def move(self, orig: str, dest: str) -> bool:
        """Move a piece visually."""

    @abstractmethod
    def set_shapes(self, shapes: Iterable[ShapeLike]) -> None:
        """Replace the drawn shapes."""

    @abstractmethod
    def toggle_orientation(self) -> None:
        """Flip the side shown at the bottom."""

    @abstractmethod
    def cancel_premove(self) -> None:
        """Drop the queued premove, if any."""

    @abstractmethod
    def play_premove(self) -> bool:
        """Play the queued premove if it is now possible."""

    @abstractmethod
    def redraw_all(self) -> None:
        """Redraw everything."""


class HeadlessBoard(VisualBoard):
    """
    Board state without any rendering.

    Besides the interface used by the bridge it exposes ``user_move``, which
    plays the part of a drag-and-drop gesture: it checks the same movable
    and premovable settings an interactive board would and calls the
    configured event hooks.

    :param scheduler: Receives awaitables returned by hooks
    :type scheduler: Optional[CooperativeScheduler]
    :param config: Initial partial configuration
    :type config: Optional[Mapping]
    """

    def __init__(self, scheduler: Optional[CooperativeScheduler] = None, config: Optional[Mapping] = None) -> None:
        self.scheduler = scheduler or CooperativeScheduler()
        self.state: Dict[str, Any] = default_board_config()
        self.pieces: Dict[str, PieceView] = {}
        self.redraw_count = 0
        if config:
            self.set(config)

    def set(self, config: Mapping) -> None:
        self.state = deep_merge_config(self.state, config, BOARD_POLICY)

    def set_pieces(self, diff: Mapping) -> None:
        for key, piece in diff.items():
            if piece is None:
                self.pieces.pop(key, None)
            else:
                self.pieces[key] = piece

    def move(self, orig: str, dest: str) -> bool:
        """
        Move the piece on ``orig`` to ``dest``, capturing whatever is there.

        :return: False if there is no piece on ``orig`` or the squares match
        :rtype: bool
        """
        piece = self.pieces.get(orig)
        if piece is None or orig == dest:
            return False
        captured = self.pieces.get(dest)
        self.pieces[dest] = self.pieces.pop(orig)
        self.state["last_move"] = [orig, dest]
        self.state["check"] = None
        self.state["selected"] = None
        logger.debug(f"[Board] Moved {piece.color} {piece.role} {orig}->{dest}")
        self._fire(("events", "move"), orig, dest, captured)
        self._fire(("events", "change"))
        return True

    def set_shapes(self, shapes: Iterable[ShapeLike]) -> None:
        self.state["drawable"]["shapes"] = [
            shape if isinstance(shape, DrawShape) else DrawShape.model_validate(shape)
            for shape in shapes
        ]

    @property
    def shapes(self) -> Sequence[DrawShape]:
        return list(self.state["drawable"]["shapes"])

    def toggle_orientation(self) -> None:
        self.state["orientation"] = BLACK if self.state["orientation"] == WHITE else WHITE

    def cancel_premove(self) -> None:
        if self.state["premovable"]["current"]:
            self.state["premovable"]["current"] = None
            self._fire(("premovable", "events", "unset"))

    def play_premove(self) -> bool:
        current = self.state["premovable"]["current"]
        if not current:
            return False
        orig, dest = current
        self.state["premovable"]["current"] = None
        if not self.can_move(orig, dest):
            logger.debug(f"[Board] Premove {orig}->{dest} no longer possible")
            self._fire(("premovable", "events", "unset"))
            return False
        self._user_move(orig, dest, premove=True)
        return True

    def redraw_all(self) -> None:
        self.redraw_count += 1

    def can_move(self, orig: str, dest: str) -> bool:
        """Whether a gesture from ``orig`` to ``dest`` would be accepted now."""
        piece = self.pieces.get(orig)
        if piece is None or orig == dest or self.state["view_only"]:
            return False
        movable = self.state["movable"]
        if movable["color"] != "both" and (movable["color"] != piece.color or self.state["turn_color"] != piece.color):
            return False
        return bool(movable["free"]) or dest in (movable["dests"] or {}).get(orig, ())

    def can_premove(self, orig: str, dest: str) -> bool:
        piece = self.pieces.get(orig)
        if piece is None or orig == dest or self.state["view_only"]:
            return False
        return (
            bool(self.state["premovable"]["enabled"])
            and self.state["movable"]["color"] == piece.color
            and self.state["turn_color"] != piece.color
        )

    def user_move(self, orig: str, dest: str) -> bool:
        """
        Simulate a player dragging a piece from ``orig`` to ``dest``.

        :return: True if the move was made, False if it was refused or queued as a premove
        :rtype: bool
        """
        if self.can_move(orig, dest):
            self._user_move(orig, dest, premove=False)
            return True
        if self.can_premove(orig, dest):
            self.state["premovable"]["current"] = [orig, dest]
            logger.debug(f"[Board] Premove set {orig}->{dest}")
            self._fire(("premovable", "events", "set"), orig, dest)
        return False

    def _user_move(self, orig: str, dest: str, premove: bool) -> None:
        captured = self.pieces.get(dest)
        self.move(orig, dest)
        self._fire(("movable", "events", "after"), orig, dest, {"premove": premove, "captured": captured})

    def _fire(self, path: Sequence[str], *args: Any) -> None:
        node: Any = self.state
        for part in path:
            node = node.get(part) if isinstance(node, Mapping) else None
        if node is None:
            return
        result = node(*args)
        if inspect.isawaitable(result):
            self.scheduler.spawn(result)
