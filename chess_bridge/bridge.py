"""Keeps a rules engine and a visual board in sync."""

import logging
import re
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Union

from chess_bridge.config import deep_copy, deep_merge_config
from chess_bridge.coordinates import CoordinateMapper
from chess_bridge.defaults import BOARD_POLICY, DEFAULT_BOARD_CONFIG
from chess_bridge.engine import ActionResult, ChessRulesEngine, HistoryEntry, Player, RulesEngine
from chess_bridge.errors import NotSupportedError
from chess_bridge.events import CHECKMATE, DRAW, MOVE, EventEmitter
from chess_bridge.hooks import patch_event_slot
from chess_bridge.models import (
    Color,
    DrawShape,
    HistoryViewerState,
    Live,
    MoveEvent,
    MoveRequest,
    Viewing,
)
from chess_bridge.projection import (
    DestinationMap,
    build_legal_destinations,
    build_piece_map,
    pieces_to_map,
    threat_shapes,
)
from chess_bridge.scheduling import CooperativeScheduler
from chess_bridge.visual import ShapeLike, VisualBoard

logger = logging.getLogger(__name__)

AFTER_MOVE_SLOT = ("movable", "events", "after")

_COORDINATE_MOVE = re.compile(r"^([a-z]\d+)([a-z]\d+)([qrbn])?$")


class GameStateBridge:
    """
    Owns the coupling between a rules engine and a visual board.

    The engine is the single source of truth. Every change goes through the
    engine first and the board's pieces, legal destinations and turn are then
    rebuilt from it. While an earlier position is being viewed the board shows
    that position read-only and moves are refused.

    :param board: Board to keep in sync
    :type board: VisualBoard
    :param engine: Rules engine, standard chess if omitted
    :type engine: Optional[RulesEngine]
    :param board_config: Configuration applied over the defaults on every reset
    :type board_config: Optional[Mapping]
    :param player_color: Restrict board input to one side
    :type player_color: Optional[Color]
    :param emitter: Receives ``move``, ``draw`` and ``checkmate`` events
    :type emitter: Optional[EventEmitter]
    :param scheduler: Scheduler for premoves, the board's own if omitted
    :type scheduler: Optional[CooperativeScheduler]
    """

    def __init__(
        self,
        board: VisualBoard,
        engine: Optional[RulesEngine] = None,
        board_config: Optional[Mapping] = None,
        player_color: Optional[Color] = None,
        emitter: Optional[EventEmitter] = None,
        scheduler: Optional[CooperativeScheduler] = None,
    ) -> None:
        self.board = board
        self.engine = engine or ChessRulesEngine()
        self.mapper = CoordinateMapper(self.engine.shape)
        self.scheduler = scheduler or getattr(board, "scheduler", None) or CooperativeScheduler()
        self.emitter = emitter or EventEmitter(self.scheduler)
        self.board_config: Dict[str, Any] = deep_copy(dict(board_config or {}), BOARD_POLICY)
        self.player_color = player_color
        self.history_viewer_state: HistoryViewerState = Live()
        self.show_threats = False
        self.reset_board()

    #
    # Internal state synchronisation
    #

    def _sync_board(self, update_pieces: bool = True) -> None:
        """Rebuild the board's derived views from the engine, unless viewing history."""
        if self.is_viewing_history:
            return

        if update_pieces:
            self.board.set_pieces(build_piece_map(self.engine, self.mapper))

        turn_color = self.get_turn_color()
        dests: DestinationMap
        if self.board.state["movable"]["free"]:
            movable_color: Optional[str] = "both"
            dests = {}
        else:
            movable_color = self.player_color or turn_color
            dests = build_legal_destinations(self.engine, self.mapper)
        if self.engine.is_game_over():
            movable_color = None

        self.board.set({
            "turn_color": turn_color,
            "check": turn_color if self.engine.is_check() else None,
            "movable": {"color": movable_color, "dests": dests},
        })

        if self.show_threats:
            self.draw_moves()

    def _update_game_state(self, update_pieces: bool = True) -> None:
        self._sync_board(update_pieces=update_pieces)
        self._emit_events()

    def _emit_events(self) -> None:
        if not self.engine.is_game_over():
            return
        if self.engine.is_draw():
            logger.debug("[Bridge] Game over: draw")
            self.emitter.emit(DRAW)
        else:
            loser = self.get_turn_color()
            logger.debug(f"[Bridge] Game over: {loser} is checkmated")
            self.emitter.emit(CHECKMATE, loser)

    def _change_turn(self, orig: str, dest: str, metadata: Optional[Mapping] = None) -> None:
        """Internal ``movable.events.after`` handler: commit a move made on the board."""
        if not self.apply_move(orig, dest):
            logger.debug(f"[Bridge] Rejected gesture {orig}->{dest}, redrawing from the engine")
            self._redraw_from_engine()

    def _redraw_from_engine(self) -> None:
        """Undo whatever the board did on its own by projecting the engine state again."""
        state = self.history_viewer_state
        if isinstance(state, Viewing):
            self.view_history(state.ply)
            return
        self._sync_board()
        try:
            last_move = self._last_move_keys(self.engine.history())
        except NotSupportedError:
            return
        self.board.set({"last_move": last_move})

    def _live_ply(self) -> int:
        try:
            return self.engine.ply_count()
        except NotSupportedError:
            return self.get_current_ply_number()

    def _move_event(self, result: ActionResult, ply: int) -> MoveEvent:
        return MoveEvent(
            orig=self.mapper.square_index_to_key(result.action.src_idx),
            dest=self.mapper.square_index_to_key(result.action.dst_idx),
            promotion=result.action.promotion,
            color=result.color,
            role=result.role,
            san=result.san,
            captured=result.captured,
            check=result.check,
            before=result.before,
            after=result.after,
            ply=ply,
        )

    def _last_move_keys(self, history: List[HistoryEntry]) -> Optional[List[str]]:
        if not history:
            return None
        last = history[-1]
        return [
            self.mapper.square_index_to_key(last.action.src_idx),
            self.mapper.square_index_to_key(last.action.dst_idx),
        ]

    def _leave_history_viewer(self) -> None:
        state = self.history_viewer_state
        if isinstance(state, Viewing):
            self.board.set({"view_only": state.view_only})
            self.history_viewer_state = Live()

    #
    # Public API
    #

    @property
    def is_viewing_history(self) -> bool:
        return isinstance(self.history_viewer_state, Viewing)

    def get_history_viewer_state(self) -> HistoryViewerState:
        return self.history_viewer_state

    def reset_board(self) -> None:
        """Reset the game to the initial position and reapply the board configuration."""
        self.engine.reset()
        self._leave_history_viewer()
        self.board.set_pieces(build_piece_map(self.engine, self.mapper))
        self.set_config(self.board_config, fill_defaults=True)
        logger.debug("[Bridge] Board reset")

    def forbid_moves(self) -> None:
        """Stop the board from accepting move gestures."""
        self.board.set({"movable": {"color": None}})

    def allow_moves(self) -> None:
        """Let the side to move make gestures on the board again."""
        self.board.set({"movable": {"color": self.get_turn_color()}})

    def set_current_player(self, player: Union[Player, Color]) -> None:
        """
        Change the side to move.

        :param player: Player or color that should move next
        :type player: Union[Player, Color]
        :raises NotSupportedError: If the engine cannot change the side to move
        """
        if not isinstance(player, Player):
            player = Player.from_color(player)
        self.engine.set_current_player(player)
        self._update_game_state()

    def is_move_legal(self, orig: str, dest: str) -> bool:
        """
        Check a move against the engine without changing anything.

        :param orig: Origin square key
        :type orig: str
        :param dest: Destination square key
        :type dest: str
        :return: True if the side to move may play ``orig`` to ``dest``
        :rtype: bool
        :raises InvalidCoordinateError: If either key is off the board
        """
        src_idx = self.mapper.key_to_square_index(orig)
        dst_idx = self.mapper.key_to_square_index(dest)
        return any(action.dst_idx == dst_idx for action in self.engine.legal_actions_by_square(src_idx))

    def apply_move(self, orig: str, dest: str, promotion: Optional[str] = None, emit_event: bool = True) -> bool:
        """
        Make a move and bring the board up to date.

        :param orig: Origin square key
        :type orig: str
        :param dest: Destination square key
        :type dest: str
        :param promotion: Promotion piece letter (q, r, b or n), queen if omitted
        :type promotion: Optional[str]
        :param emit_event: Emit a ``move`` event on success
        :type emit_event: bool
        :return: True if the move was made, False if it was refused
        :rtype: bool
        :raises InvalidCoordinateError: If either key is off the board
        """
        if self.is_viewing_history:
            logger.debug(f"[Bridge] Refusing {orig}->{dest} while viewing history")
            return False
        if self.engine.is_game_over():
            logger.debug(f"[Bridge] Refusing {orig}->{dest}: game is over")
            return False
        request = MoveRequest(orig=orig, dest=dest, promotion=promotion)
        if not self.is_move_legal(request.orig, request.dest):
            logger.debug(f"[Bridge] Illegal move {orig}->{dest}")
            return False

        result = self.engine.apply_action(
            self.mapper.key_to_square_index(request.orig),
            self.mapper.key_to_square_index(request.dest),
            request.promotion,
        )
        if result is None:
            return False

        self.board.move(orig, dest)
        self._sync_board()
        if emit_event:
            self.emitter.emit(MOVE, self._move_event(result, self._live_ply()))
        self._emit_events()
        self.scheduler.call_soon(self.board.play_premove)
        if self.engine.is_game_over():
            self.forbid_moves()
        return True

    def move(self, move: Union[MoveRequest, Mapping, str], emit_event: bool = True) -> bool:
        """
        Make a move given as a request, a mapping or coordinate notation.

        :param move: ``MoveRequest``, ``{'orig': 'e2', 'dest': 'e4'}`` or ``'e2e4'`` / ``'e7e8q'``
        :type move: Union[MoveRequest, Mapping, str]
        :return: True if the move was made, False otherwise
        :rtype: bool
        """
        if isinstance(move, str):
            match = _COORDINATE_MOVE.match(move.strip().lower())
            if not match:
                return False
            move = MoveRequest(orig=match.group(1), dest=match.group(2), promotion=match.group(3))
        elif not isinstance(move, MoveRequest):
            move = MoveRequest.model_validate(dict(move))
        return self.apply_move(move.orig, move.dest, move.promotion, emit_event=emit_event)

    def undo_last_move(self) -> Optional[MoveEvent]:
        """
        Take back the last move, if there is one.

        :return: The move taken back
        :rtype: Optional[MoveEvent]
        :raises NotSupportedError: If the engine cannot undo
        """
        entry = self.engine.undo()
        if entry is None:
            return None

        history = self.engine.history()
        state = self.history_viewer_state
        # the viewed position may now be the live one
        if isinstance(state, Viewing) and state.ply >= len(history):
            self.stop_viewing_history()

        if not self.is_viewing_history:
            self._sync_board()
            self.board.set({"last_move": self._last_move_keys(history)})
        return self._move_event(entry, entry.ply)

    def toggle_orientation(self) -> None:
        self.board.toggle_orientation()

    def draw_moves(self) -> None:
        """Draw circles and arrows for the possible moves, captures and checks."""
        self.show_threats = True
        self.board.set_shapes(threat_shapes(self.engine.annotated_legal_actions(), self.mapper))

    def hide_moves(self) -> None:
        self.show_threats = False
        self.board.set_shapes([])

    def toggle_moves(self) -> None:
        if self.show_threats:
            self.hide_moves()
        else:
            self.draw_moves()

    def draw_move(self, orig: str, dest: str, brush: str = "green") -> None:
        """Draw a single arrow, replacing any other shapes."""
        self.board.set_shapes([DrawShape(orig=orig, dest=dest, brush=brush)])

    def get_turn_color(self) -> Color:
        return self.engine.current_player().color

    def get_possible_moves(self) -> DestinationMap:
        return build_legal_destinations(self.engine, self.mapper)

    def get_current_turn_number(self) -> int:
        """
        :return: The current turn number, e.g. 2 after ``e4 e5``
        :rtype: int
        """
        return self.engine.move_number()

    def get_current_ply_number(self) -> int:
        """
        :return: The current ply number, e.g. 3 after ``e4 e5 Nf3``
        :rtype: int
        """
        return 2 * self.get_current_turn_number() - (1 if self.get_turn_color() == "black" else 2)

    def get_last_move(self) -> Optional[MoveEvent]:
        history = self.engine.history()
        if not history:
            return None
        return self._move_event(history[-1], history[-1].ply)

    def get_history(self, verbose: bool = False) -> Union[List[str], List[MoveEvent]]:
        """
        Moves played so far.

        :param verbose: Return full move events instead of SAN strings
        :type verbose: bool
        :return: SAN strings, or MoveEvent objects when verbose
        :rtype: Union[List[str], List[MoveEvent]]
        """
        history = self.engine.history()
        if verbose:
            return [self._move_event(entry, entry.ply) for entry in history]
        return [entry.san for entry in history]

    def get_fen(self) -> str:
        return self.engine.export_position()

    def get_board_position(self) -> List[List[Optional[Dict[str, str]]]]:
        """
        The position as a grid, highest rank first.

        :return: Rows of ``{'square', 'type', 'color'}`` dicts or None for empty squares
        :rtype: List[List[Optional[Dict[str, str]]]]
        """
        by_key = {self.mapper.square_index_to_key(piece.square_index): piece for piece in self.engine.pieces()}
        grid = []
        for row in self.mapper.rows():
            cells: List[Optional[Dict[str, str]]] = []
            for key in row:
                piece = by_key.get(key)
                cells.append({"square": key, "type": piece.role, "color": piece.color} if piece else None)
            grid.append(cells)
        return grid

    def get_pgn(self) -> str:
        return self.engine.export_pgn()

    def get_is_game_over(self) -> bool:
        return self.engine.is_game_over()

    def get_config(self) -> Dict[str, Any]:
        return deep_copy(self.board.state, BOARD_POLICY)

    def dump(self) -> str:
        return self.engine.dump()

    def set_position(self, position: str) -> None:
        """
        Load a position, discarding the game history.

        :param position: Position string understood by the engine (FEN for chess)
        :type position: str
        :raises InvalidPositionError: If the engine cannot load the position
        """
        self.engine.import_position(position)
        self._leave_history_viewer()
        self.board.set({"last_move": None})
        self._update_game_state()
        logger.debug(f"[Bridge] Position set to {position}")

    def put_piece(self, role: str, color: Color, square: str, health_points: Optional[int] = None) -> bool:
        """
        Put a piece on an empty square.

        :param role: Piece role, e.g. ``'queen'``
        :type role: str
        :param color: ``'white'`` or ``'black'``
        :type color: Color
        :param square: Square key
        :type square: str
        :param health_points: Health override for the piece
        :type health_points: Optional[int]
        :return: True on success, False if the engine refused
        :rtype: bool
        """
        if not self.engine.add_piece(role, color, self.mapper.key_to_square_index(square), health_points):
            return False
        self._leave_history_viewer()
        self._update_game_state()
        self.board.redraw_all()
        return True

    def remove_piece(self, square: str) -> bool:
        """
        Remove the piece on a square.

        :return: True if a piece was removed
        :rtype: bool
        """
        if not self.engine.remove_piece(self.mapper.key_to_square_index(square)):
            return False
        self._leave_history_viewer()
        self._update_game_state()
        return True

    def clear_board(self) -> None:
        """Remove every piece from the board."""
        self.engine.clear()
        self._leave_history_viewer()
        self.board.set({"last_move": None})
        self._update_game_state()

    def set_shapes(self, shapes: Iterable[ShapeLike]) -> None:
        self.board.set_shapes(shapes)

    def load_pgn(self, pgn: str) -> None:
        """
        Load a game record; its moves become the history.

        :param pgn: PGN text
        :type pgn: str
        :raises InvalidPositionError: If the text holds no readable game
        :raises NotSupportedError: If the engine has no PGN support
        """
        self.engine.load_pgn(pgn)
        self._leave_history_viewer()
        self._update_game_state()
        self.board.set({"last_move": self._last_move_keys(self.engine.history())})

    def get_pgn_info(self) -> Dict[str, str]:
        return self.engine.headers()

    def set_pgn_info(self, changes: Dict[str, str]) -> Dict[str, str]:
        """
        Update PGN header tags, e.g. ``{'White': 'Deep Blue'}``.

        :return: All header tags after the update
        :rtype: Dict[str, str]
        """
        return self.engine.set_headers(changes)

    def set_config(self, config: Optional[Mapping] = None, fill_defaults: bool = False) -> None:
        """
        Apply board configuration.

        A ``fen`` entry is split off and loaded with ``set_position`` once the
        rest of the configuration is on the board, which erases the history.

        :param config: Partial configuration, e.g. ``{'view_only': True, 'animation': {'enabled': False}}``
        :type config: Optional[Mapping]
        :param fill_defaults: Start from the default configuration instead of the current one
        :type fill_defaults: bool
        """
        config = deep_copy(dict(config or {}), BOARD_POLICY)
        if fill_defaults:
            config = deep_merge_config(DEFAULT_BOARD_CONFIG, config, BOARD_POLICY)
            config["selected"] = None

        # the internal handler runs before the caller's hook so the caller
        # already sees the position after the move
        patch_event_slot(config, AFTER_MOVE_SLOT, self._change_turn)

        fen = config.pop("fen", None)
        state = self.history_viewer_state
        if isinstance(state, Viewing) and "view_only" in config:
            # applied when the viewer is left, the viewed board stays read-only
            self.history_viewer_state = Viewing(ply=state.ply, view_only=bool(config.pop("view_only")))
        self.board.set(config)
        if fen:
            self.set_position(fen)
        elif self.is_viewing_history:
            self.view_history(self.history_viewer_state.ply)
        elif fill_defaults:
            self._sync_board()
        self.board.redraw_all()

    #
    # History viewer
    #

    def view_history(self, ply: int) -> None:
        """
        Show the position at ``ply``; 0 is the starting position.

        Viewing the latest ply returns to the live game.

        :param ply: Ply number in ``0..len(history)``
        :type ply: int
        :raises NotSupportedError: If the engine keeps no history
        """
        history = self.engine.history()
        if ply < 0 or ply > len(history):
            return

        state = self.history_viewer_state
        viewing = isinstance(state, Viewing)
        disable_animation = bool(self.board.state["animation"]["enabled"]) and (
            (viewing and abs(state.ply - ply) != 1)
            or (not viewing and ply != len(history) - 1)
        )
        if disable_animation:
            self.board.set({"animation": {"enabled": False}})

        if ply < len(history):
            saved_view_only = state.view_only if viewing else bool(self.board.state["view_only"])
            self.history_viewer_state = Viewing(ply=ply, view_only=saved_view_only)
            entry = history[ply]
            in_check = ply > 0 and history[ply - 1].check
            self.board.set_pieces(pieces_to_map(entry.before_pieces, self.mapper))
            self.board.set({
                "view_only": True,
                "turn_color": entry.color,
                "last_move": self._last_move_keys(history[:ply]),
                "check": entry.color if in_check else None,
                "selected": None,
            })
            self.board.cancel_premove()
            logger.debug(f"[Bridge] Viewing ply {ply} of {len(history)}")
        elif viewing:
            self._leave_history_viewer()
            self._sync_board()
            self.board.set({"last_move": self._last_move_keys(history)})
            logger.debug("[Bridge] Back to the live position")

        if disable_animation:
            self.board.set({"animation": {"enabled": True}})

    def view_start(self) -> None:
        self.view_history(0)

    def view_next(self) -> None:
        """View the ply after the one shown; reaching the latest ply stops viewing."""
        state = self.history_viewer_state
        if isinstance(state, Viewing):
            self.view_history(state.ply + 1)

    def view_previous(self) -> None:
        """View the ply before the one shown, starting from the live position."""
        state = self.history_viewer_state
        ply = state.ply if isinstance(state, Viewing) else self._live_ply()
        self.view_history(ply - 1)

    def stop_viewing_history(self) -> None:
        if self.is_viewing_history:
            self.view_history(self._live_ply())
