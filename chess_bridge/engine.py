"""Rules-engine interface and its python-chess implementation."""

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Tuple

import chess
import chess.pgn

from chess_bridge.coordinates import BoardShape
from chess_bridge.errors import InvalidPositionError, NotSupportedError
from chess_bridge.models import BLACK, WHITE, Color

logger = logging.getLogger(__name__)


class Player(IntEnum):
    """Side to move; the first player moves first and owns the low ranks."""

    FIRST = 0
    SECOND = 1

    @property
    def color(self) -> Color:
        return WHITE if self is Player.FIRST else BLACK

    @classmethod
    def from_color(cls, color: str) -> "Player":
        if color not in (WHITE, BLACK):
            raise ValueError(f"Unknown color: {color!r}")
        return cls.FIRST if color == WHITE else cls.SECOND


@dataclass(frozen=True)
class PlayerAction:
    """A legal action of the side to move, by square index."""

    src_idx: int
    dst_idx: int
    promotion: Optional[str] = None


@dataclass(frozen=True)
class PieceState:
    """A piece on the engine's board."""

    square_index: int
    role: str
    color: Color
    health_points: int


@dataclass(frozen=True)
class ActionResult:
    """
    Outcome of an applied action.

    :param action: The action that was applied
    :type action: PlayerAction
    :param color: Side that acted
    :type color: Color
    :param role: Role of the acting piece
    :type role: str
    :param san: Standard algebraic notation
    :type san: str
    :param captured: Whether a piece was captured
    :type captured: bool
    :param check: Whether the opponent is now in check
    :type check: bool
    :param before: Exported position before the action
    :type before: str
    :param after: Exported position after the action
    :type after: str
    """

    action: PlayerAction
    color: Color
    role: str
    san: str
    captured: bool
    check: bool
    before: str
    after: str


@dataclass(frozen=True)
class HistoryEntry(ActionResult):
    """An action from the game record together with the pieces around it."""

    ply: int = 0
    before_pieces: Tuple[PieceState, ...] = ()
    after_pieces: Tuple[PieceState, ...] = ()


class RulesEngine(ABC):
    """
    Authoritative game rules addressed by linear square index.

    Methods not marked abstract are optional capabilities; the default body
    raises ``NotSupportedError`` so callers can tell a missing feature apart
    from an empty result.
    """

    @property
    @abstractmethod
    def shape(self) -> BoardShape:
        """Board dimensions used for index arithmetic."""

    @abstractmethod
    def reset(self) -> None:
        """Return to the initial position."""

    @abstractmethod
    def apply_action(self, src_idx: int, dst_idx: int, promotion: Optional[str] = None) -> Optional[ActionResult]:
        """Apply an action if it is legal, returning None otherwise."""

    @abstractmethod
    def legal_actions_by_square(self, square_index: int) -> List[PlayerAction]:
        """Legal actions of the side to move that start on ``square_index``."""

    @abstractmethod
    def current_player(self) -> Player:
        """Side to move."""

    @abstractmethod
    def is_game_over(self) -> bool:
        """Whether the game has ended."""

    @abstractmethod
    def is_draw(self) -> bool:
        """Whether the game has ended without a winner."""

    @abstractmethod
    def is_check(self) -> bool:
        """Whether the side to move is in check."""

    @abstractmethod
    def move_number(self) -> int:
        """Full-move counter, starting at 1."""

    @abstractmethod
    def export_position(self) -> str:
        """Serialize the current position."""

    @abstractmethod
    def import_position(self, position: str) -> None:
        """Replace the current position wholesale."""

    @abstractmethod
    def pieces(self) -> List[PieceState]:
        """Every piece currently on the board."""

    @abstractmethod
    def add_piece(self, role: str, color: Color, square_index: int, health_points: Optional[int] = None) -> bool:
        """Place a piece on an empty square."""

    @abstractmethod
    def remove_piece(self, square_index: int) -> bool:
        """Remove the piece on ``square_index``."""

    def clear(self) -> None:
        for piece in self.pieces():
            self.remove_piece(piece.square_index)

    def set_current_player(self, player: Player) -> None:
        raise NotSupportedError("set_current_player")

    def history(self) -> List[HistoryEntry]:
        raise NotSupportedError("history")

    def ply_count(self) -> int:
        """Number of moves in the game record."""
        return len(self.history())

    def undo(self) -> Optional[HistoryEntry]:
        raise NotSupportedError("undo")

    def annotated_legal_actions(self) -> List[ActionResult]:
        raise NotSupportedError("annotated_legal_actions")

    def export_pgn(self) -> str:
        raise NotSupportedError("export_pgn")

    def load_pgn(self, pgn: str) -> None:
        raise NotSupportedError("load_pgn")

    def headers(self) -> Dict[str, str]:
        raise NotSupportedError("headers")

    def set_headers(self, changes: Dict[str, str]) -> Dict[str, str]:
        raise NotSupportedError("set_headers")

    def dump(self) -> str:
        raise NotSupportedError("dump")


DEFAULT_HEALTH: Dict[int, int] = {
    chess.PAWN: 30,
    chess.KNIGHT: 60,
    chess.BISHOP: 10,
    chess.ROOK: 60,
    chess.QUEEN: 10,
    chess.KING: 10,
}


def _color_name(color: chess.Color) -> Color:
    return WHITE if color == chess.WHITE else BLACK


def _piece_type(role: str) -> chess.PieceType:
    if role not in chess.PIECE_NAMES[1:]:
        raise ValueError(f"Unknown piece role: {role!r}")
    return chess.PIECE_NAMES.index(role)


class ChessRulesEngine(RulesEngine):
    """
    Standard chess rules on top of python-chess, with per-piece health.

    Square indices follow python-chess (``a1 = 0``, ``h8 = 63``). Health is
    kept as overrides of the per-role defaults and follows the piece when it
    moves. Editing the board directly (adding or removing pieces, changing
    the side to move) makes the edited position the new root of the game
    record.

    :param fen: Starting position in FEN, standard start if omitted
    :type fen: Optional[str]
    """

    def __init__(self, fen: Optional[str] = None) -> None:
        self.board = chess.Board()
        self._health: Dict[int, int] = {}
        self._health_stack: List[Dict[int, int]] = []
        self._headers: Dict[str, str] = dict(chess.pgn.Game().headers)
        if fen is not None:
            self.import_position(fen)

    @property
    def shape(self) -> BoardShape:
        return BoardShape(8, 8)

    def reset(self) -> None:
        """Reset the board to the starting position."""
        self.board.reset()
        self._health = {}
        self._health_stack = []

    def apply_action(self, src_idx: int, dst_idx: int, promotion: Optional[str] = None) -> Optional[ActionResult]:
        """
        Apply a move by square index.

        :param src_idx: Origin square index
        :type src_idx: int
        :param dst_idx: Destination square index
        :type dst_idx: int
        :param promotion: Promotion piece letter; a queen if omitted on a promoting move
        :type promotion: Optional[str]
        :return: Annotated result, or None if the move is illegal
        :rtype: Optional[ActionResult]
        """
        move = self._find_move(src_idx, dst_idx, promotion)
        if move is None:
            return None

        mover = self.board.piece_at(src_idx)
        before = self.board.fen()
        san = self.board.san(move)
        captured = self.board.is_capture(move)
        self._health_stack.append(dict(self._health))
        self._carry_health(move)
        self.board.push(move)
        logger.debug(f"[Engine] Applied {move.uci()} ({san})")

        return ActionResult(
            action=self._to_action(move),
            color=_color_name(mover.color),
            role=chess.piece_name(mover.piece_type),
            san=san,
            captured=captured,
            check=self.board.is_check(),
            before=before,
            after=self.board.fen(),
        )

    def legal_actions_by_square(self, square_index: int) -> List[PlayerAction]:
        return [self._to_action(move) for move in self.board.legal_moves if move.from_square == square_index]

    def current_player(self) -> Player:
        return Player.FIRST if self.board.turn == chess.WHITE else Player.SECOND

    def is_game_over(self) -> bool:
        return self.board.is_game_over()

    def is_draw(self) -> bool:
        outcome = self.board.outcome()
        return outcome is not None and outcome.winner is None

    def is_check(self) -> bool:
        return self.board.is_check()

    def move_number(self) -> int:
        return self.board.fullmove_number

    def export_position(self) -> str:
        """
        Get the current board position in FEN notation.

        :return: FEN string representing the current position
        :rtype: str
        """
        return self.board.fen()

    def import_position(self, position: str) -> None:
        """
        Replace the board with a FEN position, discarding the game record.

        :param position: FEN string
        :type position: str
        :raises InvalidPositionError: If the FEN cannot be parsed
        """
        try:
            board = chess.Board(position)
        except ValueError as exc:
            raise InvalidPositionError(f"Invalid FEN {position!r}: {exc}") from exc
        self.board = board
        self._health = {}
        self._health_stack = []

    def pieces(self) -> List[PieceState]:
        return self._pieces_of(self.board, self._health)

    def add_piece(self, role: str, color: Color, square_index: int, health_points: Optional[int] = None) -> bool:
        """
        Put a piece on an empty square.

        :param role: Piece role, e.g. ``'knight'``
        :type role: str
        :param color: ``'white'`` or ``'black'``
        :type color: Color
        :param square_index: Target square index
        :type square_index: int
        :param health_points: Health override, role default if omitted
        :type health_points: Optional[int]
        :return: True if the piece was placed, False if the square is occupied
        :rtype: bool
        """
        piece_type = _piece_type(role)
        if self.board.piece_at(square_index) is not None:
            return False
        self.board.set_piece_at(square_index, chess.Piece(piece_type, Player.from_color(color) is Player.FIRST))
        self._health.pop(square_index, None)
        if health_points is not None:
            self._health[square_index] = health_points
        self._restart_record()
        return True

    def remove_piece(self, square_index: int) -> bool:
        if self.board.remove_piece_at(square_index) is None:
            return False
        self._health.pop(square_index, None)
        self._restart_record()
        return True

    def clear(self) -> None:
        self.board.clear()
        self._health = {}
        self._health_stack = []

    def set_current_player(self, player: Player) -> None:
        self.board.turn = chess.WHITE if player is Player.FIRST else chess.BLACK
        self.board.ep_square = None
        self._restart_record()

    def history(self) -> List[HistoryEntry]:
        """
        Replay the game record from its root position.

        :return: One entry per applied move, oldest first
        :rtype: List[HistoryEntry]
        """
        replay = self.board.root()
        health_after_each = self._health_stack[1:] + [self._health]
        return [
            self._history_entry(replay, move, ply, health_before, health_after)
            for ply, (move, health_before, health_after) in enumerate(
                zip(self.board.move_stack, self._health_stack, health_after_each), start=1
            )
        ]

    def ply_count(self) -> int:
        return len(self.board.move_stack)

    def undo(self) -> Optional[HistoryEntry]:
        """
        Take back the last move.

        :return: The move taken back, or None if there is nothing to undo
        :rtype: Optional[HistoryEntry]
        """
        if not self.board.move_stack:
            return None
        health_after = self._health
        move = self.board.pop()
        self._health = self._health_stack.pop()
        entry = self._history_entry(self.board, move, self.ply_count() + 1, self._health, health_after)
        self.board.pop()
        logger.debug(f"[Engine] Undid {entry.san}")
        return entry

    def annotated_legal_actions(self) -> List[ActionResult]:
        """Every legal move in the current position with capture and check flags."""
        results = []
        before = self.board.fen()
        for move in self.board.legal_moves:
            mover = self.board.piece_at(move.from_square)
            results.append(ActionResult(
                action=self._to_action(move),
                color=_color_name(mover.color),
                role=chess.piece_name(mover.piece_type),
                san=self.board.san(move),
                captured=self.board.is_capture(move),
                check=self.board.gives_check(move),
                before=before,
                after="",
            ))
        return results

    def export_pgn(self) -> str:
        game = chess.pgn.Game.from_board(self.board)
        for name, value in self._headers.items():
            if name != "Result":
                game.headers[name] = value
        return str(game)

    def load_pgn(self, pgn: str) -> None:
        """
        Load a game record, keeping its moves as history.

        :param pgn: PGN text
        :type pgn: str
        :raises InvalidPositionError: If no game can be read
        """
        game = chess.pgn.read_game(io.StringIO(pgn))
        if game is None or game.errors:
            raise InvalidPositionError("Could not read a game from the PGN text")
        board = game.board()
        for move in game.mainline_moves():
            board.push(move)
        self.board = board
        self._health = {}
        self._health_stack = [{} for _ in board.move_stack]
        self._headers = dict(game.headers)

    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def set_headers(self, changes: Dict[str, str]) -> Dict[str, str]:
        self._headers.update(changes)
        return dict(self._headers)

    def dump(self) -> str:
        return f"{self.board}\n{self.board.fen()}"

    def _find_move(self, src_idx: int, dst_idx: int, promotion: Optional[str]) -> Optional[chess.Move]:
        candidates = [
            move for move in self.board.legal_moves
            if move.from_square == src_idx and move.to_square == dst_idx
        ]
        if not candidates:
            return None
        if not any(move.promotion for move in candidates):
            return candidates[0]
        wanted = chess.PIECE_SYMBOLS.index(promotion) if promotion else chess.QUEEN
        for move in candidates:
            if move.promotion == wanted:
                return move
        return None

    def _carry_health(self, move: chess.Move) -> None:
        health = self._health
        if self.board.is_en_passant(move):
            health.pop(move.to_square + (-8 if self.board.turn == chess.WHITE else 8), None)
        if self.board.is_castling(move):
            rank = chess.square_rank(move.from_square)
            kingside = chess.square_file(move.to_square) > chess.square_file(move.from_square)
            rook_from = chess.square(7 if kingside else 0, rank)
            rook_to = chess.square(5 if kingside else 3, rank)
            if rook_from in health:
                health[rook_to] = health.pop(rook_from)
        health.pop(move.to_square, None)
        carried = health.pop(move.from_square, None)
        if carried is not None and move.promotion is None:
            health[move.to_square] = carried

    def _history_entry(
        self,
        board: chess.Board,
        move: chess.Move,
        ply: int,
        health_before: Dict[int, int],
        health_after: Dict[int, int],
    ) -> HistoryEntry:
        """Describe ``move`` played from the position on ``board``, which is left after the move."""
        mover = board.piece_at(move.from_square)
        before = board.fen()
        before_pieces = tuple(self._pieces_of(board, health_before))
        san = board.san(move)
        captured = board.is_capture(move)
        board.push(move)
        return HistoryEntry(
            action=self._to_action(move),
            color=_color_name(mover.color),
            role=chess.piece_name(mover.piece_type),
            san=san,
            captured=captured,
            check=board.is_check(),
            before=before,
            after=board.fen(),
            ply=ply,
            before_pieces=before_pieces,
            after_pieces=tuple(self._pieces_of(board, health_after)),
        )

    def _restart_record(self) -> None:
        self.board.clear_stack()
        self._health_stack = []

    @staticmethod
    def _to_action(move: chess.Move) -> PlayerAction:
        promotion = chess.piece_symbol(move.promotion) if move.promotion else None
        return PlayerAction(move.from_square, move.to_square, promotion)

    @staticmethod
    def _pieces_of(board: chess.Board, health: Dict[int, int]) -> List[PieceState]:
        return [
            PieceState(
                square_index=square,
                role=chess.piece_name(piece.piece_type),
                color=_color_name(piece.color),
                health_points=health.get(square, DEFAULT_HEALTH[piece.piece_type]),
            )
            for square, piece in sorted(board.piece_map().items())
        ]
