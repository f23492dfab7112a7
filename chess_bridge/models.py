"""Payload models shared between the bridge and its host."""

from dataclasses import dataclass
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

Color = Literal["white", "black"]

WHITE: Color = "white"
BLACK: Color = "black"

PROMOTION_PIECES = ("q", "r", "b", "n")


def opposite(color: Color) -> Color:
    return BLACK if color == WHITE else WHITE


class MoveRequest(BaseModel):
    """
    Request to move a piece.

    :param orig: Origin square key
    :type orig: str
    :param dest: Destination square key
    :type dest: str
    :param promotion: Promotion piece letter (q, r, b or n)
    :type promotion: Optional[str]
    """

    model_config = ConfigDict(frozen=True)

    orig: str
    dest: str
    promotion: Optional[str] = None

    @field_validator("promotion")
    @classmethod
    def _check_promotion(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.lower()
        if value not in PROMOTION_PIECES:
            raise ValueError(f"promotion must be one of {', '.join(PROMOTION_PIECES)}")
        return value


class MoveEvent(MoveRequest):
    """
    A move that was applied, annotated for callers and threat highlighting.

    :param color: Side that made the move
    :type color: Color
    :param role: Role of the moving piece
    :type role: str
    :param san: Standard algebraic notation of the move
    :type san: str
    :param captured: Whether the move captured a piece
    :type captured: bool
    :param check: Whether the move gives check
    :type check: bool
    :param before: Position string before the move
    :type before: str
    :param after: Position string after the move
    :type after: str
    :param ply: Number of half-moves in the game after this move
    :type ply: int
    """

    color: Color
    role: str
    san: str
    captured: bool = False
    check: bool = False
    before: str
    after: str
    ply: int


class PieceView(BaseModel):
    """Render-facing projection of one piece."""

    model_config = ConfigDict(frozen=True)

    role: str
    color: Color
    health_points: Optional[int] = None


class DrawShape(BaseModel):
    """
    Arrow (with ``dest``) or circle (without) drawn on the board.

    :param orig: Square the shape starts on
    :type orig: str
    :param dest: Square the arrow points to
    :type dest: Optional[str]
    :param brush: Brush name from ``drawable.brushes``
    :type brush: str
    """

    model_config = ConfigDict(frozen=True)

    orig: str
    dest: Optional[str] = None
    brush: str = "green"


@dataclass(frozen=True)
class Live:
    """The board shows the current game position and accepts moves."""


@dataclass(frozen=True)
class Viewing:
    """
    The board shows an earlier position and is view-only.

    :param ply: Ply being shown, 0 is the starting position
    :type ply: int
    :param view_only: The board's view_only setting before viewing started
    :type view_only: bool
    """

    ply: int
    view_only: bool = False


HistoryViewerState = Union[Live, Viewing]
