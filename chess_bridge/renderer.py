"""Text rendering of a board's piece map."""

from typing import List, Mapping, Optional

from chess_bridge.coordinates import CoordinateMapper
from chess_bridge.models import BLACK, WHITE, Color, PieceView


class BoardRenderer:
    """
    Renders pieces in a text grid with file letters and rank numbers.

    White pieces are upper case, black pieces lower case, empty squares are
    blank. The board is drawn from the point of view of ``orientation``.
    """

    ROLE_LETTERS = {
        "pawn": "p",
        "knight": "n",
        "bishop": "b",
        "rook": "r",
        "queen": "q",
        "king": "k",
    }

    @classmethod
    def symbol(cls, piece: Optional[PieceView]) -> str:
        if piece is None:
            return " "
        letter = cls.ROLE_LETTERS.get(piece.role, "?")
        return letter.upper() if piece.color == WHITE else letter

    @classmethod
    def grid(
        cls,
        pieces: Mapping[str, Optional[PieceView]],
        mapper: CoordinateMapper,
        orientation: Color = WHITE,
    ) -> List[List[str]]:
        """
        Piece symbols row by row, top row first as seen from ``orientation``.

        :param pieces: Square key to piece view
        :type pieces: Mapping[str, Optional[PieceView]]
        :param mapper: Coordinate mapper for the board shape
        :type mapper: CoordinateMapper
        :param orientation: Side shown at the bottom
        :type orientation: Color
        :return: Rows of single-character symbols
        :rtype: List[List[str]]
        """
        rows = mapper.rows(top_rank_first=orientation != BLACK)
        if orientation == BLACK:
            rows = [list(reversed(row)) for row in rows]
        return [[cls.symbol(pieces.get(key)) for key in row] for row in rows]

    @classmethod
    def render(
        cls,
        pieces: Mapping[str, Optional[PieceView]],
        mapper: CoordinateMapper,
        orientation: Color = WHITE,
    ) -> str:
        """
        Render the pieces as a boxed text board.

        :param pieces: Square key to piece view
        :type pieces: Mapping[str, Optional[PieceView]]
        :param mapper: Coordinate mapper for the board shape
        :type mapper: CoordinateMapper
        :param orientation: Side shown at the bottom
        :type orientation: Color
        :return: Formatted board string with coordinates
        :rtype: str
        """
        files = cls._files(mapper, orientation)
        rank_numbers = cls._rank_numbers(mapper, orientation)
        width = len(str(mapper.shape.ranks))
        separator = " " * width + " +" + "---+" * mapper.shape.files

        lines = [separator]
        for rank_num, row in zip(rank_numbers, cls.grid(pieces, mapper, orientation)):
            squares = [f" {symbol} " for symbol in row]
            lines.append(f"{rank_num:>{width}} |{'|'.join(squares)}|")
            lines.append(separator)

        lines.append(" " * (width + 3) + "   ".join(files))
        return "\n".join(lines)

    @classmethod
    def render_compact(
        cls,
        pieces: Mapping[str, Optional[PieceView]],
        mapper: CoordinateMapper,
        orientation: Color = WHITE,
    ) -> str:
        """Render the board in a more compact format."""
        files = cls._files(mapper, orientation)
        rank_numbers = cls._rank_numbers(mapper, orientation)
        width = len(str(mapper.shape.ranks))
        lines = []
        for rank_num, row in zip(rank_numbers, cls.grid(pieces, mapper, orientation)):
            lines.append(f"{rank_num:>{width}} " + " ".join(f" {symbol} " for symbol in row))
        lines.append(" " * (width + 2) + "   ".join(files))
        return "\n".join(lines)

    @staticmethod
    def _files(mapper: CoordinateMapper, orientation: Color) -> List[str]:
        files = list(mapper.file_letters)
        return files[::-1] if orientation == BLACK else files

    @staticmethod
    def _rank_numbers(mapper: CoordinateMapper, orientation: Color) -> List[int]:
        ranks = list(range(1, mapper.shape.ranks + 1))
        return ranks if orientation == BLACK else ranks[::-1]
