"""Translation between linear square indices and file/rank keys."""

from dataclasses import dataclass
from string import ascii_lowercase
from typing import Iterator, List

from chess_bridge.errors import InvalidCoordinateError


@dataclass(frozen=True)
class BoardShape:
    """
    Dimensions of a rectangular board.

    :param files: Number of columns (row width)
    :type files: int
    :param ranks: Number of rows
    :type ranks: int
    """

    files: int = 8
    ranks: int = 8

    def __post_init__(self) -> None:
        if not 1 <= self.files <= len(ascii_lowercase):
            raise ValueError(f"Unsupported number of files: {self.files}")
        if self.ranks < 1:
            raise ValueError(f"Unsupported number of ranks: {self.ranks}")

    @property
    def num_squares(self) -> int:
        return self.files * self.ranks


class CoordinateMapper:
    """
    Bidirectional mapping between square indices and keys like ``e4``.

    Index ``0`` is the first file of rank 1, indices grow along the rank and
    then up the board, so ``index = (rank - 1) * files + file``.
    """

    def __init__(self, shape: BoardShape = BoardShape()) -> None:
        self.shape = shape
        self.file_letters = ascii_lowercase[:shape.files]

    def square_index_to_key(self, index: int) -> str:
        """
        Convert a linear square index to its key.

        :param index: Square index in ``0..num_squares-1``
        :type index: int
        :return: Key such as ``'e2'``
        :rtype: str
        :raises InvalidCoordinateError: If the index is off the board
        """
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < self.shape.num_squares:
            raise InvalidCoordinateError(index)
        rank, file = divmod(index, self.shape.files)
        return f"{self.file_letters[file]}{rank + 1}"

    def key_to_square_index(self, key: str) -> int:
        """
        Convert a key to its linear square index.

        :param key: Key such as ``'e2'``
        :type key: str
        :return: Square index
        :rtype: int
        :raises InvalidCoordinateError: If the key is malformed or off the board
        """
        if not isinstance(key, str) or len(key) < 2:
            raise InvalidCoordinateError(key)
        file = self.file_letters.find(key[0])
        rank_text = key[1:]
        if file < 0 or not rank_text.isdigit() or rank_text.startswith("0"):
            raise InvalidCoordinateError(key)
        rank = int(rank_text)
        if rank > self.shape.ranks:
            raise InvalidCoordinateError(key)
        return (rank - 1) * self.shape.files + file

    def is_valid_key(self, key: str) -> bool:
        try:
            self.key_to_square_index(key)
        except InvalidCoordinateError:
            return False
        return True

    def keys(self) -> Iterator[str]:
        """Yield every key in index order."""
        for index in range(self.shape.num_squares):
            yield self.square_index_to_key(index)

    def rows(self, top_rank_first: bool = True) -> List[List[str]]:
        """
        Keys grouped by rank.

        :param top_rank_first: Start with the highest rank (as seen by the first player)
        :type top_rank_first: bool
        :return: One list of keys per rank, files ascending
        :rtype: List[List[str]]
        """
        ranks = range(self.shape.ranks - 1, -1, -1) if top_rank_first else range(self.shape.ranks)
        return [
            [self.square_index_to_key(rank * self.shape.files + file) for file in range(self.shape.files)]
            for rank in ranks
        ]


STANDARD_MAPPER = CoordinateMapper()


def square_index_to_key(index: int) -> str:
    """Convert an index on the standard 8x8 board to its key."""
    return STANDARD_MAPPER.square_index_to_key(index)


def key_to_square_index(key: str) -> int:
    """Convert a key on the standard 8x8 board to its index."""
    return STANDARD_MAPPER.key_to_square_index(key)
