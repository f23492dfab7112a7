"""Tests for square index and key translation."""

import pytest

from chess_bridge.coordinates import (
    BoardShape,
    CoordinateMapper,
    key_to_square_index,
    square_index_to_key,
)
from chess_bridge.errors import BridgeError, InvalidCoordinateError


def test_standard_corners():
    """
    Test the corner squares of the standard board.

    :return: None
    :rtype: None
    """
    assert square_index_to_key(0) == "a1"
    assert square_index_to_key(7) == "h1"
    assert square_index_to_key(56) == "a8"
    assert square_index_to_key(63) == "h8"
    assert key_to_square_index("e2") == 12
    assert key_to_square_index("e4") == 28


def test_every_square_round_trips():
    """
    Test every index maps to a distinct key and back.

    :return: None
    :rtype: None
    """
    mapper = CoordinateMapper()
    keys = list(mapper.keys())
    assert len(set(keys)) == 64
    assert [mapper.key_to_square_index(key) for key in keys] == list(range(64))


@pytest.mark.parametrize("index", [-1, 64, 1.5, True, "12"])
def test_invalid_index(index):
    """
    Test indices off the board are rejected.

    :return: None
    :rtype: None
    """
    with pytest.raises(InvalidCoordinateError):
        square_index_to_key(index)


@pytest.mark.parametrize("key", ["", "e", "i1", "a0", "a9", "a01", "E2", "e2x", None])
def test_invalid_key(key):
    """
    Test malformed and off-board keys are rejected.

    :return: None
    :rtype: None
    """
    with pytest.raises(InvalidCoordinateError):
        key_to_square_index(key)


def test_error_is_value_error():
    """
    Test coordinate errors can be caught as ValueError or BridgeError.

    :return: None
    :rtype: None
    """
    with pytest.raises(ValueError) as exc_info:
        key_to_square_index("z9")
    assert isinstance(exc_info.value, BridgeError)
    assert exc_info.value.coordinate == "z9"


def test_custom_shape():
    """
    Test a board wider than it is tall with two-digit ranks.

    :return: None
    :rtype: None
    """
    mapper = CoordinateMapper(BoardShape(files=10, ranks=12))
    assert mapper.square_index_to_key(9) == "j1"
    assert mapper.square_index_to_key(10) == "a2"
    assert mapper.square_index_to_key(119) == "j12"
    assert mapper.key_to_square_index("a10") == 90
    assert mapper.is_valid_key("j12") is True
    assert mapper.is_valid_key("k1") is False
    assert mapper.is_valid_key("a13") is False


def test_invalid_shape():
    """
    Test board shapes that cannot be keyed.

    :return: None
    :rtype: None
    """
    with pytest.raises(ValueError):
        BoardShape(files=27, ranks=8)
    with pytest.raises(ValueError):
        BoardShape(files=8, ranks=0)


def test_rows():
    """
    Test keys grouped by rank.

    :return: None
    :rtype: None
    """
    mapper = CoordinateMapper(BoardShape(files=3, ranks=2))
    assert mapper.rows() == [["a2", "b2", "c2"], ["a1", "b1", "c1"]]
    assert mapper.rows(top_rank_first=False) == [["a1", "b1", "c1"], ["a2", "b2", "c2"]]
