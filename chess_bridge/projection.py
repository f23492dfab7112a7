"""Derived views of the engine state, rebuilt in full on every change."""

from typing import Dict, Iterable, List, Optional

from chess_bridge.coordinates import CoordinateMapper
from chess_bridge.engine import ActionResult, PieceState, RulesEngine
from chess_bridge.models import DrawShape, PieceView

PieceMap = Dict[str, Optional[PieceView]]
DestinationMap = Dict[str, List[str]]


def pieces_to_map(pieces: Iterable[PieceState], mapper: CoordinateMapper) -> PieceMap:
    """
    Project pieces onto every square of the board.

    Every key is present; empty squares map to None so that a board applying
    the map drops anything stale. Pieces without health left are not shown.

    :param pieces: Pieces from the rules engine
    :type pieces: Iterable[PieceState]
    :param mapper: Coordinate mapper for the engine's board shape
    :type mapper: CoordinateMapper
    :return: Square key to piece view (or None)
    :rtype: PieceMap
    """
    piece_map: PieceMap = {key: None for key in mapper.keys()}
    for piece in pieces:
        if piece.health_points <= 0:
            continue
        piece_map[mapper.square_index_to_key(piece.square_index)] = PieceView(
            role=piece.role,
            color=piece.color,
            health_points=piece.health_points,
        )
    return piece_map


def build_piece_map(engine: RulesEngine, mapper: CoordinateMapper) -> PieceMap:
    """Project the engine's current pieces."""
    return pieces_to_map(engine.pieces(), mapper)


def build_legal_destinations(engine: RulesEngine, mapper: CoordinateMapper) -> DestinationMap:
    """
    Legal destination keys for every origin square that has any.

    :param engine: Rules engine to query
    :type engine: RulesEngine
    :param mapper: Coordinate mapper for the engine's board shape
    :type mapper: CoordinateMapper
    :return: Origin key to destination keys, in engine order without duplicates
    :rtype: DestinationMap
    """
    dests: DestinationMap = {}
    for index in range(mapper.shape.num_squares):
        actions = engine.legal_actions_by_square(index)
        if not actions:
            continue
        keys: List[str] = []
        for action in actions:
            key = mapper.square_index_to_key(action.dst_idx)
            # promotions yield one action per piece choice
            if key not in keys:
                keys.append(key)
        dests[mapper.square_index_to_key(index)] = keys
    return dests


def threat_shapes(actions: Iterable[ActionResult], mapper: CoordinateMapper) -> List[DrawShape]:
    """
    Shapes highlighting possible moves.

    Yellow circle on each destination, red arrow for captures, blue arrow for
    moves giving check.
    """
    shapes: List[DrawShape] = []
    for result in actions:
        orig = mapper.square_index_to_key(result.action.src_idx)
        dest = mapper.square_index_to_key(result.action.dst_idx)
        shapes.append(DrawShape(orig=dest, brush="yellow"))
        if result.captured:
            shapes.append(DrawShape(orig=orig, dest=dest, brush="red"))
        if result.check:
            shapes.append(DrawShape(orig=orig, dest=dest, brush="blue"))
    return shapes
