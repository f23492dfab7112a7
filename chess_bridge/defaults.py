"""Default board configuration and the schema describing its fields."""

from typing import Any, Dict

from chess_bridge.config import FieldKind, SchemaPolicy, deep_copy, freeze

LEAF = FieldKind.LEAF
CALLBACK = FieldKind.CALLBACK
SEQUENCE = FieldKind.SEQUENCE

_HOOK_PAIR = {"set": CALLBACK, "unset": CALLBACK}

BOARD_CONFIG_SCHEMA = freeze({
    "fen": LEAF,
    "orientation": LEAF,
    "turn_color": LEAF,
    "check": LEAF,
    "last_move": SEQUENCE,
    "selected": LEAF,
    "coordinates": LEAF,
    "auto_castle": LEAF,
    "view_only": LEAF,
    "disable_context_menu": LEAF,
    "add_piece_z_index": LEAF,
    "block_touch_scroll": LEAF,
    "highlight": {"last_move": LEAF, "check": LEAF},
    "animation": {"enabled": LEAF, "duration": LEAF},
    "movable": {
        "free": LEAF,
        "color": LEAF,
        "show_dests": LEAF,
        # origin key -> destination keys, always replaced as a whole
        "dests": LEAF,
        "events": {"after": CALLBACK, "after_new_piece": CALLBACK},
        "rook_castle": LEAF,
    },
    "premovable": {
        "enabled": LEAF,
        "show_dests": LEAF,
        "castle": LEAF,
        "current": SEQUENCE,
        "events": _HOOK_PAIR,
    },
    "predroppable": {"enabled": LEAF, "events": _HOOK_PAIR},
    "draggable": {
        "enabled": LEAF,
        "distance": LEAF,
        "auto_distance": LEAF,
        "show_ghost": LEAF,
        "delete_on_drop_off": LEAF,
    },
    "selectable": {"enabled": LEAF},
    "events": {
        "change": CALLBACK,
        "move": CALLBACK,
        "drop_new_piece": CALLBACK,
        "select": CALLBACK,
        "insert": CALLBACK,
    },
    "drawable": {
        "enabled": LEAF,
        "visible": LEAF,
        "default_snap_to_valid_move": LEAF,
        "erase_on_click": LEAF,
        "shapes": SEQUENCE,
        "auto_shapes": SEQUENCE,
        # brush definitions are opaque
        "brushes": LEAF,
    },
})

BOARD_POLICY = SchemaPolicy(BOARD_CONFIG_SCHEMA)


def _brush(key: str, color: str, opacity: float, line_width: int) -> Dict[str, Any]:
    return {"key": key, "color": color, "opacity": opacity, "line_width": line_width}


# Hooks default to None so that a merge onto this template resets whatever
# hook the caller had installed before. movable.events.after must be present
# so that the internal move handler is always installed on it.
DEFAULT_BOARD_CONFIG = freeze({
    "fen": None,
    "orientation": "white",
    "turn_color": "white",
    "check": None,
    "last_move": None,
    "selected": None,
    "coordinates": False,
    "auto_castle": True,
    "view_only": False,
    "disable_context_menu": False,
    "add_piece_z_index": False,
    "block_touch_scroll": False,
    "highlight": {"last_move": True, "check": True},
    "animation": {"enabled": True, "duration": 300},
    "movable": {
        "free": False,
        "color": "white",
        "show_dests": True,
        "dests": {},
        "events": {"after": None, "after_new_piece": None},
        "rook_castle": True,
    },
    "premovable": {
        "enabled": True,
        "show_dests": True,
        "castle": True,
        "current": None,
        "events": {"set": None, "unset": None},
    },
    "predroppable": {"enabled": False, "events": {"set": None, "unset": None}},
    "draggable": {
        "enabled": True,
        "distance": 3,
        "auto_distance": True,
        "show_ghost": True,
        "delete_on_drop_off": False,
    },
    "selectable": {"enabled": True},
    "events": {
        "change": None,
        "move": None,
        "drop_new_piece": None,
        "select": None,
        "insert": None,
    },
    "drawable": {
        "enabled": True,
        "visible": True,
        "default_snap_to_valid_move": True,
        "erase_on_click": True,
        "shapes": [],
        "auto_shapes": [],
        "brushes": {
            "green": _brush("g", "#15781B", 1, 10),
            "red": _brush("r", "#882020", 1, 10),
            "blue": _brush("b", "#003088", 1, 10),
            "yellow": _brush("y", "#e68f00", 1, 10),
            "pale_blue": _brush("pb", "#003088", 0.4, 15),
            "pale_green": _brush("pg", "#15781B", 0.4, 15),
            "pale_red": _brush("pr", "#882020", 0.4, 15),
            "pale_grey": _brush("pgr", "#4a4a4a", 0.35, 15),
        },
    },
})


def default_board_config() -> Dict[str, Any]:
    """
    Fresh, mutable copy of the default template.

    :return: Default board configuration
    :rtype: Dict[str, Any]
    """
    return deep_copy(DEFAULT_BOARD_CONFIG, BOARD_POLICY)
