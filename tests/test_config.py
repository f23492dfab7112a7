"""Tests for configuration merge, diff and copy."""

import pytest

from chess_bridge.config import (
    FieldKind,
    NodePolicy,
    SchemaPolicy,
    deep_copy,
    deep_diff_config,
    deep_merge_config,
    freeze,
)
from chess_bridge.defaults import BOARD_POLICY, DEFAULT_BOARD_CONFIG, default_board_config


class TestDeepMerge:
    """Test cases for deep_merge_config."""

    def test_merge_empty_is_fresh_copy(self) -> None:
        """Test merging an empty source copies the target."""
        target = {"animation": {"enabled": True, "duration": 300}, "view_only": False}
        merged = deep_merge_config(target, {})
        assert merged == target
        assert merged is not target
        assert merged["animation"] is not target["animation"]

    def test_merge_does_not_mutate(self) -> None:
        """Test neither input is modified."""
        target = {"animation": {"enabled": True, "duration": 300}}
        source = {"animation": {"duration": 100}}
        merged = deep_merge_config(target, source)
        assert merged == {"animation": {"enabled": True, "duration": 100}}
        assert target == {"animation": {"enabled": True, "duration": 300}}
        assert source == {"animation": {"duration": 100}}

    def test_source_keys_added(self) -> None:
        """Test keys only in the source are added after target keys."""
        merged = deep_merge_config({"a": 1}, {"b": 2})
        assert list(merged) == ["a", "b"]

    def test_none_resets(self) -> None:
        """Test None in the source overwrites a nested record or a hook."""
        def hook() -> None:
            pass

        merged = deep_merge_config(
            {"movable": {"events": {"after": hook}}, "check": "white"},
            {"movable": {"events": {"after": None}}, "check": None},
            BOARD_POLICY,
        )
        assert merged["movable"]["events"]["after"] is None
        assert merged["check"] is None

    def test_callable_replaced_whole(self) -> None:
        """Test callables are never merged into."""
        def first() -> None:
            pass

        def second() -> None:
            pass

        merged = deep_merge_config({"events": {"move": first}}, {"events": {"move": second}})
        assert merged["events"]["move"] is second

    def test_leaf_mappings_replaced(self) -> None:
        """Test destination maps and brushes are replaced instead of merged."""
        merged = deep_merge_config(
            {"movable": {"dests": {"e2": ["e3", "e4"]}}, "drawable": {"brushes": {"green": {}, "red": {}}}},
            {"movable": {"dests": {"g1": ["f3"]}}, "drawable": {"brushes": {"blue": {}}}},
            BOARD_POLICY,
        )
        assert merged["movable"]["dests"] == {"g1": ["f3"]}
        assert merged["drawable"]["brushes"] == {"blue": {}}

    def test_structural_policy_merges_mappings(self) -> None:
        """Test the structural policy recurses into every mapping."""
        merged = deep_merge_config({"dests": {"e2": ["e4"]}}, {"dests": {"g1": ["f3"]}})
        assert merged["dests"] == {"e2": ["e4"], "g1": ["f3"]}

    def test_sequences_replaced(self) -> None:
        """Test lists are replaced, not concatenated."""
        merged = deep_merge_config({"last_move": ["e2", "e4"]}, {"last_move": ["g1", "f3"]}, BOARD_POLICY)
        assert merged["last_move"] == ["g1", "f3"]

    def test_merge_onto_defaults(self) -> None:
        """Test overlaying a partial configuration onto the frozen defaults."""
        merged = deep_merge_config(DEFAULT_BOARD_CONFIG, {"animation": {"enabled": False}}, BOARD_POLICY)
        assert merged["animation"] == {"enabled": False, "duration": 300}
        assert isinstance(merged["movable"], dict)
        merged["movable"]["color"] = "black"
        assert DEFAULT_BOARD_CONFIG["movable"]["color"] == "white"


class TestDeepDiff:
    """Test cases for deep_diff_config."""

    def test_diff_of_identical_is_empty(self) -> None:
        """Test identical trees produce no diff."""
        config = default_board_config()
        assert deep_diff_config(config, deep_copy(config, BOARD_POLICY), BOARD_POLICY) == {}

    def test_diff_round_trip(self) -> None:
        """Test merging a diff onto the old tree yields the new tree."""
        old = default_board_config()
        new = deep_merge_config(old, {"view_only": True, "animation": {"duration": 100}}, BOARD_POLICY)
        diff = deep_diff_config(old, new, BOARD_POLICY)
        assert diff == {"view_only": True, "animation": {"duration": 100}}
        assert deep_merge_config(old, diff, BOARD_POLICY) == new

    def test_new_key_included(self) -> None:
        """Test keys missing from the old tree are included."""
        assert deep_diff_config({"a": 1}, {"a": 1, "b": None}) == {"b": None}

    def test_leaf_mapping_included_whole(self) -> None:
        """Test a changed leaf mapping is included whole."""
        diff = deep_diff_config(
            {"movable": {"dests": {"e2": ["e4"], "g1": ["f3"]}}},
            {"movable": {"dests": {"e2": ["e4"], "g1": ["h3"]}}},
            BOARD_POLICY,
        )
        assert diff == {"movable": {"dests": {"e2": ["e4"], "g1": ["h3"]}}}


class TestPolicy:
    """Test cases for node classification."""

    def test_structural_classification(self) -> None:
        """Test the structural fallback."""
        policy = NodePolicy()
        assert policy.kind((), {"a": 1}) is FieldKind.NESTED
        assert policy.kind((), print) is FieldKind.CALLBACK
        assert policy.kind((), [1]) is FieldKind.SEQUENCE
        assert policy.kind((), None) is FieldKind.LEAF

    def test_schema_declared_kind_wins(self) -> None:
        """Test a declared leaf mapping is not recursed into."""
        policy = SchemaPolicy({"movable": {"dests": FieldKind.LEAF}})
        assert policy.is_plain_object(("movable",), {}) is True
        assert policy.is_plain_object(("movable", "dests"), {"e2": ["e4"]}) is False
        assert policy.kind(("unknown",), {"x": 1}) is FieldKind.NESTED

    def test_declared_nested_with_none(self) -> None:
        """Test None on a nested field is a leaf."""
        policy = SchemaPolicy({"animation": FieldKind.NESTED})
        assert policy.kind(("animation",), None) is FieldKind.LEAF
        assert policy.kind(("animation",), {"enabled": True}) is FieldKind.NESTED


def test_defaults_are_frozen():
    """
    Test the default template cannot be modified.

    :return: None
    :rtype: None
    """
    with pytest.raises(TypeError):
        DEFAULT_BOARD_CONFIG["movable"]["color"] = "black"
    assert DEFAULT_BOARD_CONFIG["movable"]["color"] == "white"


def test_default_board_config_is_mutable_copy():
    """
    Test each call returns an independent plain dict tree.

    :return: None
    :rtype: None
    """
    first = default_board_config()
    second = default_board_config()
    first["animation"]["enabled"] = False
    assert second["animation"]["enabled"] is True
    assert isinstance(first["drawable"]["brushes"], type(DEFAULT_BOARD_CONFIG["drawable"]["brushes"]))


def test_freeze_lists_become_tuples():
    """
    Test frozen trees hold tuples instead of lists.

    :return: None
    :rtype: None
    """
    frozen = freeze({"shapes": [1, 2], "nested": {"x": [3]}})
    assert frozen["shapes"] == (1, 2)
    assert frozen["nested"]["x"] == (3,)


def test_diff_against_frozen_sequences():
    """
    Test tuples in the frozen template compare equal to lists with the same items.

    :return: None
    :rtype: None
    """
    assert deep_diff_config(DEFAULT_BOARD_CONFIG, {"drawable": {"shapes": []}}, BOARD_POLICY) == {}
    assert deep_diff_config({"last_move": ("e2", "e4")}, {"last_move": ["e2", "e4"]}) == {}
    assert deep_diff_config({"last_move": ("e2", "e4")}, {"last_move": ["e2", "e3"]}) == {"last_move": ["e2", "e3"]}
