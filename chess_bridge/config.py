"""
Structural deep copy, merge and diff over nested board configuration.

Whether a node is recursed into is decided by a classification policy. The
default policy consults a schema that tags each known field as a leaf, a
nested record, a callback or a sequence, and falls back to a structural guess
for fields the schema does not know about. Opaque mappings such as brush
tables or destination maps are tagged as leaves so they are replaced
wholesale instead of merged key by key.
"""

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Optional, Tuple, Union

Path = Tuple[str, ...]

_MISSING = object()


class FieldKind(Enum):
    """Classification of a configuration node."""

    LEAF = "leaf"
    NESTED = "nested"
    CALLBACK = "callback"
    SEQUENCE = "sequence"


Schema = Mapping  # Mapping[str, Union[FieldKind, Schema]]


def classify_value(value: Any) -> FieldKind:
    """
    Structural classification used when no schema entry applies.

    :param value: Any configuration value
    :type value: Any
    :return: NESTED only for non-callable mappings
    :rtype: FieldKind
    """
    if callable(value):
        return FieldKind.CALLBACK
    if isinstance(value, Mapping):
        return FieldKind.NESTED
    if isinstance(value, (list, tuple)):
        return FieldKind.SEQUENCE
    return FieldKind.LEAF


class NodePolicy:
    """Structural policy: every non-callable mapping is a nested record."""

    def kind(self, path: Path, value: Any) -> FieldKind:
        return classify_value(value)

    def is_plain_object(self, path: Path, value: Any) -> bool:
        return self.kind(path, value) is FieldKind.NESTED


class SchemaPolicy(NodePolicy):
    """
    Schema-aware policy.

    A field declared as NESTED only recurses when its value is a mapping, so
    ``None`` still works as the unset sentinel. A field declared with any
    other kind is never recursed into, whatever its value looks like.

    :param schema: Nested mapping of field name to FieldKind or sub-schema
    :type schema: Mapping
    """

    def __init__(self, schema: Schema) -> None:
        self.schema = schema

    def declared(self, path: Path) -> Optional[Union[FieldKind, Schema]]:
        node: Any = self.schema
        for part in path:
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node

    def kind(self, path: Path, value: Any) -> FieldKind:
        declared = self.declared(path)
        if isinstance(declared, FieldKind):
            if declared is FieldKind.NESTED and not isinstance(value, Mapping):
                return classify_value(value)
            return declared
        return classify_value(value)


def deep_copy(value: Any, policy: NodePolicy = NodePolicy(), path: Path = ()) -> Any:
    """
    Rebuild every nested record; leaves are shared by reference.

    :param value: Configuration tree or leaf
    :type value: Any
    :param policy: Node classification policy
    :type policy: NodePolicy
    :param path: Path of ``value`` from the configuration root
    :type path: Path
    :return: Fresh tree of plain dicts
    :rtype: Any
    """
    if policy.is_plain_object(path, value):
        return {key: deep_copy(child, policy, path + (key,)) for key, child in value.items()}
    return value


def deep_merge_config(
    target: Optional[Mapping],
    source: Optional[Mapping],
    policy: NodePolicy = NodePolicy(),
    path: Path = (),
) -> Dict[str, Any]:
    """
    Merge ``source`` onto ``target`` without mutating either.

    Keys only in ``target`` are copied, keys in ``source`` win unless both
    sides are nested records at the same path, in which case they are merged
    recursively. A ``None`` in ``source`` overwrites the target value.

    :param target: Base configuration
    :type target: Optional[Mapping]
    :param source: Partial configuration to apply
    :type source: Optional[Mapping]
    :param policy: Node classification policy
    :type policy: NodePolicy
    :param path: Path of the two trees from the configuration root
    :type path: Path
    :return: New merged tree
    :rtype: Dict[str, Any]
    """
    target = target or {}
    source = source or {}
    result: Dict[str, Any] = {}
    keys = list(target) + [key for key in source if key not in target]
    for key in keys:
        child_path = path + (key,)
        target_value = target.get(key, _MISSING)
        source_value = source.get(key, _MISSING)
        if (
            target_value is not _MISSING
            and source_value is not _MISSING
            and policy.is_plain_object(child_path, target_value)
            and policy.is_plain_object(child_path, source_value)
        ):
            result[key] = deep_merge_config(target_value, source_value, policy, child_path)
        else:
            chosen = source_value if source_value is not _MISSING else target_value
            result[key] = deep_copy(chosen, policy, child_path)
    return result


def _same_value(old: Any, new: Any) -> bool:
    # frozen templates hold tuples where live configuration holds lists
    if old is new:
        return True
    if isinstance(old, (list, tuple)) and isinstance(new, (list, tuple)):
        return len(old) == len(new) and all(_same_value(a, b) for a, b in zip(old, new))
    return old == new


def deep_diff_config(
    old_config: Optional[Mapping],
    new_config: Mapping,
    policy: NodePolicy = NodePolicy(),
    path: Path = (),
) -> Dict[str, Any]:
    """
    Smallest partial tree that turns ``old_config`` into ``new_config``.

    Only keys of ``new_config`` are considered. Nested records recurse and are
    kept only when their sub-diff is non-empty; any other value is included
    whole when it differs.

    :param old_config: Current configuration
    :type old_config: Optional[Mapping]
    :param new_config: Desired configuration
    :type new_config: Mapping
    :param policy: Node classification policy
    :type policy: NodePolicy
    :param path: Path of the two trees from the configuration root
    :type path: Path
    :return: Partial configuration
    :rtype: Dict[str, Any]
    """
    old_config = old_config or {}
    diff: Dict[str, Any] = {}
    for key, new_value in new_config.items():
        child_path = path + (key,)
        old_value = old_config.get(key, _MISSING)
        if (
            old_value is not _MISSING
            and policy.is_plain_object(child_path, old_value)
            and policy.is_plain_object(child_path, new_value)
        ):
            sub_diff = deep_diff_config(old_value, new_value, policy, child_path)
            if sub_diff:
                diff[key] = sub_diff
        elif old_value is _MISSING or not _same_value(old_value, new_value):
            diff[key] = new_value
    return diff


def freeze(value: Any) -> Any:
    """Read-only view of a configuration tree, for process-wide constants."""
    if isinstance(value, Mapping) and not callable(value):
        return MappingProxyType({key: freeze(child) for key, child in value.items()})
    if isinstance(value, list):
        return tuple(freeze(item) for item in value)
    return value
