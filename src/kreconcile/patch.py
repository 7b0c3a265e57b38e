"""
Patch Generator - Minimal deltas between two object states.

Two strategies are supported, fixed per object kind:

- MERGE: a structural merge document. Present fields carry desired values,
  absent fields are unchanged, ``None`` deletes. Lists are replaced wholesale
  unless the list's path has a merge key, in which case elements are matched
  by key and merged one by one.
- JSON_PATCH: an ordered list of add/remove/replace operations, one per
  differing leaf path.
"""

import copy
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from jsonpointer import escape

from kreconcile.errors import SerializationError

MergeKeys = Mapping[Tuple[str, ...], str]


class PatchStrategy(Enum):
    """Patch encoding used for a kind. Values are the HTTP media types."""

    MERGE = "application/strategic-merge-patch+json"
    JSON_PATCH = "application/json-patch+json"


@dataclass
class Patch:
    """A computed patch and the strategy that produced it."""

    strategy: PatchStrategy
    body: Union[Dict[str, Any], List[Dict[str, Any]]]

    @property
    def content_type(self) -> str:
        return self.strategy.value

    def is_empty(self) -> bool:
        return not self.body

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.body, indent=indent)


def canonicalize(obj: Any) -> Any:
    """
    Round-trip an object through JSON.

    Tuples become lists, non-string keys become strings, and anything that
    cannot be represented raises.

    Raises:
        SerializationError: If the object is not JSON serializable.
    """
    try:
        return json.loads(json.dumps(obj, allow_nan=False))
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Object is not serializable: {e}") from e


def _equal(a: Any, b: Any) -> bool:
    # JSON equality: True != 1 and 1 != 1.0 once serialized.
    return type(a) is type(b) and a == b


def _element_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


# ==================== Structural merge ====================


def create_merge_patch(
    current: Any, desired: Any, merge_keys: Optional[MergeKeys] = None
) -> Patch:
    """
    Compute a structural merge patch turning ``current`` into ``desired``.

    Args:
        current: The object as stored.
        desired: The object as it should be.
        merge_keys: Map of list paths (tuples of field names, list indexes
            omitted) to the element field used as merge key.

    Returns:
        A MERGE Patch. Empty when nothing differs.
    """
    cur = canonicalize(current)
    des = canonicalize(desired)
    if not isinstance(cur, dict) or not isinstance(des, dict):
        raise SerializationError("Merge patches can only be computed between objects")
    body = _diff_maps(cur, des, (), merge_keys or {}, prune=True)
    return Patch(PatchStrategy.MERGE, body)


def _diff_maps(
    cur: Dict[str, Any],
    des: Dict[str, Any],
    path: Tuple[str, ...],
    merge_keys: MergeKeys,
    prune: bool,
) -> Dict[str, Any]:
    patch: Dict[str, Any] = {}
    for key, dval in des.items():
        if key not in cur:
            patch[key] = dval
            continue
        cval = cur[key]
        sub_path = path + (key,)
        if isinstance(cval, dict) and isinstance(dval, dict):
            sub = _diff_maps(cval, dval, sub_path, merge_keys, prune)
            if sub:
                patch[key] = sub
        elif (
            isinstance(cval, list)
            and isinstance(dval, list)
            and sub_path in merge_keys
        ):
            items = _diff_keyed_list(cval, dval, sub_path, merge_keys)
            if items:
                patch[key] = items
        elif not _equal(cval, dval):
            patch[key] = dval

    # Fields inside keyed list elements are merged, never dropped.
    if prune:
        for key in cur:
            if key not in des:
                patch[key] = None
    return patch


def _diff_keyed_list(
    cur: List[Any],
    des: List[Any],
    path: Tuple[str, ...],
    merge_keys: MergeKeys,
) -> List[Any]:
    key = merge_keys[path]
    existing = {
        _element_key(item[key]): item
        for item in cur
        if isinstance(item, dict) and key in item
    }

    items = []
    for item in des:
        if not isinstance(item, dict) or key not in item:
            if not any(_equal(item, c) for c in cur):
                items.append(item)
            continue

        match = existing.get(_element_key(item[key]))
        if match is None:
            items.append(item)
            continue

        delta = _diff_maps(match, item, path, merge_keys, prune=False)
        if delta:
            items.append({key: item[key], **delta})
    return items


def apply_merge_patch(
    document: Any,
    patch: Mapping[str, Any],
    merge_keys: Optional[MergeKeys] = None,
    _path: Tuple[str, ...] = (),
) -> Dict[str, Any]:
    """
    Apply a structural merge patch and return the merged document.

    Keyed lists are merged element by element: elements named in the patch
    are merged into the element with the same key, or appended when no such
    element exists. Elements the patch does not name are kept.

    The input document is not modified.
    """
    merge_keys = merge_keys or {}
    result = copy.deepcopy(document) if isinstance(document, dict) else {}

    for key, value in patch.items():
        sub_path = _path + (key,)
        if value is None:
            result.pop(key, None)
        elif isinstance(value, dict):
            result[key] = apply_merge_patch(result.get(key), value, merge_keys, sub_path)
        elif (
            isinstance(value, list)
            and sub_path in merge_keys
            and isinstance(result.get(key), list)
        ):
            result[key] = _apply_keyed_list(result[key], value, sub_path, merge_keys)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _apply_keyed_list(
    cur: List[Any],
    patch_items: List[Any],
    path: Tuple[str, ...],
    merge_keys: MergeKeys,
) -> List[Any]:
    key = merge_keys[path]
    result = copy.deepcopy(cur)
    positions = {
        _element_key(item[key]): i
        for i, item in enumerate(result)
        if isinstance(item, dict) and key in item
    }

    for item in patch_items:
        if isinstance(item, dict) and key in item:
            position = positions.get(_element_key(item[key]))
            if position is not None:
                result[position] = apply_merge_patch(
                    result[position], item, merge_keys, path
                )
                continue
            positions[_element_key(item[key])] = len(result)
        result.append(copy.deepcopy(item))
    return result


# ==================== Operation list ====================


def create_json_patch(current: Any, desired: Any) -> Patch:
    """
    Compute an ordered operation list turning ``current`` into ``desired``.

    Emits ``replace`` for paths present in both documents, ``add`` for paths
    only in ``desired`` and ``remove`` for paths only in ``current``. Surplus
    list indexes are added in ascending order and removed in descending order
    so the operations apply in sequence.
    """
    ops: List[Dict[str, Any]] = []
    _diff_ops(canonicalize(current), canonicalize(desired), "", ops)
    return Patch(PatchStrategy.JSON_PATCH, ops)


def _diff_ops(cur: Any, des: Any, pointer: str, ops: List[Dict[str, Any]]) -> None:
    if isinstance(cur, dict) and isinstance(des, dict):
        for key, dval in des.items():
            child = f"{pointer}/{escape(key)}"
            if key in cur:
                _diff_ops(cur[key], dval, child, ops)
            else:
                ops.append({"op": "add", "path": child, "value": dval})
        for key in cur:
            if key not in des:
                ops.append({"op": "remove", "path": f"{pointer}/{escape(key)}"})

    elif isinstance(cur, list) and isinstance(des, list):
        common = min(len(cur), len(des))
        for i in range(common):
            _diff_ops(cur[i], des[i], f"{pointer}/{i}", ops)
        for i in range(common, len(des)):
            ops.append({"op": "add", "path": f"{pointer}/{i}", "value": des[i]})
        for i in reversed(range(common, len(cur))):
            ops.append({"op": "remove", "path": f"{pointer}/{i}"})

    elif not _equal(cur, des):
        ops.append({"op": "replace", "path": pointer, "value": des})


def create_patch(
    current: Any,
    desired: Any,
    strategy: PatchStrategy,
    merge_keys: Optional[MergeKeys] = None,
) -> Patch:
    """Compute a patch using the given strategy."""
    if strategy is PatchStrategy.JSON_PATCH:
        return create_json_patch(current, desired)
    return create_merge_patch(current, desired, merge_keys)
