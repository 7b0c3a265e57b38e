"""
Upserter - Create-or-patch against the remote store.

A single pass performs at most one read and one write: the object is
created from the kind's zero value when absent, patched with the minimal
delta when it differs from the transformed state, and left alone otherwise.
Errors are surfaced unmodified; retrying is the caller's decision.
"""

import copy
import logging
from typing import Any, Dict, Mapping, Tuple

from kreconcile.errors import NotFoundError
from kreconcile.kinds.base import KindSpec
from kreconcile.meta import ObjectKey, Transform, VerbType
from kreconcile.patch import create_patch

logger = logging.getLogger(__name__)


def create_or_patch(
    store,
    kind: KindSpec,
    meta: Mapping[str, Any],
    transform: Transform,
) -> Tuple[Dict[str, Any], VerbType]:
    """
    Bring one object into the state produced by ``transform``.

    Args:
        store: The Store to operate on.
        kind: Kind of the object.
        meta: ObjectMeta of the object. Must carry a name; the namespace is
            ignored for cluster-scoped kinds. Stamped onto new objects.
        transform: Pure function from the current (or zero-value) object to
            the desired object. Always receives a private copy.

    Returns:
        Tuple of (object, VerbType).

    Raises:
        StoreError: From the fetch, the create or the patch, unmodified.
        SerializationError: If an object cannot be serialized.
    """
    key = ObjectKey.from_meta(meta)
    if not kind.namespaced and key.namespace:
        key = ObjectKey(name=key.name)

    try:
        current = store.get(kind, key)
    except NotFoundError:
        logger.info(f"Creating {kind.kind} {key}.")
        created = store.create(kind, transform(kind.new_object(meta)))
        return created, VerbType.CREATED

    return patch(store, kind, current, transform)


ensure = create_or_patch


def patch(
    store,
    kind: KindSpec,
    current: Dict[str, Any],
    transform: Transform,
) -> Tuple[Dict[str, Any], VerbType]:
    """
    Patch a fetched object with the result of ``transform``.

    The transform is applied to a deep copy; ``current`` is never mutated.
    """
    return patch_object(store, kind, current, transform(copy.deepcopy(current)))


def patch_object(
    store,
    kind: KindSpec,
    current: Dict[str, Any],
    modified: Dict[str, Any],
) -> Tuple[Dict[str, Any], VerbType]:
    """
    Patch ``current`` into ``modified`` using the kind's patch strategy.

    Returns:
        ``(current, UNCHANGED)`` without any write when the patch is empty,
        otherwise the object returned by the store and ``PATCHED``.
    """
    delta = create_patch(current, modified, kind.patch_strategy, kind.merge_keys)
    if delta.is_empty():
        return current, VerbType.UNCHANGED

    key = ObjectKey.from_object(current)
    logger.info(f"Patching {kind.kind} {key} with {delta.to_json()}.")
    out = store.patch(kind, key, delta)
    return out, VerbType.PATCHED
