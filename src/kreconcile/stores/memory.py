"""
In-memory store with optimistic concurrency.

Behaves like an API server for the purposes of the reconcile algorithms:
resourceVersions are bumped on every write, stale updates are rejected and
patches are applied with the kind's own strategy. Used for tests and dry
runs.
"""

import copy
import logging
import threading
import uuid
from typing import Any, Dict, List, Tuple

import jsonpatch

from kreconcile.errors import ConflictError, NotFoundError, StoreError
from kreconcile.kinds.base import KindSpec
from kreconcile.meta import ObjectKey, Selector, matches_selector
from kreconcile.patch import Patch, PatchStrategy, apply_merge_patch, canonicalize
from kreconcile.stores.base import Store

logger = logging.getLogger(__name__)

_Key = Tuple[str, str, str, str]


class InMemoryStore(Store):
    """Thread-safe dict-backed Store."""

    def __init__(self):
        self._objects: Dict[_Key, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._version = 0

    def _key(self, kind: KindSpec, key: ObjectKey) -> _Key:
        namespace = key.namespace if kind.namespaced else ""
        return (kind.api_version, kind.kind, namespace, key.name)

    def _describe(self, kind: KindSpec, key: ObjectKey) -> str:
        return f'{kind.plural} "{key}"'

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _lookup(self, kind: KindSpec, key: ObjectKey) -> Dict[str, Any]:
        stored = self._objects.get(self._key(kind, key))
        if stored is None:
            raise NotFoundError(f"{self._describe(kind, key)} not found")
        return stored

    def _store(self, kind: KindSpec, obj: Dict[str, Any]) -> Dict[str, Any]:
        obj = canonicalize(obj)
        obj["apiVersion"] = kind.api_version
        obj["kind"] = kind.kind
        obj.setdefault("metadata", {})["resourceVersion"] = self._next_version()
        key = ObjectKey.from_object(obj)
        self._objects[self._key(kind, key)] = obj
        logger.debug(
            f"Stored {kind.kind} {key} at resourceVersion "
            f"{obj['metadata']['resourceVersion']}"
        )
        return copy.deepcopy(obj)

    def get(self, kind: KindSpec, key: ObjectKey) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._lookup(kind, key))

    def create(self, kind: KindSpec, obj: Dict[str, Any]) -> Dict[str, Any]:
        key = ObjectKey.from_object(obj)
        with self._lock:
            if self._key(kind, key) in self._objects:
                raise ConflictError(f"{self._describe(kind, key)} already exists")
            obj = copy.deepcopy(obj)
            metadata = obj.setdefault("metadata", {})
            if not kind.namespaced:
                metadata.pop("namespace", None)
            metadata["uid"] = str(uuid.uuid4())
            metadata["generation"] = 1
            return self._store(kind, obj)

    def update(self, kind: KindSpec, obj: Dict[str, Any]) -> Dict[str, Any]:
        key = ObjectKey.from_object(obj)
        with self._lock:
            stored = self._lookup(kind, key)
            version = (obj.get("metadata") or {}).get("resourceVersion")
            if version and version != stored["metadata"]["resourceVersion"]:
                raise ConflictError(
                    f"Operation cannot be fulfilled on {self._describe(kind, key)}: "
                    "the object has been modified; please apply your changes "
                    "to the latest version and try again"
                )
            return self._store(kind, self._carry_identity(stored, obj))

    def patch(self, kind: KindSpec, key: ObjectKey, patch: Patch) -> Dict[str, Any]:
        with self._lock:
            stored = self._lookup(kind, key)
            if patch.strategy is PatchStrategy.JSON_PATCH:
                try:
                    patched = jsonpatch.apply_patch(stored, patch.body, in_place=False)
                except (jsonpatch.JsonPatchException, jsonpatch.JsonPointerException) as e:
                    raise StoreError(
                        f"Invalid patch for {self._describe(kind, key)}: {e}",
                        status=422,
                    ) from e
            else:
                patched = apply_merge_patch(stored, patch.body, kind.merge_keys)
            return self._store(kind, self._carry_identity(stored, patched))

    def list(
        self, kind: KindSpec, namespace: str = "", selector: Selector = None
    ) -> List[Dict[str, Any]]:
        with self._lock:
            items = []
            for (api_version, kind_name, ns, _), obj in self._objects.items():
                if (api_version, kind_name) != (kind.api_version, kind.kind):
                    continue
                if kind.namespaced and namespace and ns != namespace:
                    continue
                labels = (obj.get("metadata") or {}).get("labels")
                if matches_selector(selector, labels):
                    items.append(copy.deepcopy(obj))
            return items

    def delete(self, kind: KindSpec, key: ObjectKey) -> None:
        with self._lock:
            self._lookup(kind, key)
            del self._objects[self._key(kind, key)]

    def _carry_identity(
        self, stored: Dict[str, Any], obj: Dict[str, Any]
    ) -> Dict[str, Any]:
        # Server-owned metadata cannot be changed by writes.
        obj = copy.deepcopy(obj)
        metadata = obj.setdefault("metadata", {})
        for field in ("name", "namespace", "uid"):
            if field in stored["metadata"]:
                metadata[field] = stored["metadata"][field]
        if obj.get("spec") != stored.get("spec"):
            metadata["generation"] = stored["metadata"].get("generation", 1) + 1
        else:
            metadata["generation"] = stored["metadata"].get("generation", 1)
        return obj
