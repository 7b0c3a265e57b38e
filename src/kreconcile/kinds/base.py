"""
Kind capability table.

A KindSpec carries everything the generic reconcile algorithms need to know
about one object kind: its type metadata, scope, patch strategy, merge keys
for keyed lists and how to tell that an object is ready.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from kreconcile.patch import PatchStrategy


def _always_ready(obj: Dict[str, Any]) -> bool:
    return True


@dataclass(frozen=True)
class KindSpec:
    """Static description of one object kind."""

    api_version: str
    kind: str
    plural: str
    namespaced: bool = True
    patch_strategy: PatchStrategy = PatchStrategy.MERGE
    merge_keys: Mapping[Tuple[str, ...], str] = field(
        default_factory=dict, compare=False
    )
    ready: Callable[[Dict[str, Any]], bool] = field(default=_always_ready, compare=False)

    @property
    def group(self) -> str:
        """API group ("" for the core group)."""
        if "/" in self.api_version:
            return self.api_version.split("/", 1)[0]
        return ""

    def new_object(self, meta: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Build the zero value of this kind, stamped with type metadata and
        the given ObjectMeta.

        Cluster-scoped kinds never carry a namespace.
        """
        metadata = copy.deepcopy(dict(meta))
        if not self.namespaced:
            metadata.pop("namespace", None)
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": metadata,
        }

    def is_ready(self, obj: Optional[Dict[str, Any]]) -> bool:
        """Readiness predicate; an absent object is never ready."""
        if obj is None:
            return False
        return bool(self.ready(obj))

    def __str__(self) -> str:
        return f"{self.kind}.{self.api_version}"
