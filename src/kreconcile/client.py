"""
Resource Client - The reconcile algorithms bound to one kind.

Controllers typically hold one ResourceClient per kind they manage:

    services = ResourceClient(store, SERVICE, config.retry)
    svc, verb = services.create_or_patch({"name": "web", "namespace": "default"},
                                         set_ports)

Each operation picks its retry budget explicitly from RetryConfig.
"""

from typing import Any, Dict, Mapping, Optional, Tuple

from kreconcile.config import RetryConfig
from kreconcile.kinds.base import KindSpec
from kreconcile.meta import ObjectKey, Selector, Transform, VerbType
from kreconcile.retry import AttemptPolicy, try_patch, try_update
from kreconcile.stores.base import Store
from kreconcile.upsert import create_or_patch, patch
from kreconcile.wait import (
    Condition,
    wait_until,
    wait_until_deleted,
    wait_until_deleted_by_selector,
    wait_until_ready,
)


class ResourceClient:
    """Create-or-patch, retrying writes and polling for one kind."""

    def __init__(
        self,
        store: Store,
        kind: KindSpec,
        retry: Optional[RetryConfig] = None,
    ):
        self.store = store
        self.kind = kind
        self.retry = retry or RetryConfig()

    def _key(self, name: str, namespace: str = "") -> ObjectKey:
        return ObjectKey(name=name, namespace=namespace if self.kind.namespaced else "")

    def get(self, name: str, namespace: str = "") -> Dict[str, Any]:
        return self.store.get(self.kind, self._key(name, namespace))

    def create_or_patch(
        self, meta: Mapping[str, Any], transform: Transform
    ) -> Tuple[Dict[str, Any], VerbType]:
        """Single-pass upsert; see kreconcile.upsert.create_or_patch."""
        return create_or_patch(self.store, self.kind, meta, transform)

    def patch(
        self, current: Dict[str, Any], transform: Transform
    ) -> Tuple[Dict[str, Any], VerbType]:
        return patch(self.store, self.kind, current, transform)

    def try_update(
        self,
        name: str,
        transform: Transform,
        namespace: str = "",
        policy: Optional[AttemptPolicy] = None,
    ) -> Dict[str, Any]:
        """Full read-modify-write, retried within the update timeout."""
        return try_update(
            self.store,
            self.kind,
            self._key(name, namespace),
            transform,
            policy or self.retry.update_policy(),
        )

    def try_patch(
        self,
        name: str,
        transform: Transform,
        namespace: str = "",
        policy: Optional[AttemptPolicy] = None,
    ) -> Tuple[Dict[str, Any], VerbType]:
        """Read-patch cycle, retried up to max_attempts times."""
        return try_patch(
            self.store,
            self.kind,
            self._key(name, namespace),
            transform,
            policy or self.retry.attempt_policy(),
        )

    def wait_until(
        self,
        name: str,
        condition: Condition,
        namespace: str = "",
        policy: Optional[AttemptPolicy] = None,
    ) -> Optional[Dict[str, Any]]:
        return wait_until(
            self.store,
            self.kind,
            self._key(name, namespace),
            condition,
            policy or self.retry.readiness_policy(),
        )

    def wait_until_ready(
        self, name: str, namespace: str = "", policy: Optional[AttemptPolicy] = None
    ) -> Dict[str, Any]:
        return wait_until_ready(
            self.store,
            self.kind,
            self._key(name, namespace),
            policy or self.retry.readiness_policy(),
        )

    def wait_until_deleted(
        self, name: str, namespace: str = "", policy: Optional[AttemptPolicy] = None
    ) -> None:
        wait_until_deleted(
            self.store,
            self.kind,
            self._key(name, namespace),
            policy or self.retry.readiness_policy(),
        )

    def wait_until_deleted_by_selector(
        self,
        selector: Selector,
        namespace: str = "",
        policy: Optional[AttemptPolicy] = None,
    ) -> None:
        wait_until_deleted_by_selector(
            self.store,
            self.kind,
            namespace if self.kind.namespaced else "",
            selector,
            policy or self.retry.readiness_policy(),
        )
