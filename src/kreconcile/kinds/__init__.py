"""
Kinds package.

Describes the object kinds the reconcile algorithms operate on. Additional
kinds can be published by other packages via Python entry points
(group: 'kreconcile.kinds').
"""

from kreconcile.kinds.base import KindSpec
from kreconcile.kinds.builtin import (
    CLUSTER_ROLE_BINDING,
    DORMANT_DATABASE,
    POSTGRES,
    REPLICA_SET,
    SERVICE,
    merge_service_ports,
    replica_set_ready,
)
from kreconcile.kinds.registry import (
    KindRegistry,
    get_registry,
    register_builtin_kinds,
    reset_registry,
)

__all__ = [
    "KindSpec",
    "KindRegistry",
    "get_registry",
    "reset_registry",
    "register_builtin_kinds",
    "SERVICE",
    "REPLICA_SET",
    "CLUSTER_ROLE_BINDING",
    "POSTGRES",
    "DORMANT_DATABASE",
    "merge_service_ports",
    "replica_set_ready",
]
