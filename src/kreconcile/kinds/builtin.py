"""
Built-in kinds and kind-specific helpers.
"""

from typing import Any, Dict, List

from kreconcile.kinds.base import KindSpec
from kreconcile.patch import PatchStrategy


def replica_set_ready(obj: Dict[str, Any]) -> bool:
    """A ReplicaSet is ready once every desired replica reports ready."""
    spec = obj.get("spec") or {}
    status = obj.get("status") or {}
    desired = spec.get("replicas", 1)
    return status.get("readyReplicas", 0) == desired


def database_running(obj: Dict[str, Any]) -> bool:
    return (obj.get("status") or {}).get("phase") == "Running"


def merge_service_ports(
    current: List[Dict[str, Any]], desired: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Carry server-assigned port fields over to a rebuilt port list.

    Transforms that rebuild ``spec.ports`` from scratch would otherwise ask
    the API server to drop the ``nodePort`` it allocated and the default
    ``protocol``, which reassigns node ports on every pass.

    Args:
        current: Ports as stored.
        desired: Ports as built by the transform.

    Returns:
        The desired list, with ``nodePort`` and ``protocol`` filled in from
        the stored port with the same ``port`` number.
    """
    if not current:
        return desired

    by_port = {p.get("port"): p for p in current}
    merged = []
    for port in desired:
        port = dict(port)
        existing = by_port.get(port.get("port"))
        if existing is not None:
            if not port.get("nodePort") and existing.get("nodePort"):
                port["nodePort"] = existing["nodePort"]
            if not port.get("protocol") and existing.get("protocol"):
                port["protocol"] = existing["protocol"]
        merged.append(port)
    return merged


SERVICE = KindSpec(
    api_version="v1",
    kind="Service",
    plural="services",
    merge_keys={("spec", "ports"): "port"},
)

REPLICA_SET = KindSpec(
    api_version="apps/v1",
    kind="ReplicaSet",
    plural="replicasets",
    merge_keys={
        ("spec", "template", "spec", "containers"): "name",
        ("spec", "template", "spec", "initContainers"): "name",
        ("spec", "template", "spec", "volumes"): "name",
        ("spec", "template", "spec", "containers", "ports"): "containerPort",
        ("spec", "template", "spec", "containers", "env"): "name",
    },
    ready=replica_set_ready,
)

CLUSTER_ROLE_BINDING = KindSpec(
    api_version="rbac.authorization.k8s.io/v1",
    kind="ClusterRoleBinding",
    plural="clusterrolebindings",
    namespaced=False,
)

# Custom resources do not support strategic merge, so they are patched
# with operation lists.
POSTGRES = KindSpec(
    api_version="kubedb.com/v1alpha1",
    kind="Postgres",
    plural="postgreses",
    patch_strategy=PatchStrategy.JSON_PATCH,
    ready=database_running,
)

DORMANT_DATABASE = KindSpec(
    api_version="kubedb.com/v1alpha1",
    kind="DormantDatabase",
    plural="dormantdatabases",
    patch_strategy=PatchStrategy.JSON_PATCH,
)

BUILTIN_KINDS = [SERVICE, REPLICA_SET, CLUSTER_ROLE_BINDING, POSTGRES, DORMANT_DATABASE]
