"""Unit tests for the kinds package."""

from unittest.mock import MagicMock, patch

import pytest

from kreconcile.errors import UnknownKindError
from kreconcile.kinds import (
    CLUSTER_ROLE_BINDING,
    POSTGRES,
    REPLICA_SET,
    SERVICE,
    KindRegistry,
    KindSpec,
    get_registry,
    merge_service_ports,
    register_builtin_kinds,
    replica_set_ready,
)
from kreconcile.patch import PatchStrategy

WIDGET = KindSpec(api_version="example.com/v1", kind="Widget", plural="widgets")

# ==================== KindSpec ====================


class TestKindSpec:
    """Tests for KindSpec."""

    def test_defaults(self):
        assert WIDGET.namespaced is True
        assert WIDGET.patch_strategy is PatchStrategy.MERGE
        assert WIDGET.merge_keys == {}
        assert WIDGET.is_ready({"status": {}}) is True

    def test_group(self):
        assert WIDGET.group == "example.com"
        assert SERVICE.group == ""

    def test_new_object(self):
        meta = {"name": "w", "namespace": "default", "labels": {"a": "b"}}

        obj = WIDGET.new_object(meta)

        assert obj == {"apiVersion": "example.com/v1", "kind": "Widget", "metadata": meta}
        obj["metadata"]["labels"]["a"] = "changed"
        assert meta["labels"]["a"] == "b"

    def test_new_object_cluster_scoped(self):
        obj = CLUSTER_ROLE_BINDING.new_object({"name": "admin", "namespace": "default"})
        assert obj["metadata"] == {"name": "admin"}

    def test_absent_object_is_not_ready(self):
        assert WIDGET.is_ready(None) is False

    def test_str(self):
        assert str(POSTGRES) == "Postgres.kubedb.com/v1alpha1"

    def test_hashable(self):
        """Kinds with merge keys can key a dict."""
        by_kind = {SERVICE: "svc", REPLICA_SET: "rs"}

        assert by_kind[SERVICE] == "svc"
        assert hash(REPLICA_SET) == hash(REPLICA_SET)


class TestBuiltinHelpers:
    """Tests for kind-specific helpers."""

    @pytest.mark.parametrize(
        "obj,expected",
        [
            ({"spec": {"replicas": 3}, "status": {"readyReplicas": 3}}, True),
            ({"spec": {"replicas": 3}, "status": {"readyReplicas": 2}}, False),
            ({"spec": {"replicas": 3}, "status": {}}, False),
            ({"spec": {}, "status": {"readyReplicas": 1}}, True),
            ({"spec": {"replicas": 0}}, True),
        ],
    )
    def test_replica_set_ready(self, obj, expected):
        assert replica_set_ready(obj) is expected
        assert REPLICA_SET.is_ready(obj) is expected

    def test_postgres_ready_when_running(self):
        assert POSTGRES.is_ready({"status": {"phase": "Running"}}) is True
        assert POSTGRES.is_ready({"status": {"phase": "Creating"}}) is False

    def test_merge_service_ports(self):
        current = [
            {"port": 80, "nodePort": 30001, "protocol": "TCP"},
            {"port": 443, "nodePort": 30002, "protocol": "TCP"},
        ]
        desired = [{"port": 80, "targetPort": 8080}, {"port": 9090}]

        merged = merge_service_ports(current, desired)

        assert merged == [
            {"port": 80, "targetPort": 8080, "nodePort": 30001, "protocol": "TCP"},
            {"port": 9090},
        ]
        assert desired[0] == {"port": 80, "targetPort": 8080}

    def test_merge_service_ports_keeps_explicit_values(self):
        merged = merge_service_ports(
            [{"port": 53, "nodePort": 30053, "protocol": "TCP"}],
            [{"port": 53, "nodePort": 31053, "protocol": "UDP"}],
        )
        assert merged == [{"port": 53, "nodePort": 31053, "protocol": "UDP"}]

    def test_merge_service_ports_without_current(self):
        desired = [{"port": 80}]
        assert merge_service_ports([], desired) is desired


# ==================== Registry ====================


class TestKindRegistry:
    """Tests for KindRegistry."""

    def test_register_and_get(self):
        registry = KindRegistry()
        registry.register(WIDGET)

        assert registry.get("example.com/v1", "Widget") is WIDGET
        assert registry.has("example.com/v1", "Widget")
        assert registry.list_kinds() == [WIDGET]

    def test_unknown_kind(self):
        registry = KindRegistry()
        registry.register(WIDGET)

        with pytest.raises(UnknownKindError) as exc_info:
            registry.get("v1", "Gadget")

        assert "Gadget" in str(exc_info.value)
        assert "Widget" in str(exc_info.value)
        assert isinstance(exc_info.value, KeyError)

    def test_for_object(self):
        registry = KindRegistry()
        registry.register(WIDGET)

        assert registry.for_object({"apiVersion": "example.com/v1", "kind": "Widget"}) is WIDGET

    @pytest.mark.parametrize("name", ["Widget", "widget", "widgets", "WIDGETS"])
    def test_lookup_by_short_name(self, name):
        registry = KindRegistry()
        registry.register(WIDGET)

        assert registry.lookup(name) is WIDGET

    def test_lookup_unknown(self):
        with pytest.raises(UnknownKindError):
            KindRegistry().lookup("gadgets")

    def test_reregister_replaces(self):
        registry = KindRegistry()
        registry.register(WIDGET)
        replacement = KindSpec(
            api_version="example.com/v1",
            kind="Widget",
            plural="widgets",
            namespaced=False,
        )
        registry.register(replacement)

        assert registry.get("example.com/v1", "Widget") is replacement
        assert len(registry.list_kinds()) == 1


class TestGlobalRegistry:
    """Tests for the global registry helpers."""

    def test_singleton(self):
        assert get_registry() is get_registry()

    def test_register_builtin_kinds(self):
        registry = register_builtin_kinds()

        assert registry is get_registry()
        assert registry.lookup("services") is SERVICE
        assert registry.lookup("postgres") is POSTGRES
        assert registry.lookup("clusterrolebinding") is CLUSTER_ROLE_BINDING

    def test_register_builtin_kinds_is_idempotent(self):
        register_builtin_kinds()
        count = len(get_registry().list_kinds())

        register_builtin_kinds()

        assert len(get_registry().list_kinds()) == count

    def test_entry_point_kinds(self):
        ep = MagicMock()
        ep.name = "widgets"
        ep.load.return_value = [WIDGET]

        with patch("kreconcile.kinds.registry.entry_points", return_value=[ep]) as eps:
            registry = register_builtin_kinds()

        eps.assert_called_once_with(group="kreconcile.kinds")
        assert registry.lookup("widgets") is WIDGET

    def test_broken_entry_point_is_skipped(self):
        ep = MagicMock()
        ep.name = "broken"
        ep.load.side_effect = ImportError("no module named broken")

        with patch("kreconcile.kinds.registry.entry_points", return_value=[ep]):
            registry = register_builtin_kinds()

        assert registry.lookup("services") is SERVICE
