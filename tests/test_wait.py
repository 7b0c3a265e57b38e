"""Unit tests for wait.py - Condition polling."""

from unittest.mock import MagicMock

import pytest

from kreconcile.errors import NotFoundError, StoreError, WaitTimeoutError
from kreconcile.kinds import CLUSTER_ROLE_BINDING, REPLICA_SET
from kreconcile.meta import ObjectKey
from kreconcile.retry import AttemptPolicy
from kreconcile.stores.base import Store
from kreconcile.wait import (
    wait_until,
    wait_until_deleted,
    wait_until_deleted_by_selector,
    wait_until_ready,
)

KEY = ObjectKey(name="web", namespace="default")


def replica_set(ready_replicas, labels=None):
    return {
        "apiVersion": "apps/v1",
        "kind": "ReplicaSet",
        "metadata": {"name": "web", "namespace": "default", "labels": labels or {}},
        "spec": {"replicas": 3},
        "status": {"readyReplicas": ready_replicas},
    }


@pytest.fixture
def mock_store():
    return MagicMock(spec=Store)


@pytest.fixture
def policy():
    return AttemptPolicy(interval=0.05, timeout=10)


class TestWaitUntil:
    """Tests for single-object polling."""

    def test_returns_once_ready(self, mock_store, policy, fake_clock):
        ready = replica_set(3)
        mock_store.get.side_effect = [replica_set(1), replica_set(2), ready]

        obj = wait_until_ready(mock_store, REPLICA_SET, KEY, policy)

        assert obj == ready
        assert mock_store.get.call_count == 3
        assert fake_clock.sleeps == [0.05, 0.05]

    def test_first_poll_is_immediate(self, mock_store, policy, fake_clock):
        mock_store.get.return_value = replica_set(3)

        wait_until_ready(mock_store, REPLICA_SET, KEY, policy)

        assert fake_clock.sleeps == []

    def test_store_errors_keep_polling(self, mock_store, policy, fake_clock):
        mock_store.get.side_effect = [StoreError("connection refused"), replica_set(3)]

        obj = wait_until_ready(mock_store, REPLICA_SET, KEY, policy)

        assert obj["status"]["readyReplicas"] == 3

    def test_absent_object_is_passed_as_none(self, mock_store, policy, fake_clock):
        seen = []

        def condition(obj):
            seen.append(obj)
            return True

        mock_store.get.side_effect = NotFoundError("not found")

        assert wait_until(mock_store, REPLICA_SET, KEY, condition, policy) is None
        assert seen == [None]

    def test_absent_object_is_never_ready(self, mock_store, fake_clock):
        mock_store.get.side_effect = NotFoundError("not found")
        policy = AttemptPolicy(interval=0.05, max_attempts=3)

        with pytest.raises(WaitTimeoutError):
            wait_until_ready(mock_store, REPLICA_SET, KEY, policy)

    def test_timeout(self, mock_store, fake_clock):
        mock_store.get.return_value = replica_set(1)
        policy = AttemptPolicy(interval=1, timeout=5)

        with pytest.raises(WaitTimeoutError) as exc_info:
            wait_until_ready(mock_store, REPLICA_SET, KEY, policy)

        err = exc_info.value
        assert err.attempts == 6
        assert err.last_error is None
        assert str(err) == "failed to wait for ReplicaSet default/web after 6 attempts"
        assert fake_clock.now == 5

    def test_wait_until_deleted(self, mock_store, policy, fake_clock):
        mock_store.get.side_effect = [replica_set(3), NotFoundError("not found")]

        wait_until_deleted(mock_store, REPLICA_SET, KEY, policy)

        assert mock_store.get.call_count == 2


class TestWaitUntilDeletedBySelector:
    """Tests for polling a label-selected list until it is empty."""

    def test_returns_once_empty(self, mock_store, policy, fake_clock):
        mock_store.list.side_effect = [
            [replica_set(3), replica_set(3)],
            [replica_set(3)],
            [],
        ]

        wait_until_deleted_by_selector(
            mock_store, REPLICA_SET, "default", {"app": "web"}, policy
        )

        assert mock_store.list.call_count == 3
        assert fake_clock.sleeps == [0.05, 0.05]
        mock_store.list.assert_called_with(REPLICA_SET, "default", "app=web")

    def test_label_selector_dict(self, mock_store, policy, fake_clock):
        mock_store.list.return_value = []
        selector = {
            "matchLabels": {"app": "web"},
            "matchExpressions": [{"key": "tier", "operator": "In", "values": ["db"]}],
        }

        wait_until_deleted_by_selector(mock_store, REPLICA_SET, "default", selector, policy)

        mock_store.list.assert_called_once_with(
            REPLICA_SET, "default", "app=web,tier in (db)"
        )

    def test_list_errors_keep_polling(self, mock_store, policy, fake_clock):
        mock_store.list.side_effect = [StoreError("connection refused"), []]

        wait_until_deleted_by_selector(mock_store, REPLICA_SET, "default", "app=web", policy)

        assert mock_store.list.call_count == 2

    def test_timeout(self, mock_store, fake_clock):
        mock_store.list.return_value = [replica_set(3)]
        policy = AttemptPolicy(interval=0.05, max_attempts=4)

        with pytest.raises(WaitTimeoutError) as exc_info:
            wait_until_deleted_by_selector(
                mock_store, REPLICA_SET, "default", "app=web", policy
            )

        err = exc_info.value
        assert err.attempts == 4
        assert err.target == "default/{app=web}"
        assert "wait for deletion of replicasets" in str(err)

    def test_malformed_selector(self, mock_store, policy, fake_clock):
        selector = {"matchExpressions": [{"key": "app", "operator": "Near"}]}

        with pytest.raises(ValueError):
            wait_until_deleted_by_selector(
                mock_store, REPLICA_SET, "default", selector, policy
            )

        mock_store.list.assert_not_called()

    def test_cluster_scoped_kind_ignores_namespace(self, store, fake_clock):
        """Cluster-scoped objects still count when a namespace is passed."""
        store.create(
            CLUSTER_ROLE_BINDING,
            {"metadata": {"name": "viewers", "labels": {"app": "x"}}},
        )
        policy = AttemptPolicy(interval=1, max_attempts=3)

        with pytest.raises(WaitTimeoutError) as exc_info:
            wait_until_deleted_by_selector(
                store, CLUSTER_ROLE_BINDING, "default", {"app": "x"}, policy
            )

        assert exc_info.value.attempts == 3
        assert exc_info.value.target == "{app=x}"
