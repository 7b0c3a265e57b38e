"""
Kubernetes Store - Store adapter over the Kubernetes dynamic client.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from kreconcile.config import KubernetesConfig
from kreconcile.errors import ConflictError, NotFoundError, StoreError
from kreconcile.kinds.base import KindSpec
from kreconcile.meta import ObjectKey, Selector, format_label_selector
from kreconcile.patch import Patch
from kreconcile.stores.base import Store

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(kind: KindSpec, target: Any) -> Iterator[None]:
    """Map API errors onto the kreconcile error taxonomy."""
    try:
        yield
    except ResourceNotFoundError as e:
        raise StoreError(f"{kind} is not served by the cluster: {e}") from e
    except ApiException as e:
        message = f"{kind.kind} {target}: {e.reason}"
        if e.status == 404:
            raise NotFoundError(message) from e
        if e.status == 409:
            raise ConflictError(message) from e
        raise StoreError(message, status=e.status) from e


class KubernetesStore(Store):
    """
    Store backed by a live Kubernetes API server.

    Uses the dynamic client so that built-in kinds and custom resources go
    through the same code path, driven only by a KindSpec.
    """

    def __init__(self, dynamic_client: DynamicClient):
        self._client = dynamic_client

    @classmethod
    def from_config(cls, kube_config: Optional[KubernetesConfig] = None):
        """
        Connect using in-cluster credentials or a kubeconfig file.

        Args:
            kube_config: Connection settings. Defaults to the environment.
        """
        kube_config = kube_config or KubernetesConfig.from_env()
        if kube_config.in_cluster:
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration")
        else:
            config.load_kube_config(
                config_file=kube_config.kubeconfig, context=kube_config.context
            )
            logger.info(
                f"Loaded kubeconfig {kube_config.kubeconfig or '(default)'}"
                f" context {kube_config.context or '(current)'}"
            )
        return cls(DynamicClient(client.ApiClient()))

    def _resource(self, kind: KindSpec):
        return self._client.resources.get(api_version=kind.api_version, kind=kind.kind)

    def _namespace(self, kind: KindSpec, namespace: str) -> Optional[str]:
        if not kind.namespaced:
            return None
        return namespace or None

    def get(self, kind: KindSpec, key: ObjectKey) -> Dict[str, Any]:
        with _translate_errors(kind, key):
            obj = self._resource(kind).get(
                name=key.name, namespace=self._namespace(kind, key.namespace)
            )
            return obj.to_dict()

    def create(self, kind: KindSpec, obj: Dict[str, Any]) -> Dict[str, Any]:
        key = ObjectKey.from_object(obj)
        with _translate_errors(kind, key):
            created = self._resource(kind).create(
                body=obj, namespace=self._namespace(kind, key.namespace)
            )
            return created.to_dict()

    def update(self, kind: KindSpec, obj: Dict[str, Any]) -> Dict[str, Any]:
        key = ObjectKey.from_object(obj)
        with _translate_errors(kind, key):
            replaced = self._resource(kind).replace(
                body=obj, namespace=self._namespace(kind, key.namespace)
            )
            return replaced.to_dict()

    def patch(self, kind: KindSpec, key: ObjectKey, patch: Patch) -> Dict[str, Any]:
        with _translate_errors(kind, key):
            patched = self._resource(kind).patch(
                body=patch.body,
                name=key.name,
                namespace=self._namespace(kind, key.namespace),
                content_type=patch.content_type,
            )
            return patched.to_dict()

    def list(
        self, kind: KindSpec, namespace: str = "", selector: Selector = None
    ) -> List[Dict[str, Any]]:
        label_selector = format_label_selector(selector)
        with _translate_errors(kind, label_selector or "(all)"):
            kwargs = {"namespace": self._namespace(kind, namespace)}
            if label_selector:
                kwargs["label_selector"] = label_selector
            result = self._resource(kind).get(**kwargs)
            return result.to_dict().get("items") or []

    def delete(self, kind: KindSpec, key: ObjectKey) -> None:
        with _translate_errors(kind, key):
            self._resource(kind).delete(
                name=key.name, namespace=self._namespace(kind, key.namespace)
            )
