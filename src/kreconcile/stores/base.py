"""
Store Base - Abstract interface to the remote object store.

The reconcile algorithms only ever talk to a Store. Implementations own the
transport and must translate their native failures into the kreconcile
error taxonomy: NotFoundError for absent objects, ConflictError for
optimistic-concurrency rejections and StoreError for everything else.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from kreconcile.kinds.base import KindSpec
from kreconcile.meta import ObjectKey, Selector
from kreconcile.patch import Patch


class Store(ABC):
    """
    Abstract base class for object stores.

    Every method performs exactly one remote call and returns a fresh copy
    of what the store holds; nothing is cached between calls.
    """

    @abstractmethod
    def get(self, kind: KindSpec, key: ObjectKey) -> Dict[str, Any]:
        """
        Fetch one object.

        Raises:
            NotFoundError: If the object does not exist.
            StoreError: On any other failure.
        """
        pass

    @abstractmethod
    def create(self, kind: KindSpec, obj: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an object and return it as stored.

        Raises:
            ConflictError: If the object already exists.
        """
        pass

    @abstractmethod
    def update(self, kind: KindSpec, obj: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace an object.

        Subject to the store's optimistic-concurrency check on
        ``metadata.resourceVersion``.

        Raises:
            ConflictError: If the object changed since it was read.
        """
        pass

    @abstractmethod
    def patch(self, kind: KindSpec, key: ObjectKey, patch: Patch) -> Dict[str, Any]:
        """Apply a patch to an object and return the result."""
        pass

    @abstractmethod
    def list(
        self, kind: KindSpec, namespace: str = "", selector: Selector = None
    ) -> List[Dict[str, Any]]:
        """List objects of a kind, optionally filtered by a label selector."""
        pass

    @abstractmethod
    def delete(self, kind: KindSpec, key: ObjectKey) -> None:
        """
        Delete an object.

        Raises:
            NotFoundError: If the object does not exist.
        """
        pass
