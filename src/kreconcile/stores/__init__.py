"""
Stores package.

Implementations of the abstract Store interface the reconcile algorithms
run against. The cluster adapter lives in kreconcile.stores.kubernetes.
"""

from kreconcile.stores.base import Store
from kreconcile.stores.memory import InMemoryStore

__all__ = ["Store", "InMemoryStore"]
