"""
kreconcile - Converge remote objects to a desired state.

Generic create-or-patch, conflict-retrying update and condition polling
against an abstract object store, driven by pure transform functions.
"""

from kreconcile.client import ResourceClient
from kreconcile.config import Config, KubernetesConfig, RetryConfig
from kreconcile.errors import (
    ConflictError,
    ExhaustionError,
    NotFoundError,
    ReconcileError,
    SerializationError,
    StoreError,
    UnknownKindError,
    WaitTimeoutError,
)
from kreconcile.kinds import KindSpec, get_registry, register_builtin_kinds
from kreconcile.meta import ObjectKey, VerbType
from kreconcile.patch import Patch, PatchStrategy, create_patch
from kreconcile.retry import AttemptPolicy, try_patch, try_update
from kreconcile.upsert import create_or_patch, ensure, patch, patch_object
from kreconcile.wait import (
    wait_until,
    wait_until_deleted,
    wait_until_deleted_by_selector,
    wait_until_ready,
)

__version__ = "0.1.0"

__all__ = [
    "AttemptPolicy",
    "Config",
    "ConflictError",
    "ExhaustionError",
    "KindSpec",
    "KubernetesConfig",
    "NotFoundError",
    "ObjectKey",
    "Patch",
    "PatchStrategy",
    "ReconcileError",
    "ResourceClient",
    "RetryConfig",
    "SerializationError",
    "StoreError",
    "UnknownKindError",
    "VerbType",
    "WaitTimeoutError",
    "create_or_patch",
    "create_patch",
    "ensure",
    "get_registry",
    "patch",
    "patch_object",
    "register_builtin_kinds",
    "try_patch",
    "try_update",
    "wait_until",
    "wait_until_deleted",
    "wait_until_deleted_by_selector",
    "wait_until_ready",
]
