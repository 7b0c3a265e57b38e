"""
Kind Registry - Registration and lookup of kinds.

Kinds are registered once at startup and resolved either by their exact
type metadata or by a short name (kind or plural, case-insensitive) as typed
on the command line.
"""

import logging
from importlib.metadata import entry_points
from typing import Dict, List, Optional, Tuple

from kreconcile.errors import UnknownKindError
from kreconcile.kinds.base import KindSpec

logger = logging.getLogger(__name__)


class KindRegistry:
    """Central registry of known kinds."""

    def __init__(self):
        self._kinds: Dict[Tuple[str, str], KindSpec] = {}
        # Lower-cased kind and plural names to registry keys
        self._names: Dict[str, Tuple[str, str]] = {}

    def register(self, spec: KindSpec) -> None:
        """
        Register a kind.

        Args:
            spec: The KindSpec to register. An existing registration with the
                same apiVersion and kind is replaced.
        """
        key = (spec.api_version, spec.kind)
        if key in self._kinds:
            logger.warning(f"Overwriting existing kind: {spec}")

        self._kinds[key] = spec
        for name in (spec.kind.lower(), spec.plural.lower()):
            existing = self._names.get(name)
            if existing and existing != key:
                logger.warning(
                    f"Short name '{name}' of {spec} shadows {existing[1]}.{existing[0]}"
                )
            self._names[name] = key
        logger.debug(f"Registered kind: {spec}")

    def get(self, api_version: str, kind: str) -> KindSpec:
        """
        Resolve a kind by its type metadata.

        Raises:
            UnknownKindError: If the kind is not registered.
        """
        spec = self._kinds.get((api_version, kind))
        if spec is None:
            raise UnknownKindError(
                f"Unknown kind: {kind}.{api_version}. "
                f"Available kinds: {self._available()}"
            )
        return spec

    def for_object(self, obj: Dict) -> KindSpec:
        """Resolve the kind of a full object from its apiVersion and kind."""
        return self.get(obj.get("apiVersion", ""), obj.get("kind", ""))

    def lookup(self, name: str) -> KindSpec:
        """
        Resolve a kind by kind or plural name, case-insensitive.

        Raises:
            UnknownKindError: If no kind goes by that name.
        """
        key = self._names.get(name.lower())
        if key is None:
            raise UnknownKindError(
                f"Unknown kind: {name}. Available kinds: {self._available()}"
            )
        return self._kinds[key]

    def has(self, api_version: str, kind: str) -> bool:
        return (api_version, kind) in self._kinds

    def list_kinds(self) -> List[KindSpec]:
        """List all registered kinds in registration order."""
        return list(self._kinds.values())

    def _available(self) -> str:
        return ", ".join(spec.kind for spec in self._kinds.values()) or "none"


# Global registry instance
_registry: Optional[KindRegistry] = None


def get_registry() -> KindRegistry:
    """Get the global kind registry singleton."""
    global _registry
    if _registry is None:
        _registry = KindRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (mainly for testing)."""
    global _registry
    _registry = None


def register_builtin_kinds() -> KindRegistry:
    """
    Register the built-in kinds and any kinds published by installed
    packages under the 'kreconcile.kinds' entry point group.

    Each entry point must load to a KindSpec or a list of KindSpecs. Kinds
    that are already registered are left as they are, so calling this more
    than once is harmless.
    """
    from kreconcile.kinds.builtin import BUILTIN_KINDS

    registry = get_registry()
    for spec in BUILTIN_KINDS:
        if not registry.has(spec.api_version, spec.kind):
            registry.register(spec)

    for ep in entry_points(group="kreconcile.kinds"):
        try:
            loaded = ep.load()
        except Exception as e:
            logger.warning(f"Could not load kinds from {ep.name}: {e}")
            continue
        specs = loaded if isinstance(loaded, (list, tuple)) else [loaded]
        for spec in specs:
            if not registry.has(spec.api_version, spec.kind):
                registry.register(spec)

    return registry
