"""
Object identity, verb classification and label selector helpers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

Selector = Union[str, Mapping[str, Any], None]
Transform = Callable[[Dict[str, Any]], Dict[str, Any]]


class VerbType(Enum):
    """What a mutating call did to the stored object."""

    CREATED = "created"
    PATCHED = "patched"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ObjectKey:
    """Namespace and name addressing one object of one kind."""

    name: str
    namespace: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("ObjectKey requires a name")

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    @classmethod
    def from_meta(cls, meta: Mapping[str, Any]) -> "ObjectKey":
        """Build a key from an ObjectMeta-style dict."""
        return cls(name=meta.get("name", ""), namespace=meta.get("namespace") or "")

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> "ObjectKey":
        """Build a key from a full object's metadata."""
        return cls.from_meta(obj.get("metadata") or {})


def format_label_selector(selector: Selector) -> str:
    """
    Render a label selector as the string form used by list calls.

    Args:
        selector: A selector string, a LabelSelector dict with
            ``matchLabels``/``matchExpressions``, or a plain label dict.

    Returns:
        The comma-separated selector string ("" selects everything).

    Raises:
        ValueError: If an expression uses an unknown operator.
    """
    if selector is None:
        return ""
    if isinstance(selector, str):
        return selector

    if "matchLabels" in selector or "matchExpressions" in selector:
        labels = selector.get("matchLabels") or {}
        expressions = selector.get("matchExpressions") or []
    else:
        labels, expressions = selector, []

    parts = [f"{k}={v}" for k, v in sorted(labels.items())]
    for expr in expressions:
        key = expr["key"]
        op = expr["operator"]
        values = sorted(expr.get("values") or [])
        if op == "In":
            parts.append(f"{key} in ({','.join(values)})")
        elif op == "NotIn":
            parts.append(f"{key} notin ({','.join(values)})")
        elif op == "Exists":
            parts.append(key)
        elif op == "DoesNotExist":
            parts.append(f"!{key}")
        else:
            raise ValueError(f"Unsupported label selector operator: {op}")
    return ",".join(parts)


def _split_requirements(selector: str) -> List[str]:
    # Commas inside "in (a,b)" do not separate requirements.
    parts, depth, current = [], 0, ""
    for ch in selector:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


def matches_selector(selector: Selector, labels: Optional[Dict[str, str]]) -> bool:
    """Check whether a label set satisfies a selector."""
    labels = labels or {}
    for req in _split_requirements(format_label_selector(selector)):
        if " notin " in req:
            key, values = req.split(" notin ", 1)
            if labels.get(key.strip()) in _parse_values(values):
                return False
        elif " in " in req:
            key, values = req.split(" in ", 1)
            if labels.get(key.strip()) not in _parse_values(values):
                return False
        elif req.startswith("!"):
            if req[1:] in labels:
                return False
        elif "!=" in req:
            key, value = req.split("!=", 1)
            if labels.get(key.strip()) == value.strip():
                return False
        elif "=" in req:
            key, value = req.replace("==", "=").split("=", 1)
            if labels.get(key.strip()) != value.strip():
                return False
        elif req not in labels:
            return False
    return True


def _parse_values(values: str) -> List[str]:
    return [v.strip() for v in values.strip().strip("()").split(",") if v.strip()]
