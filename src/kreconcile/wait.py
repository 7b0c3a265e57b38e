"""
Condition Poller - Wait for stored objects to converge.

Each cycle performs exactly one get or list call. Store errors count as
"condition not yet satisfied"; only running out of budget fails the wait.
The first cycle runs immediately.
"""

import logging
from typing import Any, Callable, Dict, Optional

from kreconcile.errors import NotFoundError, WaitTimeoutError
from kreconcile.kinds.base import KindSpec
from kreconcile.meta import ObjectKey, Selector, format_label_selector
from kreconcile.retry import AttemptPolicy

logger = logging.getLogger(__name__)

Condition = Callable[[Optional[Dict[str, Any]]], bool]


def is_absent(obj: Optional[Dict[str, Any]]) -> bool:
    return obj is None


def wait_until(
    store,
    kind: KindSpec,
    key: ObjectKey,
    condition: Condition,
    policy: AttemptPolicy,
) -> Optional[Dict[str, Any]]:
    """
    Poll one object until ``condition`` holds.

    Args:
        store: The Store to poll.
        kind: Kind of the object.
        key: Identity of the object.
        condition: Predicate over the observed object, called with ``None``
            when the object does not exist.
        policy: Poll interval and budget.

    Returns:
        The object that satisfied the condition (``None`` if absence did).

    Raises:
        WaitTimeoutError: If the condition did not hold within the budget.
    """
    attempt = 0
    last_error: Optional[BaseException] = None

    for attempt in policy.attempts():
        try:
            obj = store.get(kind, key)
        except NotFoundError:
            obj = None
        except Exception as e:
            last_error = e
            logger.debug(f"Poll {attempt} of {kind.kind} {key} failed: {e}")
            continue

        if condition(obj):
            return obj

    raise WaitTimeoutError(key, attempt, last_error, action=f"wait for {kind.kind}")


def wait_until_ready(
    store, kind: KindSpec, key: ObjectKey, policy: AttemptPolicy
) -> Dict[str, Any]:
    """Poll until the kind's readiness predicate holds for the object."""
    return wait_until(store, kind, key, kind.is_ready, policy)


def wait_until_deleted(
    store, kind: KindSpec, key: ObjectKey, policy: AttemptPolicy
) -> None:
    """Poll until the object no longer exists."""
    wait_until(store, kind, key, is_absent, policy)


def wait_until_deleted_by_selector(
    store,
    kind: KindSpec,
    namespace: str,
    selector: Selector,
    policy: AttemptPolicy,
) -> None:
    """
    Poll until no object of ``kind`` matches ``selector``.

    Used to confirm that a deletion has propagated.

    Raises:
        WaitTimeoutError: If matching objects remain after the budget.
        ValueError: If the selector is malformed.
    """
    if not kind.namespaced:
        namespace = ""
    label_selector = format_label_selector(selector)
    target = f"{namespace}/{{{label_selector}}}" if namespace else f"{{{label_selector}}}"
    attempt = 0
    last_error: Optional[BaseException] = None

    for attempt in policy.attempts():
        try:
            items = store.list(kind, namespace, label_selector)
        except Exception as e:
            last_error = e
            logger.debug(f"Poll {attempt} of {kind.plural} {target} failed: {e}")
            continue

        if not items:
            return
        logger.debug(
            f"Poll {attempt}: {len(items)} {kind.plural} still match {target}"
        )

    raise WaitTimeoutError(
        target, attempt, last_error, action=f"wait for deletion of {kind.plural}"
    )
