"""
Conflict Retry - Read-transform-write loops under optimistic concurrency.

Every attempt re-reads the object and re-applies the transform to the latest
observed state, so a write that lost a race against another writer is
retried on top of that writer's change instead of clobbering it.
"""

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from kreconcile.errors import ExhaustionError, NotFoundError, SerializationError
from kreconcile.kinds.base import KindSpec
from kreconcile.meta import ObjectKey, Transform, VerbType
from kreconcile.upsert import patch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptPolicy:
    """
    Budget for a retry or poll loop.

    Bounded by an attempt count, a wall-clock timeout, or both (whichever is
    reached first). The first attempt runs immediately; later attempts are
    spaced by ``interval`` seconds.
    """

    interval: float
    max_attempts: Optional[int] = None
    timeout: Optional[float] = None

    def __post_init__(self):
        if self.max_attempts is None and self.timeout is None:
            raise ValueError("AttemptPolicy needs max_attempts or timeout")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.timeout is not None and self.timeout < 0:
            raise ValueError("timeout must not be negative")
        if self.interval < 0:
            raise ValueError("interval must not be negative")

    def exhausted(self, attempt: int, elapsed: float) -> bool:
        """Whether another attempt would exceed the budget."""
        if self.max_attempts is not None and attempt >= self.max_attempts:
            return True
        if self.timeout is not None and elapsed + self.interval > self.timeout:
            return True
        return False

    def attempts(self) -> Iterator[int]:
        """
        Yield attempt numbers starting at 1, sleeping between attempts.

        Stops once the budget is exhausted; callers break out on success.
        """
        start = time.monotonic()
        attempt = 0
        while True:
            attempt += 1
            yield attempt
            if self.exhausted(attempt, time.monotonic() - start):
                return
            time.sleep(self.interval)


def try_update(
    store,
    kind: KindSpec,
    key: ObjectKey,
    transform: Transform,
    policy: AttemptPolicy,
) -> Dict[str, Any]:
    """
    Fetch, transform and fully replace an object, retrying on failure.

    Used where patch semantics are unavailable, e.g. for subresources.

    Args:
        store: The Store to operate on.
        kind: Kind of the object.
        key: Identity of the object.
        transform: Pure function producing the desired object from a deep
            copy of the current one.
        policy: Retry budget.

    Returns:
        The object as returned by the successful update.

    Raises:
        NotFoundError: Immediately, if the object does not exist.
        SerializationError: Immediately, if an object cannot be serialized.
        ExhaustionError: If no attempt succeeded within the budget.
    """
    attempt = 0
    last_error: Optional[BaseException] = None

    for attempt in policy.attempts():
        try:
            current = store.get(kind, key)
        except (NotFoundError, SerializationError):
            raise
        except Exception as e:
            last_error = e
            logger.error(
                f"Attempt {attempt} failed to update {kind.kind} {key} due to {e}."
            )
            continue

        desired = transform(copy.deepcopy(current))
        try:
            return store.update(kind, desired)
        except SerializationError:
            raise
        except Exception as e:
            last_error = e
            logger.error(
                f"Attempt {attempt} failed to update {kind.kind} {key} due to {e}."
            )

    raise ExhaustionError(key, attempt, last_error, action=f"update {kind.kind}")


def try_patch(
    store,
    kind: KindSpec,
    key: ObjectKey,
    transform: Transform,
    policy: AttemptPolicy,
) -> Tuple[Dict[str, Any], VerbType]:
    """
    Fetch, transform and patch an object, retrying on failure.

    Same loop as try_update, but writes go through a computed patch so
    unchanged objects are not written at all.

    Returns:
        Tuple of (object, VerbType.PATCHED or VerbType.UNCHANGED).

    Raises:
        NotFoundError: Immediately, if the object does not exist.
        SerializationError: Immediately, if an object cannot be serialized.
        ExhaustionError: If no attempt succeeded within the budget.
    """
    attempt = 0
    last_error: Optional[BaseException] = None

    for attempt in policy.attempts():
        try:
            current = store.get(kind, key)
        except (NotFoundError, SerializationError):
            raise
        except Exception as e:
            last_error = e
            logger.error(
                f"Attempt {attempt} failed to patch {kind.kind} {key} due to {e}."
            )
            continue

        try:
            return patch(store, kind, current, transform)
        except SerializationError:
            raise
        except Exception as e:
            last_error = e
            logger.error(
                f"Attempt {attempt} failed to patch {kind.kind} {key} due to {e}."
            )

    raise ExhaustionError(key, attempt, last_error, action=f"patch {kind.kind}")
