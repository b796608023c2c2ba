"""
Reactive State Container
=========================
A single-owner mutable cell holding one immutable snapshot of type ``S``.

Every workflow in this package *has* one of these (composition, not
inheritance). The owner changes state only through ``update(transform)``:
the transform receives the current snapshot and returns the next one
(``model_copy(update=...)`` on the pydantic state models), so snapshots
are never mutated in place.

Subscribers receive the snapshot current at the time they subscribe, then
every later snapshot in the order the updates were issued. Delivery happens
inside the same critical section as the swap, which is what keeps the order
identical for every subscriber.

Usage:
    container = StateContainer(WorkflowState)
    sub = container.subscribe(listener=print)
    container.update(lambda s: s.model_copy(update={"age_text": "30"}))
    sub.cancel()
"""

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

from bodyfat_tracker.exceptions import ReentrantUpdateError

logger = logging.getLogger(__name__)

S = TypeVar("S")


class Subscription(Generic[S]):
    """
    A live, ordered view of a container's snapshots.

    With a listener, each snapshot is handed to it synchronously and nothing
    is kept. Without one, snapshots are buffered until drained (or consumed by
    iterating the subscription).
    """

    def __init__(
        self,
        container: "StateContainer[S]",
        listener: Callable[[S], None] | None = None,
    ):
        self._container = container
        self._listener = listener
        self._pending: deque[S] = deque()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def _deliver(self, snapshot: S) -> None:
        if not self._active:
            return
        if self._listener is not None:
            self._listener(snapshot)
        else:
            self._pending.append(snapshot)

    def drain(self) -> list[S]:
        """Return and forget every snapshot received since the last drain."""
        drained = list(self._pending)
        self._pending.clear()
        return drained

    def __iter__(self) -> Iterator[S]:
        while self._pending:
            yield self._pending.popleft()

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._pending.clear()
            self._container._detach(self)

    def __enter__(self) -> "Subscription[S]":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()


class StateContainer(Generic[S]):
    """
    Holds exactly one current snapshot and publishes every replacement.

    ``update`` is a critical section: concurrent callers from several threads
    are applied in some total order without lost updates. A transform or a
    listener calling ``update`` on the same container raises
    ReentrantUpdateError.
    """

    def __init__(self, initialize: Callable[[], S]):
        self._lock = threading.RLock()
        self._busy = False
        self._state: S = initialize()
        self._subscribers: list[Subscription[S]] = []

    @property
    def current(self) -> S:
        return self._state

    def update(self, transform: Callable[[S], S]) -> S:
        """Replace the snapshot with ``transform(current)`` and notify subscribers."""
        with self._lock:
            if self._busy:
                raise ReentrantUpdateError(
                    "update() called from inside a transform or a subscriber"
                )
            self._busy = True
            try:
                new_state = transform(self._state)
                self._state = new_state
                for subscription in list(self._subscribers):
                    subscription._deliver(new_state)
            finally:
                self._busy = False
        return new_state

    def subscribe(self, listener: Callable[[S], None] | None = None) -> Subscription[S]:
        """Start observing; the current snapshot is replayed immediately."""
        with self._lock:
            subscription = Subscription(self, listener)
            self._subscribers.append(subscription)
            was_busy, self._busy = self._busy, True
            try:
                subscription._deliver(self._state)
            finally:
                self._busy = was_busy
        return subscription

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _detach(self, subscription: Subscription[S]) -> None:
        with self._lock:
            try:
                self._subscribers.remove(subscription)
            except ValueError:
                logger.debug("Subscription already detached")
