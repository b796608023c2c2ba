"""
Tests for StateContainer and Subscription.
"""

import threading

import pytest

from bodyfat_tracker.exceptions import ReentrantUpdateError
from bodyfat_tracker.services.state_container import StateContainer


def _counter():
    return StateContainer(lambda: 0)


def test_subscribe_replays_current_snapshot():
    container = _counter()
    container.update(lambda n: n + 5)

    subscription = container.subscribe()
    assert subscription.drain() == [5]


def test_updates_arrive_in_issue_order():
    container = _counter()
    seen = []
    container.subscribe(seen.append)
    buffered = container.subscribe()

    for _ in range(4):
        container.update(lambda n: n + 1)

    assert seen == [0, 1, 2, 3, 4]
    assert list(buffered) == [0, 1, 2, 3, 4]
    # Iterating consumed the buffer
    assert list(buffered) == []


def test_listener_subscription_keeps_no_snapshots():
    container = _counter()
    seen = []
    subscription = container.subscribe(seen.append)

    for _ in range(1000):
        container.update(lambda n: n + 1)

    assert len(seen) == 1001
    assert subscription.drain() == []


def test_every_subscriber_sees_the_same_sequence():
    container = _counter()
    first, second = [], []
    container.subscribe(first.append)
    container.update(lambda n: n + 1)
    container.subscribe(second.append)
    container.update(lambda n: n * 10)

    assert first == [0, 1, 10]
    assert second == [1, 10]


def test_cancel_stops_delivery():
    container = _counter()
    seen = []
    subscription = container.subscribe(seen.append)
    subscription.cancel()
    container.update(lambda n: n + 1)

    assert seen == [0]
    assert not subscription.active
    assert container.subscriber_count == 0
    # Cancelling twice is harmless
    subscription.cancel()


def test_subscription_context_manager_cancels():
    container = _counter()
    with container.subscribe() as subscription:
        assert container.subscriber_count == 1
    assert not subscription.active
    assert container.subscriber_count == 0


def test_update_returns_new_snapshot():
    container = _counter()
    assert container.update(lambda n: n + 3) == 3
    assert container.current == 3


def test_failed_transform_leaves_state_untouched():
    container = _counter()
    seen = []
    container.subscribe(seen.append)

    def boom(_):
        raise ValueError("nope")

    with pytest.raises(ValueError):
        container.update(boom)

    assert container.current == 0
    assert seen == [0]
    # The container is still usable afterwards
    container.update(lambda n: n + 1)
    assert container.current == 1


def test_update_from_transform_is_rejected():
    container = _counter()

    def nested(n):
        container.update(lambda m: m + 1)
        return n

    with pytest.raises(ReentrantUpdateError):
        container.update(nested)
    assert container.current == 0


def test_update_from_listener_is_rejected():
    container = _counter()
    errors = []

    def listener(n):
        if n == 1:
            try:
                container.update(lambda m: m + 100)
            except ReentrantUpdateError as exc:
                errors.append(exc)

    container.subscribe(listener)
    container.update(lambda n: n + 1)

    assert len(errors) == 1
    assert container.current == 1


def test_concurrent_updates_are_not_lost():
    container = _counter()
    seen = []
    container.subscribe(seen.append)

    def worker():
        for _ in range(200):
            container.update(lambda n: n + 1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert container.current == 1600
    # Replay plus one delivery per update, strictly increasing
    assert seen == list(range(1601))
