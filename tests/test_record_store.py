"""
Tests for the SQLAlchemy-backed RecordStore
=============================================
Uses an in-memory SQLite database (aiosqlite) for fast, isolated testing.
"""

import pytest

from bodyfat_tracker.enums import MeasurementMethod, Sex, WeightUnit
from bodyfat_tracker.exceptions import RecordNotFoundError
from bodyfat_tracker.schemas import CompositionRecord, Profile, WeightRecord
from bodyfat_tracker.services.record_store import RecordStore


def _comp(t: int, pct: float = 20.0) -> CompositionRecord:
    return CompositionRecord(timestamp_millis=t, percentage=pct, method=MeasurementMethod.THREE_POINTS)


@pytest.mark.asyncio
async def test_save_assigns_ids_and_publishes_newest_first(store):
    seen = []
    subscription = store.observe_compositions(seen.append)

    first = await store.save_composition(_comp(100, 20.0))
    second = await store.save_composition(_comp(300, 18.5))
    third = await store.save_composition(_comp(200, 19.0))

    assert len({first, second, third}) == 3
    assert [r.timestamp_millis for r in store.compositions] == [300, 200, 100]
    assert store.latest_composition().percentage == 18.5
    # Replay of the empty list, then one full list per save
    assert [len(snapshot) for snapshot in seen] == [0, 1, 2, 3]
    subscription.cancel()


@pytest.mark.asyncio
async def test_equal_timestamps_order_later_insert_first(store):
    first = await store.save_composition(_comp(100, 20.0))
    second = await store.save_composition(_comp(100, 21.0))

    assert [r.id for r in store.compositions] == [second, first]


@pytest.mark.asyncio
async def test_records_round_trip_through_database(store, session_factory):
    await store.save_weight(
        WeightRecord(timestamp_millis=500, magnitude=172.4, unit=WeightUnit.LBS, notes="morning")
    )

    # A second store over the same database sees what the first one wrote
    other = RecordStore(session_factory)
    await other.refresh()

    [weight] = other.weights
    assert weight.magnitude == 172.4
    assert weight.unit is WeightUnit.LBS
    assert weight.notes == "morning"
    assert weight.id is not None


@pytest.mark.asyncio
async def test_delete_republishes(store):
    keep = await store.save_weight(WeightRecord(timestamp_millis=1, magnitude=70.0))
    drop = await store.save_weight(WeightRecord(timestamp_millis=2, magnitude=71.0))

    await store.delete_weight(drop)

    assert [r.id for r in store.weights] == [keep]
    assert store.latest_weight().id == keep


@pytest.mark.asyncio
async def test_delete_unknown_id_raises(store):
    with pytest.raises(RecordNotFoundError) as exc_info:
        await store.delete_composition(999)
    assert "999" in str(exc_info.value)

    with pytest.raises(RecordNotFoundError):
        await store.delete_weight(999)


@pytest.mark.asyncio
async def test_latest_is_none_when_empty(store):
    assert store.latest_composition() is None
    assert store.latest_weight() is None


@pytest.mark.asyncio
async def test_profile_upsert_and_clear(store):
    assert await store.get_profile() is None

    await store.save_profile(Profile(name="Ana", age=29, sex=Sex.FEMALE))
    await store.save_profile(Profile(name="Ana", age=30, sex=Sex.FEMALE, body_fat_percent_goal=22))

    profile = await store.get_profile()
    assert profile.age == 30
    assert profile.body_fat_percent_goal == 22

    await store.clear_profile()
    assert await store.get_profile() is None
