"""
Shared fixtures
================
Uses an in-memory SQLite database (aiosqlite) for fast, isolated testing,
plus an in-process persistence fake for the workflow tests.
"""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bodyfat_tracker import models  # noqa: F401
from bodyfat_tracker.core.database import Base
from bodyfat_tracker.exceptions import RecordNotFoundError
from bodyfat_tracker.schemas import CompositionRecord, Profile, WeightRecord
from bodyfat_tracker.services.persistence import BasePersistence
from bodyfat_tracker.services.record_store import RecordStore
from bodyfat_tracker.services.state_container import StateContainer


# ── Database fixtures ───────────────────────────────────────────

@pytest_asyncio.fixture
async def engine():
    """Create an in-memory SQLite async engine for testing."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def store(session_factory):
    """A RecordStore over the in-memory database, already refreshed."""
    record_store = RecordStore(session_factory)
    await record_store.refresh()
    return record_store


# ── Persistence fake ────────────────────────────────────────────

class FakePersistence(BasePersistence):
    """
    Keeps records in memory and publishes them newest-first.

    Set `fail_with` to an exception to make the next writes raise it, and
    `save_delay` to make saves yield to the event loop first.
    """

    def __init__(self, profile: Profile | None = None):
        self.profile = profile
        self.fail_with: Exception | None = None
        self.save_delay = 0.0
        self.saved_compositions: list[CompositionRecord] = []
        self._next_id = 1
        self._compositions = StateContainer(tuple)
        self._weights = StateContainer(tuple)

    def _assign_id(self) -> int:
        record_id = self._next_id
        self._next_id += 1
        return record_id

    @staticmethod
    def _ordered(records):
        return tuple(sorted(records, key=lambda r: (r.timestamp_millis, r.id), reverse=True))

    async def save_composition(self, record: CompositionRecord) -> int:
        if self.save_delay:
            await asyncio.sleep(self.save_delay)
        if self.fail_with is not None:
            raise self.fail_with
        stored = record.model_copy(update={"id": self._assign_id()})
        self.saved_compositions.append(stored)
        current = self._compositions.current
        self._compositions.update(lambda _: self._ordered(current + (stored,)))
        return stored.id

    async def save_weight(self, record: WeightRecord) -> int:
        if self.fail_with is not None:
            raise self.fail_with
        stored = record.model_copy(update={"id": self._assign_id()})
        current = self._weights.current
        self._weights.update(lambda _: self._ordered(current + (stored,)))
        return stored.id

    async def delete_composition(self, record_id: int) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        remaining = tuple(r for r in self._compositions.current if r.id != record_id)
        if len(remaining) == len(self._compositions.current):
            raise RecordNotFoundError("Body fat measurement", record_id)
        self._compositions.update(lambda _: remaining)

    async def delete_weight(self, record_id: int) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        remaining = tuple(r for r in self._weights.current if r.id != record_id)
        if len(remaining) == len(self._weights.current):
            raise RecordNotFoundError("Weight entry", record_id)
        self._weights.update(lambda _: remaining)

    def observe_compositions(self, listener=None):
        return self._compositions.subscribe(listener)

    def observe_weights(self, listener=None):
        return self._weights.subscribe(listener)

    async def get_profile(self) -> Profile | None:
        return self.profile

    # Test helpers: publish without going through save
    def publish_compositions(self, records) -> None:
        self._compositions.update(lambda _: tuple(records))

    def publish_weights(self, records) -> None:
        self._weights.update(lambda _: tuple(records))


@pytest.fixture
def fake_persistence():
    return FakePersistence()
