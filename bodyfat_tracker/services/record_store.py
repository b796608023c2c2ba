"""
Record Store: SQLAlchemy-backed persistence collaborator
===========================================================
Stores composition records, weight records and the user profile, and
publishes the two record collections as observable snapshots.

Each collection lives in its own StateContainer holding a newest-first tuple
of immutable records. After every successful save or delete the full list is
re-queried and published, so observers always receive complete, ordered
collections (never incremental patches).

ORDERING:
  timestamp_millis DESC, then id DESC (later insert first on equal timestamps)
"""

import asyncio
import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bodyfat_tracker.exceptions import RecordNotFoundError
from bodyfat_tracker.models import BodyFatMeasurement, UserProfile, WeightEntry
from bodyfat_tracker.schemas import CompositionRecord, Profile, WeightRecord
from bodyfat_tracker.services.persistence import BasePersistence
from bodyfat_tracker.services.state_container import StateContainer, Subscription

logger = logging.getLogger(__name__)

PROFILE_ID = 1


class RecordStore(BasePersistence):
    """
    Persistence collaborator over an async SQLAlchemy session factory.

    Call `await refresh()` once after construction to load what is already
    stored; until then the observed collections are empty.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._compositions: StateContainer[tuple[CompositionRecord, ...]] = StateContainer(tuple)
        self._weights: StateContainer[tuple[WeightRecord, ...]] = StateContainer(tuple)
        # Held across each write and its republish
        self._write_lock = asyncio.Lock()

    # ----- Observation -----

    def observe_compositions(self, listener=None) -> Subscription[tuple[CompositionRecord, ...]]:
        return self._compositions.subscribe(listener)

    def observe_weights(self, listener=None) -> Subscription[tuple[WeightRecord, ...]]:
        return self._weights.subscribe(listener)

    @property
    def compositions(self) -> tuple[CompositionRecord, ...]:
        return self._compositions.current

    @property
    def weights(self) -> tuple[WeightRecord, ...]:
        return self._weights.current

    def latest_composition(self) -> CompositionRecord | None:
        records = self._compositions.current
        return records[0] if records else None

    def latest_weight(self) -> WeightRecord | None:
        records = self._weights.current
        return records[0] if records else None

    async def refresh(self) -> None:
        """Reload both collections from the database and publish them."""
        await self._publish_compositions()
        await self._publish_weights()

    async def _publish_compositions(self) -> None:
        async with self._session_factory() as session:
            stmt = select(BodyFatMeasurement).order_by(
                BodyFatMeasurement.timestamp_millis.desc(), BodyFatMeasurement.id.desc()
            )
            result = await session.execute(stmt)
            rows = result.scalars().all()
        records = tuple(CompositionRecord.model_validate(row) for row in rows)
        self._compositions.update(lambda _: records)

    async def _publish_weights(self) -> None:
        async with self._session_factory() as session:
            stmt = select(WeightEntry).order_by(
                WeightEntry.timestamp_millis.desc(), WeightEntry.id.desc()
            )
            result = await session.execute(stmt)
            rows = result.scalars().all()
        records = tuple(WeightRecord.model_validate(row) for row in rows)
        self._weights.update(lambda _: records)

    # ----- Composition records -----

    async def save_composition(self, record: CompositionRecord) -> int:
        async with self._write_lock:
            async with self._session_factory() as session:
                row = BodyFatMeasurement(**record.model_dump(exclude={"id"}))
                session.add(row)
                await session.flush()
                record_id = row.id
                await session.commit()

            logger.info(
                f"Saved body fat measurement ID {record_id}: "
                f"{record.percentage:.2f}% ({record.method.value})"
            )
            await self._publish_compositions()
            return record_id

    async def delete_composition(self, record_id: int) -> None:
        async with self._write_lock:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(BodyFatMeasurement).where(BodyFatMeasurement.id == record_id)
                )
                deleted = result.rowcount
                await session.commit()

            if deleted == 0:
                raise RecordNotFoundError("Body fat measurement", record_id)

            logger.info(f"Deleted body fat measurement ID {record_id}")
            await self._publish_compositions()

    # ----- Weight records -----

    async def save_weight(self, record: WeightRecord) -> int:
        async with self._write_lock:
            async with self._session_factory() as session:
                row = WeightEntry(**record.model_dump(exclude={"id"}))
                session.add(row)
                await session.flush()
                record_id = row.id
                await session.commit()

            logger.info(f"Saved weight entry ID {record_id}: {record.magnitude}{record.unit.value}")
            await self._publish_weights()
            return record_id

    async def delete_weight(self, record_id: int) -> None:
        async with self._write_lock:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(WeightEntry).where(WeightEntry.id == record_id)
                )
                deleted = result.rowcount
                await session.commit()

            if deleted == 0:
                raise RecordNotFoundError("Weight entry", record_id)

            logger.info(f"Deleted weight entry ID {record_id}")
            await self._publish_weights()

    # ----- Profile -----

    async def get_profile(self) -> Profile | None:
        async with self._session_factory() as session:
            row = await session.get(UserProfile, PROFILE_ID)
        return Profile.model_validate(row) if row is not None else None

    async def save_profile(self, profile: Profile) -> Profile:
        """Insert or replace the single profile row."""
        async with self._session_factory() as session:
            row = await session.get(UserProfile, PROFILE_ID)
            if row is None:
                row = UserProfile(id=PROFILE_ID)
                session.add(row)
            for field, value in profile.model_dump().items():
                setattr(row, field, value)
            await session.commit()

        logger.info(f"Saved profile: age={profile.age}, sex={profile.sex.value}")
        return profile

    async def clear_profile(self) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(UserProfile))
            await session.commit()
        logger.info("Cleared profile")
