"""
SQLAlchemy ORM Models
======================
Defines the database tables for the Body Fat Tracker.

Tables:
  - body_fat_measurements : one row per saved CompositionRecord
  - weight_entries        : one row per saved WeightRecord
  - user_profile          : a single row (id=1) with the user's age and sex

Measurements and weight entries are independent: there is no foreign key
between them. The history view interleaves them by `timestamp_millis`.

Timestamps are stored as Unix epoch milliseconds (BIGINT), not as SQL
datetimes, so ordering and the equality tie-break are exact.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    Float,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from bodyfat_tracker.core.database import Base
from bodyfat_tracker.enums import MeasurementMethod, Sex, WeightUnit


# ============================================================
# BODY FAT MEASUREMENT: A computed or manually entered percentage
# ============================================================
class BodyFatMeasurement(Base):
    """
    A stored body-fat percentage.

    Rows are never updated after insert; they are only deleted by id.
    `method` records whether the value came from the 3-site or 7-site
    skinfold workflow or was typed in (OTHER).
    """
    __tablename__ = "body_fat_measurements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Creation time of the record (not of the row), epoch milliseconds
    timestamp_millis: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    method: Mapped[MeasurementMethod] = mapped_column(
        Enum(MeasurementMethod, native_enum=False, length=20), nullable=False
    )
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<BodyFatMeasurement(id={self.id}, t={self.timestamp_millis}, "
            f"{self.percentage}%, {self.method})>"
        )


# ============================================================
# WEIGHT ENTRY: A body-weight reading
# ============================================================
class WeightEntry(Base):
    """A body-weight reading, kept in the unit the user entered it in."""
    __tablename__ = "weight_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp_millis: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    magnitude: Mapped[float] = mapped_column(Float, nullable=False)
    unit: Mapped[WeightUnit] = mapped_column(
        Enum(WeightUnit, native_enum=False, length=10), nullable=False, default=WeightUnit.KG
    )
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<WeightEntry(id={self.id}, t={self.timestamp_millis}, {self.magnitude}{self.unit})>"


# ============================================================
# USER PROFILE: Single-row table
# ============================================================
class UserProfile(Base):
    """
    The user's profile. There is only ever one row (id=1).

    Workflows read `age` and `sex` once, when they start, to pre-fill
    their fields.
    """
    __tablename__ = "user_profile"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    sex: Mapped[Sex] = mapped_column(Enum(Sex, native_enum=False, length=10), nullable=False)
    body_fat_percent_goal: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)

    def __repr__(self) -> str:
        return f"<UserProfile(age={self.age}, sex={self.sex})>"
