"""
Manual entry workflows: a typed-in body-fat percentage and a weight reading.

Both follow the same shape as MeasurementWorkflow (one StateContainer,
copy-on-write transitions) but save directly: `await save()` returns once the
collaborator has accepted or rejected the record.
"""

import logging
import math
import re
from collections.abc import Callable

from pydantic import BaseModel

from bodyfat_tracker.enums import MeasurementMethod, WeightUnit
from bodyfat_tracker.schemas import CompositionRecord, WeightRecord
from bodyfat_tracker.services.persistence import BasePersistence
from bodyfat_tracker.services.state_container import StateContainer, Subscription
from bodyfat_tracker.services.workflow import current_time_millis

logger = logging.getLogger(__name__)

# Digits with at most one decimal point; the empty string is allowed
_DECIMAL_TEXT = re.compile(r"\d*\.?\d*")


def _parse_float(text: str) -> float | None:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


# ============================================================
# MANUAL BODY FAT MEASUREMENT
# ============================================================

class ManualMeasurementState(BaseModel):
    percentage_text: str = ""
    method: MeasurementMethod | None = None
    is_saving: bool = False
    save_error: str | None = None
    save_success: bool = False
    saved_id: int | None = None

    model_config = {"frozen": True}


class ManualMeasurementWorkflow:
    def __init__(
        self,
        persistence: BasePersistence,
        clock: Callable[[], int] = current_time_millis,
    ):
        self._persistence = persistence
        self._clock = clock
        self._container = StateContainer(ManualMeasurementState)

    @property
    def state(self) -> ManualMeasurementState:
        return self._container.current

    def subscribe(self, listener=None) -> Subscription[ManualMeasurementState]:
        return self._container.subscribe(listener)

    def set_percentage(self, text: str) -> None:
        """Input that is not a plain decimal number is ignored."""
        if _DECIMAL_TEXT.fullmatch(text):
            self._container.update(lambda s: s.model_copy(update={
                "percentage_text": text, "save_error": None,
            }))

    def set_method(self, method: MeasurementMethod) -> None:
        self._container.update(lambda s: s.model_copy(update={
            "method": method, "save_error": None,
        }))

    async def save(self) -> CompositionRecord | None:
        snapshot = self.state
        percentage = _parse_float(snapshot.percentage_text)

        if percentage is None or not 0 < percentage < 100:
            self._set_error("Invalid percentage value.")
            return None
        if snapshot.method is None:
            self._set_error("Please select a measurement method.")
            return None

        self._container.update(lambda s: s.model_copy(update={
            "is_saving": True, "save_error": None,
        }))
        record = CompositionRecord(
            timestamp_millis=self._clock(),
            percentage=percentage,
            method=snapshot.method,
        )
        try:
            record_id = await self._persistence.save_composition(record)
        except Exception as exc:
            logger.exception("Error saving manual measurement")
            self._container.update(lambda s: s.model_copy(update={
                "is_saving": False,
                "save_error": f"Error saving measurement: {exc}",
            }))
            return None

        saved = record.model_copy(update={"id": record_id})
        self._container.update(lambda s: s.model_copy(update={
            "is_saving": False, "save_success": True, "saved_id": record_id,
        }))
        return saved

    def reset_save_status(self) -> None:
        self._container.update(lambda s: s.model_copy(update={
            "save_success": False, "save_error": None,
        }))

    def _set_error(self, message: str) -> None:
        self._container.update(lambda s: s.model_copy(update={"save_error": message}))


# ============================================================
# WEIGHT ENTRY
# ============================================================

class WeightEntryState(BaseModel):
    weight_text: str = ""
    unit: WeightUnit = WeightUnit.KG
    notes: str = ""
    is_saving: bool = False
    save_error: str | None = None
    save_success: bool = False
    saved_id: int | None = None

    model_config = {"frozen": True}


class WeightEntryWorkflow:
    def __init__(
        self,
        persistence: BasePersistence,
        clock: Callable[[], int] = current_time_millis,
    ):
        self._persistence = persistence
        self._clock = clock
        self._container = StateContainer(WeightEntryState)

    @property
    def state(self) -> WeightEntryState:
        return self._container.current

    def subscribe(self, listener=None) -> Subscription[WeightEntryState]:
        return self._container.subscribe(listener)

    def set_weight(self, text: str) -> None:
        if _DECIMAL_TEXT.fullmatch(text):
            self._container.update(lambda s: s.model_copy(update={
                "weight_text": text, "save_error": None,
            }))

    def set_unit(self, unit: WeightUnit) -> None:
        self._container.update(lambda s: s.model_copy(update={
            "unit": unit, "save_error": None,
        }))

    def set_notes(self, text: str) -> None:
        self._container.update(lambda s: s.model_copy(update={
            "notes": text, "save_error": None,
        }))

    async def save(self) -> WeightRecord | None:
        snapshot = self.state
        magnitude = _parse_float(snapshot.weight_text)
        if magnitude is None or magnitude <= 0:
            self._container.update(
                lambda s: s.model_copy(update={"save_error": "Invalid weight value."})
            )
            return None

        self._container.update(lambda s: s.model_copy(update={
            "is_saving": True, "save_error": None,
        }))
        record = WeightRecord(
            timestamp_millis=self._clock(),
            magnitude=magnitude,
            unit=snapshot.unit,
            notes=snapshot.notes if snapshot.notes.strip() else None,
        )
        try:
            record_id = await self._persistence.save_weight(record)
        except Exception as exc:
            logger.exception("Error saving weight entry")
            self._container.update(lambda s: s.model_copy(update={
                "is_saving": False,
                "save_error": f"Error saving weight entry: {exc}",
            }))
            return None

        self._container.update(lambda s: s.model_copy(update={
            "is_saving": False, "save_success": True, "saved_id": record_id,
        }))
        return record.model_copy(update={"id": record_id})

    def reset_save_status(self) -> None:
        self._container.update(lambda s: s.model_copy(update={
            "save_success": False, "save_error": None,
        }))
