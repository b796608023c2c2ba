"""
Pydantic V2 Schemas (Domain Records and Request/Response Models)
==================================================================
Two kinds of models live here:

  - Domain records (CompositionRecord, WeightRecord, Profile): immutable
    values produced by the workflows and returned by the record store.
    They are frozen, so "changing" one means building a new one.
  - API schemas (*Create, *Response, ...): the shape of data flowing in and
    out of the HTTP endpoints.

All schemas use Pydantic V2 with model_config for configuration.
"""

from typing import Annotated

from pydantic import BaseModel, Field

from bodyfat_tracker.enums import (
    HistoryFilter,
    HistorySort,
    MeasurementMethod,
    Protocol,
    Sex,
    WeightUnit,
    WorkflowPhase,
)


# ============================================================
# DOMAIN RECORDS
# ============================================================

class CompositionRecord(BaseModel):
    """
    A body-fat percentage taken at a point in time.

    `id` is None until the record store assigns one. The percentage is a
    finite real in the open interval (0, 100).
    """
    id: int | None = None
    timestamp_millis: int = Field(..., ge=0, description="Creation time, Unix epoch milliseconds")
    percentage: float = Field(..., gt=0, lt=100, allow_inf_nan=False)
    method: MeasurementMethod
    notes: str | None = None

    model_config = {"frozen": True, "from_attributes": True}


class WeightRecord(BaseModel):
    """A body-weight reading, stored in the unit it was entered in."""
    id: int | None = None
    timestamp_millis: int = Field(..., ge=0)
    magnitude: float = Field(..., gt=0, allow_inf_nan=False)
    unit: WeightUnit = WeightUnit.KG
    notes: str | None = None

    model_config = {"frozen": True, "from_attributes": True}


class Profile(BaseModel):
    """The single user profile. Only `age` and `sex` feed the workflows."""
    name: str = Field(default="", max_length=255)
    age: int = Field(..., gt=0)
    sex: Sex
    body_fat_percent_goal: int | None = Field(default=None, gt=0, lt=100)

    model_config = {"frozen": True, "from_attributes": True}


# ============================================================
# WORKFLOW STATE
# ============================================================

class SkinfoldSite(BaseModel):
    """
    One caliper site of a measurement workflow.

    `text` is the raw (filtered) input buffer; `value` is its parsed
    millimeter reading, set only when the text parses to a finite number > 0.
    """
    name: str
    text: str = ""
    value: float | None = None

    model_config = {"frozen": True}


class WorkflowState(BaseModel):
    """
    Snapshot of one MeasurementWorkflow. Never mutated: each transition
    builds the next snapshot with model_copy(update=...).
    """
    protocol: Protocol
    phase: WorkflowPhase = WorkflowPhase.EDITING
    age_text: str = ""
    age: int | None = None
    sex: Sex = Sex.FEMALE
    sites: tuple[SkinfoldSite, ...] = ()
    is_complete: bool = False
    result: CompositionRecord | None = None
    is_calculating: bool = False
    error_message: str | None = None
    allow_persist: bool = False
    result_visible: bool = False

    model_config = {"frozen": True}


# ============================================================
# MEASUREMENT SCHEMAS
# ============================================================

class MeasurementCreate(BaseModel):
    """Manually entered body-fat percentage (no skinfolds)."""
    percentage: float = Field(..., gt=0, lt=100, allow_inf_nan=False)
    method: MeasurementMethod = MeasurementMethod.OTHER
    notes: str | None = Field(default=None, max_length=1000)


class EstimateRequest(BaseModel):
    """
    Skinfold input for a one-shot run of a measurement workflow.

    `skinfolds_mm` is positional and must match the protocol's site order
    (see GET /measurements/protocols). With `save=False` the calculation runs
    in guest mode and nothing is stored.
    """
    protocol: Protocol
    sex: Sex
    age: int = Field(..., gt=0)
    skinfolds_mm: list[Annotated[float, Field(gt=0, allow_inf_nan=False)]] = Field(
        ..., min_length=3, max_length=7
    )
    save: bool = Field(default=True, description="Persist the result when it is valid")


class ProtocolResponse(BaseModel):
    protocol: Protocol
    method: MeasurementMethod
    sites: dict[Sex, list[str]]


class EstimateResponse(BaseModel):
    """Final state of the workflow that served an estimate request."""
    state: WorkflowState
    saved: bool = False


# ============================================================
# WEIGHT SCHEMAS
# ============================================================

class WeightCreate(BaseModel):
    magnitude: float = Field(..., gt=0, allow_inf_nan=False, description="Weight in `unit`")
    unit: WeightUnit = WeightUnit.KG
    notes: str | None = Field(default=None, max_length=1000)


# ============================================================
# HISTORY SCHEMAS
# ============================================================

class HistoryItemResponse(BaseModel):
    """One row of the unified history. Exactly one of the payloads is set."""
    kind: str
    timestamp_millis: int
    measurement: CompositionRecord | None = None
    weight: WeightRecord | None = None


class HistoryGroupResponse(BaseModel):
    label: str
    items: list[HistoryItemResponse] = []


class HistoryResponse(BaseModel):
    """
    The merged history, the same rows grouped by calendar day, and the
    two chart series (ascending by time, empty below two points).
    """
    filter: HistoryFilter
    sort: HistorySort
    items: list[HistoryItemResponse] = []
    groups: list[HistoryGroupResponse] = []
    body_fat_chart: list[tuple[int, float]] = []
    weight_chart: list[tuple[int, float]] = []


# ============================================================
# GENERIC RESPONSE SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    """Simple message response for operations that don't return data."""
    message: str
    detail: str | None = None
