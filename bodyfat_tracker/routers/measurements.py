"""
Measurements Router
====================
Endpoints for body-fat measurements.

Endpoints:
  GET    /measurements/protocols  - Site names per protocol and sex
  POST   /measurements/estimate   - Run a 3-site or 7-site workflow (save or guest mode)
  POST   /measurements/           - Store a manually entered percentage
  GET    /measurements/           - List measurements (newest first)
  GET    /measurements/latest     - The most recent measurement
  DELETE /measurements/{id}       - Delete a measurement
"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query

from bodyfat_tracker.enums import Sex
from bodyfat_tracker.exceptions import RecordNotFoundError
from bodyfat_tracker.schemas import (
    CompositionRecord,
    EstimateRequest,
    EstimateResponse,
    MeasurementCreate,
    MessageResponse,
    ProtocolResponse,
)
from bodyfat_tracker.routers.deps import get_store
from bodyfat_tracker.services.protocols import SEVEN_SITE_PROTOCOL, THREE_SITE_PROTOCOL
from bodyfat_tracker.services.record_store import RecordStore
from bodyfat_tracker.services.workflow import MeasurementWorkflow, current_time_millis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/measurements", tags=["Measurements"])


@router.get("/protocols", response_model=list[ProtocolResponse])
async def list_protocols():
    """
    Describe the supported skinfold protocols.

    The site lists give the positional order expected by POST /measurements/estimate.
    For the 3-site protocol the sites differ by sex.
    """
    return [
        ProtocolResponse(
            protocol=descriptor.protocol,
            method=descriptor.method,
            sites={sex: list(descriptor.labels_for(sex)) for sex in Sex},
        )
        for descriptor in (THREE_SITE_PROTOCOL, SEVEN_SITE_PROTOCOL)
    ]


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_body_fat(
    request: EstimateRequest,
    store: RecordStore = Depends(get_store),
):
    """
    Estimate body fat from skinfolds by driving a measurement workflow.

    Skinfolds must be positive and finite (422 otherwise). The values then go
    through the same input filtering and validation as typed input.
    A calculation that produces an out-of-range percentage is not an HTTP
    error: the returned state has phase FAILED and an error message.
    With `save=true` a valid result is stored before the response is sent.
    """
    workflow = MeasurementWorkflow(
        request.protocol,
        allow_persist=request.save,
        persistence=store,
    )
    if len(request.skinfolds_mm) != workflow.descriptor.site_count:
        raise HTTPException(
            status_code=422,
            detail=(
                f"{request.protocol.value} expects {workflow.descriptor.site_count} "
                f"skinfolds, got {len(request.skinfolds_mm)}."
            ),
        )

    workflow.set_sex(request.sex)
    workflow.set_age(str(request.age))
    for index, value in enumerate(request.skinfolds_mm):
        workflow.set_site(index, _as_text(value))

    if not workflow.state.is_complete:
        raise HTTPException(
            status_code=400,
            detail="All skinfolds must be positive, finite numbers.",
        )

    record = workflow.calculate()
    await workflow.join()

    state = workflow.state
    saved = record is not None and request.save and state.error_message is None
    logger.info(
        f"Estimate {request.protocol.value}: phase={state.phase.value}, saved={saved}"
    )
    return EstimateResponse(state=state, saved=saved)


@router.post("/", response_model=CompositionRecord, status_code=201)
async def create_measurement(
    measurement: MeasurementCreate,
    store: RecordStore = Depends(get_store),
):
    """Store a body-fat percentage obtained some other way (scale, DEXA, ...)."""
    record = CompositionRecord(
        timestamp_millis=current_time_millis(),
        percentage=measurement.percentage,
        method=measurement.method,
        notes=measurement.notes,
    )
    record_id = await store.save_composition(record)
    return record.model_copy(update={"id": record_id})


@router.get("/", response_model=list[CompositionRecord])
async def list_measurements(
    skip: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=50, ge=1, le=500, description="Max records to return"),
    store: RecordStore = Depends(get_store),
):
    """List measurements, most recent first."""
    return list(store.compositions[skip:skip + limit])


@router.get("/latest", response_model=CompositionRecord)
async def get_latest_measurement(store: RecordStore = Depends(get_store)):
    latest = store.latest_composition()
    if latest is None:
        raise HTTPException(status_code=404, detail="No measurements recorded yet.")
    return latest


@router.delete("/{measurement_id}", response_model=MessageResponse)
async def delete_measurement(
    measurement_id: int,
    store: RecordStore = Depends(get_store),
):
    try:
        await store.delete_composition(measurement_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return MessageResponse(
        message="Measurement deleted successfully.",
        detail=f"Deleted measurement ID {measurement_id}.",
    )


def _as_text(value: float) -> str:
    """Render a float positionally (no exponent) for the workflow's text fields."""
    return format(Decimal(repr(value)), "f")
