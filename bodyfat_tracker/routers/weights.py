"""
Weights Router
===============
Endpoints for body-weight entries.

Endpoints:
  POST   /weights/         - Record a weight
  GET    /weights/         - List weight entries (newest first)
  GET    /weights/latest   - The most recent weight entry
  DELETE /weights/{id}     - Delete a weight entry
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from bodyfat_tracker.exceptions import RecordNotFoundError
from bodyfat_tracker.routers.deps import get_store
from bodyfat_tracker.schemas import MessageResponse, WeightCreate, WeightRecord
from bodyfat_tracker.services.record_store import RecordStore
from bodyfat_tracker.services.workflow import current_time_millis

router = APIRouter(prefix="/weights", tags=["Weights"])


@router.post("/", response_model=WeightRecord, status_code=201)
async def create_weight(
    entry: WeightCreate,
    store: RecordStore = Depends(get_store),
):
    """
    Record a body weight.

    The value is stored in the unit it was given in; no conversion happens.
    Blank notes are stored as null.
    """
    notes = entry.notes if entry.notes and entry.notes.strip() else None
    record = WeightRecord(
        timestamp_millis=current_time_millis(),
        magnitude=entry.magnitude,
        unit=entry.unit,
        notes=notes,
    )
    record_id = await store.save_weight(record)
    return record.model_copy(update={"id": record_id})


@router.get("/", response_model=list[WeightRecord])
async def list_weights(
    skip: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=50, ge=1, le=500, description="Max records to return"),
    store: RecordStore = Depends(get_store),
):
    return list(store.weights[skip:skip + limit])


@router.get("/latest", response_model=WeightRecord)
async def get_latest_weight(store: RecordStore = Depends(get_store)):
    latest = store.latest_weight()
    if latest is None:
        raise HTTPException(status_code=404, detail="No weight entries recorded yet.")
    return latest


@router.delete("/{entry_id}", response_model=MessageResponse)
async def delete_weight(
    entry_id: int,
    store: RecordStore = Depends(get_store),
):
    try:
        await store.delete_weight(entry_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return MessageResponse(
        message="Weight entry deleted successfully.",
        detail=f"Deleted weight entry ID {entry_id}.",
    )
