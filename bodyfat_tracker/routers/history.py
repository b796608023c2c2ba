"""
History Router
===============
The unified history of body-fat measurements and weight entries.

Endpoints:
  GET /history/ - Merged history (filterable, sortable), grouped by day, plus chart series
"""

from fastapi import APIRouter, Depends, Query

from bodyfat_tracker.enums import HistoryFilter, HistorySort
from bodyfat_tracker.routers.deps import get_store
from bodyfat_tracker.schemas import (
    HistoryGroupResponse,
    HistoryItemResponse,
    HistoryResponse,
)
from bodyfat_tracker.services.history import HistoryAggregator, HistoryEntry, MeasurementItem
from bodyfat_tracker.services.record_store import RecordStore

router = APIRouter(prefix="/history", tags=["History"])


@router.get("/", response_model=HistoryResponse)
async def get_history(
    history_filter: HistoryFilter = Query(
        default=HistoryFilter.ALL, alias="filter", description="Which record kinds to include"
    ),
    sort: HistorySort = Query(default=HistorySort.NEWEST_FIRST, description="Time direction"),
    store: RecordStore = Depends(get_store),
):
    """
    Return measurements and weight entries interleaved by time.

    On equal timestamps a measurement is listed before a weight entry.
    Groups are labelled "Today", "Yesterday" or "Mon DD, YYYY" (server local time).
    Chart series are ascending by time and empty when fewer than two points exist.
    """
    with HistoryAggregator(store) as history:
        history.set_filter(history_filter)
        history.set_sort(sort)
        state = history.state

    return HistoryResponse(
        filter=state.filter,
        sort=state.sort,
        items=[_to_item(entry) for entry in state.items],
        groups=[
            HistoryGroupResponse(label=label, items=[_to_item(entry) for entry in entries])
            for label, entries in state.groups
        ],
        body_fat_chart=list(state.body_fat_chart),
        weight_chart=list(state.weight_chart),
    )


def _to_item(entry: HistoryEntry) -> HistoryItemResponse:
    if isinstance(entry, MeasurementItem):
        return HistoryItemResponse(
            kind=entry.kind, timestamp_millis=entry.timestamp_millis, measurement=entry.record
        )
    return HistoryItemResponse(
        kind=entry.kind, timestamp_millis=entry.timestamp_millis, weight=entry.record
    )
