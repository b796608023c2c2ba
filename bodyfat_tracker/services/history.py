"""
History Aggregator
===================
Builds the unified, newest-first history of body-fat measurements and weight
entries.

ALGORITHM:
  Both sources arrive already ordered newest-first. They are interleaved with
  a single two-pointer pass (no concat-then-sort):
    - take the head with the larger timestamp_millis;
    - on equal timestamps the measurement goes first (fixed tie-break).
  The output length is always len(compositions) + len(weights).

  Whenever either source emits, the whole merge is recomputed from the two
  full current lists. There is no incremental patching.

On top of the merge the aggregator keeps the view options of the history
screen: kind filter, sort direction, grouping by calendar day, chart series,
and the two-step delete confirmation.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import ClassVar, Union

from bodyfat_tracker.enums import HistoryFilter, HistorySort
from bodyfat_tracker.schemas import CompositionRecord, WeightRecord
from bodyfat_tracker.services.persistence import BasePersistence
from bodyfat_tracker.services.state_container import StateContainer, Subscription

logger = logging.getLogger(__name__)

# Chart series need at least a line's worth of points
MIN_CHART_POINTS = 2


@dataclass(frozen=True)
class MeasurementItem:
    record: CompositionRecord
    kind: ClassVar[str] = "measurement"

    @property
    def timestamp_millis(self) -> int:
        return self.record.timestamp_millis


@dataclass(frozen=True)
class WeightItem:
    record: WeightRecord
    kind: ClassVar[str] = "weight"

    @property
    def timestamp_millis(self) -> int:
        return self.record.timestamp_millis


HistoryEntry = Union[MeasurementItem, WeightItem]


def merge_history(
    compositions: Sequence[CompositionRecord],
    weights: Sequence[WeightRecord],
) -> list[HistoryEntry]:
    """Interleave two newest-first sequences into one newest-first list."""
    merged: list[HistoryEntry] = []
    i = j = 0
    while i < len(compositions) and j < len(weights):
        if compositions[i].timestamp_millis >= weights[j].timestamp_millis:
            merged.append(MeasurementItem(compositions[i]))
            i += 1
        else:
            merged.append(WeightItem(weights[j]))
            j += 1
    merged.extend(MeasurementItem(record) for record in compositions[i:])
    merged.extend(WeightItem(record) for record in weights[j:])
    return merged


def apply_view(
    merged: Sequence[HistoryEntry],
    history_filter: HistoryFilter,
    sort: HistorySort,
) -> list[HistoryEntry]:
    """Filter by kind, then orient. OLDEST_FIRST is the exact reverse of the merge."""
    if history_filter is HistoryFilter.ALL:
        items = list(merged)
    elif history_filter is HistoryFilter.BODY_FAT:
        items = [item for item in merged if isinstance(item, MeasurementItem)]
    elif history_filter is HistoryFilter.WEIGHT:
        items = [item for item in merged if isinstance(item, WeightItem)]
    else:
        raise ValueError(f"Unsupported history filter: {history_filter!r}")

    if sort is HistorySort.OLDEST_FIRST:
        items.reverse()
    return items


def day_label(timestamp_millis: int, now: datetime) -> str:
    """'Today', 'Yesterday' or e.g. 'Mar 05, 2026', in local time."""
    day = datetime.fromtimestamp(timestamp_millis / 1000).date()
    today = now.date()
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return day.strftime("%b %d, %Y")


def group_by_day(
    items: Sequence[HistoryEntry],
    now: datetime,
) -> tuple[tuple[str, tuple[HistoryEntry, ...]], ...]:
    """Group items under their day label, keeping item order."""
    groups: dict[str, list[HistoryEntry]] = {}
    for item in items:
        groups.setdefault(day_label(item.timestamp_millis, now), []).append(item)
    return tuple((label, tuple(entries)) for label, entries in groups.items())


def chart_series(points: list[tuple[int, float]]) -> tuple[tuple[int, float], ...]:
    points.sort(key=lambda point: point[0])
    return tuple(points) if len(points) >= MIN_CHART_POINTS else ()


@dataclass(frozen=True)
class HistoryState:
    is_loading: bool = True
    compositions: tuple[CompositionRecord, ...] = ()
    weights: tuple[WeightRecord, ...] = ()
    merged: tuple[HistoryEntry, ...] = ()
    items: tuple[HistoryEntry, ...] = ()
    groups: tuple[tuple[str, tuple[HistoryEntry, ...]], ...] = ()
    filter: HistoryFilter = HistoryFilter.ALL
    sort: HistorySort = HistorySort.NEWEST_FIRST
    body_fat_chart: tuple[tuple[int, float], ...] = ()
    weight_chart: tuple[tuple[int, float], ...] = ()
    pending_delete: HistoryEntry | None = None
    show_confirm_delete: bool = False
    error: str | None = None


class HistoryAggregator:
    """
    Live history view over a persistence collaborator.

    Usage:
        with HistoryAggregator(store) as history:
            history.set_filter(HistoryFilter.WEIGHT)
            rows = history.state.items
    """

    def __init__(
        self,
        persistence: BasePersistence,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._persistence = persistence
        self._now = now
        self._container: StateContainer[HistoryState] = StateContainer(HistoryState)
        self._subscriptions: list[Subscription] = []

    @property
    def state(self) -> HistoryState:
        return self._container.current

    def subscribe(self, listener=None) -> Subscription[HistoryState]:
        return self._container.subscribe(listener)

    # ----- Source wiring -----

    def start(self) -> "HistoryAggregator":
        if not self._subscriptions:
            self._subscriptions = [
                self._persistence.observe_compositions(self._on_compositions),
                self._persistence.observe_weights(self._on_weights),
            ]
        return self

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []

    def __enter__(self) -> "HistoryAggregator":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _on_compositions(self, records: tuple[CompositionRecord, ...]) -> None:
        self._container.update(lambda s: self._rebuild(replace(s, compositions=tuple(records))))

    def _on_weights(self, records: tuple[WeightRecord, ...]) -> None:
        self._container.update(lambda s: self._rebuild(replace(s, weights=tuple(records))))

    def _rebuild(self, state: HistoryState) -> HistoryState:
        merged = tuple(merge_history(state.compositions, state.weights))
        items = tuple(apply_view(merged, state.filter, state.sort))
        return replace(
            state,
            is_loading=False,
            merged=merged,
            items=items,
            groups=group_by_day(items, self._now()),
            body_fat_chart=chart_series(
                [(r.timestamp_millis, r.percentage) for r in state.compositions]
            ),
            weight_chart=chart_series(
                [(r.timestamp_millis, r.magnitude) for r in state.weights]
            ),
        )

    # ----- View options -----

    def set_filter(self, history_filter: HistoryFilter) -> None:
        self._container.update(lambda s: self._rebuild(replace(s, filter=history_filter)))

    def set_sort(self, sort: HistorySort) -> None:
        self._container.update(lambda s: self._rebuild(replace(s, sort=sort)))

    # ----- Delete with confirmation -----

    def request_delete(self, entry: HistoryEntry) -> None:
        self._container.update(
            lambda s: replace(s, pending_delete=entry, show_confirm_delete=True)
        )

    def cancel_delete(self) -> None:
        self._container.update(
            lambda s: replace(s, pending_delete=None, show_confirm_delete=False, error=None)
        )

    async def confirm_delete(self) -> None:
        """
        Delete the pending entry through the collaborator.

        The list itself is refreshed by the collaborator's next emission, not
        here. A rejected delete is reported in `state.error`.
        """
        entry = self.state.pending_delete
        error = None
        if entry is not None:
            try:
                if isinstance(entry, MeasurementItem):
                    await self._persistence.delete_composition(entry.record.id)
                elif isinstance(entry, WeightItem):
                    await self._persistence.delete_weight(entry.record.id)
            except Exception as exc:
                logger.exception(f"Failed to delete {entry.kind} {entry.record.id}")
                error = f"Failed to delete item: {exc}"

        self._container.update(lambda s: replace(
            s,
            pending_delete=None,
            show_confirm_delete=False,
            error=error if error is not None else s.error,
        ))
