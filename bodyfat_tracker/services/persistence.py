"""
Persistence collaborator interface.

The workflows and the history aggregator only talk to storage through this
interface. Writes are coroutines; the observed collections are published as
Subscriptions of newest-first tuples, re-emitted in full after every change.
"""

from abc import ABC, abstractmethod

from bodyfat_tracker.schemas import CompositionRecord, Profile, WeightRecord
from bodyfat_tracker.services.state_container import Subscription


class BasePersistence(ABC):

    @abstractmethod
    async def save_composition(self, record: CompositionRecord) -> int:
        """Store a composition record and return its new id."""

    @abstractmethod
    async def save_weight(self, record: WeightRecord) -> int:
        """Store a weight record and return its new id."""

    @abstractmethod
    async def delete_composition(self, record_id: int) -> None:
        """Raises RecordNotFoundError for an unknown id."""

    @abstractmethod
    async def delete_weight(self, record_id: int) -> None:
        """Raises RecordNotFoundError for an unknown id."""

    @abstractmethod
    def observe_compositions(self, listener=None) -> Subscription[tuple[CompositionRecord, ...]]:
        ...

    @abstractmethod
    def observe_weights(self, listener=None) -> Subscription[tuple[WeightRecord, ...]]:
        ...

    @abstractmethod
    async def get_profile(self) -> Profile | None:
        ...
