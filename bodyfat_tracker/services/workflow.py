"""
Measurement Workflow
=====================
Drives the guided skinfold entry for one protocol (3-site or 7-site).

STATE MACHINE:
  EDITING  <-> COMPLETE      field edits; COMPLETE when every site and the age
                             parse to positive numbers
  COMPLETE  -> CALCULATING   explicit calculate(), never automatic
  CALCULATING -> RESULT      percentage finite and in (0, 100)
  CALCULATING -> FAILED      anything else, or the formula raised
  RESULT    -> CLOSED        close_result(); the result stays inspectable
  any       -> EDITING       reset(); sex and allow_persist carry over

The workflow owns exactly one StateContainer[WorkflowState]. Every operation
is a pure transform of the current snapshot. Input problems never raise: they
keep `is_complete` False or land in `error_message`.

In save mode (`allow_persist=True`) a valid result is handed to the
persistence collaborator as a background task on the running event loop.
calculate() does not wait for it; a failed save only sets `error_message`
and leaves the computed result visible.
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable

from bodyfat_tracker.enums import Protocol, Sex, WorkflowPhase
from bodyfat_tracker.schemas import CompositionRecord, SkinfoldSite, WorkflowState
from bodyfat_tracker.services.persistence import BasePersistence
from bodyfat_tracker.services.protocols import ProtocolDescriptor, get_protocol
from bodyfat_tracker.services.state_container import StateContainer, Subscription

logger = logging.getLogger(__name__)

INCOMPLETE_FIELDS_MESSAGE = "Please fill all fields with valid numbers."
INVALID_RESULT_MESSAGE = "Could not calculate body fat. Invalid result from calculation."
CALCULATION_ERROR_MESSAGE = "An error occurred during calculation."


def current_time_millis() -> int:
    return time.time_ns() // 1_000_000


# ----- Input filtering & parsing -----

def filter_age_input(text: str) -> str:
    """Keep digits only."""
    return "".join(ch for ch in text if ch.isdigit())


def filter_decimal_input(text: str) -> str:
    """
    Keep digits and at most one decimal point.

    Anything after a second '.' is dropped: "1.2.3" -> "1.2".
    """
    if not text:
        return ""
    parts = text.split(".")
    whole = "".join(ch for ch in parts[0] if ch.isdigit())
    if len(parts) == 1:
        return whole
    fraction = "".join(ch for ch in parts[1] if ch.isdigit())
    return f"{whole}.{fraction}"


def parse_positive_float(text: str) -> float | None:
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def parse_positive_int(text: str) -> int | None:
    if not text:
        return None
    try:
        value = int(text)
    except ValueError:
        return None
    return value if value > 0 else None


def _validated(state: WorkflowState) -> WorkflowState:
    """Recompute is_complete (and the EDITING/COMPLETE phase) from the fields."""
    is_complete = state.age is not None and all(
        site.value is not None for site in state.sites
    )
    return state.model_copy(update={
        "is_complete": is_complete,
        "phase": WorkflowPhase.COMPLETE if is_complete else WorkflowPhase.EDITING,
    })


def initial_state(
    descriptor: ProtocolDescriptor,
    sex: Sex = Sex.FEMALE,
    allow_persist: bool = False,
) -> WorkflowState:
    return WorkflowState(
        protocol=descriptor.protocol,
        sex=sex,
        allow_persist=allow_persist,
        sites=tuple(SkinfoldSite(name=label) for label in descriptor.labels_for(sex)),
    )


class MeasurementWorkflow:
    """
    One guided skinfold measurement session.

    Args:
        protocol: THREE_SITE or SEVEN_SITE (or a ProtocolDescriptor)
        allow_persist: True for "save" mode, False for guest mode
        persistence: Collaborator used to store results in save mode
        clock: Returns the current Unix time in milliseconds
    """

    def __init__(
        self,
        protocol: Protocol | ProtocolDescriptor,
        allow_persist: bool = False,
        persistence: BasePersistence | None = None,
        clock: Callable[[], int] = current_time_millis,
    ):
        if isinstance(protocol, ProtocolDescriptor):
            self.descriptor = protocol
        else:
            self.descriptor = get_protocol(protocol)
        if allow_persist and persistence is None:
            raise ValueError("A persistence collaborator is required when allow_persist=True")

        self._persistence = persistence
        self._clock = clock
        self._last_timestamp = 0
        self._pending_saves: set[asyncio.Task] = set()
        self._container = StateContainer(
            lambda: initial_state(self.descriptor, allow_persist=allow_persist)
        )

    @classmethod
    async def start(
        cls,
        protocol: Protocol | ProtocolDescriptor,
        allow_persist: bool,
        persistence: BasePersistence | None = None,
        clock: Callable[[], int] = current_time_millis,
    ) -> "MeasurementWorkflow":
        """
        Build a workflow and pre-fill age and sex from the stored profile.

        The profile is read once here and never re-queried afterwards.
        """
        workflow = cls(protocol, allow_persist, persistence, clock)
        if persistence is not None:
            profile = await persistence.get_profile()
            if profile is not None:
                workflow.set_sex(profile.sex)
                workflow.set_age(str(profile.age))
        return workflow

    # ----- Observation -----

    @property
    def state(self) -> WorkflowState:
        return self._container.current

    def subscribe(self, listener=None) -> Subscription[WorkflowState]:
        return self._container.subscribe(listener)

    # ----- Field edits -----

    def set_age(self, text: str) -> None:
        age_text = filter_age_input(text)
        self._container.update(lambda s: _validated(s.model_copy(update={
            "age_text": age_text,
            "age": parse_positive_int(age_text),
            "error_message": None,
        })))

    def set_site(self, index: int, text: str) -> None:
        if not 0 <= index < self.descriptor.site_count:
            raise IndexError(
                f"Site index {index} out of range for {self.descriptor.protocol.value}"
            )
        site_text = filter_decimal_input(text)

        def transform(state: WorkflowState) -> WorkflowState:
            sites = list(state.sites)
            sites[index] = sites[index].model_copy(update={
                "text": site_text,
                "value": parse_positive_float(site_text),
            })
            return _validated(state.model_copy(update={
                "sites": tuple(sites),
                "error_message": None,
            }))

        self._container.update(transform)

    def set_sex(self, sex: Sex) -> None:
        # Buffers are reused positionally: a 3-site value typed as "chest" shows
        # up as "triceps" after switching to female.
        labels = self.descriptor.labels_for(sex)

        def transform(state: WorkflowState) -> WorkflowState:
            sites = tuple(
                site.model_copy(update={"name": label})
                for site, label in zip(state.sites, labels)
            )
            return _validated(state.model_copy(update={
                "sex": sex,
                "sites": sites,
                "error_message": None,
            }))

        self._container.update(transform)

    # ----- Calculation -----

    def calculate(self) -> CompositionRecord | None:
        """
        Run the protocol's formula on the current fields.

        Returns the new record on success, None otherwise (the reason is in
        `state.error_message`).
        """
        snapshot = self.state
        if not snapshot.is_complete:
            self._container.update(
                lambda s: s.model_copy(update={"error_message": INCOMPLETE_FIELDS_MESSAGE})
            )
            return None

        values = [site.value for site in snapshot.sites]
        age = snapshot.age
        sex = snapshot.sex

        self._container.update(lambda s: s.model_copy(update={
            "phase": WorkflowPhase.CALCULATING,
            "is_calculating": True,
            "error_message": None,
            "result": None,
        }))

        try:
            percentage = self.descriptor.estimate(values, age, sex)
        except (ArithmeticError, ValueError) as exc:
            logger.warning(
                f"{self.descriptor.protocol.value} calculation raised "
                f"{type(exc).__name__}: {exc}"
            )
            self._fail(CALCULATION_ERROR_MESSAGE)
            return None

        if not (math.isfinite(percentage) and 0 < percentage < 100):
            logger.info(
                f"{self.descriptor.protocol.value} calculation rejected: "
                f"percentage={percentage} (age={age}, sex={sex.value})"
            )
            self._fail(INVALID_RESULT_MESSAGE)
            return None

        timestamp = max(self._clock(), self._last_timestamp)
        self._last_timestamp = timestamp
        record = CompositionRecord(
            timestamp_millis=timestamp,
            percentage=percentage,
            method=self.descriptor.method,
        )

        self._container.update(lambda s: s.model_copy(update={
            "phase": WorkflowPhase.RESULT,
            "is_calculating": False,
            "result": record,
            "error_message": None,
            "result_visible": True,
        }))

        if snapshot.allow_persist:
            self._schedule_save(record)

        logger.info(
            f"{self.descriptor.protocol.value} result: {percentage:.2f}% "
            f"(persist={snapshot.allow_persist})"
        )
        return record

    def _fail(self, message: str) -> None:
        self._container.update(lambda s: s.model_copy(update={
            "phase": WorkflowPhase.FAILED,
            "is_calculating": False,
            "result": None,
            "error_message": message,
        }))

    # ----- Persistence -----

    def _schedule_save(self, record: CompositionRecord) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._report_save_failure(RuntimeError("no running event loop"))
            return
        task = loop.create_task(self._persistence.save_composition(record))
        self._pending_saves.add(task)
        task.add_done_callback(self._on_save_done)

    def _on_save_done(self, task: asyncio.Task) -> None:
        self._pending_saves.discard(task)
        if task.cancelled():
            self._report_save_failure(RuntimeError("save was cancelled"))
            return
        exc = task.exception()
        if exc is not None:
            self._report_save_failure(exc)
        else:
            logger.info(f"Saved {self.descriptor.method.value} measurement with ID {task.result()}")

    def _report_save_failure(self, exc: BaseException) -> None:
        logger.error(f"Failed to save measurement: {exc}")
        message = f"Failed to save measurement: {exc}"
        self._container.update(lambda s: s.model_copy(update={"error_message": message}))

    @property
    def has_pending_saves(self) -> bool:
        return bool(self._pending_saves)

    async def join(self) -> None:
        """Wait for outstanding background saves (their errors land in state)."""
        if self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)

    # ----- Reset / dismissal -----

    def reset(self) -> None:
        def transform(state: WorkflowState) -> WorkflowState:
            fresh = initial_state(self.descriptor, sex=state.sex, allow_persist=state.allow_persist)
            return _validated(fresh)

        self._container.update(transform)

    def close_result(self) -> None:
        def transform(state: WorkflowState) -> WorkflowState:
            update = {"result_visible": False}
            if state.phase is WorkflowPhase.RESULT:
                update["phase"] = WorkflowPhase.CLOSED
            return state.model_copy(update=update)

        self._container.update(transform)

    def clear_error(self) -> None:
        self._container.update(lambda s: s.model_copy(update={"error_message": None}))
