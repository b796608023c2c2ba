"""
Tests for the manual body-fat and weight entry workflows.
"""

import pytest

from bodyfat_tracker.enums import MeasurementMethod, WeightUnit
from bodyfat_tracker.services.manual_entry import (
    ManualMeasurementWorkflow,
    WeightEntryWorkflow,
)


# ── Manual body fat ─────────────────────────────────────────────

def test_percentage_input_ignores_non_numeric_text(fake_persistence):
    workflow = ManualMeasurementWorkflow(fake_persistence)
    workflow.set_percentage("18.5")
    workflow.set_percentage("18.5.")
    workflow.set_percentage("abc")

    assert workflow.state.percentage_text == "18.5"


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "0", "100", "250"])
async def test_out_of_range_percentage_is_rejected(fake_persistence, text):
    workflow = ManualMeasurementWorkflow(fake_persistence)
    workflow.set_percentage(text)
    workflow.set_method(MeasurementMethod.OTHER)

    assert await workflow.save() is None
    assert workflow.state.save_error == "Invalid percentage value."
    assert fake_persistence.saved_compositions == []


@pytest.mark.asyncio
async def test_method_is_required(fake_persistence):
    workflow = ManualMeasurementWorkflow(fake_persistence)
    workflow.set_percentage("18")

    assert await workflow.save() is None
    assert workflow.state.save_error == "Please select a measurement method."


@pytest.mark.asyncio
async def test_manual_save(fake_persistence):
    workflow = ManualMeasurementWorkflow(fake_persistence, clock=lambda: 42)
    workflow.set_percentage("17.25")
    workflow.set_method(MeasurementMethod.OTHER)

    record = await workflow.save()

    assert record.id == 1
    assert record.percentage == 17.25
    assert record.timestamp_millis == 42
    state = workflow.state
    assert state.save_success
    assert state.saved_id == 1
    assert not state.is_saving

    workflow.reset_save_status()
    assert not workflow.state.save_success


@pytest.mark.asyncio
async def test_manual_save_failure(fake_persistence):
    fake_persistence.fail_with = RuntimeError("disk full")
    workflow = ManualMeasurementWorkflow(fake_persistence)
    workflow.set_percentage("20")
    workflow.set_method(MeasurementMethod.THREE_POINTS)

    assert await workflow.save() is None
    assert workflow.state.save_error == "Error saving measurement: disk full"
    assert not workflow.state.is_saving
    assert not workflow.state.save_success


# ── Weight entry ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_weight_save_keeps_unit_and_drops_blank_notes(fake_persistence):
    workflow = WeightEntryWorkflow(fake_persistence, clock=lambda: 7)
    workflow.set_weight("165.5")
    workflow.set_unit(WeightUnit.LBS)
    workflow.set_notes("   ")

    record = await workflow.save()

    assert record.magnitude == 165.5
    assert record.unit is WeightUnit.LBS
    assert record.notes is None
    assert workflow.state.saved_id == record.id
    assert fake_persistence.observe_weights().drain()[0][0].id == record.id


@pytest.mark.asyncio
async def test_invalid_weight_is_rejected(fake_persistence):
    workflow = WeightEntryWorkflow(fake_persistence)
    workflow.set_weight("0")

    assert await workflow.save() is None
    assert workflow.state.save_error == "Invalid weight value."


@pytest.mark.asyncio
async def test_weight_save_failure(fake_persistence):
    fake_persistence.fail_with = RuntimeError("read-only database")
    workflow = WeightEntryWorkflow(fake_persistence)
    workflow.set_weight("70")
    workflow.set_notes("after run")

    assert await workflow.save() is None
    assert workflow.state.save_error == "Error saving weight entry: read-only database"
    # Editing clears the error
    workflow.set_notes("after long run")
    assert workflow.state.save_error is None
