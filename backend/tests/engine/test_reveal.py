"""Reveal sequencer tests.

Sleep is injected so offsets are checked without waiting in real time.
"""

import asyncio

import pytest

from points_forest.engine.reveal import (
    RevealEvent,
    RevealSequencer,
    RevealState,
    RevealTiming,
    build_summary,
)

TIMING = RevealTiming(pull_duration=2.0, interval=0.6, summary_delay=1.0)


def recording_sleep(log: list[float]):
    async def _sleep(seconds: float) -> None:
        log.append(seconds)

    return _sleep


async def collect(sequencer: RevealSequencer) -> list[RevealEvent]:
    return [event async for event in sequencer.events()]


@pytest.mark.asyncio
async def test_items_revealed_in_order_at_interval():
    slept: list[float] = []
    sequencer = RevealSequencer(["acorn", "owl", "fox"], TIMING, sleep=recording_sleep(slept))

    events = await collect(sequencer)

    items = [e for e in events if e.is_item]
    assert [e.item for e in items] == ["acorn", "owl", "fox"]
    assert [e.index for e in items] == [0, 1, 2]
    assert [e.offset_ms for e in items] == [2000, 2600, 3200]
    assert slept == [2.0, 0.6, 0.6, 1.0]


@pytest.mark.asyncio
async def test_state_sequence_ends_with_single_summary():
    sequencer = RevealSequencer(["acorn", "owl"], TIMING, sleep=recording_sleep([]))

    events = await collect(sequencer)

    states = [e.state for e in events if not e.is_item]
    assert states == [RevealState.PULLING, RevealState.REVEAL, RevealState.SUMMARY]
    assert events[-1].state is RevealState.SUMMARY
    assert events[-1].offset_ms == 3600
    assert sequencer.finished


@pytest.mark.asyncio
async def test_empty_items_go_straight_to_summary():
    sequencer = RevealSequencer([], TIMING, sleep=recording_sleep([]))

    events = await collect(sequencer)

    assert [e.state for e in events] == [RevealState.PULLING, RevealState.REVEAL, RevealState.SUMMARY]
    assert events[-1].offset_ms == 3000


@pytest.mark.asyncio
async def test_sequencer_runs_once():
    sequencer = RevealSequencer(["acorn"], TIMING, sleep=recording_sleep([]))
    await collect(sequencer)

    with pytest.raises(RuntimeError):
        await collect(sequencer)


@pytest.mark.asyncio
async def test_start_delivers_events_to_async_callback():
    received: list[RevealEvent] = []

    async def on_event(event: RevealEvent) -> None:
        received.append(event)

    sequencer = RevealSequencer(["acorn", "owl"], TIMING, sleep=recording_sleep([]))
    task = sequencer.start(on_event)
    await task

    assert sum(1 for e in received if e.state is RevealState.SUMMARY) == 1
    assert [e.item for e in received if e.is_item] == ["acorn", "owl"]
    assert sequencer.cancel() is False


@pytest.mark.asyncio
async def test_cancel_stops_pending_steps():
    gate = asyncio.Event()
    timing = RevealTiming(pull_duration=0.0, interval=0.5, summary_delay=0.1)

    async def gated_sleep(seconds: float) -> None:
        if seconds == timing.interval:
            await gate.wait()

    received: list[RevealEvent] = []
    sequencer = RevealSequencer(["acorn", "owl", "fox"], timing, sleep=gated_sleep)
    task = sequencer.start(received.append)

    for _ in range(10):
        await asyncio.sleep(0)

    assert [e.item for e in received if e.is_item] == ["acorn"]
    assert sequencer.cancel() is True

    with pytest.raises(asyncio.CancelledError):
        await task

    gate.set()
    for _ in range(10):
        await asyncio.sleep(0)

    assert [e.item for e in received if e.is_item] == ["acorn"]
    assert all(e.state is not RevealState.SUMMARY for e in received)
    assert sequencer.state is RevealState.REVEAL


def test_event_to_dict():
    state = RevealEvent(RevealState.PULLING, 0)
    item = RevealEvent(RevealState.REVEAL, 2600, index=1, item={"name": "Owl"})

    assert state.to_dict() == {"type": "state", "state": "pulling", "offset_ms": 0}
    assert item.to_dict() == {
        "type": "item",
        "state": "reveal",
        "offset_ms": 2600,
        "index": 1,
        "item": {"name": "Owl"},
    }


def test_timing_from_settings_defaults():
    timing = RevealTiming.from_settings()

    assert timing == RevealTiming(pull_duration=2.0, interval=0.6, summary_delay=1.0)


def test_build_summary():
    items = [
        {"rarity": "common", "point_value": 10},
        {"rarity": "epic", "point_value": None},
        {"rarity": "rare", "point_value": 40},
    ]

    assert build_summary(items, cost_paid=100) == {
        "items_count": 3,
        "total_value": 50,
        "cost_paid": 100,
        "best_rarity": "epic",
    }
