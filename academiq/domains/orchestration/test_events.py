"""Tests for the stage event publisher."""

import asyncio
import json

import pytest

from academiq.config.errors import PublisherClosedError

from .events import EventPublisher
from .models import Stage, StageEvent


# --- Event Model Tests ---


def test_event_wire_form_omits_empty_fields() -> None:
    event = StageEvent(stage=Stage.EXTRACTING, message="Extracting", timestamp=1700000000000)

    assert event.to_dict() == {
        "stage": "extracting",
        "message": "Extracting",
        "timestamp": 1700000000000,
    }


def test_event_sse_frame() -> None:
    event = StageEvent(
        stage=Stage.PARSING_PUBS,
        message="Chunk 2/3",
        timestamp=1,
        details={"chunkId": 2},
    )

    frame = event.to_sse()

    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame[len("data: ") :]) == {
        "stage": "parsing-pubs",
        "message": "Chunk 2/3",
        "timestamp": 1,
        "details": {"chunkId": 2},
    }


def test_terminal_stages() -> None:
    assert Stage.COMPLETE.is_terminal
    assert Stage.ERROR.is_terminal
    assert not Stage.WARNING.is_terminal
    assert not Stage.PARSE_ERROR.is_terminal


# --- Publisher Tests ---


async def test_events_delivered_in_order_until_terminal() -> None:
    publisher = EventPublisher()
    publisher.publish(Stage.UPLOADING, "Received cv.pdf")
    publisher.publish(Stage.EXTRACTING, "Extracting text from PDF...")
    publisher.complete({"personal": {}}, {"chunks": 1})

    events = [event async for event in publisher.events()]

    assert [e.stage for e in events] == [Stage.UPLOADING, Stage.EXTRACTING, Stage.COMPLETE]
    assert events[-1].result == {"personal": {}}
    assert publisher.closed
    assert publisher.terminal_event is events[-1]


async def test_timestamps_are_non_decreasing() -> None:
    publisher = EventPublisher()
    for i in range(5):
        publisher.publish(Stage.PARSING_BASE, f"step {i}")
    publisher.fail("boom")

    timestamps = [e.timestamp for e in publisher.history]

    assert timestamps == sorted(timestamps)


def test_nothing_after_terminal_event() -> None:
    publisher = EventPublisher()
    publisher.fail("Extraction cancelled")

    with pytest.raises(PublisherClosedError):
        publisher.publish(Stage.FINALIZING, "late")
    with pytest.raises(PublisherClosedError):
        publisher.complete({})

    assert len(publisher.history) == 1


def test_publish_rejects_terminal_stage() -> None:
    with pytest.raises(ValueError):
        EventPublisher().publish(Stage.COMPLETE, "done")


async def test_heartbeat_while_idle() -> None:
    publisher = EventPublisher()
    asyncio.get_running_loop().call_later(0.1, publisher.complete, {})

    events = [event async for event in publisher.events_with_heartbeat(0.02)]

    assert events[0] is None
    assert events[-1] is not None
    assert events[-1].stage == Stage.COMPLETE
    assert all(e is None for e in events[:-1])
