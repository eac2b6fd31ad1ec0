"""Unit tests for update envelope decoding and timeline models."""

from __future__ import annotations

import json
import uuid

import pytest

from agent_comms.exceptions import PayloadError
from agent_comms.models import (
    HealthUpdate, RequestForTimelineUpdate, Timeline, TimelinePartialUpdate,
    TimelineUpdate, UnknownUpdate, UpdateType, parse_update,
)

TIMELINE_ID = "6f2f6bd9-43e4-4c8e-9a7e-2d8e0f6b1a11"


def partial_timeline(*trackable_ids):
    return {
        "Id": TIMELINE_ID,
        "TimeLineHandlers": [
            {
                "HandlerType": "BrowserFirefox",
                "Initial": "about:blank",
                "TimeLineEvents": [
                    {"Command": "browse", "CommandArgs": ["https://example.org"], "TrackableId": tid}
                    for tid in trackable_ids
                ],
            }
        ],
    }


def envelope(kind, update):
    return json.dumps({"Type": kind, "Update": update})


def test_health_update() -> None:
    update = parse_update(envelope("Health", {"cpu": 10}))
    assert isinstance(update, HealthUpdate)
    assert update.health.to_wire() == {"cpu": 10}


def test_timeline_update_keeps_payload() -> None:
    payload = partial_timeline("a")
    update = parse_update(envelope("Timeline", payload))
    assert isinstance(update, TimelineUpdate)
    assert json.loads(update.raw) == payload


def test_timeline_update_string_payload_used_verbatim() -> None:
    update = parse_update(envelope("Timeline", '{"Id": "x"}'))
    assert update.raw == '{"Id": "x"}'


def test_partial_update_parses_timeline() -> None:
    update = parse_update(envelope("TimelinePartial", partial_timeline("a", None)))
    assert isinstance(update, TimelinePartialUpdate)
    handler = update.timeline.handlers[0]
    assert handler.handler_type == "BrowserFirefox"
    assert [e.trackable_id for e in handler.events] == ["a", None]


def test_partial_update_accepts_double_encoded_payload() -> None:
    update = parse_update(envelope("TimelinePartial", json.dumps(partial_timeline("a"))))
    assert update.timeline.id == uuid.UUID(TIMELINE_ID)


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"TimelineId": TIMELINE_ID}, uuid.UUID(TIMELINE_ID)),
        ({"timelineId": TIMELINE_ID}, uuid.UUID(TIMELINE_ID)),
        (TIMELINE_ID, uuid.UUID(TIMELINE_ID)),
        ({}, None),
        (None, None),
        ("not-a-guid", None),
    ],
)
def test_request_for_timeline_id(payload, expected) -> None:
    update = parse_update(envelope("RequestForTimeline", payload))
    assert isinstance(update, RequestForTimelineUpdate)
    assert update.timeline_id == expected


def test_type_is_case_insensitive_and_camel_keys_accepted() -> None:
    update = parse_update(json.dumps({"type": "health", "update": {"ok": True}}))
    assert isinstance(update, HealthUpdate)


def test_unknown_type() -> None:
    update = parse_update(envelope("Reboot", {"now": True}))
    assert isinstance(update, UnknownUpdate)
    assert update.type_name == "Reboot"
    assert UpdateType.parse("Reboot") is None


@pytest.mark.parametrize("body", ["not json", "[1, 2]", envelope("Health", [1, 2])])
def test_malformed_envelopes(body) -> None:
    with pytest.raises(PayloadError):
        parse_update(body)


def test_assign_trackable_ids_fills_only_missing() -> None:
    timeline = Timeline.model_validate(partial_timeline("keep-me", None, "", None))
    assigned = timeline.assign_trackable_ids()

    ids = [e.trackable_id for e in timeline.handlers[0].events]
    assert assigned == 3
    assert ids[0] == "keep-me"
    assert all(ids)
    assert len(set(ids)) == 4


def test_timeline_round_trip_preserves_unknown_fields() -> None:
    timeline = Timeline.model_validate(partial_timeline("a"))
    wire = json.loads(timeline.to_json())
    assert wire["Id"] == TIMELINE_ID
    assert wire["TimeLineHandlers"][0]["Initial"] == "about:blank"
    assert wire["TimeLineHandlers"][0]["TimeLineEvents"][0]["CommandArgs"] == ["https://example.org"]
