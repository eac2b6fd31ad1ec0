"""
Wire models for server updates, timelines and outbound payloads.

Server JSON is PascalCase; camelCase keys are accepted on input too. Unknown
fields are kept and written back untouched, so a timeline or health snapshot
survives a decode/encode trip without losing anything the server added.
"""

from __future__ import annotations

import json
import uuid
from enum import Enum
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .exceptions import PayloadError


def _wire(name, default=None, **kwargs):
    """Field serialized as `name`, readable as `name` or its camelCase form."""
    camel = name[0].lower() + name[1:]
    if "default_factory" not in kwargs:
        kwargs["default"] = default
    return Field(
        validation_alias=AliasChoices(name, camel),
        serialization_alias=name,
        **kwargs,
    )


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent=None) -> str:
        return json.dumps(self.to_wire(), indent=indent)


# ─── Timelines ───────────────────────────────────────────────────

class TimelineEvent(WireModel):
    command: str = _wire("Command", "")
    command_args: list[Any] = _wire("CommandArgs", default_factory=list)
    delay_before: int = _wire("DelayBefore", 0)
    delay_after: int = _wire("DelayAfter", 0)
    trackable_id: Optional[str] = _wire("TrackableId")


class TimelineHandler(WireModel):
    handler_type: str = _wire("HandlerType", "")
    events: list[TimelineEvent] = Field(
        default_factory=list,
        validation_alias=AliasChoices("TimeLineEvents", "timeLineEvents", "TimelineEvents"),
        serialization_alias="TimeLineEvents",
    )


class Timeline(WireModel):
    id: Optional[uuid.UUID] = _wire("Id")
    status: str = _wire("Status", "Run")
    handlers: list[TimelineHandler] = Field(
        default_factory=list,
        validation_alias=AliasChoices("TimeLineHandlers", "timeLineHandlers", "TimelineHandlers"),
        serialization_alias="TimeLineHandlers",
    )

    def assign_trackable_ids(self):
        """Give every event without a TrackableId a fresh one. Returns how many were assigned."""
        assigned = 0
        for handler in self.handlers:
            for event in handler.events:
                if not event.trackable_id:
                    event.trackable_id = str(uuid.uuid4())
                    assigned += 1
        return assigned


# ─── Outbound payloads ───────────────────────────────────────────

class ResultHealth(WireModel):
    """Opaque health snapshot; every field is persisted verbatim."""


class Survey(WireModel):
    """Opaque survey artifact produced by the survey collaborator."""


class TransferLogDump(WireModel):
    log: str = _wire("Log", "")


class EncryptedPayload(WireModel):
    payload: str = _wire("Payload", "")


# ─── Update envelope (tagged union) ──────────────────────────────

class UpdateType(str, Enum):
    REQUEST_FOR_TIMELINE = "RequestForTimeline"
    TIMELINE = "Timeline"
    TIMELINE_PARTIAL = "TimelinePartial"
    HEALTH = "Health"

    @classmethod
    def parse(cls, value):
        """Case-insensitive lookup; None for a tag this agent does not know."""
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


def _extract_timeline_id(payload):
    """RequestForTimeline carries either a bare id or an object holding one."""
    candidate = payload
    if isinstance(payload, dict):
        lowered = {str(k).lower(): v for k, v in payload.items()}
        candidate = lowered.get("timelineid", lowered.get("id"))
    if not candidate:
        return None
    try:
        return uuid.UUID(str(candidate))
    except ValueError:
        return None


def _as_json_value(payload):
    """Some servers double-encode the Update field as a JSON string."""
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise PayloadError(f"Update payload is not JSON: {e}") from e
    return payload


class RequestForTimelineUpdate(BaseModel):
    type: UpdateType = UpdateType.REQUEST_FOR_TIMELINE
    timeline_id: Optional[uuid.UUID] = None

    @classmethod
    def from_payload(cls, payload):
        return cls(timeline_id=_extract_timeline_id(payload))


class TimelineUpdate(BaseModel):
    type: UpdateType = UpdateType.TIMELINE
    raw: str

    @classmethod
    def from_payload(cls, payload):
        if payload is None:
            raise PayloadError("Timeline update has no payload")
        if isinstance(payload, str):
            return cls(raw=payload)
        return cls(raw=json.dumps(payload, indent=2))


class TimelinePartialUpdate(BaseModel):
    type: UpdateType = UpdateType.TIMELINE_PARTIAL
    timeline: Timeline

    @classmethod
    def from_payload(cls, payload):
        return cls(timeline=Timeline.model_validate(_as_json_value(payload)))


class HealthUpdate(BaseModel):
    type: UpdateType = UpdateType.HEALTH
    health: ResultHealth

    @classmethod
    def from_payload(cls, payload):
        return cls(health=ResultHealth.model_validate(_as_json_value(payload)))


class UnknownUpdate(BaseModel):
    type_name: str
    payload: Any = None


UpdateEnvelope = Union[
    RequestForTimelineUpdate,
    TimelineUpdate,
    TimelinePartialUpdate,
    HealthUpdate,
    UnknownUpdate,
]

_DECODERS = {
    UpdateType.REQUEST_FOR_TIMELINE: RequestForTimelineUpdate,
    UpdateType.TIMELINE: TimelineUpdate,
    UpdateType.TIMELINE_PARTIAL: TimelinePartialUpdate,
    UpdateType.HEALTH: HealthUpdate,
}


def _lookup(data, key):
    if key in data:
        return data[key]
    return data.get(key[0].lower() + key[1:])


def parse_update(body) -> UpdateEnvelope:
    """Decode one poll response body into its update variant.

    Raises PayloadError for anything that is not a well-formed envelope.
    """
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Update body is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise PayloadError(f"Update body must be an object, got {type(data).__name__}")

    raw_type = _lookup(data, "Type")
    payload = _lookup(data, "Update")
    update_type = UpdateType.parse(raw_type)
    if update_type is None:
        return UnknownUpdate(type_name=str(raw_type), payload=payload)

    try:
        return _DECODERS[update_type].from_payload(payload)
    except ValidationError as e:
        raise PayloadError(f"Invalid {update_type.value} payload: {e}") from e
