# ==============================================================================
# Journey Domain Models
# ==============================================================================
"""
Pydantic models for events, session paths, journeys and drill-down results.

These models are used for:
- Validating rows read from the event store (or a JSON lines file)
- Carrying per-request results between the analytics components
- Serializing response bodies at the API boundary

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

import json
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, JsonValue, field_validator


class EventType(str, Enum):
    """Event types recorded by the tracker."""

    PAGEVIEW = "pageview"
    CUSTOM_EVENT = "custom_event"
    BUTTON_CLICK = "button_click"
    COPY = "copy"
    FORM_SUBMIT = "form_submit"
    INPUT_CHANGE = "input_change"
    OUTBOUND = "outbound"


# Event types labeled by type and name instead of by path
INTERACTION_TYPES: tuple[str, ...] = (
    EventType.CUSTOM_EVENT.value,
    EventType.BUTTON_CLICK.value,
    EventType.COPY.value,
    EventType.FORM_SUBMIT.value,
    EventType.INPUT_CHANGE.value,
    EventType.OUTBOUND.value,
)


class Event(BaseModel):
    """
    A single tracked event as stored in the analytic event store.

    Attributes:
        site_id: Site the event belongs to
        session_id: Session identifier assigned at ingestion
        timestamp: When the event occurred
        event_id: Ingestion sequence number, breaks timestamp ties
        type: Event type (pageview, custom_event, button_click, ...)
        pathname: Page path the event was recorded on
        event_name: Name of an interaction event (may be empty)
        properties: Ordered JSON property bag attached to the event
    """

    site_id: int
    session_id: str
    timestamp: datetime
    event_id: int = 0
    type: str = EventType.PAGEVIEW.value
    pathname: str | None = None
    event_name: str | None = None
    properties: dict[str, JsonValue] = Field(default_factory=dict)

    user_id: str | None = None
    identified_user_id: str | None = None
    hostname: str | None = None
    referrer: str | None = None
    channel: str | None = None
    country: str | None = None
    region: str | None = None
    city: str | None = None
    language: str | None = None
    device_type: str | None = None
    browser: str | None = None
    browser_version: str | None = None
    operating_system: str | None = None
    operating_system_version: str | None = None
    screen_width: int | None = None
    screen_height: int | None = None
    ip: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are UTC
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)

    @field_validator("properties", mode="before")
    @classmethod
    def _parse_properties(cls, value):
        # Stores may hand back the raw JSON text of the props column
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                return {}
        return value if isinstance(value, dict) else {}

    @property
    def sort_key(self) -> tuple[str, datetime, int]:
        """Scan order: session, then time, then ingestion sequence."""
        return (self.session_id, self.timestamp, self.event_id)


class SessionPath(BaseModel):
    """
    Ordered, duplicate-collapsed step labels of one session.

    `timestamps` is parallel to `steps`; each entry is the time of the first
    event of the collapsed run.
    """

    session_id: str
    steps: list[str]
    timestamps: list[datetime]

    def first_index(self, label: str) -> int:
        """1-based index of the first occurrence of `label`, 0 if absent."""
        try:
            return self.steps.index(label) + 1
        except ValueError:
            return 0


class Journey(BaseModel):
    """A truncated session path shared by `count` sessions."""

    path: list[str]
    count: int
    percentage: float


class TransitionMatch(BaseModel):
    """A session in which `source` is followed by `target`."""

    session_id: str
    source_index: int
    target_index: int
    transition_timestamp: datetime


class SessionSummary(BaseModel):
    """Per-session attributes materialized from the full event scan."""

    session_id: str
    source_index: int | None = None
    target_index: int | None = None
    transition_timestamp: datetime | None = None

    user_id: str | None = None
    identified_user_id: str | None = None
    country: str | None = None
    region: str | None = None
    city: str | None = None
    language: str | None = None
    device_type: str | None = None
    browser: str | None = None
    browser_version: str | None = None
    operating_system: str | None = None
    operating_system_version: str | None = None
    screen_width: int | None = None
    screen_height: int | None = None
    referrer: str | None = None
    channel: str | None = None
    hostname: str | None = None
    session_start: datetime | None = None
    session_end: datetime | None = None
    session_duration: int = 0
    entry_page: str | None = None
    exit_page: str | None = None
    pageviews: int = 0
    events: int = 0
    ip: str | None = None

    traits: dict[str, JsonValue] | None = None


class PropertyCount(BaseModel):
    """One value of a property key and how many events carried it."""

    value: str
    count: int


class StepEvent(BaseModel):
    """A raw event matched by a step drill-down."""

    timestamp: datetime
    user_id: str | None = None
    identified_user_id: str | None = None
    session_id: str


class StepDetails(BaseModel):
    """Property histogram and recent events for one journey step."""

    properties: dict[str, list[PropertyCount]] = Field(default_factory=dict)
    events: list[StepEvent] = Field(default_factory=list)


class Pagination(BaseModel):
    """Pagination metadata for transition session pages."""

    total: int
    page: int
    limit: int
    totalPages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        total_pages = -(-total // limit) if limit else 0
        return cls(total=total, page=page, limit=limit, totalPages=total_pages)


def epoch_seconds(ts: datetime) -> float:
    """Sortable number for a timestamp; naive timestamps are taken as UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()
