# ==============================================================================
# Event Scan Predicates
# ==============================================================================
"""
The predicate contract every analytics component reads the event store through.

EventScan bundles what a scan needs: site, time range, the caller's filter
predicate, and the journey-specific event-type restrictions. Stores either
compile it to SQL (infrastructure/sql.py) or evaluate `matches()` in process
(infrastructure/repositories/memory.py); both read the same fields, so the
two never disagree about which events qualify.

Filter expressions arrive pre-parsed as a list of
{"parameter": ..., "type": ..., "value": [...]} objects.
"""

import json
from collections.abc import Iterable
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from journeys.core.errors import InvalidRequestError
from journeys.core.models import INTERACTION_TYPES, Event, EventType

# Event columns a filter may reference
FILTERABLE_COLUMNS: frozenset[str] = frozenset(
    {
        "pathname",
        "hostname",
        "referrer",
        "channel",
        "country",
        "region",
        "city",
        "language",
        "device_type",
        "browser",
        "operating_system",
        "event_name",
        "type",
        "user_id",
        "identified_user_id",
    }
)

FilterType = Literal["equals", "not_equals", "contains", "not_contains"]


class TimeRange(BaseModel):
    """Half-open time window [start, end). Either bound may be open."""

    model_config = ConfigDict(frozen=True)

    start: datetime | None = None
    end: datetime | None = None

    def contains(self, timestamp: datetime) -> bool:
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp >= self.end:
            return False
        return True


class Filter(BaseModel):
    """One column condition. `value` holds alternatives (OR-ed)."""

    model_config = ConfigDict(frozen=True)

    parameter: str
    type: FilterType = "equals"
    value: tuple[str, ...]

    @field_validator("parameter")
    @classmethod
    def _known_column(cls, value: str) -> str:
        if value not in FILTERABLE_COLUMNS:
            raise ValueError(f"unknown filter parameter '{value}'")
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _as_tuple(cls, value):
        if isinstance(value, (str, int, float)):
            return (str(value),)
        return tuple(str(item) for item in value)

    def matches(self, event: Event) -> bool:
        actual = getattr(event, self.parameter)
        actual = "" if actual is None else str(actual)
        if self.type == "equals":
            return actual in self.value
        if self.type == "not_equals":
            return actual not in self.value
        hit = any(candidate.lower() in actual.lower() for candidate in self.value)
        return hit if self.type == "contains" else not hit


class EventFilter(BaseModel):
    """Conjunction of filters; an empty filter matches every event."""

    model_config = ConfigDict(frozen=True)

    filters: tuple[Filter, ...] = ()

    def matches(self, event: Event) -> bool:
        return all(f.matches(event) for f in self.filters)

    @classmethod
    def parse(cls, raw: str | list | None) -> "EventFilter":
        """
        Parse the JSON `filters` query parameter (or an already decoded list).

        Raises:
            InvalidRequestError: If the JSON is malformed or a filter is invalid
        """
        if not raw:
            return cls()
        if isinstance(raw, (list, tuple)):
            items = list(raw)
        else:
            try:
                items = json.loads(raw)
            except json.JSONDecodeError as e:
                raise InvalidRequestError(f"Invalid filters format: {e.msg}") from e
        if not isinstance(items, list):
            raise InvalidRequestError("Invalid filters format: expected a JSON array")
        try:
            return cls(filters=tuple(Filter.model_validate(item) for item in items))
        except ValidationError as e:
            raise InvalidRequestError(f"Invalid filters: {e.errors()[0]['msg']}") from e


class EventScan(BaseModel):
    """
    Everything a store needs to select events for one analytics scan.

    Attributes:
        site_id: Site to read
        time_range: Time window
        event_filter: Caller's filter predicate
        include_events: Include interaction events, not only pageviews
        exclude_event_names: Interaction events with these names are dropped
        interaction_types: Event types treated as interactions
    """

    model_config = ConfigDict(frozen=True)

    site_id: int
    time_range: TimeRange = Field(default_factory=TimeRange)
    event_filter: EventFilter = Field(default_factory=EventFilter)
    include_events: bool = True
    exclude_event_names: frozenset[str] = frozenset()
    interaction_types: tuple[str, ...] = INTERACTION_TYPES

    @property
    def allowed_types(self) -> tuple[str, ...]:
        if self.include_events:
            return (EventType.PAGEVIEW.value, *self.interaction_types)
        return (EventType.PAGEVIEW.value,)

    def matches_base(self, event: Event) -> bool:
        """Site, time range and filter predicate only."""
        return (
            event.site_id == self.site_id
            and self.time_range.contains(event.timestamp)
            and self.event_filter.matches(event)
        )

    def matches(self, event: Event) -> bool:
        """Base predicate plus the event-type and excluded-name restrictions."""
        if not self.matches_base(event):
            return False
        if event.type not in self.allowed_types:
            return False
        if (
            self.exclude_event_names
            and event.type in self.interaction_types
            and event.event_name in self.exclude_event_names
        ):
            return False
        return True

    def with_all_steps(self) -> "EventScan":
        """Same predicate, every pageview and interaction event, nothing excluded."""
        return self.model_copy(update={"include_events": True, "exclude_event_names": frozenset()})

    def describe(self) -> dict:
        """Loggable summary of the scan."""
        return {
            "site_id": self.site_id,
            "start": self.time_range.start.isoformat() if self.time_range.start else None,
            "end": self.time_range.end.isoformat() if self.time_range.end else None,
            "filters": [f.model_dump() for f in self.event_filter.filters],
            "include_events": self.include_events,
            "exclude_event_names": sorted(self.exclude_event_names),
        }


def normalize_event_names(names: Iterable) -> frozenset[str]:
    """Trim names and drop empties."""
    return frozenset(str(name).strip() for name in names if str(name).strip())
