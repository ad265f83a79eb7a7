# ==============================================================================
# Request Parameter Models
# ==============================================================================
"""
Pydantic models for the raw query-string parameters of the journey endpoints.

Every value arrives as a string. Parsing is defensive: a non-numeric number
or a malformed JSON parameter becomes an InvalidRequestError (HTTP 400),
never a crash. Range checks live on the analytics query objects so the
bounds are declared once.
"""

import json
from collections.abc import Mapping
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from journeys.core.errors import InvalidRequestError
from journeys.core.filters import EventFilter, EventScan, TimeRange, normalize_event_names
from journeys.core.patterns import StepMatcher, compile_pattern
from journeys.core.step_labels import StepLabeler


def parse_event_names(raw) -> frozenset[str]:
    """
    Normalize excludeEventNames.

    Accepts a JSON array or a comma-separated string; malformed or non-array
    JSON falls back to the comma split. Names are trimmed, empties dropped.
    """
    if raw is None or raw == "":
        return frozenset()
    if isinstance(raw, (list, tuple, set, frozenset)):
        return normalize_event_names(raw)
    text = str(raw)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, list):
        return normalize_event_names(parsed)
    return normalize_event_names(text.split(","))


def parse_step_filters(raw) -> dict[int, StepMatcher]:
    """
    Parse and compile stepFilters ({"<0-based position>": "<pattern>"}).

    Unlike excludeEventNames there is no fallback: malformed JSON is rejected.

    Raises:
        InvalidRequestError: On malformed JSON, a non-integer position, or a bad pattern
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, Mapping):
        items = raw
    else:
        try:
            items = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise InvalidRequestError("Invalid stepFilters format") from e
        if not isinstance(items, dict):
            raise InvalidRequestError("Invalid stepFilters format")

    compiled = {}
    for position, pattern in items.items():
        try:
            index = int(position)
        except (TypeError, ValueError) as e:
            raise InvalidRequestError(f"Invalid stepFilters position '{position}'") from e
        compiled[index] = compile_pattern(pattern)
    return compiled


def _parse_flag(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1")


class CommonParams(BaseModel):
    """Time range and filter parameters shared by every journey endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", arbitrary_types_allowed=True)

    start_date: datetime | None = Field(default=None, alias="startDate")
    end_date: datetime | None = Field(default=None, alias="endDate")
    filters: EventFilter = Field(default_factory=EventFilter)

    @field_validator("start_date", "end_date")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("filters", mode="before")
    @classmethod
    def _parse_filters(cls, value):
        if value is None:
            return EventFilter()
        if isinstance(value, EventFilter):
            return value
        return EventFilter.parse(value)

    @classmethod
    def parse(cls, params: Mapping[str, str]):
        """
        Validate raw query parameters.

        Raises:
            InvalidRequestError: If any parameter is missing or unparsable
        """
        # Missing and blank values both fall back to field defaults
        cleaned = {
            k: v
            for k, v in params.items()
            if v is not None and not (isinstance(v, str) and not v.strip())
        }
        try:
            return cls.model_validate(cleaned)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "request"
            raise InvalidRequestError(f"Invalid {field}: {error['msg']}") from e

    def time_range(self) -> TimeRange:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise InvalidRequestError("startDate must not be after endDate")
        return TimeRange(start=self.start_date, end=self.end_date)

    def scan(self, site_id: int, labeler: StepLabeler, **overrides) -> EventScan:
        """Build the EventScan shared by every component of the request."""
        return EventScan(
            site_id=site_id,
            time_range=self.time_range(),
            event_filter=self.filters,
            interaction_types=tuple(sorted(labeler.interaction_types)),
            **overrides,
        )


class PathParams(CommonParams):
    """Adds the path-construction switches used by journeys and transitions."""

    include_events: bool = Field(default=True, alias="includeEvents")
    exclude_event_names: frozenset[str] = Field(default=frozenset(), alias="excludeEventNames")

    @field_validator("include_events", mode="before")
    @classmethod
    def _parse_include_events(cls, value):
        return _parse_flag(value)

    @field_validator("exclude_event_names", mode="before")
    @classmethod
    def _parse_exclude(cls, value):
        return parse_event_names(value)

    def path_scan(self, site_id: int, labeler: StepLabeler) -> EventScan:
        return self.scan(
            site_id,
            labeler,
            include_events=self.include_events,
            exclude_event_names=self.exclude_event_names,
        )


class JourneysParams(PathParams):
    """GET journeys."""

    steps: int = 3
    limit: int = 100
    step_filters: dict[int, StepMatcher] = Field(default_factory=dict, alias="stepFilters")

    @field_validator("step_filters", mode="before")
    @classmethod
    def _parse_step_filters(cls, value):
        return parse_step_filters(value)


class TransitionSessionsParams(PathParams):
    """GET journeyTransitionSessions."""

    source: str | None = None
    target: str | None = None
    source_step: int | None = Field(default=None, alias="sourceStep")
    target_step: int | None = Field(default=None, alias="targetStep")
    limit: int = 50
    page: int = 1


class StepEventDetailsParams(CommonParams):
    """GET journeyStepEventDetails."""

    step_label: str | None = Field(default=None, alias="stepLabel")
    step_index: int | None = Field(default=None, alias="stepIndex")
