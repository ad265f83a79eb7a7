# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure domain logic with no external dependencies beyond Pydantic.

This module contains:
- Domain models (Event, SessionPath, Journey, SessionSummary, ...)
- Step labeling and wildcard step patterns
- Event scan predicates (site, time range, filters)
- Session path construction

All code here is store-agnostic and easily unit-testable.
"""

from journeys.core.errors import (
    EventStoreError,
    InvalidRequestError,
    JourneyError,
    PatternError,
    ScanCancelled,
    TraitStoreError,
)
from journeys.core.filters import EventFilter, EventScan, Filter, TimeRange
from journeys.core.models import (
    Event,
    EventType,
    Journey,
    SessionPath,
    SessionSummary,
    StepDetails,
    TransitionMatch,
)
from journeys.core.patterns import StepMatcher, compile_pattern
from journeys.core.session_paths import SessionPathBuilder, iter_session_paths
from journeys.core.step_labels import StepLabeler, get_step_labeler

__all__ = [
    # Errors
    "EventStoreError",
    "InvalidRequestError",
    "JourneyError",
    "PatternError",
    "ScanCancelled",
    "TraitStoreError",
    # Predicates
    "EventFilter",
    "EventScan",
    "Filter",
    "TimeRange",
    # Models
    "Event",
    "EventType",
    "Journey",
    "SessionPath",
    "SessionSummary",
    "StepDetails",
    "TransitionMatch",
    # Steps
    "SessionPathBuilder",
    "StepLabeler",
    "StepMatcher",
    "compile_pattern",
    "get_step_labeler",
    "iter_session_paths",
]
