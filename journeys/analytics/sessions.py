# ==============================================================================
# Session Materializer
# ==============================================================================
"""
Builds per-session summaries for a page of transition matches.

Reads every event of the matched sessions within the time range (the filter
predicate does not apply here, a session's context is all of it) and folds
them in (timestamp, event_id) order:

- "latest" attributes take the last non-empty value (identity, geo, device, ip)
- "earliest" attributes take the first non-empty value (referrer, channel, hostname)
- entry/exit page are the first/last pageview paths
- start/end/duration come from the first/last event

Always reads the current store contents; nothing is cached between requests.
"""

import logging
from collections.abc import Sequence
from itertools import groupby
from operator import attrgetter

from journeys.base.repositories import EventStore
from journeys.core.filters import TimeRange
from journeys.core.models import Event, EventType, SessionSummary, TransitionMatch

logger = logging.getLogger(__name__)

LATEST_FIELDS: tuple[str, ...] = (
    "user_id",
    "identified_user_id",
    "country",
    "region",
    "city",
    "language",
    "device_type",
    "browser",
    "browser_version",
    "operating_system",
    "operating_system_version",
    "screen_width",
    "screen_height",
    "ip",
)

EARLIEST_FIELDS: tuple[str, ...] = (
    "referrer",
    "channel",
    "hostname",
)


def _present(value) -> bool:
    return value is not None and value != ""


def summarize_session(session_id: str, events: Sequence[Event] | None) -> dict:
    """
    Fold one session's ordered events into summary fields.

    Args:
        session_id: Session being summarized
        events: The session's events ordered by (timestamp, event_id)

    Returns:
        Dict of SessionSummary fields
    """
    summary: dict = {"session_id": session_id, "pageviews": 0, "events": 0}
    for event in events or ():
        if "session_start" not in summary:
            summary["session_start"] = event.timestamp
        summary["session_end"] = event.timestamp

        for name in LATEST_FIELDS:
            value = getattr(event, name)
            if _present(value):
                summary[name] = value
        for name in EARLIEST_FIELDS:
            value = getattr(event, name)
            if _present(value) and name not in summary:
                summary[name] = value

        if event.type == EventType.PAGEVIEW.value:
            summary["pageviews"] += 1
            if "entry_page" not in summary:
                summary["entry_page"] = event.pathname
            summary["exit_page"] = event.pathname
        elif event.type == EventType.CUSTOM_EVENT.value:
            summary["events"] += 1

    if "session_start" in summary:
        duration = summary["session_end"] - summary["session_start"]
        summary["session_duration"] = int(duration.total_seconds())
    return summary


class SessionMaterializer:
    """Joins transition matches back to the full event history of each session."""

    def __init__(self, store: EventStore):
        self.store = store

    def materialize(
        self,
        site_id: int,
        time_range: TimeRange,
        matches: Sequence[TransitionMatch],
    ) -> list[SessionSummary]:
        """
        Summarize the sessions of a page of matches.

        Args:
            site_id: Site the sessions belong to
            time_range: Window the session context is read from
            matches: Page of transition matches, already ordered

        Returns:
            One SessionSummary per match, in the order of `matches`
        """
        if not matches:
            return []

        by_session: dict[str, list[Event]] = {}
        events = self.store.session_events(site_id, [m.session_id for m in matches], time_range)
        try:
            for session_id, session_events in groupby(events, key=attrgetter("session_id")):
                by_session[session_id] = list(session_events)
        finally:
            close = getattr(events, "close", None)
            if close is not None:
                close()

        summaries = []
        for match in matches:
            fields = summarize_session(match.session_id, by_session.get(match.session_id))
            if match.session_id not in by_session:
                logger.debug("Session %s has no events in range", match.session_id)
            summaries.append(
                SessionSummary(
                    **fields,
                    source_index=match.source_index,
                    target_index=match.target_index,
                    transition_timestamp=match.transition_timestamp,
                )
            )
        return summaries
