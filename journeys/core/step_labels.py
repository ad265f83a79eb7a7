# ==============================================================================
# Step Labeler - Pure Domain Logic
# ==============================================================================
"""
Canonical step labels for journey analysis.

Every component that talks about "a step" (journeys, transitions, step
drill-downs) derives labels through StepLabeler, so a label seen in a journey
can always be fed back into a transition or step-detail query.

Rules:
- Interaction events: "event:<type>" or "event:<type>:<event_name>"
- Paths under a draft prefix: the prefix's fixed label ("/asset/draft")
- Paths with at least three "/"-separated parts: "/" + first segment
  ("/blog/post-1" -> "/blog")
- Anything else: the raw path ("/" when missing)
"""

from collections.abc import Iterable, Mapping

from journeys.core.models import INTERACTION_TYPES, Event

DEFAULT_DRAFT_PREFIXES: dict[str, str] = {"/asset/draft/": "/asset/draft"}


class StepLabeler:
    """
    Maps one event to its step label.

    Pure and total: unknown event types and odd paths fall back to the raw
    path, nothing raises.
    """

    def __init__(
        self,
        draft_prefixes: Mapping[str, str] | None = None,
        interaction_types: Iterable[str] = INTERACTION_TYPES,
    ):
        """
        Initialize the labeler.

        Args:
            draft_prefixes: Path prefix -> fixed label. Checked before the
                            segment rule, longest prefix first.
            interaction_types: Event types labeled by type and name.
        """
        prefixes = DEFAULT_DRAFT_PREFIXES if draft_prefixes is None else draft_prefixes
        self._draft_prefixes = sorted(prefixes.items(), key=lambda item: len(item[0]), reverse=True)
        self._interaction_types = frozenset(interaction_types)

    @property
    def interaction_types(self) -> frozenset[str]:
        return self._interaction_types

    def is_interaction(self, event_type: str | None) -> bool:
        return event_type in self._interaction_types

    def label(self, event: Event) -> str:
        """Label an event."""
        return self.label_for(event.type, event.pathname, event.event_name)

    def label_for(self, event_type: str | None, pathname: str | None, event_name: str | None) -> str:
        """Label from the raw columns, for callers that do not hold an Event."""
        if self.is_interaction(event_type):
            if event_name:
                return f"event:{event_type}:{event_name}"
            return f"event:{event_type}"
        return self.path_label(pathname)

    def path_label(self, pathname: str | None) -> str:
        """Label for a page path."""
        if not pathname:
            return "/"
        for prefix, fixed in self._draft_prefixes:
            if pathname.startswith(prefix):
                return fixed
        parts = pathname.split("/")
        if len(parts) >= 3:
            return "/" + parts[1]
        return pathname


_default_labeler: StepLabeler | None = None


def get_step_labeler() -> StepLabeler:
    """
    Get the process-wide labeler built from settings.

    The labeler is immutable, so sharing it across requests is safe.
    """
    global _default_labeler
    if _default_labeler is None:
        from journeys.utils.config import get_settings

        settings = get_settings().journeys
        _default_labeler = StepLabeler(
            draft_prefixes=settings.draft_prefixes,
            interaction_types=settings.interaction_types,
        )
    return _default_labeler
