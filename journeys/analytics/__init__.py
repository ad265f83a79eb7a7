# ==============================================================================
# Journey Analytics Components
# ==============================================================================
"""
Aggregations built on session paths.

- journeys.py - Most common truncated paths
- transitions.py - Sessions moving from one step to another
- sessions.py - Per-session summaries for a page of transitions
- traits.py - Best-effort user trait enrichment
- step_details.py - Property histograms and raw events for one step
"""

from journeys.analytics.journeys import JourneyAggregator, JourneyQuery
from journeys.analytics.sessions import SessionMaterializer
from journeys.analytics.step_details import StepDetailAggregator, StepDetailQuery
from journeys.analytics.traits import TraitEnricher
from journeys.analytics.transitions import TransitionFinder, TransitionQuery

__all__ = [
    "JourneyAggregator",
    "JourneyQuery",
    "SessionMaterializer",
    "StepDetailAggregator",
    "StepDetailQuery",
    "TraitEnricher",
    "TransitionFinder",
    "TransitionQuery",
]
