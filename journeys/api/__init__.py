# ==============================================================================
# API Boundary
# ==============================================================================
"""
Request parsing and transport-neutral handlers for the journey endpoints.
"""

from journeys.api.handlers import JourneyService, parse_site_id

__all__ = [
    "JourneyService",
    "parse_site_id",
]
