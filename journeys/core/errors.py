# ==============================================================================
# Journey Analytics Errors
# ==============================================================================
"""
Exception hierarchy shared by the analytics core, the stores and the API layer.

The API handlers map each family to a response status:
- InvalidRequestError -> 400 (client mistake, never logged as a server fault)
- EventStoreError     -> 500 (generic message to the caller, full detail logged)
- ScanCancelled       -> 499 (caller went away, scan abandoned)

TraitStoreError never reaches the handlers; the trait enricher recovers from it.
"""


class JourneyError(Exception):
    """Base class for all journey analytics errors."""


class InvalidRequestError(JourneyError):
    """A request parameter is missing, out of range, or unparsable."""

    status_code = 400


class PatternError(InvalidRequestError):
    """A step filter wildcard pattern could not be compiled."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid step pattern '{pattern}': {reason}")


class EventStoreError(JourneyError):
    """The analytic event store could not be reached or a scan failed."""

    status_code = 500

    def __init__(self, message: str, context: dict | None = None):
        self.context = context or {}
        super().__init__(message)


class TraitStoreError(JourneyError):
    """A trait lookup against the profile store failed."""


class ScanCancelled(JourneyError):
    """The caller stopped waiting and the scan was abandoned."""

    status_code = 499
