# ==============================================================================
# Journey API Handlers
# ==============================================================================
"""
Transport-neutral handlers for the three journey endpoints.

Each handler takes the site id and the raw query-string mapping and returns
`(status, body)`. Any web framework (or the CLI) can mount them as-is:

    service = JourneyService(store, trait_store)
    status, body = service.get_journeys("42", request.args)

Status mapping:
- 200: success
- 400: InvalidRequestError (bad or missing parameter, bad step pattern)
- 499: ScanCancelled (the caller stopped waiting)
- 500: EventStoreError (generic message, full detail in the log)
"""

import logging
from collections.abc import Callable, Mapping

from journeys.analytics.journeys import JourneyAggregator, JourneyQuery
from journeys.analytics.sessions import SessionMaterializer
from journeys.analytics.step_details import StepDetailAggregator, StepDetailQuery
from journeys.analytics.traits import TraitEnricher
from journeys.analytics.transitions import TransitionFinder, TransitionQuery
from journeys.api.params import (
    JourneysParams,
    StepEventDetailsParams,
    TransitionSessionsParams,
)
from journeys.base.repositories import EventStore, TraitStore
from journeys.core.errors import EventStoreError, InvalidRequestError, ScanCancelled
from journeys.core.models import Pagination
from journeys.core.step_labels import StepLabeler, get_step_labeler
from journeys.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

Response = tuple[int, dict]


def parse_site_id(raw) -> int:
    """
    Parse the site path parameter.

    Raises:
        InvalidRequestError: If the value is not a positive integer
    """
    try:
        site_id = int(str(raw).strip())
    except (TypeError, ValueError) as e:
        raise InvalidRequestError(f"Invalid site id '{raw}'") from e
    if site_id <= 0:
        raise InvalidRequestError(f"Invalid site id '{raw}'")
    return site_id


def _error(status: int, message: str) -> Response:
    return status, {"error": message}


class JourneyService:
    """
    Wires the analytics components to the stores for one process.

    Holds no per-request state: every call builds its own query objects and
    accumulators, so one instance may serve concurrent requests.
    """

    def __init__(
        self,
        store: EventStore,
        trait_store: TraitStore | None = None,
        labeler: StepLabeler | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.labeler = labeler or get_step_labeler()

        self.aggregator = JourneyAggregator(store, self.labeler)
        self.finder = TransitionFinder(store, self.labeler)
        self.materializer = SessionMaterializer(store)
        self.enricher = TraitEnricher(trait_store)
        self.step_details = StepDetailAggregator(store, self.labeler)

    def _run(self, failure_message: str, site_id, action: Callable[[int], dict]) -> Response:
        """Run one request and map its exceptions to a status."""
        try:
            return 200, action(parse_site_id(site_id))
        except InvalidRequestError as e:
            logger.info("Rejected request for site %s: %s", site_id, e)
            return _error(e.status_code, str(e))
        except ScanCancelled as e:
            logger.info("Request for site %s cancelled: %s", site_id, e)
            return _error(e.status_code, "Request cancelled")
        except EventStoreError as e:
            logger.exception("%s for site %s (context: %s)", failure_message, site_id, e.context)
            return _error(e.status_code, failure_message)

    # ------------------------------------------------------------------
    # GET /journeys/:site
    # ------------------------------------------------------------------
    def get_journeys(
        self,
        site_id,
        params: Mapping[str, str],
        should_stop: Callable[[], bool] | None = None,
    ) -> Response:
        """Most common session paths, truncated to `steps` labels."""

        def action(site: int) -> dict:
            parsed = JourneysParams.parse(params)
            query = JourneyQuery(
                scan=parsed.path_scan(site, self.labeler),
                steps=parsed.steps,
                limit=parsed.limit,
                step_filters=parsed.step_filters,
            )
            journeys = self.aggregator.get_journeys(query, should_stop)
            return {"journeys": [j.model_dump(mode="json") for j in journeys]}

        return self._run("Failed to get journeys", site_id, action)

    # ------------------------------------------------------------------
    # GET /journeys/:site/transition-sessions
    # ------------------------------------------------------------------
    def get_journey_transition_sessions(
        self,
        site_id,
        params: Mapping[str, str],
        should_stop: Callable[[], bool] | None = None,
    ) -> Response:
        """
        One page of sessions containing source -> target, with traits.

        The page and the total come from two separate scans over the same
        predicate; see journeys.analytics.transitions.
        """

        def action(site: int) -> dict:
            parsed = TransitionSessionsParams.parse(params)
            scan = parsed.path_scan(site, self.labeler)
            query = TransitionQuery(
                scan=scan,
                source=parsed.source,
                target=parsed.target,
                source_step=parsed.source_step,
                target_step=parsed.target_step,
            )
            matches = self.finder.find(query, parsed.page, parsed.limit, should_stop)
            total = self.finder.count(query, should_stop)

            sessions = self.materializer.materialize(site, scan.time_range, matches)
            sessions = self.enricher.enrich(site, sessions)
            return {
                "data": [s.model_dump(mode="json") for s in sessions],
                "pagination": Pagination.build(total, parsed.page, parsed.limit).model_dump(),
            }

        return self._run("Failed to get journey transition sessions", site_id, action)

    # ------------------------------------------------------------------
    # GET /journeys/:site/step-event-details
    # ------------------------------------------------------------------
    def get_journey_step_event_details(
        self,
        site_id,
        params: Mapping[str, str],
        should_stop: Callable[[], bool] | None = None,
    ) -> Response:
        """Property histogram and recent events for one step label."""

        def action(site: int) -> dict:
            parsed = StepEventDetailsParams.parse(params)
            query = StepDetailQuery(
                scan=parsed.scan(site, self.labeler),
                step_label=parsed.step_label,
                step_index=parsed.step_index,
                max_rows=self.settings.journeys.max_histogram_rows,
                max_events=self.settings.journeys.max_step_events,
            )
            return self.step_details.get_details(query, should_stop).model_dump(mode="json")

        return self._run("Failed to get journey step event details", site_id, action)
