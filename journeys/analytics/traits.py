# ==============================================================================
# Trait Enricher
# ==============================================================================
"""
Attaches user profile traits to materialized sessions.

Traits are keyed by the session's identified user id. Enrichment is
best-effort: a missing identity leaves `traits` empty, and a failing or
timed-out trait store is logged and the sessions go back unenriched. The
request never fails because of traits.
"""

import logging
from collections.abc import Sequence

from journeys.base.repositories import TraitStore
from journeys.core.models import SessionSummary

logger = logging.getLogger(__name__)


class TraitEnricher:
    """Merges traits from the profile store into session summaries."""

    def __init__(self, trait_store: TraitStore | None):
        """
        Args:
            trait_store: Trait store, or None when enrichment is disabled
        """
        self.trait_store = trait_store

    def enrich(self, site_id: int, sessions: Sequence[SessionSummary]) -> list[SessionSummary]:
        """
        Look up traits for every identified session in one batch.

        Args:
            site_id: Site the sessions belong to
            sessions: Materialized sessions

        Returns:
            Sessions in the same order, with `traits` set where found
        """
        sessions = list(sessions)
        user_ids = {s.identified_user_id for s in sessions if s.identified_user_id}
        if self.trait_store is None or not user_ids:
            return sessions

        try:
            traits = self.trait_store.get_traits(site_id, user_ids)
        except Exception as e:
            logger.warning(
                "Trait enrichment skipped for site %s (%d users): %s",
                site_id,
                len(user_ids),
                e,
            )
            return sessions

        return [
            s.model_copy(update={"traits": traits.get(s.identified_user_id)})
            if s.identified_user_id
            else s
            for s in sessions
        ]
