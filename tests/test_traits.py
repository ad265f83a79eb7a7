# ==============================================================================
# Tests for the Trait Enricher
# ==============================================================================
"""
Tests for best-effort trait enrichment.
"""

import logging
from unittest.mock import MagicMock

from journeys.analytics.traits import TraitEnricher
from journeys.core.errors import TraitStoreError
from journeys.core.models import SessionSummary
from journeys.infrastructure.repositories.memory import InMemoryTraitStore

# ==============================================================================
# Helpers
# ==============================================================================


def _sessions() -> list[SessionSummary]:
    return [
        SessionSummary(session_id="s1", identified_user_id="alice"),
        SessionSummary(session_id="s2", user_id="anon"),
        SessionSummary(session_id="s3", identified_user_id="bob"),
        SessionSummary(session_id="s4", identified_user_id="alice"),
    ]


# ==============================================================================
# Enrichment
# ==============================================================================


class TestEnrich:
    """Tests for merging traits into sessions."""

    def test_traits_by_identified_user(self):
        store = InMemoryTraitStore({(1, "alice"): {"plan": "pro", "seats": 5}})
        enriched = TraitEnricher(store).enrich(1, _sessions())

        assert enriched[0].traits == {"plan": "pro", "seats": 5}
        assert enriched[3].traits == {"plan": "pro", "seats": 5}

    def test_anonymous_and_unknown_users(self):
        store = InMemoryTraitStore({(1, "alice"): {"plan": "pro"}})
        enriched = TraitEnricher(store).enrich(1, _sessions())

        assert enriched[1].traits is None
        assert enriched[2].traits is None

    def test_other_site_not_used(self):
        store = InMemoryTraitStore({(2, "alice"): {"plan": "pro"}})
        enriched = TraitEnricher(store).enrich(1, _sessions())
        assert enriched[0].traits is None

    def test_order_preserved(self):
        store = InMemoryTraitStore()
        enriched = TraitEnricher(store).enrich(1, _sessions())
        assert [s.session_id for s in enriched] == ["s1", "s2", "s3", "s4"]

    def test_one_batched_lookup(self):
        store = MagicMock()
        store.get_traits.return_value = {}
        TraitEnricher(store).enrich(1, _sessions())

        store.get_traits.assert_called_once()
        site_id, user_ids = store.get_traits.call_args.args
        assert site_id == 1
        assert set(user_ids) == {"alice", "bob"}

    def test_no_identified_users_skips_lookup(self):
        store = MagicMock()
        TraitEnricher(store).enrich(1, [SessionSummary(session_id="s1")])
        store.get_traits.assert_not_called()

    def test_disabled(self):
        sessions = _sessions()
        assert TraitEnricher(None).enrich(1, sessions) == sessions


class TestStoreFailure:
    """A failing trait store never fails the request."""

    def test_error_returns_unenriched(self, caplog):
        store = MagicMock()
        store.get_traits.side_effect = TraitStoreError("timeout")

        with caplog.at_level(logging.WARNING, logger="journeys.analytics.traits"):
            enriched = TraitEnricher(store).enrich(1, _sessions())

        assert [s.traits for s in enriched] == [None, None, None, None]
        assert "Trait enrichment skipped" in caplog.text

    def test_unexpected_error_returns_unenriched(self):
        store = MagicMock()
        store.get_traits.side_effect = ConnectionResetError("reset")
        enriched = TraitEnricher(store).enrich(1, _sessions())
        assert len(enriched) == 4
        assert all(s.traits is None for s in enriched)
