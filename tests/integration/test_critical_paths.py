"""
Critical path integration tests.

These tests run the full pipeline: raw vote file into DuckDB, normalized
ballots into the aggregation engine, results back into DuckDB.
"""

import pytest

from analysis.rankers import IR, METHODS
from analysis.results import MethodComparison
from data.ballot_loader import BallotLoader
from data.database import VoteDatabase


@pytest.mark.integration
class TestCriticalPaths:
    """End-to-end tests over a small bird election."""

    @pytest.fixture
    def pipeline(self, sample_vote_csv, temp_db_file):
        with BallotLoader(temp_db_file) as loader:
            loader.load_votes_file(str(sample_vote_csv))
            loader.normalize_ballots()
            store = loader.get_ballot_store()
            comparison = MethodComparison(store)
            comparison.run()
            saved_counts = loader.save_results(comparison)
        return comparison, saved_counts

    @pytest.fixture
    def comparison(self, pipeline):
        return pipeline[0]

    def test_ir_tie_break_in_final_round(self, comparison):
        """Kakapo and Kea reach the last round tied at 3; Kakapo is eliminated."""
        result = comparison.ir_result
        assert result.elimination_order == ["Kereru", "Tui", "Kakapo", "Kea"]
        assert result.rounds[0].tied == ("Kereru", "Tui")
        assert result.rounds[2].tied == ("Kakapo", "Kea")
        assert result.placement.places["Kea"] == 1

    def test_every_method_places_every_candidate(self, comparison):
        table = comparison.result_table()
        assert list(table.columns) == ["candidate", *METHODS]
        assert len(table) == 4
        assert not table.isna().any().any()
        assert table.iloc[0]["candidate"] == "Kea"

    def test_saved_tables(self, pipeline, temp_db_file):
        saved_counts = pipeline[1]
        assert saved_counts == {
            "method_places": 16,
            "pairwise_battles": 12,
            "ir_rounds": 4 + 3 + 2 + 1,
        }

        with VoteDatabase(temp_db_file) as db:
            places = db.query(
                "SELECT candidate, place FROM method_places WHERE method = ?", [IR]
            )
            assert dict(zip(places["candidate"], places["place"])) == {
                "Kea": 1,
                "Kakapo": 2,
                "Tui": 3,
                "Kereru": 4,
            }

            battles = db.query(
                """
                SELECT a.n_wins, b.n_losses
                FROM pairwise_battles a
                JOIN pairwise_battles b
                  ON a.bird = b.opponent AND a.opponent = b.bird
            """
            )
            assert (battles["n_wins"] == battles["n_losses"]).all()

    @pytest.mark.invariant
    def test_total_weight_matches_ballot_count(self, comparison):
        assert comparison.store.total_weight == 7
        first_round = comparison.ir_result.rounds[0]
        assert sum(first_round.first_place_weight.values()) == 7
