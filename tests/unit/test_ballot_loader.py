import pytest

from analysis.errors import MalformedBallotError
from data.ballot_loader import BallotLoader


class TestBallotLoader:
    """Test raw vote loading and normalization."""

    def test_loader_initialization(self):
        loader = BallotLoader()
        assert loader.db is not None
        assert loader._loaded is False
        loader.close()

    def test_normalize_before_load_error(self):
        with BallotLoader() as loader:
            with pytest.raises(RuntimeError, match="Must load vote data first"):
                loader.normalize_ballots()

    def test_load_stats(self, sample_vote_csv):
        with BallotLoader() as loader:
            stats = loader.load_votes_file(str(sample_vote_csv))
            assert stats["total_rows"] == 7
            assert stats["rank_columns"] == 5
            assert stats["duplicate_ballots"] == 0

    def test_normalize_stats(self, sample_vote_csv):
        with BallotLoader() as loader:
            loader.load_votes_file(str(sample_vote_csv))
            stats = loader.normalize_ballots()
            assert stats["total_vote_records"] == 18
            assert stats["ballots_with_votes"] == 7
            assert stats["candidates_receiving_votes"] == 4
            assert stats["min_rank"] == 1
            assert stats["max_rank"] == 4

    def test_ballot_store_collapses_patterns(self, sample_vote_csv):
        with BallotLoader() as loader:
            loader.load_votes_file(str(sample_vote_csv))
            loader.normalize_ballots()
            store = loader.get_ballot_store()

        assert store.total_weight == 7
        assert len(store.groups) == 4
        assert store.candidates == ("Kakapo", "Kea", "Kereru", "Tui")
        assert store.first_choices() == {
            "Kakapo": 3,
            "Kea": 2,
            "Kereru": 1,
            "Tui": 1,
        }

    def test_extra_candidates(self, sample_vote_csv):
        with BallotLoader() as loader:
            loader.load_votes_file(str(sample_vote_csv))
            loader.normalize_ballots()
            store = loader.get_ballot_store(candidates=["Hoiho"])
        assert "Hoiho" in store.universe

    def test_completion_stats(self, sample_vote_csv):
        with BallotLoader() as loader:
            loader.load_votes_file(str(sample_vote_csv))
            loader.normalize_ballots()
            completion = loader.get_ballot_completion_stats()

        counts = dict(zip(completion["ranks_used"], completion["ballot_count"]))
        assert counts == {1: 1, 2: 2, 3: 3, 4: 1}

    def test_skipped_rank_rejected_unless_compacted(self, tmp_path):
        csv_path = tmp_path / "gaps.csv"
        csv_path.write_text("vote_1,vote_2,vote_3\nKea,,Tui\nTui,Kea,\n")

        with BallotLoader() as loader:
            loader.load_votes_file(str(csv_path))
            loader.normalize_ballots()
            with pytest.raises(MalformedBallotError, match="not contiguous"):
                loader.get_ballot_store()

        with BallotLoader() as loader:
            loader.load_votes_file(str(csv_path))
            loader.normalize_ballots(compact_ranks=True)
            store = loader.get_ballot_store()
        assert store.total_weight == 2
        assert store.first_choices() == {"Kea": 1, "Tui": 1}

    def test_duplicate_candidate_on_ballot_rejected(self, tmp_path):
        csv_path = tmp_path / "dupes.csv"
        csv_path.write_text("vote_1,vote_2\nKea,Kea\n")

        with BallotLoader() as loader:
            loader.load_votes_file(str(csv_path))
            loader.normalize_ballots()
            with pytest.raises(MalformedBallotError, match="more than once"):
                loader.get_ballot_store()

    def test_missing_vote_columns(self, tmp_path):
        csv_path = tmp_path / "novotes.csv"
        csv_path.write_text("ballot_id,country\n1,NZ\n")

        with BallotLoader() as loader:
            loader.load_votes_file(str(csv_path))
            with pytest.raises(ValueError, match="No vote_N columns"):
                loader.normalize_ballots()
