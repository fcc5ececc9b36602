import logging
import re
from typing import Dict, Iterable, List, Optional

import pandas as pd

try:
    from ..analysis.ballots import DEFAULT_MAX_RANK, BallotStore
    from ..analysis.results import MethodComparison, to_long
    from .database import VoteDatabase
except ImportError:
    from analysis.ballots import DEFAULT_MAX_RANK, BallotStore
    from analysis.results import MethodComparison, to_long
    from data.database import VoteDatabase

logger = logging.getLogger(__name__)

VOTE_COLUMN = re.compile(r"^vote_(\d+)$")


class BallotLoader:
    """
    Loads raw vote files into DuckDB and produces the normalized ballot table
    the aggregation engine consumes.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize ballot loader.

        Args:
            db_path: Path to DuckDB database file (default: in-memory)
        """
        self.db = VoteDatabase(db_path, read_only=False)
        self._loaded = False
        self._id_column = "row_id"

    def load_votes_file(self, csv_path: str) -> Dict[str, int]:
        """
        Load a wide-format vote CSV (vote_1 .. vote_N, optional ballot_id).

        Args:
            csv_path: Path to the vote CSV file

        Returns:
            Dictionary with loading statistics
        """
        logger.info(f"Loading vote data from: {csv_path}")

        result = self.db.execute_script("01_load_votes", [str(csv_path)])
        stats = result.to_dict("records")[0] if not result.empty else {}

        columns = self._raw_columns()
        self._id_column = "ballot_id" if "ballot_id" in columns else "row_id"
        if self._id_column == "ballot_id":
            duplicates = self.db.query(
                """
                SELECT COUNT(*) - COUNT(DISTINCT ballot_id) AS duplicate_ballots
                FROM raw_votes
            """
            )
            stats["duplicate_ballots"] = int(duplicates.iloc[0]["duplicate_ballots"])
            if stats["duplicate_ballots"] > 0:
                logger.warning(
                    f"Found {stats['duplicate_ballots']} duplicate ballot IDs"
                )
        else:
            stats["duplicate_ballots"] = 0

        stats["total_rows"] = int(stats.get("total_rows", 0))
        stats["rank_columns"] = len(self._vote_columns(columns))
        logger.info(
            f"Loaded {stats['total_rows']} rows with {stats['rank_columns']} rank columns"
        )

        self._loaded = True
        return stats

    def _raw_columns(self) -> List[str]:
        return self.db.query("DESCRIBE raw_votes")["column_name"].tolist()

    @staticmethod
    def _vote_columns(columns: Iterable[str]) -> Dict[str, int]:
        """Map vote_N column names to their rank N."""
        ranks = {}
        for column in columns:
            match = VOTE_COLUMN.match(column)
            if match:
                ranks[column] = int(match.group(1))
        return ranks

    def normalize_ballots(self, compact_ranks: bool = False) -> Dict[str, int]:
        """
        Transform wide-format votes into the long ballots table.

        Args:
            compact_ranks: Close gaps left by skipped ranks instead of passing
                them through for the ballot contract to reject

        Returns:
            Dictionary with normalization statistics
        """
        if not self._loaded:
            raise RuntimeError("Must load vote data first")

        logger.info("Normalizing vote data (wide to long format)")

        vote_columns = self._vote_columns(self._raw_columns())
        if not vote_columns:
            raise ValueError("No vote_N columns found in vote data")

        select_statements = []
        for column, rank in sorted(vote_columns.items(), key=lambda item: item[1]):
            select_statements.append(
                f"""
                SELECT
                    CAST({self._id_column} AS VARCHAR) AS ballot_id,
                    {rank} AS raw_rank,
                    trim("{column}") AS candidate
                FROM raw_votes
                WHERE "{column}" IS NOT NULL AND trim("{column}") <> ''
            """
            )
        union_sql = " UNION ALL ".join(select_statements)

        rank_expr = (
            "CAST(ROW_NUMBER() OVER (PARTITION BY ballot_id ORDER BY raw_rank) AS INTEGER)"
            if compact_ranks
            else "raw_rank"
        )

        self.db.conn.execute(
            f"""
            CREATE OR REPLACE TABLE ballots_long AS
            WITH unpivoted AS (
                {union_sql}
            )
            SELECT
                ballot_id,
                {rank_expr} AS "rank",
                candidate,
                1 AS weight
            FROM unpivoted
        """
        )

        result = self.db.query(
            """
            SELECT
                COUNT(*) AS total_vote_records,
                COUNT(DISTINCT ballot_id) AS ballots_with_votes,
                COUNT(DISTINCT candidate) AS candidates_receiving_votes,
                MIN("rank") AS min_rank,
                MAX("rank") AS max_rank
            FROM ballots_long
        """
        )
        stats = {
            key: (int(value) if pd.notna(value) else 0)
            for key, value in result.to_dict("records")[0].items()
        }

        total_rows = int(self.db.query("SELECT COUNT(*) AS n FROM raw_votes").iloc[0]["n"])
        empty = total_rows - stats["ballots_with_votes"]
        if empty > 0:
            logger.warning(f"Dropped {empty} ballots with no ranked candidates")

        logger.info(f"Created {stats['total_vote_records']} vote records")
        return stats

    def get_ballot_table(self) -> pd.DataFrame:
        """Normalized (ballot_id, rank, candidate, weight) table."""
        return self.db.query(
            """
            SELECT ballot_id, "rank", candidate, weight
            FROM ballots_long
            ORDER BY ballot_id, "rank"
        """
        )

    def get_ballot_store(
        self,
        candidates: Optional[Iterable[str]] = None,
        max_rank: Optional[int] = DEFAULT_MAX_RANK,
    ) -> BallotStore:
        """
        Build the validated Ballot Store from the normalized table.

        Args:
            candidates: Extra candidates to include in the universe
            max_rank: Longest allowed ballot, or None for no limit

        Returns:
            BallotStore snapshot

        Raises:
            MalformedBallotError: If the normalized data violates the contract
        """
        return BallotStore.from_dataframe(
            self.get_ballot_table(), candidates=candidates, max_rank=max_rank
        )

    def get_ballot_completion_stats(self) -> pd.DataFrame:
        """Get statistics about how many ranks voters used."""
        return self.db.query(
            """
            WITH per_ballot AS (
                SELECT ballot_id, COUNT(*) AS ranks_used
                FROM ballots_long
                GROUP BY ballot_id
            )
            SELECT
                ranks_used,
                COUNT(*) AS ballot_count,
                ROUND(100.0 * COUNT(*) / SUM(COUNT(*)) OVER (), 2) AS percentage
            FROM per_ballot
            GROUP BY ranks_used
            ORDER BY ranks_used
        """
        )

    def save_results(self, comparison: MethodComparison) -> Dict[str, int]:
        """
        Persist method places, pairwise battles and instant-runoff rounds.

        Args:
            comparison: A MethodComparison that has been run

        Returns:
            Row counts written per table
        """
        tables = {
            "method_places": to_long(comparison.result_table()),
            "pairwise_battles": comparison.pairwise.to_frame(),
            "ir_rounds": comparison.ir_resolver.get_round_summary(),
        }
        for name, df in tables.items():
            self.db.write_table(name, df)
        return {name: len(df) for name, df in tables.items()}

    def close(self):
        """Close database connection."""
        self.db.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
