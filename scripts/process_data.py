#!/usr/bin/env python3
"""
Data processing pipeline for raw vote files.
Loads, normalizes, and validates ranked ballots.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analysis.errors import BallotError  # noqa: E402
from data.ballot_loader import BallotLoader  # noqa: E402

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Process ranked vote data")
    parser.add_argument("csv_file", help="Path to vote CSV file (vote_1 .. vote_5)")
    parser.add_argument(
        "--db", help="Path to DuckDB database file (default: in-memory)"
    )
    parser.add_argument(
        "--compact-ranks",
        action="store_true",
        help="Close gaps left by skipped ranks instead of rejecting them",
    )
    parser.add_argument(
        "--max-rank",
        type=int,
        default=5,
        help="Longest allowed ballot (default: 5)",
    )

    args = parser.parse_args()

    csv_path = Path(args.csv_file)
    if not csv_path.exists():
        logger.error(f"CSV file not found: {csv_path}")
        sys.exit(1)

    try:
        with BallotLoader(args.db) as loader:
            logger.info("=== Step 1: Loading Vote Data ===")
            load_stats = loader.load_votes_file(str(csv_path))
            print(f"✓ Loaded {load_stats['total_rows']} ballots")
            print(f"✓ Found {load_stats['rank_columns']} rank columns")

            if load_stats["duplicate_ballots"] > 0:
                print(
                    f"⚠️  Warning: {load_stats['duplicate_ballots']} duplicate ballot IDs"
                )

            logger.info("=== Step 2: Normalizing Ballots ===")
            norm_stats = loader.normalize_ballots(compact_ranks=args.compact_ranks)
            print(f"✓ Created {norm_stats['total_vote_records']} vote records")
            print(f"✓ Processing {norm_stats['ballots_with_votes']} ballots with votes")
            print(
                f"✓ {norm_stats['candidates_receiving_votes']} candidates received votes"
            )

            logger.info("=== Step 3: Validating Ballot Contract ===")
            store = loader.get_ballot_store(max_rank=args.max_rank)
            print(
                f"✓ {len(store.groups)} distinct ballot patterns, "
                f"total weight {store.total_weight}"
            )

            completion = loader.get_ballot_completion_stats()
            print("\nBallot Completion Patterns:")
            for _, row in completion.iterrows():
                print(
                    f"  {row['ranks_used']} ranks: {row['ballot_count']:5d} ballots ({row['percentage']:5.1f}%)"
                )

            print("✓ Data processing completed successfully")

    except BallotError as e:
        logger.error(f"Ballot data violates the input contract: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error processing data: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
