#!/usr/bin/env python3
"""
Rank candidates by instant-runoff, Copeland, approval and plurality.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analysis.errors import BallotError  # noqa: E402
from analysis.results import MethodComparison  # noqa: E402
from analysis.verification import IRVerifier  # noqa: E402
from data.ballot_loader import BallotLoader  # noqa: E402

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Compare election methods")
    parser.add_argument("csv_file", help="Path to vote CSV file (vote_1 .. vote_5)")
    parser.add_argument(
        "--db", help="DuckDB file to persist results into (default: in-memory)"
    )
    parser.add_argument("--export", help="Export the combined table to CSV file")
    parser.add_argument(
        "--max-rank", type=int, default=5, help="Longest allowed ballot (default: 5)"
    )
    parser.add_argument(
        "--candidates",
        nargs="*",
        default=None,
        help="Extra candidates that appear on no ballot",
    )
    parser.add_argument(
        "--compact-ranks",
        action="store_true",
        help="Close gaps left by skipped ranks instead of rejecting them",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Cross-check the instant-runoff winner with PyRankVote",
    )

    args = parser.parse_args()

    csv_path = Path(args.csv_file)
    if not csv_path.exists():
        logger.error(f"CSV file not found: {csv_path}")
        sys.exit(1)

    try:
        with BallotLoader(args.db) as loader:
            loader.load_votes_file(str(csv_path))
            loader.normalize_ballots(compact_ranks=args.compact_ranks)
            store = loader.get_ballot_store(
                candidates=args.candidates, max_rank=args.max_rank
            )

            comparison = MethodComparison(store)
            comparison.run()
            table = comparison.result_table()

            print("\n=== Instant-Runoff Rounds ===")
            for round_obj in comparison.ir_result.rounds:
                print(
                    f"Round {round_obj.round_number:2d}: {round_obj.placed:25s} "
                    f"placed {round_obj.place:2d} "
                    f"({round_obj.first_place_weight[round_obj.placed]} first-place, "
                    f"{round_obj.exhausted_weight} exhausted)"
                )

            print("\n=== Places by Method ===")
            print(table.to_string(index=False))

            summary = comparison.summary()
            print("\n=== Winners ===")
            for method, winners in summary["winners"].items():
                print(f"  {method:10s}: {', '.join(winners)}")
            print(f"  Condorcet winner: {summary['condorcet_winner'] or 'none'}")
            print(f"  Majority reached in IR round: {summary['ir_majority_round']}")

            if args.verify:
                verifier = IRVerifier(store)
                report = verifier.verify(comparison.ir_result)
                print()
                print(verifier.generate_verification_report(report))

            if args.db:
                counts = loader.save_results(comparison)
                for name, count in counts.items():
                    print(f"✓ Saved {count} rows to {name}")

            if args.export:
                export_path = Path(args.export).with_suffix(".csv")
                table.to_csv(export_path, index=False)
                print(f"\n✓ Combined table exported to: {export_path}")

                pairwise_path = export_path.with_stem(export_path.stem + "_pairwise")
                comparison.pairwise.to_frame().to_csv(pairwise_path, index=False)
                print(f"✓ Pairwise battles exported to: {pairwise_path}")

    except BallotError as e:
        logger.error(f"Cannot rank candidates: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error comparing methods: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
