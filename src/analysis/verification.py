"""
Cross-checks our instant-runoff winner against the PyRankVote library.

PyRankVote counts individual ballots, so each weighted group is expanded
back into one Ballot per voter before the independent count is run.
"""

import logging
from typing import Dict, List

from pyrankvote import Ballot, Candidate, instant_runoff_voting

from .ballots import BallotStore
from .instant_runoff import InstantRunoffResult

logger = logging.getLogger(__name__)


class IRVerifier:
    """
    Verifies an InstantRunoffResult against PyRankVote's instant-runoff count.
    """

    def __init__(self, store: BallotStore):
        """
        Initialize verifier.

        Args:
            store: The Ballot Store the result was computed from
        """
        self.store = store
        self.candidates_map: Dict[str, Candidate] = {}
        self.ballots_data: List[Ballot] = []
        self.pyrankvote_result = None

    def _prepare_pyrankvote_data(self):
        """Convert weighted ballot groups to PyRankVote format."""
        self.candidates_map = {name: Candidate(name) for name in self.store.candidates}
        self.ballots_data = []
        for group in self.store.groups:
            ranked = [self.candidates_map[name] for name in group.preferences]
            for _ in range(group.weight):
                self.ballots_data.append(Ballot(ranked_candidates=list(ranked)))
        logger.info(
            f"Prepared {len(self.ballots_data)} ballots for "
            f"{len(self.candidates_map)} candidates"
        )

    def reference_winner(self) -> str:
        """Winner according to PyRankVote."""
        self._prepare_pyrankvote_data()
        if len(self.candidates_map) == 1:
            return next(iter(self.candidates_map))
        self.pyrankvote_result = instant_runoff_voting(
            candidates=list(self.candidates_map.values()),
            ballots=self.ballots_data,
        )
        return self.pyrankvote_result.get_winners()[0].name

    def verify(self, result: InstantRunoffResult) -> Dict:
        """
        Compare our winner with the reference winner.

        Args:
            result: Our instant-runoff result for the same store

        Returns:
            Verification report dictionary
        """
        reference = self.reference_winner()
        tie_rounds = [r.round_number for r in result.rounds if len(r.tied) > 1]
        report = {
            "our_winner": result.winner,
            "reference_winner": reference,
            "winners_match": result.winner == reference,
            "tie_break_rounds": tie_rounds,
            "verification_passed": result.winner == reference,
        }
        if not report["winners_match"]:
            if tie_rounds:
                logger.warning(
                    f"Winner differs from PyRankVote ({result.winner} vs {reference}); "
                    f"tie-breaks applied in rounds {tie_rounds}"
                )
            else:
                logger.error(
                    f"Winner differs from PyRankVote ({result.winner} vs {reference})"
                )
        return report

    def generate_verification_report(self, verification_results: Dict) -> str:
        """
        Generate a human-readable verification report.

        Args:
            verification_results: Results from verify()

        Returns:
            Formatted verification report string
        """
        report = []
        report.append("=" * 60)
        report.append("INSTANT-RUNOFF VERIFICATION REPORT")
        report.append("=" * 60)

        if verification_results["verification_passed"]:
            report.append("✅ VERIFICATION PASSED - Winner matches PyRankVote")
        else:
            report.append("❌ VERIFICATION FAILED - Winner differs from PyRankVote")

        report.append(f"Our winner: {verification_results['our_winner']}")
        report.append(f"PyRankVote winner: {verification_results['reference_winner']}")

        if verification_results["tie_break_rounds"]:
            rounds = ", ".join(str(r) for r in verification_results["tie_break_rounds"])
            report.append(f"Tie-breaks applied in rounds: {rounds}")

        return "\n".join(report)
