"""
Instant-Runoff Resolver

Produces a full elimination order rather than a single winner. Every round
counts weighted first choices among the candidates still in the race,
places the weakest candidate in the lowest open place, strikes it from all
ballots and repeats. With N candidates there are exactly N rounds; the last
one places the sole survivor first.

Ties for the fewest first-place weight are broken by eliminating the tied
candidate whose identifier sorts first.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .ballots import BallotStore
from .errors import EmptyCandidateUniverseError
from .rankers import IR, Placement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IRRound:
    """One round of instant-runoff counting."""

    round_number: int
    first_place_weight: Dict[str, int]  # every candidate still in the race
    active_weight: int
    exhausted_weight: int
    placed: str
    place: int
    tied: Tuple[str, ...]  # candidates sharing the fewest first-place weight


@dataclass(frozen=True)
class InstantRunoffResult:
    placement: Placement
    rounds: Tuple[IRRound, ...]
    majority_round: Optional[int]

    @property
    def winner(self) -> str:
        return self.placement.winners[0]

    @property
    def elimination_order(self) -> List[str]:
        return [r.placed for r in self.rounds]


def break_tie(tied: List[str]) -> str:
    """Pick which of several tied candidates to eliminate."""
    return min(tied)


class InstantRunoffResolver:
    """
    Instant-runoff tabulation over a Ballot Store snapshot.
    """

    def __init__(self, store: BallotStore):
        """
        Initialize resolver.

        Args:
            store: Ballot Store snapshot; never modified
        """
        if not store.universe:
            raise EmptyCandidateUniverseError(
                "Cannot run instant-runoff on an empty field"
            )
        self.store = store
        self.rounds: List[IRRound] = []
        self.places: Dict[str, int] = {}
        self.majority_round: Optional[int] = None

    def run(self) -> InstantRunoffResult:
        """
        Run the full elimination procedure.

        Returns:
            InstantRunoffResult with places for every candidate and the
            round-by-round record
        """
        self.rounds = []
        self.places = {}
        self.majority_round = None

        total_weight = self.store.total_weight
        active = self.store
        next_place = len(active.universe)

        logger.info(
            f"Starting instant-runoff: {next_place} candidates, "
            f"total weight {total_weight}"
        )

        while active.universe:
            counts = active.first_choices()
            active_weight = active.total_weight
            round_number = len(self.rounds) + 1
            logger.debug(f"Round {round_number} first-place weight: {counts}")

            if (
                self.majority_round is None
                and active_weight > 0
                and max(counts.values()) * 2 > active_weight
            ):
                self.majority_round = round_number

            fewest = min(counts.values())
            tied = sorted(c for c, weight in counts.items() if weight == fewest)
            placed = break_tie(tied)
            if len(tied) > 1:
                logger.warning(
                    f"Round {round_number}: {len(tied)} candidates tied at "
                    f"{fewest}; eliminating {placed} by identifier order"
                )

            self.places[placed] = next_place
            self.rounds.append(
                IRRound(
                    round_number=round_number,
                    first_place_weight=counts,
                    active_weight=active_weight,
                    exhausted_weight=total_weight - active_weight,
                    placed=placed,
                    place=next_place,
                    tied=tuple(tied),
                )
            )
            logger.info(
                f"Round {round_number}: {placed} placed {next_place} "
                f"with {fewest} first-place weight"
            )

            active = active.without(placed)
            next_place -= 1

        result = InstantRunoffResult(
            placement=Placement(IR, dict(self.places)),
            rounds=tuple(self.rounds),
            majority_round=self.majority_round,
        )
        logger.info(
            f"Instant-runoff complete: winner {result.winner}, "
            f"majority reached in round {self.majority_round}"
        )
        return result

    def get_round_summary(self) -> pd.DataFrame:
        """
        Get summary of all rounds as a DataFrame.

        Returns:
            DataFrame with one row per (round, candidate still in the race)
        """
        if not self.rounds:
            return pd.DataFrame()

        summary_data = []
        for round_obj in self.rounds:
            for candidate, weight in sorted(round_obj.first_place_weight.items()):
                summary_data.append(
                    {
                        "round_number": round_obj.round_number,
                        "candidate": candidate,
                        "first_place_weight": weight,
                        "eliminated": candidate == round_obj.placed,
                        "exhausted_weight": round_obj.exhausted_weight,
                    }
                )

        return pd.DataFrame(summary_data)


def get_places_ir(store: BallotStore) -> Placement:
    """Full instant-runoff placement for every candidate in the store."""
    return InstantRunoffResolver(store).run().placement
