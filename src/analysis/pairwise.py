"""
Pairwise Battle Calculator

Counts, for every ordered pair of distinct candidates, the ballot weight
preferring one over the other. A candidate ranked on a ballot is preferred
over every candidate ranked below it and over every candidate the ballot
leaves out entirely.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import pandas as pd

from .ballots import BallotStore
from .errors import EmptyCandidateUniverseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairwiseMatrix:
    """Win counts for every ordered pair of distinct candidates."""

    candidates: Tuple[str, ...]
    wins: Dict[str, Dict[str, int]]  # bird -> {opponent: weight preferring bird}

    def n_wins(self, bird: str, opponent: str) -> int:
        return self.wins[bird][opponent]

    def n_losses(self, bird: str, opponent: str) -> int:
        return self.wins[opponent][bird]

    def beats(self, bird: str, opponent: str) -> bool:
        """True if strictly more weight prefers bird over opponent."""
        return self.n_wins(bird, opponent) > self.n_losses(bird, opponent)

    def to_frame(self) -> pd.DataFrame:
        """
        Long table of pairwise records.

        Returns:
            DataFrame with bird, opponent, n_wins, n_losses
        """
        records = [
            {
                "bird": bird,
                "opponent": opponent,
                "n_wins": self.n_wins(bird, opponent),
                "n_losses": self.n_losses(bird, opponent),
            }
            for bird in self.candidates
            for opponent in self.candidates
            if bird != opponent
        ]
        return pd.DataFrame(
            records, columns=["bird", "opponent", "n_wins", "n_losses"]
        )

    def to_matrix(self) -> pd.DataFrame:
        """Square win matrix (rows beat columns by this weight), diagonal zero."""
        return pd.DataFrame(
            [
                [0 if b == o else self.wins[b][o] for o in self.candidates]
                for b in self.candidates
            ],
            index=pd.Index(self.candidates, name="bird"),
            columns=pd.Index(self.candidates, name="opponent"),
        )


def calculate_pairwise_battles(store: BallotStore) -> PairwiseMatrix:
    """
    Accumulate pairwise preferences over all ballot groups.

    Args:
        store: Ballot Store snapshot

    Returns:
        PairwiseMatrix with a zero-filled entry for every ordered pair

    Raises:
        EmptyCandidateUniverseError: If the store has no candidates
    """
    candidates = store.candidates
    if not candidates:
        raise EmptyCandidateUniverseError("Cannot compute pairwise battles")

    logger.info(f"Calculating pairwise battles for {len(candidates)} candidates")

    wins = {b: {o: 0 for o in candidates if o != b} for b in candidates}

    for group in store.groups:
        listed = group.preferences
        absent = [c for c in candidates if c not in listed]
        for position, preferred in enumerate(listed):
            for dispreferred in listed[position + 1 :]:
                wins[preferred][dispreferred] += group.weight
            for dispreferred in absent:
                wins[preferred][dispreferred] += group.weight

    return PairwiseMatrix(candidates, wins)


def condorcet_winner(matrix: PairwiseMatrix) -> Optional[str]:
    """Candidate that strictly beats every other candidate head-to-head, if any."""
    for bird in matrix.candidates:
        if all(
            matrix.beats(bird, opponent)
            for opponent in matrix.candidates
            if opponent != bird
        ):
            return bird
    return None
