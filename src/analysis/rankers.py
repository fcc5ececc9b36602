"""
Static rankers: Copeland, Approval and Plurality.

Each is a single aggregation pass over the Ballot Store (or the pairwise
battles derived from it) followed by standard competition ranking, where
tied candidates share a place and the next distinct score skips ahead by
the number of tied candidates.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

import pandas as pd

from .ballots import BallotStore
from .errors import EmptyCandidateUniverseError
from .pairwise import PairwiseMatrix, calculate_pairwise_battles

logger = logging.getLogger(__name__)

IR = "IR"
COPELAND = "Copeland"
APPROVAL = "Approval"
PLURALITY = "Plurality"
METHODS = (IR, COPELAND, APPROVAL, PLURALITY)


@dataclass(frozen=True)
class Placement:
    """
    Candidate -> place (1 = winner) for one method.

    places and scores are copied into read-only mappings on construction.
    """

    method: str
    places: Mapping[str, int]
    scores: Optional[Mapping[str, int]] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "places", MappingProxyType(dict(self.places)))
        if self.scores is not None:
            object.__setattr__(self, "scores", MappingProxyType(dict(self.scores)))

    def place_of(self, candidate: str) -> Optional[int]:
        return self.places.get(candidate)

    @property
    def winners(self) -> List[str]:
        """All candidates holding place 1, sorted."""
        return sorted(c for c, place in self.places.items() if place == 1)

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            {
                "candidate": list(self.places),
                "method": self.method,
                "place": list(self.places.values()),
            },
            columns=["candidate", "method", "place"],
        )
        return df.sort_values(["place", "candidate"]).reset_index(drop=True)


def competition_places(scores: Mapping[str, int]) -> Dict[str, int]:
    """
    Standard competition ranking, higher score is better.

    Args:
        scores: Score per candidate

    Returns:
        Place per candidate, e.g. scores 5, 5, 3 give places 1, 1, 3
    """
    ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    places: Dict[str, int] = {}
    previous_score = None
    place = 0
    for position, (candidate, score) in enumerate(ordered, 1):
        if score != previous_score:
            place = position
            previous_score = score
        places[candidate] = place
    return places


def _require_candidates(store: BallotStore, method: str):
    if not store.universe:
        raise EmptyCandidateUniverseError(f"Cannot rank an empty field by {method}")


def copeland_scores(matrix: PairwiseMatrix) -> Dict[str, int]:
    """Opponents beaten minus opponents lost to, for every candidate."""
    scores = {}
    for bird in matrix.candidates:
        score = 0
        for opponent in matrix.candidates:
            if opponent == bird:
                continue
            if matrix.beats(bird, opponent):
                score += 1
            elif matrix.beats(opponent, bird):
                score -= 1
        scores[bird] = score
    return scores


def approval_scores(store: BallotStore) -> Dict[str, int]:
    """Weight of ballots listing each candidate at any rank."""
    return {candidate: store.weight_listing(candidate) for candidate in store.universe}


def plurality_scores(store: BallotStore) -> Dict[str, int]:
    """Weight of ballots ranking each candidate first."""
    return store.first_choices()


def get_places_copeland(
    store: BallotStore, matrix: Optional[PairwiseMatrix] = None
) -> Placement:
    """
    Rank candidates by Copeland score.

    Args:
        store: Ballot Store snapshot
        matrix: Precomputed pairwise battles for this store, if available

    Returns:
        Copeland Placement
    """
    _require_candidates(store, COPELAND)
    if matrix is None:
        matrix = calculate_pairwise_battles(store)
    scores = copeland_scores(matrix)
    logger.info(f"Copeland scores: {scores}")
    return Placement(COPELAND, competition_places(scores), scores)


def get_places_approval(store: BallotStore) -> Placement:
    _require_candidates(store, APPROVAL)
    scores = approval_scores(store)
    return Placement(APPROVAL, competition_places(scores), scores)


def get_places_plurality(store: BallotStore) -> Placement:
    _require_candidates(store, PLURALITY)
    scores = plurality_scores(store)
    return Placement(PLURALITY, competition_places(scores), scores)
