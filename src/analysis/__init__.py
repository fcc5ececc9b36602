"""
Ballot aggregation engine for comparing election methods.

This module ranks every candidate under four methods:
- Instant-runoff: full elimination order, one candidate placed per round
- Copeland: pairwise wins minus pairwise losses
- Approval: weight of ballots listing the candidate
- Plurality: weight of ballots ranking the candidate first
"""

from .ballots import BallotGroup, BallotStore
from .errors import BallotError, EmptyCandidateUniverseError, MalformedBallotError
from .instant_runoff import InstantRunoffResolver, get_places_ir
from .pairwise import PairwiseMatrix, calculate_pairwise_battles
from .rankers import (
    METHODS,
    Placement,
    get_places_approval,
    get_places_copeland,
    get_places_plurality,
)
from .results import MethodComparison, combine_placements

__all__ = [
    "BallotGroup",
    "BallotStore",
    "BallotError",
    "EmptyCandidateUniverseError",
    "MalformedBallotError",
    "InstantRunoffResolver",
    "get_places_ir",
    "PairwiseMatrix",
    "calculate_pairwise_battles",
    "METHODS",
    "Placement",
    "get_places_approval",
    "get_places_copeland",
    "get_places_plurality",
    "MethodComparison",
    "combine_placements",
]
