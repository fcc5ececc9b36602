"""
Result Combiner

Joins the per-method placements into one table keyed by candidate and runs
all four methods over a single Ballot Store snapshot.
"""

import logging
from typing import Dict, Iterable, Optional, Union

import pandas as pd

from .ballots import BallotStore
from .instant_runoff import InstantRunoffResolver, InstantRunoffResult
from .pairwise import PairwiseMatrix, calculate_pairwise_battles, condorcet_winner
from .rankers import (
    IR,
    METHODS,
    Placement,
    get_places_approval,
    get_places_copeland,
    get_places_plurality,
)

logger = logging.getLogger(__name__)


def combine_placements(
    placements: Union[Dict[str, Placement], Iterable[Placement]]
) -> pd.DataFrame:
    """
    Outer-join placements on candidate identity.

    Args:
        placements: Placements keyed by method, or an iterable of Placements

    Returns:
        DataFrame with a candidate column and one nullable integer column per
        method, sorted by IR place (missing last) then candidate. A method
        that omits a candidate leaves <NA> in that cell.
    """
    if isinstance(placements, dict):
        placements = list(placements.values())
    else:
        placements = list(placements)

    by_method = {placement.method: placement.places for placement in placements}
    candidates = sorted(set().union(*by_method.values())) if by_method else []
    methods = [m for m in METHODS if m in by_method]
    methods += sorted(m for m in by_method if m not in METHODS)

    table = pd.DataFrame({"candidate": pd.Series(candidates, dtype="object")})
    for method in methods:
        places = by_method[method]
        table[method] = pd.array(
            [places.get(candidate) for candidate in candidates], dtype="Int64"
        )

    sort_columns = [IR, "candidate"] if IR in table.columns else ["candidate"]
    return table.sort_values(sort_columns, na_position="last").reset_index(drop=True)


def to_long(table: pd.DataFrame) -> pd.DataFrame:
    """Reshape a combined table into (candidate, method, place) rows, dropping gaps."""
    long = table.melt(id_vars="candidate", var_name="method", value_name="place")
    return long.dropna(subset=["place"]).reset_index(drop=True)


class MethodComparison:
    """
    Runs instant-runoff, Copeland, approval and plurality on one ballot set.
    """

    def __init__(self, store: BallotStore):
        """
        Initialize comparison.

        Args:
            store: Ballot Store snapshot shared read-only by every method
        """
        self.store = store
        self.pairwise: Optional[PairwiseMatrix] = None
        self.ir_result: Optional[InstantRunoffResult] = None
        self.ir_resolver: Optional[InstantRunoffResolver] = None
        self.placements: Dict[str, Placement] = {}

    def run(self) -> Dict[str, Placement]:
        """Compute all four placements."""
        logger.info(
            f"Comparing methods over {len(self.store.universe)} candidates "
            f"and {len(self.store.groups)} ballot patterns"
        )
        self.pairwise = calculate_pairwise_battles(self.store)
        self.ir_resolver = InstantRunoffResolver(self.store)
        self.ir_result = self.ir_resolver.run()

        self.placements = {
            IR: self.ir_result.placement,
            **{
                p.method: p
                for p in (
                    get_places_copeland(self.store, self.pairwise),
                    get_places_approval(self.store),
                    get_places_plurality(self.store),
                )
            },
        }
        return self.placements

    def _ensure_run(self):
        if not self.placements:
            self.run()

    def result_table(self) -> pd.DataFrame:
        self._ensure_run()
        return combine_placements(self.placements)

    def condorcet_winner(self) -> Optional[str]:
        self._ensure_run()
        return condorcet_winner(self.pairwise)

    def agreement(self) -> Dict[str, bool]:
        """For each method, whether its winners are exactly the IR winner."""
        self._ensure_run()
        ir_winners = self.placements[IR].winners
        return {
            method: placement.winners == ir_winners
            for method, placement in self.placements.items()
        }

    def summary(self) -> Dict:
        """Headline numbers for reporting."""
        self._ensure_run()
        return {
            "candidates": len(self.store.universe),
            "ballot_patterns": len(self.store.groups),
            "total_weight": self.store.total_weight,
            "winners": {m: p.winners for m, p in self.placements.items()},
            "condorcet_winner": self.condorcet_winner(),
            "ir_majority_round": self.ir_result.majority_round,
            "ir_rounds": len(self.ir_result.rounds),
        }
