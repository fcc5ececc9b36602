"""
Ballot Store

Immutable, normalized representation of every ballot in an election. Ballots
with the same preference pattern are collapsed into one weighted group, and
all downstream counts are weighted sums over these groups.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from numbers import Integral
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
)

import pandas as pd

from .errors import MalformedBallotError

logger = logging.getLogger(__name__)

# Longest ranked list a ballot may carry.
DEFAULT_MAX_RANK = 5

BALLOT_COLUMNS = ["ballot_id", "rank", "candidate", "weight"]


@dataclass(frozen=True)
class BallotGroup:
    """A distinct ballot pattern and the number of voters who cast it."""

    preferences: Tuple[str, ...]
    weight: int

    @property
    def first_choice(self) -> Optional[str]:
        return self.preferences[0] if self.preferences else None

    def rank_of(self, candidate: str) -> Optional[int]:
        """1-based rank of candidate on this ballot, or None if unlisted."""
        try:
            return self.preferences.index(candidate) + 1
        except ValueError:
            return None

    def without(self, candidate: str) -> "BallotGroup":
        """Drop a candidate and close the gap it leaves in the ranking."""
        if candidate not in self.preferences:
            return self
        return BallotGroup(
            tuple(c for c in self.preferences if c != candidate), self.weight
        )


def _is_whole_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Integral):
        return True
    return isinstance(value, float) and value.is_integer()


def _validate_candidate(candidate: Any, ballot_id: Any = None) -> str:
    if not isinstance(candidate, str) or not candidate.strip():
        raise MalformedBallotError(
            f"candidate identifier must be a non-empty string, got {candidate!r}",
            ballot_id,
        )
    return candidate


def _validate_weight(weight: Any, ballot_id: Any = None) -> int:
    if not _is_whole_number(weight) or weight <= 0:
        raise MalformedBallotError(
            f"weight must be a positive integer, got {weight!r}", ballot_id
        )
    return int(weight)


def _validate_preferences(
    preferences: Sequence[Any], ballot_id: Any, max_rank: Optional[int]
) -> Tuple[str, ...]:
    """Check length, identifiers and uniqueness of a ranked list."""
    if max_rank is not None and len(preferences) > max_rank:
        raise MalformedBallotError(
            f"{len(preferences)} ranks exceeds the maximum of {max_rank}", ballot_id
        )
    checked = tuple(_validate_candidate(c, ballot_id) for c in preferences)
    if len(set(checked)) != len(checked):
        raise MalformedBallotError(
            f"candidate listed more than once in {list(checked)}", ballot_id
        )
    return checked


def _validate_ballot(
    ballot_id: Any,
    rows: List[Tuple[Any, Any, Any]],
    max_rank: Optional[int],
) -> Tuple[Tuple[str, ...], int]:
    """
    Check one ballot against the input contract.

    Args:
        ballot_id: Identifier used in error messages
        rows: (rank, candidate, weight) rows belonging to the ballot
        max_rank: Highest rank allowed, or None for no limit

    Returns:
        Tuple of (preferences in rank order, weight)
    """
    weights = {_validate_weight(weight, ballot_id) for _, _, weight in rows}
    if len(weights) > 1:
        raise MalformedBallotError(
            f"inconsistent weights {sorted(weights)}", ballot_id
        )

    ranks = []
    for rank, _, _ in rows:
        if not _is_whole_number(rank):
            raise MalformedBallotError(
                f"rank must be an integer, got {rank!r}", ballot_id
            )
        ranks.append(int(rank))
    if len(set(ranks)) != len(ranks):
        raise MalformedBallotError(f"duplicate ranks {sorted(ranks)}", ballot_id)
    if sorted(ranks) != list(range(1, len(ranks) + 1)):
        raise MalformedBallotError(
            f"ranks {sorted(ranks)} are not contiguous from 1", ballot_id
        )

    ordered = sorted(zip(ranks, (row[1] for row in rows)))
    preferences = _validate_preferences([c for _, c in ordered], ballot_id, max_rank)
    return preferences, weights.pop()


def _collapse(groups: Iterable[BallotGroup]) -> Tuple[BallotGroup, ...]:
    """Merge groups sharing a preference pattern, dropping empty ballots."""
    weights: Dict[Tuple[str, ...], int] = defaultdict(int)
    for group in groups:
        if group.preferences:
            weights[group.preferences] += group.weight
    return tuple(
        BallotGroup(preferences, weight)
        for preferences, weight in sorted(weights.items())
    )


@dataclass(frozen=True)
class BallotStore:
    """
    Snapshot of all weighted ballot groups plus the candidate universe.

    Build one with from_records, from_dataframe or from_groups rather than
    calling the constructor directly; those validate and collapse the input.
    """

    groups: Tuple[BallotGroup, ...]
    universe: FrozenSet[str]

    @classmethod
    def from_groups(
        cls,
        groups: Iterable[BallotGroup],
        candidates: Optional[Iterable[str]] = None,
        max_rank: Optional[int] = DEFAULT_MAX_RANK,
    ) -> "BallotStore":
        """
        Build a store from already-grouped ballots.

        Args:
            groups: BallotGroups, or (preferences, weight) pairs
            candidates: Extra candidates that belong to the universe
            max_rank: Longest allowed ballot, or None for no limit

        Raises:
            MalformedBallotError: If a group violates the input contract; the
                error names the group by its 1-based position
        """
        checked = []
        for position, group in enumerate(groups, 1):
            if not isinstance(group, BallotGroup):
                group = BallotGroup(*group)
            checked.append(
                BallotGroup(
                    _validate_preferences(group.preferences, position, max_rank),
                    _validate_weight(group.weight, position),
                )
            )

        collapsed = _collapse(checked)
        universe = {c for group in collapsed for c in group.preferences}
        if candidates is not None:
            universe.update(_validate_candidate(c) for c in candidates)
        return cls(collapsed, frozenset(universe))

    @classmethod
    def from_records(
        cls,
        records: Iterable[Sequence[Any]],
        candidates: Optional[Iterable[str]] = None,
        max_rank: Optional[int] = DEFAULT_MAX_RANK,
    ) -> "BallotStore":
        """
        Build a store from (ballot_id, rank, candidate, weight) tuples.

        Args:
            records: Rows in any order; rows sharing a ballot_id form one ballot
            candidates: Extra candidates that belong to the universe even if
                no ballot lists them
            max_rank: Longest allowed ballot, or None for no limit

        Returns:
            Validated BallotStore with identical ballots collapsed

        Raises:
            MalformedBallotError: If any ballot violates the input contract
        """
        by_ballot: Dict[Any, List[Tuple[Any, Any, Any]]] = defaultdict(list)
        for record in records:
            if len(record) != 4:
                raise MalformedBallotError(
                    f"expected (ballot_id, rank, candidate, weight), got {record!r}"
                )
            ballot_id, rank, candidate, weight = record
            by_ballot[ballot_id].append((rank, candidate, weight))

        groups = []
        for ballot_id, rows in by_ballot.items():
            preferences, weight = _validate_ballot(ballot_id, rows, max_rank)
            groups.append(BallotGroup(preferences, weight))

        store = cls.from_groups(groups, candidates, max_rank)
        logger.info(
            f"Built ballot store: {len(by_ballot)} ballots, "
            f"{len(store.groups)} distinct patterns, "
            f"{len(store.universe)} candidates, total weight {store.total_weight}"
        )
        return store

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        candidates: Optional[Iterable[str]] = None,
        max_rank: Optional[int] = DEFAULT_MAX_RANK,
    ) -> "BallotStore":
        """Build a store from a long table with ballot_id, rank, candidate[, weight]."""
        missing = {"ballot_id", "rank", "candidate"} - set(df.columns)
        if missing:
            raise MalformedBallotError(
                f"ballot table is missing columns {sorted(missing)}"
            )
        if "weight" not in df.columns:
            df = df.assign(weight=1)
        return cls.from_records(
            df[BALLOT_COLUMNS].itertuples(index=False, name=None),
            candidates=candidates,
            max_rank=max_rank,
        )

    @property
    def candidates(self) -> Tuple[str, ...]:
        """Candidate universe in sorted order."""
        return tuple(sorted(self.universe))

    @property
    def total_weight(self) -> int:
        return sum(group.weight for group in self.groups)

    def first_choices(self) -> Dict[str, int]:
        """Weighted first-place count for every candidate, zero-filled."""
        counts = {candidate: 0 for candidate in self.universe}
        for group in self.groups:
            counts[group.first_choice] += group.weight
        return counts

    def weight_listing(self, candidate: str) -> int:
        """Total weight of ballots that rank candidate anywhere."""
        return sum(g.weight for g in self.groups if candidate in g.preferences)

    def without(self, candidate: str) -> "BallotStore":
        """
        Remove a candidate from the universe and from every ballot.

        Ballots that listed the candidate have their remaining ranks closed
        up; ballots left with no candidates are dropped. Ballots that never
        listed the candidate are untouched.
        """
        groups = (group.without(candidate) for group in self.groups)
        return BallotStore(_collapse(groups), self.universe - {candidate})

    def to_frame(self) -> pd.DataFrame:
        """Long table with one row per (ballot group, rank)."""
        rows = [
            {
                "ballot_id": ballot_id,
                "rank": rank,
                "candidate": candidate,
                "weight": group.weight,
            }
            for ballot_id, group in enumerate(self.groups, 1)
            for rank, candidate in enumerate(group.preferences, 1)
        ]
        return pd.DataFrame(rows, columns=BALLOT_COLUMNS)

