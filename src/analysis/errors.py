"""
Typed failure signals raised by the ballot aggregation engine.
"""


class BallotError(ValueError):
    """Base class for all ballot aggregation errors."""


class MalformedBallotError(BallotError):
    """
    Input violates the ballot contract.

    Raised for non-dense ranks, a candidate repeated on one ballot, or a
    non-positive or inconsistent weight for a ballot_id.
    """

    def __init__(self, message: str, ballot_id=None):
        self.ballot_id = ballot_id
        if ballot_id is not None:
            message = f"Ballot {ballot_id!r}: {message}"
        super().__init__(message)


class EmptyCandidateUniverseError(BallotError):
    """No candidates are present, so there is nothing to rank."""
