"""Vote tallies, recomputed from persisted Vote rows on every call."""

from __future__ import annotations

from dataclasses import dataclass

from django.db.models import Count

from core.elections_errors import NotFound
from core.elections_registry import get_election
from core.models import Ballot, Position, Vote


@dataclass(frozen=True)
class CandidateTally:
    candidate_id: int
    sequence: int
    name: str
    affiliation: str
    vote_count: int
    percentage: float


@dataclass(frozen=True)
class PositionTally:
    election_id: int
    position_id: int
    position_name: str
    max_votes: int
    scope: str | None
    total_votes: int
    ballots_counted: int
    abstentions: int
    candidates: tuple[CandidateTally, ...]

    @property
    def leading(self) -> CandidateTally | None:
        if self.total_votes == 0 or not self.candidates:
            return None
        return self.candidates[0]


def percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part * 100 / whole, 2)


def _tally(position: Position, *, scope: str | None) -> PositionTally:
    votes = Vote.objects.filter(position=position)
    ballots = Ballot.objects.for_election(election_id=position.election_id).in_scope(scope)
    if scope is not None:
        votes = votes.filter(ballot__voter_scope=scope)

    counts = dict(
        votes.order_by().values("candidate_id").annotate(n=Count("id")).values_list("candidate_id", "n")
    )
    total = sum(counts.values())
    ballots_counted = ballots.count()
    ballots_with_votes = votes.order_by().values("ballot_id").distinct().count()

    candidates = [
        CandidateTally(
            candidate_id=candidate.id,
            sequence=candidate.sequence,
            name=candidate.name,
            affiliation=candidate.affiliation,
            vote_count=counts.get(candidate.id, 0),
            percentage=percentage(counts.get(candidate.id, 0), total),
        )
        for candidate in position.candidates.all()
    ]
    candidates.sort(key=lambda item: (-item.vote_count, item.sequence, item.candidate_id))

    return PositionTally(
        election_id=position.election_id,
        position_id=position.id,
        position_name=position.name,
        max_votes=position.max_votes,
        scope=scope,
        total_votes=total,
        ballots_counted=ballots_counted,
        abstentions=max(ballots_counted - ballots_with_votes, 0),
        candidates=tuple(candidates),
    )


def tally_position(*, election_id: int, position_id: int, scope: str | None = None) -> PositionTally:
    """Per-candidate counts for one position, highest count first, ties by sequence.

    With ``scope`` only ballots cast by voters of that scope are counted and the
    totals and percentages are computed over that subset.
    """
    position = Position.objects.filter(pk=position_id, election_id=election_id).first()
    if position is None:
        raise NotFound("Position not found in this election.")
    return _tally(position, scope=scope)


def tally_election(*, election_id: int, scope: str | None = None) -> list[PositionTally]:
    election = get_election(election_id)
    return [_tally(position, scope=scope) for position in election.positions.prefetch_related("candidates")]


__all__ = [
    "CandidateTally",
    "PositionTally",
    "percentage",
    "tally_election",
    "tally_position",
]
