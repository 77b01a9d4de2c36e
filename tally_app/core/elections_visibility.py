"""Candidate identity gating for results.

Before an election completes, and unless a position's results were released
manually, candidates are shown as "Candidate A", "Candidate B", ... in ballot
sequence order. Counts and percentages are never hidden.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.elections_registry import get_election
from core.elections_tally import PositionTally, tally_election, tally_position
from core.models import Election, ResultRelease


@dataclass(frozen=True)
class PresentedCandidate:
    label: str
    vote_count: int
    percentage: float
    candidate_id: int | None = None
    sequence: int | None = None
    affiliation: str | None = None


@dataclass(frozen=True)
class PresentedTally:
    position_id: int
    position_name: str
    max_votes: int
    scope: str | None
    total_votes: int
    ballots_counted: int
    abstentions: int
    identity_revealed: bool
    candidates: tuple[PresentedCandidate, ...]

    def as_dict(self) -> dict[str, object]:
        return {
            "position_id": self.position_id,
            "position_name": self.position_name,
            "max_votes": self.max_votes,
            "scope": self.scope,
            "total_votes": self.total_votes,
            "ballots_counted": self.ballots_counted,
            "abstentions": self.abstentions,
            "identity_revealed": self.identity_revealed,
            "candidates": [
                {
                    "label": candidate.label,
                    "vote_count": candidate.vote_count,
                    "percentage": candidate.percentage,
                    "candidate_id": candidate.candidate_id,
                    "sequence": candidate.sequence,
                    "affiliation": candidate.affiliation,
                }
                for candidate in self.candidates
            ],
        }


def anonymous_label(index: int) -> str:
    """0 -> "Candidate A", 25 -> "Candidate Z", 26 -> "Candidate AA"."""
    letters = ""
    n = index + 1
    while n:
        n, remainder = divmod(n - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return f"Candidate {letters}"


def identities_revealed(election: Election, release_override: bool) -> bool:
    return election.status == Election.Status.completed or bool(release_override)


def present(tally: PositionTally, election: Election, release_override: bool) -> PresentedTally:
    revealed = identities_revealed(election, release_override)

    if revealed:
        candidates = tuple(
            PresentedCandidate(
                label=item.name,
                vote_count=item.vote_count,
                percentage=item.percentage,
                candidate_id=item.candidate_id,
                sequence=item.sequence,
                affiliation=item.affiliation,
            )
            for item in tally.candidates
        )
    else:
        by_sequence = sorted(tally.candidates, key=lambda item: (item.sequence, item.candidate_id))
        labels = {item.candidate_id: anonymous_label(index) for index, item in enumerate(by_sequence)}
        candidates = tuple(
            PresentedCandidate(
                label=labels[item.candidate_id],
                vote_count=item.vote_count,
                percentage=item.percentage,
            )
            for item in tally.candidates
        )

    return PresentedTally(
        position_id=tally.position_id,
        position_name=tally.position_name,
        max_votes=tally.max_votes,
        scope=tally.scope,
        total_votes=tally.total_votes,
        ballots_counted=tally.ballots_counted,
        abstentions=tally.abstentions,
        identity_revealed=revealed,
        candidates=candidates,
    )


def _release_overrides(election: Election) -> dict[int, bool]:
    return dict(ResultRelease.objects.filter(position__election=election).values_list("position_id", "released"))


def present_position_results(*, election_id: int, position_id: int, scope: str | None = None) -> PresentedTally:
    election = get_election(election_id)
    tally = tally_position(election_id=election.id, position_id=position_id, scope=scope)
    return present(tally, election, _release_overrides(election).get(tally.position_id, False))


def present_election_results(*, election_id: int, scope: str | None = None) -> list[PresentedTally]:
    election = get_election(election_id)
    overrides = _release_overrides(election)
    return [
        present(tally, election, overrides.get(tally.position_id, False))
        for tally in tally_election(election_id=election.id, scope=scope)
    ]


__all__ = [
    "PresentedCandidate",
    "PresentedTally",
    "anonymous_label",
    "identities_revealed",
    "present",
    "present_election_results",
    "present_position_results",
]
