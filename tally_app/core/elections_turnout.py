from __future__ import annotations

from dataclasses import dataclass

from core.elections_registry import get_election
from core.elections_tally import percentage
from core.models import Ballot, Election, ParticipationRecord
from core.voter_directory import VoterDirectory, eligible_voter_count, get_voter_directory


@dataclass(frozen=True)
class TurnoutSnapshot:
    election_id: int
    scope: str | None
    eligible: int
    participants: int
    voted: int
    participation_rate: float
    turnout_rate: float
    # Share of confirmed participants who went on to vote.
    participant_turnout_rate: float


def _snapshot(*, election: Election, scope: str | None, directory: VoterDirectory) -> TurnoutSnapshot:
    eligible = eligible_voter_count(directory, election=election, scope=scope)
    participants = (
        ParticipationRecord.objects.confirmed()
        .filter(election=election)
        .in_scope(scope)
        .count()
    )
    voted = Ballot.objects.for_election(election_id=election.id).in_scope(scope).count()

    return TurnoutSnapshot(
        election_id=election.id,
        scope=scope,
        eligible=eligible,
        participants=participants,
        voted=voted,
        participation_rate=percentage(participants, eligible),
        turnout_rate=percentage(voted, eligible),
        participant_turnout_rate=percentage(voted, participants),
    )


def turnout(*, election_id: int, scope: str | None = None) -> TurnoutSnapshot:
    """Eligible, participating and voting counts with rates over the eligible count.

    Rates are 0 when their denominator is 0.
    """
    election = get_election(election_id)
    return _snapshot(election=election, scope=scope, directory=get_voter_directory())


def turnout_by_scope(*, election_id: int) -> list[TurnoutSnapshot]:
    election = get_election(election_id)
    directory = get_voter_directory()

    if election.scope == Election.Scope.department:
        scopes = {election.department}
    else:
        scopes = set(directory.scopes())
        scopes.update(
            ParticipationRecord.objects.filter(election=election)
            .exclude(voter_scope="")
            .values_list("voter_scope", flat=True)
        )
        scopes.update(
            Ballot.objects.for_election(election_id=election.id)
            .exclude(voter_scope="")
            .values_list("voter_scope", flat=True)
        )

    return [_snapshot(election=election, scope=scope, directory=directory) for scope in sorted(scopes)]


__all__ = [
    "TurnoutSnapshot",
    "turnout",
    "turnout_by_scope",
]
