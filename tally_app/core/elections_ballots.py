"""Ballot submission.

One ballot per voter per election is enforced by the ``uniq_ballot_election_voter``
constraint: the ballot row is inserted first and a constraint violation means the
voter has already voted. Selection checks run after the insert inside the same
transaction, so a rejected ballot leaves no rows behind.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from core.elections_errors import (
    AlreadyVoted,
    BallotWindowClosed,
    IneligibleVoter,
    InvalidSelection,
    StorageFailure,
)
from core.elections_registry import ballots_are_open, get_election
from core.models import AuditLogEntry, Ballot, Candidate, Election, ParticipationRecord, Position, Vote
from core.voter_directory import get_voter_directory, is_eligible_for_election

logger = logging.getLogger(__name__)

Selections = Mapping[int, Sequence[int]]


@dataclass(frozen=True)
class BallotReceipt:
    ballot: Ballot
    vote_count: int

    @property
    def ballot_token(self) -> str:
        return str(self.ballot.ballot_token)


def cast_ballot(*, voter_id: str, election_id: int, selections: Selections) -> BallotReceipt:
    """Accept exactly one ballot from ``voter_id`` for the election.

    ``selections`` maps position ids to the candidate ids chosen for that
    position. Positions left out, or given an empty list, are abstentions.

    Raises NotFound, BallotWindowClosed, IneligibleVoter, AlreadyVoted or
    InvalidSelection, checked in that order. Database failures surface as
    StorageFailure; callers should check ``has_voted`` before resubmitting.
    """
    try:
        return _cast_ballot(voter_id=voter_id, election_id=election_id, selections=selections)
    except DatabaseError as exc:
        logger.exception("Ballot storage failed election_id=%s", election_id)
        raise StorageFailure() from exc


@transaction.atomic
def _cast_ballot(*, voter_id: str, election_id: int, selections: Selections) -> BallotReceipt:
    election = get_election(election_id)
    now = timezone.now()
    if not ballots_are_open(election, now=now):
        raise BallotWindowClosed("Ballots are not being accepted for this election right now.")

    participation = _eligible_participation(voter_id=voter_id, election=election)

    try:
        with transaction.atomic():
            ballot = Ballot.objects.create(
                election=election,
                voter_id=voter_id,
                voter_scope=participation.voter_scope,
            )
    except IntegrityError as exc:
        if Ballot.objects.filter(election=election, voter_id=voter_id).exists():
            raise AlreadyVoted("A ballot has already been recorded for you in this election.") from exc
        raise

    chosen = _validated_selections(election=election, selections=selections)
    votes = [
        Vote(ballot=ballot, position_id=position_id, candidate_id=candidate_id)
        for position_id, candidate_ids in chosen.items()
        for candidate_id in candidate_ids
    ]
    Vote.objects.bulk_create(votes)

    ParticipationRecord.objects.filter(pk=participation.pk).update(voted_at=ballot.submitted_at)

    AuditLogEntry.objects.create(
        election=election,
        event_type="ballot_submitted",
        payload={"ballot_token": str(ballot.ballot_token), "positions_voted": len(chosen)},
        is_public=False,
    )
    logger.info(
        "Ballot accepted election_id=%s positions_voted=%d votes=%d",
        election.id,
        len(chosen),
        len(votes),
        extra={"event": "tally.ballot.accepted", "election_id": election.id},
    )
    return BallotReceipt(ballot=ballot, vote_count=len(votes))


def _eligible_participation(*, voter_id: str, election: Election) -> ParticipationRecord:
    record = ParticipationRecord.objects.filter(election=election, voter_id=voter_id).first()
    if record is not None and record.status == ParticipationRecord.Status.confirmed:
        return record

    if settings.ELECTION_REQUIRE_PARTICIPATION_CONFIRMATION:
        raise IneligibleVoter("Confirm your participation before casting a ballot.")
    if record is not None:
        raise IneligibleVoter("You withdrew from this election.")

    profile = get_voter_directory().lookup(voter_id)
    if not is_eligible_for_election(profile, election):
        raise IneligibleVoter("You are not eligible to vote in this election.")

    record, _created = ParticipationRecord.objects.get_or_create(
        election=election,
        voter_id=voter_id,
        defaults={
            "voter_scope": profile.scope,
            "status": ParticipationRecord.Status.confirmed,
            "source": ParticipationRecord.Source.web,
            "confirmed_at": timezone.now(),
        },
    )
    return record


def _validated_selections(*, election: Election, selections: Selections) -> dict[int, list[int]]:
    positions = {position.id: position for position in Position.objects.filter(election=election)}
    candidate_positions = dict(
        Candidate.objects.filter(position__election=election).values_list("id", "position_id")
    )

    chosen: dict[int, list[int]] = {}
    seen_positions: set[int] = set()
    for raw_position_id, raw_candidate_ids in selections.items():
        position_id = _as_id(raw_position_id, what="position", position_id=None)
        if position_id in seen_positions:
            raise InvalidSelection(f"Position {position_id} appears more than once.", position_id=position_id)
        seen_positions.add(position_id)
        position = positions.get(position_id)
        if position is None:
            raise InvalidSelection(f"Position {position_id} is not part of this election.", position_id=position_id)

        if isinstance(raw_candidate_ids, (str, bytes)) or not isinstance(raw_candidate_ids, Sequence):
            raise InvalidSelection(
                f"Selections for {position.name} must be a list of candidate ids.",
                position_id=position_id,
            )
        candidate_ids = [_as_id(value, what="candidate", position_id=position_id) for value in raw_candidate_ids]

        if len(candidate_ids) > position.max_votes:
            raise InvalidSelection(
                f"{position.name} allows at most {position.max_votes} selection(s); got {len(candidate_ids)}.",
                position_id=position_id,
            )
        if len(set(candidate_ids)) != len(candidate_ids):
            raise InvalidSelection(f"{position.name} has the same candidate selected twice.", position_id=position_id)
        for candidate_id in candidate_ids:
            if candidate_positions.get(candidate_id) != position_id:
                raise InvalidSelection(
                    f"Candidate {candidate_id} is not running for {position.name}.",
                    position_id=position_id,
                )

        if candidate_ids:
            chosen[position_id] = candidate_ids
    return chosen


def _as_id(value: object, *, what: str, position_id: int | None) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        # isdigit() also accepts superscripts and other digits int() rejects.
        if text.isascii() and text.isdecimal():
            return int(text)
    raise InvalidSelection(f"Invalid {what} id: {value!r}.", position_id=position_id)


def has_voted(*, voter_id: str, election_id: int) -> bool:
    return Ballot.objects.filter(election_id=election_id, voter_id=voter_id).exists()


__all__ = [
    "BallotReceipt",
    "Selections",
    "cast_ballot",
    "has_voted",
]
