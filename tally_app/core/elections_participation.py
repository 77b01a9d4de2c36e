from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.elections_errors import IneligibleVoter, InvalidTransition, NotFound
from core.elections_registry import get_election
from core.models import AuditLogEntry, Ballot, Election, ParticipationRecord
from core.voter_directory import VoterProfile, get_voter_directory, is_eligible_for_election

logger = logging.getLogger(__name__)

_CONFIRMABLE_STATUSES = frozenset({Election.Status.upcoming, Election.Status.active})


def _eligible_profile(*, voter_id: str, election: Election) -> VoterProfile:
    profile = get_voter_directory().lookup(voter_id)
    if profile is None or not profile.is_eligible:
        raise IneligibleVoter("You are not on the list of eligible voters.")
    if not is_eligible_for_election(profile, election):
        raise IneligibleVoter("This election is limited to voters of another department.")
    return profile


def _audit_participation(*, record: ParticipationRecord, event_type: str) -> None:
    AuditLogEntry.objects.create(
        election_id=record.election_id,
        event_type=event_type,
        payload={"voter_id": record.voter_id, "source": record.source},
        is_public=False,
    )


def confirm_participation(
    *,
    voter_id: str,
    election_id: int,
    source: str = ParticipationRecord.Source.web,
) -> ParticipationRecord:
    """Record that the voter intends to vote in the election.

    Repeat calls return the existing record unchanged. A withdrawn record is
    confirmed again with a fresh ``confirmed_at``.
    """
    election = get_election(election_id)
    if election.status not in _CONFIRMABLE_STATUSES:
        raise IneligibleVoter("Participation can only be confirmed for upcoming or active elections.")

    existing = ParticipationRecord.objects.filter(election=election, voter_id=voter_id).first()
    if existing is not None and existing.status == ParticipationRecord.Status.confirmed:
        return existing

    profile = _eligible_profile(voter_id=voter_id, election=election)
    return _store_confirmation(election=election, profile=profile, source=source)


@transaction.atomic
def _store_confirmation(*, election: Election, profile: VoterProfile, source: str) -> ParticipationRecord:
    now = timezone.now()
    try:
        with transaction.atomic():
            record = ParticipationRecord.objects.create(
                election=election,
                voter_id=profile.voter_id,
                voter_scope=profile.scope,
                status=ParticipationRecord.Status.confirmed,
                source=source,
                confirmed_at=now,
            )
    except IntegrityError:
        # Either a concurrent first confirmation won or the record was withdrawn.
        record = ParticipationRecord.objects.select_for_update().get(election=election, voter_id=profile.voter_id)
        if record.status == ParticipationRecord.Status.confirmed:
            return record

        record.status = ParticipationRecord.Status.confirmed
        record.voter_scope = profile.scope
        record.source = source
        record.confirmed_at = now
        record.save(update_fields=["status", "voter_scope", "source", "confirmed_at"])
        _audit_participation(record=record, event_type="participation_reconfirmed")
        logger.info("Participation reconfirmed election_id=%s", election.id)
        return record

    _audit_participation(record=record, event_type="participation_confirmed")
    logger.info("Participation confirmed election_id=%s source=%s", election.id, source)
    return record


def has_participated(*, voter_id: str, election_id: int) -> bool:
    return (
        ParticipationRecord.objects.confirmed()
        .filter(election_id=election_id, voter_id=voter_id)
        .exists()
    )


@transaction.atomic
def withdraw_participation(*, voter_id: str, election_id: int) -> ParticipationRecord:
    record = (
        ParticipationRecord.objects.select_for_update()
        .filter(election_id=election_id, voter_id=voter_id)
        .first()
    )
    if record is None:
        raise NotFound("No participation record exists for this election.")
    if record.has_voted or Ballot.objects.filter(election_id=election_id, voter_id=voter_id).exists():
        raise InvalidTransition("Participation cannot be withdrawn after voting.")
    if record.status == ParticipationRecord.Status.withdrawn:
        return record

    record.status = ParticipationRecord.Status.withdrawn
    record.save(update_fields=["status"])
    _audit_participation(record=record, event_type="participation_withdrawn")
    return record


def participation_status(*, voter_id: str, election_id: int) -> dict[str, object]:
    get_election(election_id)
    record = ParticipationRecord.objects.filter(election_id=election_id, voter_id=voter_id).first()
    voted = Ballot.objects.filter(election_id=election_id, voter_id=voter_id).exists()
    if record is None:
        return {
            "status": None,
            "has_confirmed": False,
            "has_voted": voted,
            "confirmed_at": None,
            "voted_at": None,
        }

    return {
        "status": record.status,
        "has_confirmed": record.status == ParticipationRecord.Status.confirmed,
        "has_voted": voted,
        "confirmed_at": record.confirmed_at.isoformat(),
        "voted_at": record.voted_at.isoformat() if record.voted_at else None,
    }


def _record_dict(record: ParticipationRecord) -> dict[str, object]:
    return {
        "voter_id": record.voter_id,
        "voter_scope": record.voter_scope,
        "status": record.status,
        "source": record.source,
        "confirmed_at": record.confirmed_at.isoformat(),
        "voted_at": record.voted_at.isoformat() if record.voted_at else None,
        "has_voted": record.has_voted,
    }


def voter_history(*, voter_id: str) -> list[dict[str, object]]:
    """Every election the voter confirmed or withdrew from, newest confirmation first."""
    records = (
        ParticipationRecord.objects.filter(voter_id=voter_id)
        .select_related("election")
        .order_by("-confirmed_at", "-id")
    )
    return [
        {
            **_record_dict(record),
            "election": {
                "id": record.election.id,
                "title": record.election.title,
                "year": record.election.year,
                "scope": record.election.scope,
                "status": record.election.status,
                "scheduled_date": record.election.scheduled_date.isoformat(),
            },
        }
        for record in records
    ]


def election_participants(
    *,
    election_id: int,
    status: str | None = None,
    has_voted: bool | None = None,
    search: str | None = None,
) -> list[dict[str, object]]:
    """Participation records of one election for election officers.

    ``status`` must be one of the participation statuses; anything else raises
    ValueError.
    """
    election = get_election(election_id)
    records = ParticipationRecord.objects.filter(election=election)
    if status:
        if status not in ParticipationRecord.Status.values:
            raise ValueError(f"Unknown participation status: {status!r}")
        records = records.filter(status=status)
    if has_voted is not None:
        records = records.filter(voted_at__isnull=not has_voted)
    if search:
        records = records.filter(voter_id__icontains=search.strip())
    return [_record_dict(record) for record in records.order_by("-confirmed_at", "-id")]


__all__ = [
    "confirm_participation",
    "election_participants",
    "has_participated",
    "participation_status",
    "voter_history",
    "withdraw_participation",
]
