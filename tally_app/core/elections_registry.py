from __future__ import annotations

import datetime
import logging
from zoneinfo import ZoneInfo

from django.conf import settings
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from core.elections_errors import ElectionLocked, InvalidTransition, NotFound
from core.models import AuditLogEntry, Ballot, Candidate, Election, Position, ResultRelease

logger = logging.getLogger(__name__)

# Exhaustive edge table; terminal states map to an empty set.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    Election.Status.upcoming: frozenset({Election.Status.active, Election.Status.cancelled}),
    Election.Status.active: frozenset({Election.Status.completed, Election.Status.cancelled}),
    Election.Status.completed: frozenset(),
    Election.Status.cancelled: frozenset(),
}


def _audit(*, election: Election, event_type: str, payload: dict[str, object], actor: str | None) -> None:
    if actor:
        payload["actor"] = actor
    AuditLogEntry.objects.create(
        election=election,
        event_type=event_type,
        payload=payload,
        is_public=True,
    )


def get_election(election_id: int) -> Election:
    try:
        return Election.objects.get(pk=election_id)
    except Election.DoesNotExist as exc:
        raise NotFound("Election not found.") from exc


def election_time_zone() -> ZoneInfo:
    return ZoneInfo(settings.ELECTION_TIME_ZONE)


def ballot_window(election: Election) -> tuple[datetime.datetime, datetime.datetime] | None:
    """Return the aware (opens_at, closes_at) pair, or None when no window is scheduled."""
    if election.ballot_open_time is None or election.ballot_close_time is None:
        return None

    tz = election_time_zone()
    opens_at = datetime.datetime.combine(election.scheduled_date, election.ballot_open_time, tzinfo=tz)
    closes_at = datetime.datetime.combine(election.scheduled_date, election.ballot_close_time, tzinfo=tz)
    return opens_at, closes_at


def ballots_are_open(election: Election, *, now: datetime.datetime | None = None) -> bool:
    if election.status != Election.Status.active:
        return False

    window = ballot_window(election)
    if window is None:
        return False

    opens_at, closes_at = window
    current = now or timezone.now()
    return opens_at <= current <= closes_at


@transaction.atomic
def create_election(
    *,
    title: str,
    year: int,
    scheduled_date: datetime.date,
    scope: str = Election.Scope.institution,
    department: str = "",
    ballot_open_time: datetime.time | None = None,
    ballot_close_time: datetime.time | None = None,
    actor: str | None = None,
) -> Election:
    election = Election(
        title=title.strip(),
        year=year,
        scheduled_date=scheduled_date,
        scope=scope,
        department=department.strip(),
        ballot_open_time=ballot_open_time,
        ballot_close_time=ballot_close_time,
    )
    election.full_clean()
    election.save()

    _audit(
        election=election,
        event_type="election_created",
        payload={"title": election.title, "scope": election.scope, "department": election.department},
        actor=actor,
    )
    logger.info("Election created election_id=%s scope=%s", election.id, election.scope)
    return election


@transaction.atomic
def transition_election_status(
    *,
    election_id: int,
    target_status: str,
    actor: str | None = None,
) -> Election:
    try:
        target = Election.Status(target_status)
    except ValueError as exc:
        raise InvalidTransition(f"Unknown election status: {target_status!r}.") from exc

    try:
        locked = Election.objects.select_for_update().get(pk=election_id)
    except Election.DoesNotExist as exc:
        raise NotFound("Election not found.") from exc

    previous = locked.status
    if target not in ALLOWED_TRANSITIONS[previous]:
        raise InvalidTransition(f"Cannot move an election from {previous} to {target.value}.")

    locked.status = target
    locked.save(update_fields=["status", "updated_at"])

    _audit(
        election=locked,
        event_type="election_status_changed",
        payload={"from": previous, "to": target.value},
        actor=actor,
    )
    logger.info(
        "Election status changed election_id=%s from=%s to=%s",
        locked.id,
        previous,
        target.value,
        extra={"event": "tally.election.status_changed", "election_id": locked.id},
    )
    return locked


@transaction.atomic
def set_visibility_release(
    *,
    election_id: int,
    position_id: int,
    released: bool = True,
    actor: str | None = None,
) -> ResultRelease:
    position = Position.objects.select_related("election").filter(pk=position_id, election_id=election_id).first()
    if position is None:
        raise NotFound("Position not found in this election.")

    release, _created = ResultRelease.objects.select_for_update().get_or_create(position=position)
    release.released = bool(released)
    release.updated_by = actor or ""
    release.save()

    _audit(
        election=position.election,
        event_type="results_released" if release.released else "results_hidden",
        payload={"position_id": position.id, "position": position.name},
        actor=actor,
    )
    return release


def _lock_editable_election(election_id: int) -> Election:
    try:
        election = Election.objects.select_for_update().get(pk=election_id)
    except Election.DoesNotExist as exc:
        raise NotFound("Election not found.") from exc

    if election.is_terminal:
        raise ElectionLocked("Positions and candidates cannot change once an election has ended.")
    if Ballot.objects.for_election(election_id=election.id).exists():
        raise ElectionLocked("Positions and candidates cannot change once ballots have been cast.")
    return election


@transaction.atomic
def add_position(
    *,
    election_id: int,
    name: str,
    max_votes: int = 1,
    order: int | None = None,
) -> Position:
    election = _lock_editable_election(election_id)
    if order is None:
        current_max = election.positions.aggregate(value=Max("order"))["value"]
        order = 0 if current_max is None else current_max + 1

    position = Position(election=election, name=name.strip(), max_votes=max_votes, order=order)
    position.full_clean()
    position.save()
    return position


@transaction.atomic
def add_candidate(
    *,
    position_id: int,
    name: str,
    affiliation: str = "",
    sequence: int | None = None,
) -> Candidate:
    position = Position.objects.filter(pk=position_id).only("id", "election_id").first()
    if position is None:
        raise NotFound("Position not found.")

    _lock_editable_election(position.election_id)
    if sequence is None:
        current_max = position.candidates.aggregate(value=Max("sequence"))["value"]
        sequence = 1 if current_max is None else current_max + 1

    candidate = Candidate(position=position, name=name.strip(), affiliation=affiliation.strip(), sequence=sequence)
    candidate.full_clean()
    candidate.save()
    return candidate


def election_state(election: Election, *, now: datetime.datetime | None = None) -> dict[str, object]:
    """Read-only projection of server-held election state for clients to poll."""
    window = ballot_window(election)
    released_by_position = dict(
        ResultRelease.objects.filter(position__election=election).values_list("position_id", "released")
    )
    completed = election.status == Election.Status.completed

    positions: list[dict[str, object]] = []
    for position in election.positions.all():
        positions.append(
            {
                "id": position.id,
                "name": position.name,
                "order": position.order,
                "max_votes": position.max_votes,
                "results_released": completed or bool(released_by_position.get(position.id, False)),
                "candidates": [
                    {
                        "id": candidate.id,
                        "name": candidate.name,
                        "affiliation": candidate.affiliation,
                    }
                    for candidate in position.candidates.order_by("name", "id")
                ],
            }
        )

    return {
        "id": election.id,
        "title": election.title,
        "year": election.year,
        "scope": election.scope,
        "department": election.department,
        "status": election.status,
        "scheduled_date": election.scheduled_date.isoformat(),
        "ballot_opens_at": window[0].isoformat() if window else None,
        "ballot_closes_at": window[1].isoformat() if window else None,
        "ballots_open": ballots_are_open(election, now=now),
        "positions": positions,
    }


__all__ = [
    "ALLOWED_TRANSITIONS",
    "add_candidate",
    "add_position",
    "ballot_window",
    "ballots_are_open",
    "create_election",
    "election_state",
    "election_time_zone",
    "get_election",
    "set_visibility_release",
    "transition_election_status",
]
