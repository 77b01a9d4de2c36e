from __future__ import annotations

import uuid
from typing import override

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


class ElectionQuerySet(models.QuerySet["Election"]):
    def upcoming(self) -> ElectionQuerySet:
        return self.filter(status="upcoming")

    def active(self) -> ElectionQuerySet:
        return self.filter(status="active")

    def for_year(self, year: int) -> ElectionQuerySet:
        return self.filter(year=year)


class Election(models.Model):
    class Scope(models.TextChoices):
        institution = "institution", "Institution-wide"
        department = "department", "Department"

    class Status(models.TextChoices):
        upcoming = "upcoming", "Upcoming"
        active = "active", "Active"
        completed = "completed", "Completed"
        cancelled = "cancelled", "Cancelled"

    title = models.CharField(max_length=255)
    year = models.PositiveSmallIntegerField(validators=[MinValueValidator(2000)])
    scope = models.CharField(max_length=16, choices=Scope.choices, default=Scope.institution)
    department = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Scope code of the department whose voters take part. Required for department elections.",
    )
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.upcoming)

    scheduled_date = models.DateField()
    # Wall-clock times on scheduled_date, interpreted in ELECTION_TIME_ZONE.
    ballot_open_time = models.TimeField(blank=True, null=True)
    ballot_close_time = models.TimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ElectionQuerySet.as_manager()

    class Meta:
        ordering = ("-scheduled_date", "id")
        permissions = [
            ("manage_election", "Can transition elections and release results"),
        ]
        indexes = [
            models.Index(fields=["status", "scheduled_date"], name="election_status_date"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.year})"

    @override
    def clean(self) -> None:
        super().clean()
        errors: dict[str, str] = {}
        if self.scope == self.Scope.department and not self.department.strip():
            errors["department"] = "Department elections need a department scope code."
        if self.scope == self.Scope.institution and self.department.strip():
            errors["department"] = "Institution-wide elections cannot be restricted to a department."
        if (
            self.ballot_open_time is not None
            and self.ballot_close_time is not None
            and self.ballot_open_time >= self.ballot_close_time
        ):
            errors["ballot_close_time"] = "Ballot close time must be after the open time."
        if errors:
            raise ValidationError(errors)

    @property
    def is_terminal(self) -> bool:
        return self.status in {self.Status.completed, self.Status.cancelled}

    def has_ballots(self) -> bool:
        return self.pk is not None and Ballot.objects.for_election(election_id=self.pk).exists()

    def structure_locked(self) -> bool:
        """Positions, candidates and schedule are frozen once ballots exist or the election ended."""
        return self.is_terminal or self.has_ballots()


class Position(models.Model):
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="positions")
    name = models.CharField(max_length=255)
    order = models.PositiveSmallIntegerField(default=0)
    max_votes = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])

    class Meta:
        ordering = ("order", "id")
        constraints = [
            models.UniqueConstraint(fields=["election", "name"], name="uniq_position_election_name"),
            models.CheckConstraint(condition=Q(max_votes__gte=1), name="position_max_votes_gte_1"),
        ]

    def __str__(self) -> str:
        return self.name

    def _ensure_editable(self) -> None:
        if self.election_id is not None and self.election.has_ballots():
            raise ValidationError("Positions cannot change once ballots have been cast.")

    @override
    def clean(self) -> None:
        super().clean()
        self._ensure_editable()

    @override
    def save(self, *args, **kwargs) -> None:
        self._ensure_editable()
        super().save(*args, **kwargs)


class Candidate(models.Model):
    position = models.ForeignKey(Position, on_delete=models.CASCADE, related_name="candidates")
    sequence = models.PositiveSmallIntegerField(
        help_text="Stable ballot listing number. Anonymous labels follow this order.",
    )
    name = models.CharField(max_length=255)
    affiliation = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ("sequence", "id")
        constraints = [
            models.UniqueConstraint(fields=["position", "sequence"], name="uniq_candidate_position_sequence"),
        ]

    def __str__(self) -> str:
        return f"{self.sequence}. {self.name}"

    def _ensure_editable(self) -> None:
        if self.position_id is not None and self.position.election.has_ballots():
            raise ValidationError("Candidates cannot change once ballots have been cast.")

    @override
    def clean(self) -> None:
        super().clean()
        self._ensure_editable()

    @override
    def save(self, *args, **kwargs) -> None:
        self._ensure_editable()
        super().save(*args, **kwargs)


class ResultRelease(models.Model):
    """Manual per-position override that reveals candidate identities before completion."""

    position = models.OneToOneField(Position, on_delete=models.CASCADE, related_name="result_release")
    released = models.BooleanField(default=False)
    updated_by = models.CharField(max_length=255, blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        state = "released" if self.released else "hidden"
        return f"{self.position_id}:{state}"


class BallotQuerySet(models.QuerySet["Ballot"]):
    def for_election(self, *, election_id: int) -> BallotQuerySet:
        return self.filter(election_id=election_id)

    def in_scope(self, scope: str | None) -> BallotQuerySet:
        if scope is None:
            return self
        return self.filter(voter_scope=scope)


class Ballot(models.Model):
    election = models.ForeignKey(Election, on_delete=models.PROTECT, related_name="ballots")
    voter_id = models.CharField(max_length=255)
    # Voter's scope code when the ballot was cast; scope-filtered tallies group on it.
    voter_scope = models.CharField(max_length=64, blank=True, default="")
    ballot_token = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    submitted_at = models.DateTimeField(auto_now_add=True)

    objects = BallotQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["election", "voter_id"], name="uniq_ballot_election_voter"),
        ]
        indexes = [
            models.Index(fields=["election", "voter_scope"], name="ballot_el_scope"),
        ]

    def __str__(self) -> str:
        return f"ballot:{self.election_id}:{str(self.ballot_token)[:8]}"


class Vote(models.Model):
    ballot = models.ForeignKey(Ballot, on_delete=models.CASCADE, related_name="votes")
    position = models.ForeignKey(Position, on_delete=models.PROTECT, related_name="votes")
    candidate = models.ForeignKey(Candidate, on_delete=models.PROTECT, related_name="votes")

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["ballot", "position", "candidate"],
                name="uniq_vote_ballot_position_candidate",
            ),
        ]
        indexes = [
            models.Index(fields=["position", "candidate"], name="vote_pos_cand"),
        ]

    def __str__(self) -> str:
        return f"vote:{self.ballot_id}:{self.position_id}:{self.candidate_id}"


class ParticipationRecordQuerySet(models.QuerySet["ParticipationRecord"]):
    def confirmed(self) -> ParticipationRecordQuerySet:
        return self.filter(status="confirmed")

    def in_scope(self, scope: str | None) -> ParticipationRecordQuerySet:
        if scope is None:
            return self
        return self.filter(voter_scope=scope)


class ParticipationRecord(models.Model):
    class Status(models.TextChoices):
        confirmed = "confirmed", "Confirmed"
        withdrawn = "withdrawn", "Withdrawn"

    class Source(models.TextChoices):
        web = "web", "Web"
        admin = "admin", "Admin"
        import_ = "import", "Import"

    election = models.ForeignKey(Election, on_delete=models.PROTECT, related_name="participation_records")
    voter_id = models.CharField(max_length=255)
    voter_scope = models.CharField(max_length=64, blank=True, default="")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.confirmed)
    source = models.CharField(max_length=16, choices=Source.choices, default=Source.web)
    confirmed_at = models.DateTimeField()
    voted_at = models.DateTimeField(blank=True, null=True)

    objects = ParticipationRecordQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["election", "voter_id"], name="uniq_participation_election_voter"),
        ]
        indexes = [
            models.Index(fields=["election", "status"], name="participation_el_status"),
            models.Index(fields=["election", "voter_scope"], name="participation_el_scope"),
        ]

    def __str__(self) -> str:
        return f"{self.election_id}:{self.voter_id}:{self.status}"

    @property
    def has_voted(self) -> bool:
        return self.voted_at is not None


class RosterVoter(models.Model):
    """Local mirror of the eligible-voter roster used by DatabaseVoterDirectory."""

    voter_id = models.CharField(max_length=255, unique=True)
    department = models.CharField(max_length=64, blank=True, default="")
    is_eligible = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("voter_id",)
        indexes = [
            models.Index(fields=["department", "is_eligible"], name="roster_dept_eligible"),
        ]

    def __str__(self) -> str:
        return self.voter_id


class AuditLogEntry(models.Model):
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name="audit_log")
    timestamp = models.DateTimeField(auto_now_add=True)
    event_type = models.CharField(max_length=64)
    payload = models.JSONField(blank=True, default=dict)
    is_public = models.BooleanField(default=False)

    class Meta:
        verbose_name_plural = "Audit log entries"
        ordering = ("timestamp", "id")
        indexes = [
            models.Index(fields=["election", "timestamp"], name="audit_el_ts"),
            models.Index(fields=["election", "is_public"], name="audit_el_pub"),
        ]

    def __str__(self) -> str:
        return f"{self.election_id}:{self.event_type}"
