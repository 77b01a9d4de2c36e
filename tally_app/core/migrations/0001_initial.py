from __future__ import annotations

import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Election",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                (
                    "year",
                    models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(2000)]),
                ),
                (
                    "scope",
                    models.CharField(
                        choices=[("institution", "Institution-wide"), ("department", "Department")],
                        default="institution",
                        max_length=16,
                    ),
                ),
                (
                    "department",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text=(
                            "Scope code of the department whose voters take part. "
                            "Required for department elections."
                        ),
                        max_length=64,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("upcoming", "Upcoming"),
                            ("active", "Active"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="upcoming",
                        max_length=16,
                    ),
                ),
                ("scheduled_date", models.DateField()),
                ("ballot_open_time", models.TimeField(blank=True, null=True)),
                ("ballot_close_time", models.TimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("-scheduled_date", "id"),
                "permissions": [("manage_election", "Can transition elections and release results")],
                "indexes": [models.Index(fields=["status", "scheduled_date"], name="election_status_date")],
            },
        ),
        migrations.CreateModel(
            name="Position",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("order", models.PositiveSmallIntegerField(default=0)),
                (
                    "max_votes",
                    models.PositiveSmallIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="positions",
                        to="core.election",
                    ),
                ),
            ],
            options={
                "ordering": ("order", "id"),
                "constraints": [
                    models.UniqueConstraint(fields=("election", "name"), name="uniq_position_election_name"),
                    models.CheckConstraint(condition=models.Q(max_votes__gte=1), name="position_max_votes_gte_1"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Candidate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "sequence",
                    models.PositiveSmallIntegerField(
                        help_text="Stable ballot listing number. Anonymous labels follow this order.",
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("affiliation", models.CharField(blank=True, default="", max_length=255)),
                (
                    "position",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="candidates",
                        to="core.position",
                    ),
                ),
            ],
            options={
                "ordering": ("sequence", "id"),
                "constraints": [
                    models.UniqueConstraint(fields=("position", "sequence"), name="uniq_candidate_position_sequence"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ResultRelease",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("released", models.BooleanField(default=False)),
                ("updated_by", models.CharField(blank=True, default="", max_length=255)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "position",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="result_release",
                        to="core.position",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Ballot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voter_id", models.CharField(max_length=255)),
                ("voter_scope", models.CharField(blank=True, default="", max_length=64)),
                ("ballot_token", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("submitted_at", models.DateTimeField(auto_now_add=True)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ballots",
                        to="core.election",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("election", "voter_id"), name="uniq_ballot_election_voter"),
                ],
                "indexes": [models.Index(fields=["election", "voter_scope"], name="ballot_el_scope")],
            },
        ),
        migrations.CreateModel(
            name="Vote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "ballot",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="votes",
                        to="core.ballot",
                    ),
                ),
                (
                    "candidate",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="votes",
                        to="core.candidate",
                    ),
                ),
                (
                    "position",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="votes",
                        to="core.position",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("ballot", "position", "candidate"),
                        name="uniq_vote_ballot_position_candidate",
                    ),
                ],
                "indexes": [models.Index(fields=["position", "candidate"], name="vote_pos_cand")],
            },
        ),
        migrations.CreateModel(
            name="ParticipationRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voter_id", models.CharField(max_length=255)),
                ("voter_scope", models.CharField(blank=True, default="", max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[("confirmed", "Confirmed"), ("withdrawn", "Withdrawn")],
                        default="confirmed",
                        max_length=16,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[("web", "Web"), ("admin", "Admin"), ("import", "Import")],
                        default="web",
                        max_length=16,
                    ),
                ),
                ("confirmed_at", models.DateTimeField()),
                ("voted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="participation_records",
                        to="core.election",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("election", "voter_id"),
                        name="uniq_participation_election_voter",
                    ),
                ],
                "indexes": [
                    models.Index(fields=["election", "status"], name="participation_el_status"),
                    models.Index(fields=["election", "voter_scope"], name="participation_el_scope"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RosterVoter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voter_id", models.CharField(max_length=255, unique=True)),
                ("department", models.CharField(blank=True, default="", max_length=64)),
                ("is_eligible", models.BooleanField(default=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("voter_id",),
                "indexes": [models.Index(fields=["department", "is_eligible"], name="roster_dept_eligible")],
            },
        ),
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("event_type", models.CharField(max_length=64)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("is_public", models.BooleanField(default=False)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="audit_log",
                        to="core.election",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "Audit log entries",
                "ordering": ("timestamp", "id"),
                "indexes": [
                    models.Index(fields=["election", "timestamp"], name="audit_el_ts"),
                    models.Index(fields=["election", "is_public"], name="audit_el_pub"),
                ],
            },
        ),
    ]
