from __future__ import annotations

import datetime
from unittest.mock import patch

from django.test import TestCase

from core.elections_errors import IneligibleVoter, InvalidTransition, NotFound
from core.elections_participation import (
    confirm_participation,
    election_participants,
    has_participated,
    participation_status,
    voter_history,
    withdraw_participation,
)
from core.models import AuditLogEntry, Ballot, Election, ParticipationRecord
from core.tests.utils_test_data import NOW, add_roster_voters, confirm_voter, make_election


class ConfirmParticipationTests(TestCase):
    def setUp(self) -> None:
        self.enterContext(patch("django.utils.timezone.now", return_value=NOW))
        add_roster_voters("alice", "bob", department="CS")
        add_roster_voters("carol", department="EE")
        add_roster_voters("dave", is_eligible=False)

    def test_confirm_records_scope_and_is_idempotent(self) -> None:
        election = make_election(status=Election.Status.upcoming)

        first = confirm_participation(voter_id="alice", election_id=election.id)
        second = confirm_participation(voter_id="alice", election_id=election.id, source="admin")

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(second.voter_scope, "CS")
        self.assertEqual(second.source, ParticipationRecord.Source.web)
        self.assertEqual(second.confirmed_at, NOW)
        self.assertEqual(ParticipationRecord.objects.filter(election=election).count(), 1)
        self.assertEqual(
            AuditLogEntry.objects.filter(election=election, event_type="participation_confirmed").count(),
            1,
        )
        self.assertTrue(has_participated(voter_id="alice", election_id=election.id))

    def test_unknown_and_ineligible_voters_are_refused(self) -> None:
        election = make_election()

        with self.assertRaises(IneligibleVoter):
            confirm_participation(voter_id="mallory", election_id=election.id)
        with self.assertRaises(IneligibleVoter):
            confirm_participation(voter_id="dave", election_id=election.id)
        self.assertFalse(ParticipationRecord.objects.exists())

    def test_department_election_refuses_other_departments(self) -> None:
        election = make_election(scope=Election.Scope.department, department="CS")

        confirm_participation(voter_id="bob", election_id=election.id)
        with self.assertRaises(IneligibleVoter):
            confirm_participation(voter_id="carol", election_id=election.id)

    def test_terminal_elections_do_not_accept_confirmations(self) -> None:
        for status in (Election.Status.completed, Election.Status.cancelled):
            election = make_election(title=f"Closed {status}", status=status)
            with self.subTest(status=status), self.assertRaises(IneligibleVoter):
                confirm_participation(voter_id="alice", election_id=election.id)

    def test_missing_election(self) -> None:
        with self.assertRaises(NotFound):
            confirm_participation(voter_id="alice", election_id=424242)

    def test_withdrawn_voter_can_confirm_again(self) -> None:
        election = make_election()
        confirm_participation(voter_id="alice", election_id=election.id)
        withdraw_participation(voter_id="alice", election_id=election.id)
        self.assertFalse(has_participated(voter_id="alice", election_id=election.id))

        later = NOW + datetime.timedelta(hours=1)
        with patch("django.utils.timezone.now", return_value=later):
            record = confirm_participation(voter_id="alice", election_id=election.id)

        self.assertEqual(record.status, ParticipationRecord.Status.confirmed)
        self.assertEqual(record.confirmed_at, later)
        self.assertEqual(
            list(AuditLogEntry.objects.filter(election=election).values_list("event_type", flat=True)),
            ["participation_confirmed", "participation_withdrawn", "participation_reconfirmed"],
        )
        self.assertFalse(AuditLogEntry.objects.filter(election=election, is_public=True).exists())


class WithdrawParticipationTests(TestCase):
    def setUp(self) -> None:
        self.enterContext(patch("django.utils.timezone.now", return_value=NOW))
        add_roster_voters("alice")
        self.election = make_election()

    def test_withdraw_without_record(self) -> None:
        with self.assertRaises(NotFound):
            withdraw_participation(voter_id="alice", election_id=self.election.id)

    def test_withdraw_is_idempotent(self) -> None:
        confirm_participation(voter_id="alice", election_id=self.election.id)

        withdraw_participation(voter_id="alice", election_id=self.election.id)
        record = withdraw_participation(voter_id="alice", election_id=self.election.id)

        self.assertEqual(record.status, ParticipationRecord.Status.withdrawn)
        self.assertEqual(
            AuditLogEntry.objects.filter(election=self.election, event_type="participation_withdrawn").count(),
            1,
        )

    def test_withdraw_refused_after_voting(self) -> None:
        confirm_participation(voter_id="alice", election_id=self.election.id)
        Ballot.objects.create(election=self.election, voter_id="alice", voter_scope="CS")

        with self.assertRaises(InvalidTransition):
            withdraw_participation(voter_id="alice", election_id=self.election.id)

        record = ParticipationRecord.objects.get(election=self.election, voter_id="alice")
        self.assertEqual(record.status, ParticipationRecord.Status.confirmed)


class ParticipationStatusTests(TestCase):
    def test_status_without_record(self) -> None:
        election = make_election()

        self.assertEqual(
            participation_status(voter_id="alice", election_id=election.id),
            {"status": None, "has_confirmed": False, "has_voted": False, "confirmed_at": None, "voted_at": None},
        )

    def test_status_after_voting(self) -> None:
        election = make_election()
        ParticipationRecord.objects.create(
            election=election,
            voter_id="alice",
            voter_scope="CS",
            confirmed_at=NOW,
            voted_at=NOW + datetime.timedelta(minutes=5),
        )
        Ballot.objects.create(election=election, voter_id="alice", voter_scope="CS")

        status = participation_status(voter_id="alice", election_id=election.id)

        self.assertEqual(status["status"], "confirmed")
        self.assertTrue(status["has_confirmed"])
        self.assertTrue(status["has_voted"])
        self.assertEqual(status["confirmed_at"], "2026-03-10T12:00:00+00:00")
        self.assertEqual(status["voted_at"], "2026-03-10T12:05:00+00:00")


class ParticipationListingTests(TestCase):
    def setUp(self) -> None:
        self.spring = make_election(title="Spring Council", scheduled_date=datetime.date(2026, 3, 10))
        self.autumn = make_election(
            title="Autumn Council",
            status=Election.Status.completed,
            scheduled_date=datetime.date(2025, 10, 1),
        )
        confirm_voter(self.autumn, "alice")
        ParticipationRecord.objects.filter(election=self.autumn).update(
            confirmed_at=NOW - datetime.timedelta(days=160),
            voted_at=NOW - datetime.timedelta(days=159),
        )
        confirm_voter(self.spring, "alice")
        confirm_voter(self.spring, "alfred", scope="EE")
        withdrawn = confirm_voter(self.spring, "bob")
        withdrawn.status = ParticipationRecord.Status.withdrawn
        withdrawn.save(update_fields=["status"])

    def test_voter_history_spans_elections_newest_first(self) -> None:
        history = voter_history(voter_id="alice")

        self.assertEqual([item["election"]["title"] for item in history], ["Spring Council", "Autumn Council"])
        self.assertEqual([item["has_voted"] for item in history], [False, True])
        self.assertEqual(history[1]["election"]["status"], "completed")
        self.assertEqual(voter_history(voter_id="nobody"), [])

    def test_participants_can_be_filtered(self) -> None:
        everyone = election_participants(election_id=self.spring.id)
        confirmed = election_participants(election_id=self.spring.id, status="confirmed")
        searched = election_participants(election_id=self.spring.id, search="AL")

        self.assertEqual(len(everyone), 3)
        self.assertEqual(sorted(item["voter_id"] for item in confirmed), ["alfred", "alice"])
        self.assertEqual(sorted(item["voter_id"] for item in searched), ["alfred", "alice"])
        self.assertEqual(election_participants(election_id=self.spring.id, has_voted=True), [])
        self.assertEqual(
            [item["voter_id"] for item in election_participants(election_id=self.autumn.id, has_voted=True)],
            ["alice"],
        )

    def test_participants_reject_unknown_status_and_election(self) -> None:
        with self.assertRaises(ValueError):
            election_participants(election_id=self.spring.id, status="maybe")
        with self.assertRaises(NotFound):
            election_participants(election_id=self.spring.id + 100)
