from __future__ import annotations

import datetime
from unittest.mock import patch

from django.db import DatabaseError, IntegrityError
from django.test import TestCase, override_settings

from core.elections_ballots import cast_ballot, has_voted
from core.elections_errors import (
    STORAGE_FAILURE_MESSAGE,
    AlreadyVoted,
    BallotWindowClosed,
    IneligibleVoter,
    InvalidSelection,
    NotFound,
    StorageFailure,
)
from core.elections_participation import withdraw_participation
from core.elections_tally import tally_position
from core.models import AuditLogEntry, Ballot, Election, ParticipationRecord, Vote
from core.tests.utils_test_data import (
    NOW,
    add_roster_voters,
    confirm_voter,
    make_candidates,
    make_election,
    make_position,
)


class CastBallotTests(TestCase):
    def setUp(self) -> None:
        self.enterContext(patch("django.utils.timezone.now", return_value=NOW))
        self.election = make_election()
        self.president = make_position(self.election, "President")
        self.ana, self.ben, self.cruz = make_candidates(self.president, "Ana", "Ben", "Cruz")
        self.senator = make_position(self.election, "Senator", max_votes=2, order=1)
        self.dee, self.eli, self.fay = make_candidates(self.senator, "Dee", "Eli", "Fay")
        for voter_id in ("alice", "bob", "carol"):
            confirm_voter(self.election, voter_id)

    def _assert_nothing_stored(self) -> None:
        self.assertFalse(Ballot.objects.exists())
        self.assertFalse(Vote.objects.exists())
        self.assertFalse(AuditLogEntry.objects.filter(event_type="ballot_submitted").exists())

    def test_three_ballots_produce_expected_president_tally(self) -> None:
        cast_ballot(voter_id="alice", election_id=self.election.id, selections={self.president.id: [self.ana.id]})
        cast_ballot(voter_id="bob", election_id=self.election.id, selections={self.president.id: [self.ana.id]})
        cast_ballot(voter_id="carol", election_id=self.election.id, selections={self.president.id: [self.ben.id]})

        tally = tally_position(election_id=self.election.id, position_id=self.president.id)

        self.assertEqual(
            [(c.name, c.vote_count, c.percentage) for c in tally.candidates],
            [("Ana", 2, 66.67), ("Ben", 1, 33.33), ("Cruz", 0, 0.0)],
        )
        self.assertEqual(tally.total_votes, 3)

    def test_receipt_and_side_effects(self) -> None:
        receipt = cast_ballot(
            voter_id="alice",
            election_id=self.election.id,
            selections={self.president.id: [self.ana.id], self.senator.id: [self.dee.id, self.fay.id]},
        )

        self.assertEqual(receipt.vote_count, 3)
        self.assertEqual(receipt.ballot_token, str(receipt.ballot.ballot_token))
        self.assertEqual(receipt.ballot.voter_scope, "CS")
        self.assertTrue(has_voted(voter_id="alice", election_id=self.election.id))
        self.assertFalse(has_voted(voter_id="bob", election_id=self.election.id))

        record = ParticipationRecord.objects.get(election=self.election, voter_id="alice")
        self.assertEqual(record.voted_at, NOW)

        entry = AuditLogEntry.objects.get(election=self.election, event_type="ballot_submitted")
        self.assertFalse(entry.is_public)
        self.assertEqual(entry.payload, {"ballot_token": receipt.ballot_token, "positions_voted": 2})
        self.assertNotIn("alice", str(entry.payload))

    def test_string_ids_from_json_are_accepted(self) -> None:
        receipt = cast_ballot(
            voter_id="alice",
            election_id=self.election.id,
            selections={str(self.president.id): [str(self.cruz.id)]},
        )

        self.assertEqual(receipt.vote_count, 1)
        self.assertEqual(Vote.objects.get().candidate_id, self.cruz.id)

    def test_blank_ballot_counts_as_voted(self) -> None:
        receipt = cast_ballot(voter_id="alice", election_id=self.election.id, selections={self.senator.id: []})

        self.assertEqual(receipt.vote_count, 0)
        self.assertTrue(has_voted(voter_id="alice", election_id=self.election.id))
        tally = tally_position(election_id=self.election.id, position_id=self.senator.id)
        self.assertEqual((tally.ballots_counted, tally.abstentions, tally.total_votes), (1, 1, 0))

    def test_second_ballot_is_rejected(self) -> None:
        cast_ballot(voter_id="alice", election_id=self.election.id, selections={self.president.id: [self.ana.id]})

        with self.assertRaises(AlreadyVoted) as ctx:
            cast_ballot(voter_id="alice", election_id=self.election.id, selections={self.president.id: [self.ben.id]})

        self.assertIsInstance(ctx.exception.__cause__, IntegrityError)
        self.assertEqual(Ballot.objects.count(), 1)
        self.assertEqual(list(Vote.objects.values_list("candidate_id", flat=True)), [self.ana.id])

    def test_over_cap_selection_is_rejected_without_rows(self) -> None:
        with self.assertRaises(InvalidSelection) as ctx:
            cast_ballot(
                voter_id="alice",
                election_id=self.election.id,
                selections={self.senator.id: [self.dee.id, self.eli.id, self.fay.id]},
            )

        self.assertEqual(ctx.exception.position_id, self.senator.id)
        self._assert_nothing_stored()
        self.assertIsNone(ParticipationRecord.objects.get(election=self.election, voter_id="alice").voted_at)

    def test_invalid_selections(self) -> None:
        other_election = make_election(title="Other")
        foreign_position = make_position(other_election, "President")

        cases = {
            "duplicate": {self.senator.id: [self.dee.id, self.dee.id]},
            "candidate of another position": {self.president.id: [self.dee.id]},
            "position of another election": {foreign_position.id: []},
            "unknown candidate": {self.president.id: [999999]},
            "not a list": {self.president.id: self.ana.id},
            "bool id": {self.president.id: [True]},
            "superscript candidate id": {self.president.id: ["²"]},
            "superscript position id": {"³": [self.ana.id]},
            "arabic-indic candidate id": {self.president.id: ["١"]},
            "same position as int and string": {self.president.id: [self.ana.id], str(self.president.id): [self.ben.id]},
        }
        for label, selections in cases.items():
            with self.subTest(label), self.assertRaises(InvalidSelection):
                cast_ballot(voter_id="alice", election_id=self.election.id, selections=selections)

        self._assert_nothing_stored()

    def test_rejected_selection_does_not_use_up_the_ballot(self) -> None:
        with self.assertRaises(InvalidSelection):
            cast_ballot(voter_id="alice", election_id=self.election.id, selections={self.president.id: [self.dee.id]})

        receipt = cast_ballot(
            voter_id="alice",
            election_id=self.election.id,
            selections={self.president.id: [self.ana.id]},
        )
        self.assertEqual(receipt.vote_count, 1)

    def test_window_closed(self) -> None:
        with patch("django.utils.timezone.now", return_value=NOW + datetime.timedelta(hours=6)):
            with self.assertRaises(BallotWindowClosed):
                cast_ballot(voter_id="alice", election_id=self.election.id, selections={})

        self.election.status = Election.Status.completed
        self.election.save(update_fields=["status"])
        with self.assertRaises(BallotWindowClosed):
            cast_ballot(voter_id="alice", election_id=self.election.id, selections={})

        self._assert_nothing_stored()

    def test_unknown_election(self) -> None:
        with self.assertRaises(NotFound):
            cast_ballot(voter_id="alice", election_id=self.election.id + 100, selections={})

    def test_unconfirmed_or_withdrawn_voter_is_refused(self) -> None:
        with self.assertRaises(IneligibleVoter):
            cast_ballot(voter_id="dave", election_id=self.election.id, selections={})

        withdraw_participation(voter_id="bob", election_id=self.election.id)
        with self.assertRaises(IneligibleVoter):
            cast_ballot(voter_id="bob", election_id=self.election.id, selections={})

        self._assert_nothing_stored()

    def test_integrity_error_without_existing_ballot_is_a_storage_failure(self) -> None:
        with (
            patch.object(Ballot.objects, "create", side_effect=IntegrityError("boom")),
            self.assertLogs("core.elections_ballots", level="ERROR"),
            self.assertRaises(StorageFailure) as ctx,
        ):
            cast_ballot(voter_id="alice", election_id=self.election.id, selections={})

        self.assertEqual(str(ctx.exception), STORAGE_FAILURE_MESSAGE)

    def test_vote_write_failure_rolls_back_the_ballot(self) -> None:
        with (
            patch.object(Vote.objects, "bulk_create", side_effect=DatabaseError("disk full")),
            self.assertLogs("core.elections_ballots", level="ERROR"),
            self.assertRaises(StorageFailure),
        ):
            cast_ballot(voter_id="alice", election_id=self.election.id, selections={self.president.id: [self.ana.id]})

        self._assert_nothing_stored()
        self.assertFalse(has_voted(voter_id="alice", election_id=self.election.id))


@override_settings(ELECTION_REQUIRE_PARTICIPATION_CONFIRMATION=False)
class ImplicitParticipationTests(TestCase):
    def setUp(self) -> None:
        self.enterContext(patch("django.utils.timezone.now", return_value=NOW))
        add_roster_voters("alice", department="CS")
        add_roster_voters("erin", department="EE")
        self.election = make_election(scope=Election.Scope.department, department="CS")
        self.position = make_position(self.election, "Representative")
        (self.rep,) = make_candidates(self.position, "Gil")

    def test_directory_eligible_voter_is_recorded_as_participant(self) -> None:
        cast_ballot(voter_id="alice", election_id=self.election.id, selections={self.position.id: [self.rep.id]})

        record = ParticipationRecord.objects.get(election=self.election, voter_id="alice")
        self.assertEqual(record.status, ParticipationRecord.Status.confirmed)
        self.assertEqual(record.voter_scope, "CS")
        self.assertEqual(record.voted_at, NOW)

    def test_voter_outside_department_is_refused(self) -> None:
        with self.assertRaises(IneligibleVoter):
            cast_ballot(voter_id="erin", election_id=self.election.id, selections={})

        self.assertFalse(ParticipationRecord.objects.exists())
        self.assertFalse(Ballot.objects.exists())
