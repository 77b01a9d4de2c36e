from __future__ import annotations

from django.test import TestCase

from core.elections_turnout import turnout, turnout_by_scope
from core.models import Ballot, Election, ParticipationRecord
from core.tests.utils_test_data import add_roster_voters, confirm_voter, make_election


class TurnoutTests(TestCase):
    def test_no_eligible_voters_gives_zero_rates(self) -> None:
        election = make_election()

        snapshot = turnout(election_id=election.id)

        self.assertEqual((snapshot.eligible, snapshot.participants, snapshot.voted), (0, 0, 0))
        self.assertEqual(
            (snapshot.participation_rate, snapshot.turnout_rate, snapshot.participant_turnout_rate),
            (0.0, 0.0, 0.0),
        )

    def test_rates_over_eligible_count(self) -> None:
        add_roster_voters("a1", "a2", "a3", "a4", department="CS")
        add_roster_voters("b1", "b2", department="EE")
        add_roster_voters("x1", department="CS", is_eligible=False)
        election = make_election()
        for voter_id in ("a1", "a2", "b1"):
            confirm_voter(election, voter_id, scope="CS" if voter_id.startswith("a") else "EE")
        withdrawn = confirm_voter(election, "a3")
        withdrawn.status = ParticipationRecord.Status.withdrawn
        withdrawn.save(update_fields=["status"])
        Ballot.objects.create(election=election, voter_id="a1", voter_scope="CS")
        Ballot.objects.create(election=election, voter_id="b1", voter_scope="EE")

        snapshot = turnout(election_id=election.id)
        cs = turnout(election_id=election.id, scope="CS")

        self.assertEqual((snapshot.eligible, snapshot.participants, snapshot.voted), (6, 3, 2))
        self.assertEqual(snapshot.participation_rate, 50.0)
        self.assertEqual(snapshot.turnout_rate, 33.33)
        self.assertEqual(snapshot.participant_turnout_rate, 66.67)
        self.assertEqual((cs.eligible, cs.participants, cs.voted, cs.turnout_rate), (4, 2, 1, 25.0))

    def test_turnout_by_scope_includes_every_known_scope(self) -> None:
        add_roster_voters("a1", department="CS")
        add_roster_voters("b1", department="EE")
        election = make_election()
        confirm_voter(election, "z1", scope="ME")

        snapshots = turnout_by_scope(election_id=election.id)

        self.assertEqual([s.scope for s in snapshots], ["CS", "EE", "ME"])
        self.assertEqual([s.eligible for s in snapshots], [1, 1, 0])
        self.assertEqual(snapshots[2].participation_rate, 0.0)

    def test_department_election_counts_only_its_department(self) -> None:
        add_roster_voters("a1", "a2", department="CS")
        add_roster_voters("b1", department="EE")
        election = make_election(scope=Election.Scope.department, department="CS")
        confirm_voter(election, "a1")
        Ballot.objects.create(election=election, voter_id="a1", voter_scope="CS")

        snapshot = turnout(election_id=election.id)
        other_scope = turnout(election_id=election.id, scope="EE")
        by_scope = turnout_by_scope(election_id=election.id)

        self.assertEqual((snapshot.eligible, snapshot.voted, snapshot.turnout_rate), (2, 1, 50.0))
        self.assertEqual(other_scope.eligible, 0)
        self.assertEqual([s.scope for s in by_scope], ["CS"])
