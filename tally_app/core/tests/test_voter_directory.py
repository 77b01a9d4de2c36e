from __future__ import annotations

from django.test import TestCase, override_settings

from core.freeipa.directory import FreeIPAVoterDirectory
from core.models import Election
from core.tests.utils_test_data import add_roster_voters, make_election
from core.voter_directory import (
    DatabaseVoterDirectory,
    VoterProfile,
    eligible_voter_count,
    get_voter_directory,
    is_eligible_for_election,
)


class DatabaseVoterDirectoryTests(TestCase):
    def setUp(self) -> None:
        add_roster_voters("a1", "a2", department="CS")
        add_roster_voters("b1", department="EE")
        add_roster_voters("x1", department="ME", is_eligible=False)
        add_roster_voters("n1", department="")
        self.directory = DatabaseVoterDirectory()

    def test_lookup(self) -> None:
        self.assertEqual(self.directory.lookup("a1"), VoterProfile(voter_id="a1", scope="CS", is_eligible=True))
        self.assertEqual(self.directory.lookup("x1"), VoterProfile(voter_id="x1", scope="ME", is_eligible=False))
        self.assertIsNone(self.directory.lookup("ghost"))

    def test_counts_and_scopes(self) -> None:
        self.assertEqual(self.directory.count_eligible(), 4)
        self.assertEqual(self.directory.count_eligible(scope="CS"), 2)
        self.assertEqual(self.directory.count_eligible(scope="ME"), 0)
        self.assertEqual(self.directory.scopes(), ["CS", "EE"])

    def test_eligible_count_for_department_election(self) -> None:
        election = make_election(scope=Election.Scope.department, department="CS")

        self.assertEqual(eligible_voter_count(self.directory, election=election), 2)
        self.assertEqual(eligible_voter_count(self.directory, election=election, scope="CS"), 2)
        self.assertEqual(eligible_voter_count(self.directory, election=election, scope="EE"), 0)


class EligibilityTests(TestCase):
    def test_is_eligible_for_election(self) -> None:
        institution = Election(scope=Election.Scope.institution)
        department = Election(scope=Election.Scope.department, department="CS")
        cs = VoterProfile(voter_id="a1", scope="CS", is_eligible=True)
        ee = VoterProfile(voter_id="b1", scope="EE", is_eligible=True)
        blocked = VoterProfile(voter_id="x1", scope="CS", is_eligible=False)

        self.assertTrue(is_eligible_for_election(cs, institution))
        self.assertTrue(is_eligible_for_election(ee, institution))
        self.assertTrue(is_eligible_for_election(cs, department))
        self.assertFalse(is_eligible_for_election(ee, department))
        self.assertFalse(is_eligible_for_election(blocked, institution))
        self.assertFalse(is_eligible_for_election(None, institution))


class DirectoryBackendSettingTests(TestCase):
    def test_default_backend(self) -> None:
        self.assertIsInstance(get_voter_directory(), DatabaseVoterDirectory)

    @override_settings(
        ELECTION_VOTER_DIRECTORY_BACKEND="core.freeipa.directory.FreeIPAVoterDirectory",
        ELECTION_FREEIPA_ELIGIBLE_GROUP="students",
        ELECTION_FREEIPA_SCOPE_GROUPS={"CS": "cs-students"},
    )
    def test_freeipa_backend_reads_group_settings(self) -> None:
        directory = get_voter_directory()

        self.assertIsInstance(directory, FreeIPAVoterDirectory)
        self.assertEqual(directory.eligible_group, "students")
        self.assertEqual(directory.scope_groups, {"CS": "cs-students"})
