from __future__ import annotations

import tempfile
from io import StringIO
from pathlib import Path

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from core.models import RosterVoter
from core.roster_import import norm_csv_header, parse_eligible


class ImportVoterRosterCommandTests(TestCase):
    def setUp(self) -> None:
        tmpdir = self.enterContext(tempfile.TemporaryDirectory())
        self.tmp = Path(tmpdir)

    def _write(self, content: str) -> str:
        path = self.tmp / "roster.csv"
        path.write_text(content, encoding="utf-8")
        return str(path)

    def test_creates_and_updates_rows(self) -> None:
        RosterVoter.objects.create(voter_id="bob", department="EE", is_eligible=True)
        path = self._write(
            "Student ID,Dept,Eligible\n"
            "alice,CS,yes\n"
            "bob,CS,no\n"
            ",CS,yes\n"
            "carol,ME,\n"
        )
        out = StringIO()

        call_command("import_voter_roster", path, stdout=out)

        self.assertIn("Imported roster: created 2, updated 1, skipped 1.", out.getvalue())
        self.assertEqual(
            list(RosterVoter.objects.values_list("voter_id", "department", "is_eligible")),
            [("alice", "CS", True), ("bob", "CS", False), ("carol", "ME", True)],
        )

    def test_dry_run_writes_nothing(self) -> None:
        RosterVoter.objects.create(voter_id="bob", department="EE")
        path = self._write("voter_id,department\nalice,CS\nbob,CS\n")
        out = StringIO()

        call_command("import_voter_roster", path, "--dry-run", stdout=out)

        self.assertIn("[dry-run] Would import roster: created 1, updated 1, skipped 0.", out.getvalue())
        self.assertEqual(list(RosterVoter.objects.values_list("voter_id", "department")), [("bob", "EE")])

    def test_missing_voter_id_column(self) -> None:
        path = self._write("name,department\nAlice,CS\n")

        with self.assertRaisesMessage(CommandError, "voter_id column"):
            call_command("import_voter_roster", path, stdout=StringIO())

    def test_missing_file(self) -> None:
        with self.assertRaisesMessage(CommandError, "Cannot read"):
            call_command("import_voter_roster", str(self.tmp / "absent.csv"), stdout=StringIO())


class RosterParsingTests(TestCase):
    def test_header_normalization(self) -> None:
        self.assertEqual(norm_csv_header(" Voter ID "), "voterid")
        self.assertEqual(norm_csv_header("is_eligible"), "iseligible")

    def test_parse_eligible(self) -> None:
        for value in ("", None, "yes", "TRUE", "1", "Active"):
            with self.subTest(value=value):
                self.assertTrue(parse_eligible(value))
        for value in ("no", "0", "false", "graduated"):
            with self.subTest(value=value):
                self.assertFalse(parse_eligible(value))
