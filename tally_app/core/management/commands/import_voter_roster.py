from pathlib import Path
from typing import override

from django.core.management.base import BaseCommand, CommandError

from core.roster_import import import_roster, load_roster_dataset


class Command(BaseCommand):
    help = "Create or update RosterVoter rows from a CSV with voter_id, department and eligible columns."

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument("csv_path", help="Path to the roster CSV file.")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would change without writing to the database.",
        )

    @override
    def handle(self, *args, **options) -> None:
        path = Path(options["csv_path"])
        dry_run: bool = bool(options.get("dry_run"))

        try:
            dataset = load_roster_dataset(path.read_text(encoding="utf-8-sig"))
            result = import_roster(dataset, dry_run=dry_run)
        except OSError as exc:
            raise CommandError(f"Cannot read {path}: {exc}") from exc
        except ValueError as exc:
            raise CommandError(str(exc)) from exc

        prefix = "[dry-run] Would import" if dry_run else "Imported"
        self.stdout.write(
            f"{prefix} roster: created {result.created}, updated {result.updated}, skipped {result.skipped}."
        )
