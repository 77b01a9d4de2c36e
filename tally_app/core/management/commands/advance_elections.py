from __future__ import annotations

import datetime
from typing import override

from django.core.management.base import BaseCommand
from django.utils import timezone

from core.elections_errors import ElectionError
from core.elections_registry import ballot_window, transition_election_status
from core.models import Election

ACTOR = "system:advance_elections"


class Command(BaseCommand):
    help = "Activate elections whose ballot window has opened and complete those whose window has closed."

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be done without modifying elections.",
        )

    @override
    def handle(self, *args, **options) -> None:
        dry_run: bool = bool(options.get("dry_run"))
        now = timezone.now()

        to_activate = [
            election for election in Election.objects.upcoming() if _window_opened(election, now=now)
        ]

        if dry_run:
            to_complete = [
                election for election in Election.objects.active() if _window_closed(election, now=now)
            ]
            to_complete += [election for election in to_activate if _window_closed(election, now=now)]
            self.stdout.write(
                f"[dry-run] Would activate {len(to_activate)} election(s) and complete {len(to_complete)} election(s)."
            )
            return

        activated = 0
        completed = 0
        failed = 0

        for election in to_activate:
            try:
                transition_election_status(
                    election_id=election.id,
                    target_status=Election.Status.active,
                    actor=ACTOR,
                )
                activated += 1
            except ElectionError as exc:
                failed += 1
                self.stderr.write(f"Failed to activate election {election.id}: {exc}")

        # Requery so elections activated above whose window already closed are completed too.
        to_complete = [election for election in Election.objects.active() if _window_closed(election, now=now)]

        for election in to_complete:
            try:
                transition_election_status(
                    election_id=election.id,
                    target_status=Election.Status.completed,
                    actor=ACTOR,
                )
                completed += 1
            except ElectionError as exc:
                failed += 1
                self.stderr.write(f"Failed to complete election {election.id}: {exc}")

        self.stdout.write(f"Activated {activated} election(s); completed {completed} election(s); failed {failed}.")


def _window_opened(election: Election, *, now: datetime.datetime) -> bool:
    window = ballot_window(election)
    return window is not None and window[0] <= now


def _window_closed(election: Election, *, now: datetime.datetime) -> bool:
    window = ballot_window(election)
    return window is not None and now > window[1]
