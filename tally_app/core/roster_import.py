"""Load the eligible-voter roster mirror from a CSV export."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from django.db import transaction
from tablib import Dataset

from core.models import RosterVoter

logger = logging.getLogger(__name__)

_VOTER_ID_HEADERS = ("voterid", "studentid", "username", "id")
_DEPARTMENT_HEADERS = ("department", "scope", "dept")
_ELIGIBLE_HEADERS = ("eligible", "iseligible", "status")


def norm_csv_header(value: str) -> str:
    return "".join(ch for ch in value.strip().lower() if ch.isalnum())


def parse_eligible(value: object) -> bool:
    normalized = str(value or "").strip().lower()
    if not normalized:
        return True
    return normalized in {"1", "y", "yes", "true", "t", "eligible", "active"}


@dataclass(frozen=True)
class RosterImportResult:
    created: int
    updated: int
    skipped: int


def _resolve(header_by_norm: Mapping[str, str], candidates: tuple[str, ...]) -> str | None:
    for candidate in candidates:
        header = header_by_norm.get(candidate)
        if header:
            return header
    return None


def load_roster_dataset(content: str) -> Dataset:
    dataset = Dataset()
    dataset.load(content, format="csv")
    if not dataset.headers:
        raise ValueError("CSV has no headers")
    return dataset


@transaction.atomic
def import_roster(dataset: Dataset, *, dry_run: bool = False) -> RosterImportResult:
    header_by_norm = {norm_csv_header(header): header for header in dataset.headers if header}
    voter_id_header = _resolve(header_by_norm, _VOTER_ID_HEADERS)
    if voter_id_header is None:
        raise ValueError("CSV needs a voter_id column")
    department_header = _resolve(header_by_norm, _DEPARTMENT_HEADERS)
    eligible_header = _resolve(header_by_norm, _ELIGIBLE_HEADERS)

    created = updated = skipped = 0
    for row in dataset.dict:
        voter_id = str(row.get(voter_id_header) or "").strip()
        if not voter_id:
            skipped += 1
            continue

        department = str(row.get(department_header) or "").strip() if department_header else ""
        is_eligible = parse_eligible(row.get(eligible_header)) if eligible_header else True

        if dry_run:
            if RosterVoter.objects.filter(voter_id=voter_id).exists():
                updated += 1
            else:
                created += 1
            continue

        _voter, was_created = RosterVoter.objects.update_or_create(
            voter_id=voter_id,
            defaults={"department": department, "is_eligible": is_eligible},
        )
        if was_created:
            created += 1
        else:
            updated += 1

    logger.info("Roster import created=%d updated=%d skipped=%d dry_run=%s", created, updated, skipped, dry_run)
    return RosterImportResult(created=created, updated=updated, skipped=skipped)
