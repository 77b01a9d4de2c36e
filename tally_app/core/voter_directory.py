"""Voter identity and eligibility lookups.

Voter accounts live outside this app. A ``VoterDirectory`` answers the two
questions the election services need: who is this voter (eligible, which scope)
and how many eligible voters exist for a scope. The implementation is chosen by
``ELECTION_VOTER_DIRECTORY_BACKEND``.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass

from django.conf import settings
from django.utils.module_loading import import_string

from core.models import Election, RosterVoter


@dataclass(frozen=True)
class VoterProfile:
    voter_id: str
    scope: str
    is_eligible: bool


class VoterDirectory(abc.ABC):
    @abc.abstractmethod
    def lookup(self, voter_id: str) -> VoterProfile | None:
        """Return the voter's profile, or None when the directory does not know them."""

    @abc.abstractmethod
    def count_eligible(self, *, scope: str | None = None) -> int:
        """Count eligible voters, optionally restricted to one scope code."""

    @abc.abstractmethod
    def scopes(self) -> list[str]:
        """Scope codes that currently have at least one eligible voter."""


class DatabaseVoterDirectory(VoterDirectory):
    """Directory backed by the RosterVoter mirror table."""

    def lookup(self, voter_id: str) -> VoterProfile | None:
        row = RosterVoter.objects.filter(voter_id=voter_id).only("voter_id", "department", "is_eligible").first()
        if row is None:
            return None
        return VoterProfile(voter_id=row.voter_id, scope=row.department, is_eligible=row.is_eligible)

    def count_eligible(self, *, scope: str | None = None) -> int:
        qs = RosterVoter.objects.filter(is_eligible=True)
        if scope is not None:
            qs = qs.filter(department=scope)
        return qs.count()

    def scopes(self) -> list[str]:
        return list(
            RosterVoter.objects.filter(is_eligible=True)
            .exclude(department="")
            .order_by("department")
            .values_list("department", flat=True)
            .distinct()
        )


def get_voter_directory() -> VoterDirectory:
    directory_class = import_string(settings.ELECTION_VOTER_DIRECTORY_BACKEND)
    return directory_class()


def is_eligible_for_election(profile: VoterProfile | None, election: Election) -> bool:
    if profile is None or not profile.is_eligible:
        return False
    if election.scope == Election.Scope.department:
        return profile.scope == election.department
    return True


def eligible_voter_count(directory: VoterDirectory, *, election: Election, scope: str | None = None) -> int:
    """Eligible voters for the election, narrowed to ``scope`` when given."""
    if election.scope == Election.Scope.department:
        if scope is not None and scope != election.department:
            return 0
        return directory.count_eligible(scope=election.department)
    return directory.count_eligible(scope=scope)


__all__ = [
    "DatabaseVoterDirectory",
    "VoterDirectory",
    "VoterProfile",
    "eligible_voter_count",
    "get_voter_directory",
    "is_eligible_for_election",
]
