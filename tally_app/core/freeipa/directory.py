"""Voter directory backed by FreeIPA group membership.

Eligibility is membership (direct or through nested groups) of
``ELECTION_FREEIPA_ELIGIBLE_GROUP``. A voter's scope is the first scope code in
``ELECTION_FREEIPA_SCOPE_GROUPS`` (sorted by code) whose group contains them.
Group payloads are cached for ``ELECTION_DIRECTORY_CACHE_TTL_SECONDS``.
"""

import logging

from django.conf import settings
from django.core.cache import cache

from core.elections_errors import DirectoryUnavailable
from core.freeipa.circuit_breaker import is_availability_error
from core.freeipa.client import call_with_service_client
from core.freeipa.exceptions import FreeIPAMisconfiguredError, FreeIPAUnavailableError
from core.voter_directory import VoterDirectory, VoterProfile

logger = logging.getLogger("core.freeipa")


def _group_cache_key(cn: str) -> str:
    return f"freeipa_voter_group_{cn.lower()}"


def _clean_str_list(values: object) -> list[str]:
    if not isinstance(values, list):
        return []
    return [str(value).strip() for value in values if str(value).strip()]


def _fetch_group_data(cn: str) -> dict:
    group_cn = str(cn or "").strip()
    if not group_cn:
        raise FreeIPAMisconfiguredError("FreeIPA group cn is required")

    cache_key = _group_cache_key(group_cn)
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    try:
        result = call_with_service_client(
            lambda client: client.group_find(o_cn=group_cn, o_all=True, o_no_members=False),
        )
    except FreeIPAUnavailableError as exc:
        raise DirectoryUnavailable() from exc
    except Exception as exc:
        if is_availability_error(exc):
            logger.warning("FreeIPA voter group lookup failed cn=%s: %s", group_cn, exc)
            raise DirectoryUnavailable() from exc
        raise

    if not isinstance(result, dict) or result.get("count", 0) <= 0:
        raise FreeIPAMisconfiguredError(f"FreeIPA group not found: {group_cn}")

    group_data = (result.get("result") or [None])[0]
    if not isinstance(group_data, dict):
        raise FreeIPAMisconfiguredError(f"FreeIPA group not found: {group_cn}")

    cache.set(cache_key, group_data, timeout=settings.ELECTION_DIRECTORY_CACHE_TTL_SECONDS)
    return group_data


def group_member_usernames(cn: str) -> frozenset[str]:
    """Usernames of direct members plus members of nested groups."""
    users: set[str] = set()
    visited: set[str] = set()
    pending = [cn]
    while pending:
        group_cn = pending.pop()
        key = group_cn.lower()
        if key in visited:
            continue
        visited.add(key)

        group_data = _fetch_group_data(group_cn)
        users.update(_clean_str_list(group_data.get("member_user")))
        pending.extend(sorted(_clean_str_list(group_data.get("member_group")), key=str.lower))
    return frozenset(users)


class FreeIPAVoterDirectory(VoterDirectory):
    def __init__(
        self,
        *,
        eligible_group: str | None = None,
        scope_groups: dict[str, str] | None = None,
    ) -> None:
        self.eligible_group = eligible_group or settings.ELECTION_FREEIPA_ELIGIBLE_GROUP
        self.scope_groups = dict(scope_groups if scope_groups is not None else settings.ELECTION_FREEIPA_SCOPE_GROUPS)

    def _scope_of(self, voter_id: str) -> str:
        for scope in sorted(self.scope_groups):
            if voter_id in group_member_usernames(self.scope_groups[scope]):
                return scope
        return ""

    def lookup(self, voter_id: str) -> VoterProfile | None:
        scope = self._scope_of(voter_id)
        is_eligible = voter_id in group_member_usernames(self.eligible_group)
        if not is_eligible and not scope:
            return None
        return VoterProfile(voter_id=voter_id, scope=scope, is_eligible=is_eligible)

    def count_eligible(self, *, scope: str | None = None) -> int:
        eligible = group_member_usernames(self.eligible_group)
        if scope is None:
            return len(eligible)
        scope_cn = self.scope_groups.get(scope)
        if scope_cn is None:
            return 0
        return len(eligible & group_member_usernames(scope_cn))

    def scopes(self) -> list[str]:
        return [scope for scope in sorted(self.scope_groups) if self.count_eligible(scope=scope) > 0]


__all__ = [
    "FreeIPAVoterDirectory",
    "group_member_usernames",
]
