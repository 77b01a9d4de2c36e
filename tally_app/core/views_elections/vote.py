"""Election voting: participation confirmation and ballot submission."""

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from core.elections_ballots import cast_ballot
from core.elections_participation import (
    confirm_participation,
    participation_status,
    voter_history,
    withdraw_participation,
)
from core.permissions import json_login_required
from core.views_elections._helpers import _bad_request, election_json_view
from core.views_utils import get_username, parse_json_object


@require_http_methods(["GET", "POST"])
@json_login_required
@election_json_view
def election_participation(request, election_id: int):
    username = get_username(request)
    if request.method == "POST":
        confirm_participation(voter_id=username, election_id=election_id)

    return JsonResponse(
        {
            "ok": True,
            "election_id": election_id,
            **participation_status(voter_id=username, election_id=election_id),
        }
    )


@require_POST
@json_login_required
@election_json_view
def election_participation_withdraw(request, election_id: int):
    username = get_username(request)
    withdraw_participation(voter_id=username, election_id=election_id)
    return JsonResponse(
        {
            "ok": True,
            "election_id": election_id,
            **participation_status(voter_id=username, election_id=election_id),
        }
    )


def _parse_selections(request) -> dict[str, object]:
    data = parse_json_object(request)
    selections = data.get("selections", {})
    if not isinstance(selections, dict):
        raise ValueError("selections must map position ids to lists of candidate ids")
    return selections


@require_POST
@json_login_required
@election_json_view
def election_ballot_submit(request, election_id: int):
    try:
        selections = _parse_selections(request)
    except ValueError as exc:
        return _bad_request(str(exc))

    receipt = cast_ballot(
        voter_id=get_username(request),
        election_id=election_id,
        selections=selections,
    )
    return JsonResponse(
        {
            "ok": True,
            "election_id": election_id,
            "ballot_token": receipt.ballot_token,
            "submitted_at": receipt.ballot.submitted_at.isoformat(),
            "vote_count": receipt.vote_count,
        }
    )


@require_GET
@json_login_required
@election_json_view
def voter_participation_history(request):
    username = get_username(request)
    return JsonResponse({"ok": True, "voter_id": username, "history": voter_history(voter_id=username)})
