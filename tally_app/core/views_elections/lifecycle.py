"""Officer-only election views: lifecycle changes and participant listings."""

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from core.elections_participation import election_participants
from core.elections_registry import set_visibility_release, transition_election_status
from core.permissions import ELECTION_MANAGE_PERMISSION, json_permission_required
from core.views_elections._helpers import _bad_request, election_json_view
from core.views_utils import get_bool_param, get_username, parse_json_object


@require_POST
@json_permission_required(ELECTION_MANAGE_PERMISSION)
@election_json_view
def election_transition(request, election_id: int):
    try:
        data = parse_json_object(request)
    except ValueError as exc:
        return _bad_request(str(exc))

    target_status = str(data.get("status") or "").strip()
    if not target_status:
        return _bad_request("status is required")

    election = transition_election_status(
        election_id=election_id,
        target_status=target_status,
        actor=get_username(request) or None,
    )
    return JsonResponse({"ok": True, "election_id": election.id, "status": election.status})


@require_POST
@json_permission_required(ELECTION_MANAGE_PERMISSION)
@election_json_view
def election_position_release(request, election_id: int, position_id: int):
    try:
        data = parse_json_object(request)
    except ValueError as exc:
        return _bad_request(str(exc))

    released = data.get("released", True)
    if not isinstance(released, bool):
        return _bad_request("released must be true or false")

    release = set_visibility_release(
        election_id=election_id,
        position_id=position_id,
        released=released,
        actor=get_username(request) or None,
    )
    return JsonResponse({"ok": True, "position_id": position_id, "released": release.released})


@require_GET
@json_permission_required(ELECTION_MANAGE_PERMISSION)
@election_json_view
def election_participants_list(request, election_id: int):
    try:
        has_voted = get_bool_param(request, "has_voted")
        participants = election_participants(
            election_id=election_id,
            status=str(request.GET.get("status") or "").strip() or None,
            has_voted=has_voted,
            search=request.GET.get("search"),
        )
    except ValueError as exc:
        return _bad_request(str(exc))

    return JsonResponse(
        {"ok": True, "election_id": election_id, "count": len(participants), "participants": participants}
    )
