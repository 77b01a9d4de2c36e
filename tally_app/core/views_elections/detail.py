"""Read-only election views: state, gated results and turnout."""

from dataclasses import asdict

from django.http import JsonResponse
from django.views.decorators.http import require_GET

from core.elections_registry import election_state, get_election
from core.elections_turnout import turnout, turnout_by_scope
from core.elections_visibility import present_election_results, present_position_results
from core.permissions import json_login_required
from core.views_elections._helpers import election_json_view
from core.views_utils import get_scope_param


@require_GET
@json_login_required
@election_json_view
def election_detail(request, election_id: int):
    return JsonResponse({"ok": True, "election": election_state(get_election(election_id))})


@require_GET
@json_login_required
@election_json_view
def election_results(request, election_id: int):
    scope = get_scope_param(request)
    results = present_election_results(election_id=election_id, scope=scope)
    return JsonResponse(
        {
            "ok": True,
            "election_id": election_id,
            "scope": scope,
            "positions": [result.as_dict() for result in results],
        }
    )


@require_GET
@json_login_required
@election_json_view
def election_position_results(request, election_id: int, position_id: int):
    result = present_position_results(
        election_id=election_id,
        position_id=position_id,
        scope=get_scope_param(request),
    )
    return JsonResponse({"ok": True, "election_id": election_id, "result": result.as_dict()})


@require_GET
@json_login_required
@election_json_view
def election_turnout(request, election_id: int):
    if request.GET.get("by_scope"):
        snapshots = turnout_by_scope(election_id=election_id)
        return JsonResponse(
            {"ok": True, "election_id": election_id, "scopes": [asdict(snapshot) for snapshot in snapshots]}
        )

    snapshot = turnout(election_id=election_id, scope=get_scope_param(request))
    return JsonResponse({"ok": True, "turnout": asdict(snapshot)})
