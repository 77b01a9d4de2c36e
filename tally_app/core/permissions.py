from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from django.http import HttpRequest, HttpResponse, JsonResponse

ELECTION_MANAGE_PERMISSION = "core.manage_election"


P = ParamSpec("P")
R = TypeVar("R", bound=HttpResponse)


def _request_from_args(args: tuple[object, ...]) -> HttpRequest | None:
    if not args or not isinstance(args[0], HttpRequest):
        return None
    return args[0]


def json_login_required(view_func: Callable[P, R]) -> Callable[P, HttpResponse]:
    """Decorator for JSON endpoints that need an authenticated voter.

    Returns a JSON 403 response instead of redirecting to the login page.
    """

    @wraps(view_func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> HttpResponse:
        request = _request_from_args(args)
        if request is None or not request.user.is_authenticated:
            return JsonResponse({"ok": False, "code": "authentication_required", "error": "Authentication required."}, status=403)
        return view_func(*args, **kwargs)

    return wrapper


def json_permission_required(permission: str) -> Callable[[Callable[P, R]], Callable[P, HttpResponse]]:
    """Decorator for JSON endpoints that require a single Django permission."""

    def decorator(view_func: Callable[P, R]) -> Callable[P, HttpResponse]:
        @wraps(view_func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> HttpResponse:
            request = _request_from_args(args)
            if request is None or not can_manage(request.user, permission=permission):
                return JsonResponse({"ok": False, "code": "permission_denied", "error": "Permission denied."}, status=403)
            return view_func(*args, **kwargs)

        return wrapper

    return decorator


def can_manage(user: object, *, permission: str = ELECTION_MANAGE_PERMISSION) -> bool:
    try:
        return bool(user.has_perm(permission))
    except AttributeError:
        return False
