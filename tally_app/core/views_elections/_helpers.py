"""Shared private helpers used across election view sub-modules."""

import logging
from collections.abc import Callable
from functools import wraps

from django.db import DatabaseError
from django.http import JsonResponse

from core.elections_errors import ElectionError, InvalidSelection, StorageFailure

logger = logging.getLogger(__name__)


def _error_response(exc: ElectionError) -> JsonResponse:
    payload: dict[str, object] = {"ok": False, "code": exc.code, "error": str(exc)}
    if isinstance(exc, InvalidSelection) and exc.position_id is not None:
        payload["position_id"] = exc.position_id
    return JsonResponse(payload, status=exc.status_code)


def _bad_request(message: str) -> JsonResponse:
    return JsonResponse({"ok": False, "code": "bad_request", "error": message}, status=400)


def election_json_view[**P](view_func: Callable[P, JsonResponse]) -> Callable[P, JsonResponse]:
    """Translate election errors raised by a view into JSON error responses."""

    @wraps(view_func)
    def _wrapped(*args: P.args, **kwargs: P.kwargs) -> JsonResponse:
        try:
            return view_func(*args, **kwargs)
        except ElectionError as exc:
            return _error_response(exc)
        except DatabaseError:
            logger.exception("Election request failed in the database layer")
            return _error_response(StorageFailure())

    return _wrapped
