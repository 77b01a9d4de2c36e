"""Cache-backed circuit breaker for voter directory lookups.

State lives in the Django cache so every worker sees the same breaker. Cache
errors never block a lookup: an unreadable breaker counts as closed.
"""

import logging
import socket

import requests
from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger("core.freeipa")

AVAILABILITY_ERRORS: tuple[type[BaseException], ...] = (
    requests.exceptions.Timeout,
    requests.exceptions.ConnectionError,
    requests.exceptions.SSLError,
    socket.timeout,
)


def is_availability_error(exc: BaseException) -> bool:
    return isinstance(exc, AVAILABILITY_ERRORS)


class CircuitBreaker:
    def __init__(self, name: str) -> None:
        self.name = name
        self.open_key = f"circuit_{name}_open"
        self.failures_key = f"circuit_{name}_consecutive_failures"

    @property
    def cooldown_seconds(self) -> int:
        return settings.FREEIPA_CIRCUIT_BREAKER_COOLDOWN_SECONDS

    @property
    def failure_threshold(self) -> int:
        return settings.FREEIPA_CIRCUIT_BREAKER_CONSECUTIVE_FAILURES

    def is_open(self) -> bool:
        try:
            return bool(cache.get(self.open_key))
        except Exception:
            return False

    def record_failure(self) -> None:
        try:
            cache.add(self.failures_key, 0, timeout=self.cooldown_seconds)
            failures = int(cache.incr(self.failures_key))
        except Exception:
            return

        if failures >= self.failure_threshold and not self.is_open():
            try:
                cache.add(self.open_key, True, timeout=self.cooldown_seconds)
            except Exception:
                return
            self._log_transition(from_state="closed", to_state="open", failure_count=failures)

    def record_success(self) -> None:
        was_open = self.is_open()
        try:
            cache.delete_many([self.failures_key, self.open_key])
        except Exception:
            return
        if was_open:
            self._log_transition(from_state="open", to_state="closed", failure_count=0)

    def _log_transition(self, *, from_state: str, to_state: str, failure_count: int) -> None:
        logger.warning(
            "tally.freeipa.circuit_breaker.transition breaker=%s from_state=%s to_state=%s failure_count=%d cooldown_seconds=%d",
            self.name,
            from_state,
            to_state,
            failure_count,
            self.cooldown_seconds,
            extra={
                "event": "tally.freeipa.circuit_breaker.transition",
                "component": "freeipa",
                "breaker": self.name,
                "from_state": from_state,
                "to_state": to_state,
                "failure_count": failure_count,
                "cooldown_seconds": self.cooldown_seconds,
            },
        )


directory_breaker = CircuitBreaker("voter_directory")


__all__ = [
    "AVAILABILITY_ERRORS",
    "CircuitBreaker",
    "directory_breaker",
    "is_availability_error",
]
