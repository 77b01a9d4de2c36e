"""FreeIPA service-account access for the voter directory.

Each thread logs in once and reuses its client. ``call_with_service_client``
logs in again once when the session has expired and reports connection-level
failures to the directory circuit breaker.
"""

import logging
import threading
from collections.abc import Callable
from typing import override

import requests
from django.conf import settings
from python_freeipa import ClientMeta, exceptions

from core.freeipa.circuit_breaker import directory_breaker, is_availability_error
from core.freeipa.exceptions import FreeIPAUnavailableError

logger = logging.getLogger("core.freeipa")


class TimeoutSession(requests.Session):
    def __init__(self, timeout_seconds: float) -> None:
        super().__init__()
        self.timeout_seconds = timeout_seconds

    @override
    def request(self, method: str, url: str, **kwargs: object) -> requests.Response:
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout_seconds
        return super().request(method, url, **kwargs)


class ServiceClients(threading.local):
    """Logged-in service client for the current thread."""

    client: ClientMeta | None = None

    def get(self) -> ClientMeta:
        if self.client is None:
            client = ClientMeta(host=settings.FREEIPA_HOST, verify_ssl=settings.FREEIPA_VERIFY_SSL)
            client._session = TimeoutSession(settings.FREEIPA_REQUEST_TIMEOUT_SECONDS)
            client.login(settings.FREEIPA_SERVICE_USER, settings.FREEIPA_SERVICE_PASSWORD)
            logger.debug("FreeIPA service session opened host=%s", settings.FREEIPA_HOST)
            self.client = client
        return self.client

    def discard(self) -> None:
        self.client = None


service_clients = ServiceClients()


def call_with_service_client[T](fn: Callable[[ClientMeta], T]) -> T:
    if directory_breaker.is_open():
        raise FreeIPAUnavailableError("FreeIPA circuit breaker is open")

    try:
        try:
            result = fn(service_clients.get())
        except exceptions.Unauthorized:
            logger.info("FreeIPA service session expired; logging in again")
            service_clients.discard()
            result = fn(service_clients.get())
    except Exception as exc:
        if is_availability_error(exc):
            directory_breaker.record_failure()
        logger.exception("FreeIPA directory call failed: %s", exc)
        raise

    directory_breaker.record_success()
    return result


__all__ = [
    "ServiceClients",
    "TimeoutSession",
    "call_with_service_client",
    "service_clients",
]
