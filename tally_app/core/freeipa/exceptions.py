"""FreeIPA exception classes."""


class FreeIPAUnavailableError(RuntimeError):
    """Raised when the FreeIPA circuit breaker is open."""


class FreeIPAMisconfiguredError(RuntimeError):
    """Raised when a configured voter group does not exist in FreeIPA."""


__all__ = [
    "FreeIPAUnavailableError",
    "FreeIPAMisconfiguredError",
]
