"""Election error taxonomy shared by the service modules and JSON views.

Each error carries a stable ``code`` and the HTTP status the JSON views answer
with. Messages are safe to show to voters.
"""

STORAGE_FAILURE_MESSAGE = (
    "Your request could not be saved right now. Before submitting again, check whether "
    "your ballot was already recorded."
)


class ElectionError(Exception):
    code = "election_error"
    status_code = 400


class NotFound(ElectionError):
    code = "not_found"
    status_code = 404


class BallotWindowClosed(ElectionError):
    code = "ballot_window_closed"
    status_code = 409


class AlreadyVoted(ElectionError):
    code = "already_voted"
    status_code = 409


class InvalidSelection(ElectionError):
    code = "invalid_selection"
    status_code = 400

    def __init__(self, message: str, *, position_id: int | None = None) -> None:
        super().__init__(message)
        self.position_id = position_id


class IneligibleVoter(ElectionError):
    code = "ineligible_voter"
    status_code = 403


class InvalidTransition(ElectionError):
    code = "invalid_transition"
    status_code = 409


class ElectionLocked(ElectionError):
    code = "election_locked"
    status_code = 409


class StorageFailure(ElectionError):
    code = "storage_failure"
    status_code = 503

    def __init__(self, message: str = STORAGE_FAILURE_MESSAGE) -> None:
        super().__init__(message)


class DirectoryUnavailable(StorageFailure):
    code = "directory_unavailable"

    def __init__(self, message: str = "The voter directory is temporarily unavailable. Please try again later.") -> None:
        super().__init__(message)


__all__ = [
    "STORAGE_FAILURE_MESSAGE",
    "AlreadyVoted",
    "BallotWindowClosed",
    "DirectoryUnavailable",
    "ElectionError",
    "ElectionLocked",
    "IneligibleVoter",
    "InvalidSelection",
    "InvalidTransition",
    "NotFound",
    "StorageFailure",
]
