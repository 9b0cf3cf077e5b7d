"""
Error kinds raised by the service layer.

Routes translate these into the standard error response; nothing is
persisted when one is raised.
"""


class ChallengeHubError(Exception):
    """Base error carrying a machine-readable kind and an HTTP status"""
    kind = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ForbiddenError(ChallengeHubError):
    """Role lacks permission for the action"""
    kind = "FORBIDDEN"
    status_code = 403


class NotFoundError(ChallengeHubError):
    """Challenge, acceptance, submission or user id unknown"""
    kind = "NOT_FOUND"
    status_code = 404


class ConflictError(ChallengeHubError):
    """Request contradicts current state (duplicate, active challenge, bad date)"""
    kind = "CONFLICT"
    status_code = 409
