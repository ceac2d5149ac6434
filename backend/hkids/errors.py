"""Error taxonomy shared by the services and the API layer.

Services raise these; the handlers registered in ``hkids.main`` turn them
into ``{"detail": ...}`` responses with the matching status code.
"""


class HKidsError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HKidsError):
    status_code = 400


class Unauthenticated(HKidsError):
    status_code = 401


class UserNotFound(HKidsError):
    status_code = 401


class Forbidden(HKidsError):
    status_code = 403


class NotFound(HKidsError):
    status_code = 404


class Conflict(HKidsError):
    status_code = 409


class StoreUnavailable(HKidsError):
    status_code = 500
