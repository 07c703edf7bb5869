"""Service-level errors. Each carries the HTTP status it is rendered with."""


class ServiceError(Exception):
    """Base class for errors raised by services and converted at the handler boundary."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class Unauthenticated(ServiceError):
    """Missing, invalid or expired bearer token, or the token's account is gone."""

    status_code = 401


class Unauthorized(ServiceError):
    """Credentials were presented but do not match."""

    status_code = 401


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    """Uniqueness violation (email, username, phone number)."""

    status_code = 409


class InvariantViolation(ServiceError):
    """The mutation would break a store-wide rule (e.g. last administrator)."""

    status_code = 400


class InvalidRequest(ServiceError):
    """Missing required field or value outside its enumeration."""

    status_code = 400


class InvalidToken(ServiceError):
    """Reset token failed verification or was already consumed."""

    status_code = 400


class UpstreamError(ServiceError):
    """An external provider (media host, mail server, identity provider) failed."""

    status_code = 502


class ServiceUnavailable(ServiceError):
    """An external provider is required but not configured."""

    status_code = 503
