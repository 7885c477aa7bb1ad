"""
core/errors.py -- Closed error taxonomy shared by the auth and project services.

Every failure a service reports to its caller is one of the ErrorKind values
below. Services raise the matching ServiceError subclass; the HTTP boundary in
api/main.py maps ErrorKind -> status code through a single table that covers
every member of the enum, so adding a kind without a mapping fails at import.

Nothing in auth/ or projects/ catches these to retry or recover. The single
deliberate exception is AuthService.forgot_password(), which turns the
unknown-email case into a silent success to prevent account enumeration.

Layer rule: core/ is the kernel. No imports from api/, auth/, or projects/.
"""

from enum import Enum


class ErrorKind(str, Enum):
    not_found = "not_found"
    conflict = "conflict"
    unauthorized = "unauthorized"
    forbidden = "forbidden"
    invalid_input = "invalid_input"
    token_expired = "token_expired"
    token_invalid = "token_invalid"
    email_not_verified = "email_not_verified"


class ServiceError(Exception):
    """Base class for every expected service failure.

    kind identifies the error for the boundary mapping. message is safe to
    show to clients; never put secrets, hashes, or tokens in it.
    """

    kind: ErrorKind
    default_message: str = "Service error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(ServiceError):
    kind = ErrorKind.not_found
    default_message = "Resource not found."


class Conflict(ServiceError):
    kind = ErrorKind.conflict
    default_message = "Resource already exists."


class Unauthorized(ServiceError):
    kind = ErrorKind.unauthorized
    default_message = "Unauthorized."


class Forbidden(ServiceError):
    kind = ErrorKind.forbidden
    default_message = "You do not have permission to perform this action."


class InvalidInput(ServiceError):
    kind = ErrorKind.invalid_input
    default_message = "Invalid input."


class TokenExpired(ServiceError):
    kind = ErrorKind.token_expired
    default_message = "Token expired."


class TokenInvalid(ServiceError):
    kind = ErrorKind.token_invalid
    default_message = "Token invalid."


class EmailNotVerified(ServiceError):
    kind = ErrorKind.email_not_verified
    default_message = "Email not verified."
