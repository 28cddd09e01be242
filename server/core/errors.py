# server/core/errors.py

"""
Domain errors raised by the credential store, the token service,
the authorization gate and the task repository.

Each operation raises from its own family so callers can handle the
outcomes they care about and let the rest propagate. The HTTP layer
maps them to status codes in main.py.
"""


class TaskManagerError(Exception):
    """Base class for every error the service raises on purpose."""

    message = "Unexpected error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(TaskManagerError):
    message = "Invalid request"


# -------------------------------
# Registration / login
# -------------------------------

class DuplicateIdentity(TaskManagerError):
    message = "Username or email already exists"


class LoginFailed(TaskManagerError):
    message = "Invalid username or password"


class NotFound(LoginFailed):
    pass


class InvalidCredentials(LoginFailed):
    pass


# -------------------------------
# Tokens
# -------------------------------

class TokenError(TaskManagerError):
    message = "Invalid token"


class Malformed(TokenError):
    message = "Malformed token"


class InvalidSignature(TokenError):
    message = "Token signature mismatch"


class Expired(TokenError):
    message = "Token expired"


# -------------------------------
# Authorization gate
# -------------------------------

class Unauthenticated(TaskManagerError):
    message = "Invalid or expired token"


class MalformedHeader(Unauthenticated):
    message = "Invalid token format"


# -------------------------------
# Tasks / storage
# -------------------------------

class NotFoundOrForbidden(TaskManagerError):
    message = "Task not found or unauthorized"


class StorageError(TaskManagerError):
    message = "Internal server error"
