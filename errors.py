"""
Error taxonomy for the account service.

Each error carries the HTTP status it maps to and the generic message shown
to the client. Anything else raised inside a route is logged and reported as
InternalError.
"""

import logging
from contextlib import contextmanager


logger = logging.getLogger(__name__)


class AccountServiceError(Exception):
    status_code = 500
    message = "Something went wrong"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AccountServiceError):
    status_code = 400
    message = "Passwords do not match"


class DuplicateEmail(AccountServiceError):
    status_code = 400
    message = "Email already registered"


class InvalidCredentials(AccountServiceError):
    # Same text for an unknown email and a wrong password.
    status_code = 400
    message = "Invalid email or password"


class NotFound(AccountServiceError):
    status_code = 404
    message = "User not found"


class InvalidOrExpiredToken(AccountServiceError):
    status_code = 400
    message = "Invalid or expired token"


class Unauthorized(AccountServiceError):
    status_code = 401
    message = "Unauthorized"


class InternalError(AccountServiceError):
    status_code = 500
    message = "Something went wrong"


@contextmanager
def internal_errors(action: str):
    """Let service errors through; log and wrap everything else."""
    try:
        yield
    except AccountServiceError:
        raise
    except Exception as exc:
        logger.exception("%s failed", action)
        raise InternalError() from exc
