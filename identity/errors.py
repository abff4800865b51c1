"""
Errors raised by the sign-in flow.

Each error carries a stable code and the HTTP status the routes answer with.
"""


class AuthError(Exception):
    """Base class for sign-in failures. None of them are retried."""

    code = "auth_error"
    status_code = 400
    default_message = "Sign-in failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class StateMissing(AuthError):
    code = "state_missing"
    default_message = "state is missing"


class StateInvalid(AuthError):
    code = "state_invalid"
    default_message = "state could not be decoded"


class CsrfMismatch(AuthError):
    code = "csrf_mismatch"
    default_message = "csrf token does not match"


class TokenExchangeFailed(AuthError):
    code = "token_exchange_failed"
    status_code = 502
    default_message = "token exchange with the identity provider failed"
