"""
Identity layer: OAuth2 authorization-code flow with PKCE against the
Microsoft identity platform.
"""

from .client import IdentityClient, TokenGrant
from .errors import (
    AuthError,
    CsrfMismatch,
    StateInvalid,
    StateMissing,
    TokenExchangeFailed,
)
from .flow import SignInController
from .state import SignInState, decode_state, encode_state

__all__ = [
    "IdentityClient",
    "TokenGrant",
    "SignInController",
    "SignInState",
    "encode_state",
    "decode_state",
    # Errors
    "AuthError",
    "StateMissing",
    "StateInvalid",
    "CsrfMismatch",
    "TokenExchangeFailed",
]
