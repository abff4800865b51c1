"""
Encoding of the OAuth `state` parameter.

The state binds the CSRF token stored in the caller's session to the page
the caller returns to after sign-in. It travels as base64-encoded JSON:
{"csrfToken": "...", "redirectTo": "/"}.
"""

import base64
import binascii
import json
from dataclasses import dataclass

from .errors import StateInvalid, StateMissing


@dataclass(frozen=True)
class SignInState:
    csrf_token: str
    redirect_to: str = "/"


def encode_state(state: SignInState) -> str:
    payload = json.dumps({"csrfToken": state.csrf_token, "redirectTo": state.redirect_to})
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_state(raw: str | None) -> SignInState:
    """
    Decode a state value received on the redirect callback.

    Accepts both standard and URL-safe base64, with or without padding.

    Raises:
        StateMissing: If no state was received
        StateInvalid: If the value is not base64 JSON carrying a csrfToken
    """
    if not raw:
        raise StateMissing()

    normalized = raw.strip().replace("+", "-").replace("/", "_")
    normalized += "=" * (-len(normalized) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(normalized.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise StateInvalid(f"state could not be decoded: {e}") from e

    if not isinstance(data, dict):
        raise StateInvalid("state is not an object")

    csrf_token = data.get("csrfToken")
    if not isinstance(csrf_token, str) or not csrf_token:
        raise StateInvalid("state has no csrfToken")

    redirect_to = data.get("redirectTo") or "/"
    if not isinstance(redirect_to, str):
        raise StateInvalid("state redirectTo is not a string")

    return SignInState(csrf_token=csrf_token, redirect_to=redirect_to)
