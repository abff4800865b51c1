"""
Sign-in controller for the three-legged authorization-code flow.

Leg one (begin_sign_in) parks a CSRF token and the PKCE-carrying flow in the
caller's session and returns the provider URL. Leg three (complete_sign_in)
validates the state that comes back, redeems the code, and stores the
account's refresh credential if the email is new.
"""

import hmac
import logging
import uuid
from typing import MutableMapping

from db.accounts import AccountStore

from .client import IdentityClient
from .errors import CsrfMismatch, TokenExchangeFailed
from .state import SignInState, decode_state, encode_state

logger = logging.getLogger(__name__)

SESSION_CSRF_KEY = "csrf_token"
SESSION_FLOW_KEY = "auth_code_flow"


class SignInController:
    def __init__(self, identity: IdentityClient, store: AccountStore):
        self._identity = identity
        self._store = store

    def begin_sign_in(self, session: MutableMapping, redirect_to: str) -> str:
        """
        Start sign-in for the caller.

        Args:
            session: The caller's session (mutated)
            redirect_to: Where to send the caller once sign-in completes

        Returns:
            The identity provider authorization URL
        """
        csrf_token = str(uuid.uuid4())
        state = encode_state(SignInState(csrf_token=csrf_token, redirect_to=redirect_to))
        flow = self._identity.initiate_flow(state)

        session[SESSION_CSRF_KEY] = csrf_token
        session[SESSION_FLOW_KEY] = flow
        return flow["auth_uri"]

    def complete_sign_in(
        self,
        session: MutableMapping,
        received_code: str | None,
        received_state: str | None,
        provider_error: str | None = None,
    ) -> str:
        """
        Finish sign-in from the provider's redirect.

        Args:
            session: The caller's session
            received_code: Authorization code from the provider
            received_state: State value echoed back by the provider
            provider_error: Error description if the provider refused the request

        Returns:
            The post-login redirect target carried in the state

        Raises:
            StateMissing, StateInvalid, CsrfMismatch, TokenExchangeFailed
        """
        state = decode_state(received_state)

        expected = session.get(SESSION_CSRF_KEY)
        if not expected or not hmac.compare_digest(
            state.csrf_token.encode(), str(expected).encode()
        ):
            logger.warning("Sign-in callback rejected: csrf token does not match")
            raise CsrfMismatch()

        if provider_error:
            raise TokenExchangeFailed(provider_error)

        flow = session.get(SESSION_FLOW_KEY)
        if not flow:
            raise TokenExchangeFailed("No sign-in in progress for this session")
        if not received_code:
            raise TokenExchangeFailed("Authorization code is missing")

        grant = self._identity.redeem_code(flow, received_code, received_state)

        created = self._store.create_if_missing(grant.email, grant.refresh_credential)
        logger.info(
            f"Sign-in completed for {grant.email} "
            f"({'new account' if created else 'existing account'})"
        )

        session.pop(SESSION_CSRF_KEY, None)
        session.pop(SESSION_FLOW_KEY, None)
        return state.redirect_to
