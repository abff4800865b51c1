"""
Identity provider client for the Microsoft identity platform.

Wraps an msal ConfidentialClientApplication:
- starting the authorization-code flow with PKCE
- redeeming the returned code for tokens
- exchanging a stored refresh credential for an access credential
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import msal
import requests

from .errors import TokenExchangeFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenGrant:
    """Result of a successful authorization-code exchange."""

    email: str
    refresh_credential: str
    access_credential: Optional[str] = None


class IdentityClient:
    """
    Talks to the identity provider on behalf of the application.

    One instance is created at process start and shared by all requests.
    """

    def __init__(
        self,
        app: msal.ConfidentialClientApplication,
        scopes: list[str],
        redirect_uri: str,
        response_mode: str = "form_post",
        prompt: Optional[str] = None,
    ):
        self._app = app
        self.scopes = list(scopes)
        self.redirect_uri = redirect_uri
        self.response_mode = response_mode
        self.prompt = prompt

    @classmethod
    def from_config(cls, config) -> "IdentityClient":
        """Build a client from an AppConfig."""
        app = msal.ConfidentialClientApplication(
            config.client_id,
            authority=config.authority,
            client_credential=config.client_secret,
            timeout=config.provider_timeout_seconds,
        )
        return cls(
            app,
            scopes=config.scopes,
            redirect_uri=config.redirect_uri,
            response_mode=config.response_mode,
            prompt=config.prompt,
        )

    def initiate_flow(self, state: str) -> dict[str, Any]:
        """
        Start an authorization-code flow.

        msal generates the PKCE verifier/challenge pair (S256) and keeps the
        verifier in the returned flow dict, which the caller stores in its
        session until the redirect comes back.

        Returns:
            The flow dict; flow["auth_uri"] is where the user is sent
        """
        flow = self._app.initiate_auth_code_flow(
            self.scopes,
            redirect_uri=self.redirect_uri,
            state=state,
            prompt=self.prompt,
            response_mode=self.response_mode,
        )
        logger.debug(f"Started auth code flow for scopes {self.scopes}")
        return flow

    def redeem_code(self, flow: dict[str, Any], code: str, state: str) -> TokenGrant:
        """
        Exchange an authorization code (plus the flow's PKCE verifier) for tokens.

        Raises:
            TokenExchangeFailed: On transport errors, provider errors, or a
                response lacking the account email or refresh credential
        """
        try:
            result = self._app.acquire_token_by_auth_code_flow(
                flow, {"code": code, "state": state}, scopes=self.scopes
            )
        except ValueError as e:
            # msal raises ValueError when the response does not match the flow
            raise TokenExchangeFailed(f"Auth code flow rejected: {e}") from e
        except requests.RequestException as e:
            raise TokenExchangeFailed(f"Token endpoint unreachable: {e}") from e

        if "error" in result:
            raise TokenExchangeFailed(
                result.get("error_description") or result.get("error")
            )

        claims = result.get("id_token_claims") or {}
        account = self._find_cached_account(claims)
        email = claims.get("preferred_username") or claims.get("email")
        if not email and account:
            email = account.get("username")
        if not email:
            raise TokenExchangeFailed("Token response did not identify the account")

        refresh_credential = result.get("refresh_token") or self._cached_refresh_token(
            account
        )
        if not refresh_credential:
            raise TokenExchangeFailed(
                "No refresh credential issued; is offline_access granted?"
            )

        return TokenGrant(
            email=email,
            refresh_credential=refresh_credential,
            access_credential=result.get("access_token"),
        )

    def refresh(self, refresh_credential: str) -> str:
        """
        Exchange a refresh credential for a short-lived access credential.

        Raises:
            TokenExchangeFailed: If the provider refuses or cannot be reached
        """
        try:
            result = self._app.acquire_token_by_refresh_token(
                refresh_credential, scopes=self.scopes
            )
        except requests.RequestException as e:
            raise TokenExchangeFailed(f"Token endpoint unreachable: {e}") from e

        access_credential = result.get("access_token")
        if not access_credential:
            raise TokenExchangeFailed(
                result.get("error_description")
                or result.get("error")
                or "No access credential in refresh response"
            )
        return access_credential

    def _find_cached_account(self, claims: dict) -> Optional[dict]:
        """Find the msal cache account matching the id token's object and tenant ids."""
        oid, tid = claims.get("oid"), claims.get("tid")
        for account in self._app.get_accounts():
            if oid and tid and account.get("home_account_id") == f"{oid}.{tid}":
                return account
            if claims.get("preferred_username") and account.get("username") == claims.get(
                "preferred_username"
            ):
                return account
        return None

    def _cached_refresh_token(self, account: Optional[dict]) -> Optional[str]:
        """Read the refresh token msal cached for an account, if it is known."""
        # The cache is shared by every account; never search it unscoped
        if not account or not account.get("home_account_id"):
            return None
        entries = list(
            self._app.token_cache.search(
                msal.TokenCache.CredentialType.REFRESH_TOKEN,
                query={"home_account_id": account["home_account_id"]},
            )
        )
        if not entries:
            return None
        return entries[0].get("secret")
