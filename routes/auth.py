"""
Sign-in routes.

Provides:
- GET /auth/signin - start sign-in, return to the configured success URL
- GET /auth/acquireToken - start sign-in, return to /users/profile
- GET|POST /auth/redirect - provider callback completing the code exchange
"""

import logging

from flask import Blueprint, jsonify, redirect, request, session

from db.accounts import CredentialStoreWriteFailed
from identity.errors import AuthError
from services import get_services

logger = logging.getLogger(__name__)


def create_auth_blueprint(url_prefix: str = "/auth") -> Blueprint:
    """Create the sign-in blueprint."""
    auth = Blueprint("auth", __name__, url_prefix=url_prefix)

    def _start_sign_in(redirect_to: str):
        authorization_url = get_services().sign_in.begin_sign_in(session, redirect_to)
        logger.info(f"Redirecting to identity provider (return to {redirect_to})")
        return redirect(authorization_url)

    @auth.route("/signin", methods=["GET"])
    def signin():
        """Sign in and return to the application's success URL."""
        return _start_sign_in(get_services().config.post_login_redirect_url)

    @auth.route("/acquireToken", methods=["GET"])
    def acquire_token():
        """Sign in and return to the profile page."""
        return _start_sign_in(get_services().config.acquire_token_redirect_url)

    @auth.route("/redirect", methods=["GET", "POST"])
    def redirect_callback():
        """Complete the authorization-code exchange."""
        # form_post responses arrive in the body, query responses in the URL
        values = request.form if request.method == "POST" else request.args
        target = get_services().sign_in.complete_sign_in(
            session,
            values.get("code"),
            values.get("state"),
            provider_error=values.get("error_description") or values.get("error"),
        )
        return redirect(target)

    @auth.errorhandler(AuthError)
    def handle_auth_error(error: AuthError):
        logger.warning(f"Sign-in failed ({error.code}): {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @auth.errorhandler(CredentialStoreWriteFailed)
    def handle_store_write_error(error: CredentialStoreWriteFailed):
        logger.error(f"Sign-in succeeded but the account could not be stored: {error}")
        return jsonify({"error": "store_write_failed", "message": str(error)}), 500

    return auth
