"""
Tests for identity/flow.py

Drives the sign-in controller with an identity double and a real in-memory
account store.
"""

import pytest

from identity import (
    CsrfMismatch,
    SignInController,
    SignInState,
    StateInvalid,
    StateMissing,
    TokenExchangeFailed,
    TokenGrant,
    decode_state,
    encode_state,
)
from identity.flow import SESSION_CSRF_KEY, SESSION_FLOW_KEY

AUTH_URI = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize?client_id=x"


@pytest.fixture
def controller(identity, store):
    identity.initiate_flow.side_effect = lambda state: {
        "auth_uri": AUTH_URI,
        "state": state,
        "code_verifier": "verifier-123",
    }
    identity.redeem_code.return_value = TokenGrant(
        email="a@x.com", refresh_credential="rt-a", access_credential="at-a"
    )
    return SignInController(identity, store)


def _begin(controller, session, redirect_to="/"):
    controller.begin_sign_in(session, redirect_to)
    return session[SESSION_FLOW_KEY]["state"]


class TestBeginSignIn:
    def test_returns_provider_url(self, controller):
        assert controller.begin_sign_in({}, "/") == AUTH_URI

    def test_stores_csrf_and_flow_in_session(self, controller):
        session = {}
        controller.begin_sign_in(session, "/users/profile")

        assert session[SESSION_CSRF_KEY]
        assert session[SESSION_FLOW_KEY]["code_verifier"] == "verifier-123"

    def test_state_binds_csrf_and_redirect(self, controller, identity):
        session = {}
        controller.begin_sign_in(session, "/users/profile")

        state = decode_state(identity.initiate_flow.call_args[0][0])
        assert state.csrf_token == session[SESSION_CSRF_KEY]
        assert state.redirect_to == "/users/profile"

    def test_each_sign_in_gets_a_fresh_csrf_token(self, controller):
        first, second = {}, {}
        controller.begin_sign_in(first, "/")
        controller.begin_sign_in(second, "/")
        assert first[SESSION_CSRF_KEY] != second[SESSION_CSRF_KEY]


class TestCompleteSignIn:
    def test_success_creates_account_and_returns_target(self, controller, store):
        session = {}
        state = _begin(controller, session, "/users/profile")

        target = controller.complete_sign_in(session, "code-1", state)

        assert target == "/users/profile"
        assert store.get_by_email("a@x.com").refresh_credential == "rt-a"

    def test_passes_flow_code_and_state_to_identity(self, controller, identity):
        session = {}
        state = _begin(controller, session)
        flow = session[SESSION_FLOW_KEY]

        controller.complete_sign_in(session, "code-1", state)

        identity.redeem_code.assert_called_once_with(flow, "code-1", state)

    def test_clears_session_artifacts(self, controller):
        session = {}
        state = _begin(controller, session)

        controller.complete_sign_in(session, "code-1", state)

        assert SESSION_CSRF_KEY not in session
        assert SESSION_FLOW_KEY not in session

    def test_repeat_sign_in_creates_no_new_record(self, controller, identity, store):
        session = {}
        controller.complete_sign_in(session, "code-1", _begin(controller, session))

        identity.redeem_code.return_value = TokenGrant(
            email="a@x.com", refresh_credential="rt-rotated"
        )
        controller.complete_sign_in(session, "code-2", _begin(controller, session))

        assert store.count() == 1
        assert store.get_by_email("a@x.com").refresh_credential == "rt-a"

    def test_missing_state(self, controller, identity, store):
        session = {}
        _begin(controller, session)

        with pytest.raises(StateMissing):
            controller.complete_sign_in(session, "code-1", None)

        identity.redeem_code.assert_not_called()
        assert store.count() == 0

    def test_undecodable_state(self, controller, store):
        session = {}
        _begin(controller, session)

        with pytest.raises(StateInvalid):
            controller.complete_sign_in(session, "code-1", "%%%garbage%%%")

        assert store.count() == 0

    def test_csrf_mismatch(self, controller, identity, store):
        session = {}
        _begin(controller, session)
        forged = encode_state(SignInState(csrf_token="forged", redirect_to="/"))

        with pytest.raises(CsrfMismatch):
            controller.complete_sign_in(session, "code-1", forged)

        identity.redeem_code.assert_not_called()
        assert store.count() == 0

    def test_csrf_mismatch_without_session_token(self, controller, store):
        state = encode_state(SignInState(csrf_token="tok", redirect_to="/"))

        with pytest.raises(CsrfMismatch):
            controller.complete_sign_in({}, "code-1", state)

        assert store.count() == 0

    def test_exchange_failure_writes_nothing(self, controller, identity, store):
        session = {}
        state = _begin(controller, session)
        identity.redeem_code.side_effect = TokenExchangeFailed("invalid_grant")

        with pytest.raises(TokenExchangeFailed):
            controller.complete_sign_in(session, "code-1", state)

        assert store.count() == 0

    def test_provider_error_is_exchange_failure(self, controller, identity):
        session = {}
        state = _begin(controller, session)

        with pytest.raises(TokenExchangeFailed, match="consent"):
            controller.complete_sign_in(
                session, None, state, provider_error="user declined consent"
            )

        identity.redeem_code.assert_not_called()

    def test_missing_code(self, controller, identity):
        session = {}
        state = _begin(controller, session)

        with pytest.raises(TokenExchangeFailed):
            controller.complete_sign_in(session, "", state)

        identity.redeem_code.assert_not_called()

    def test_no_flow_in_session(self, controller, identity):
        session = {}
        state = _begin(controller, session)
        del session[SESSION_FLOW_KEY]

        with pytest.raises(TokenExchangeFailed):
            controller.complete_sign_in(session, "code-1", state)

        identity.redeem_code.assert_not_called()
