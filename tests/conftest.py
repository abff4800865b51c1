"""
Shared fixtures: an in-memory account store, identity/calendar doubles and
a Flask app wired with them.
"""

from unittest.mock import MagicMock

import pytest
from cryptography.fernet import Fernet

from calendars import CalendarAggregator, CalendarFetcher
from config import AppConfig
from db import AccountStore, create_db_engine, create_session_factory, init_db
from identity import IdentityClient, SignInController


@pytest.fixture
def config():
    return AppConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        session_secret="test-session-secret",
        # query mode keeps the session cookie usable over the test client's http
        response_mode="query",
    )


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return AccountStore(session_factory, Fernet.generate_key())


@pytest.fixture
def identity():
    return MagicMock(spec=IdentityClient)


@pytest.fixture
def fetcher():
    return MagicMock(spec=CalendarFetcher)


@pytest.fixture
def services(config, store, identity, fetcher):
    from services import Services

    return Services(
        config=config,
        store=store,
        identity=identity,
        fetcher=fetcher,
        aggregator=CalendarAggregator(store, identity, fetcher),
        sign_in=SignInController(identity, store),
    )


@pytest.fixture
def app(services):
    from app import create_app

    application = create_app(services=services)
    application.config.update(TESTING=True)
    return application


@pytest.fixture
def client(app):
    return app.test_client()
