"""
Service objects shared by every request.

Built once at process start by create_app() and stored on the Flask app, so
tests can swap in doubles for the identity provider and the store.
"""

import logging
from dataclasses import dataclass

from flask import current_app

from calendars import CalendarAggregator, CalendarFetcher
from config import AppConfig
from db import (
    AccountStore,
    create_db_engine,
    create_session_factory,
    get_database_url,
    init_db,
    load_encryption_key,
)
from identity import IdentityClient, SignInController

logger = logging.getLogger(__name__)

EXTENSION_KEY = "multi_calendar"


@dataclass
class Services:
    config: AppConfig
    store: AccountStore
    identity: IdentityClient
    fetcher: CalendarFetcher
    aggregator: CalendarAggregator
    sign_in: SignInController


def build_services(config: AppConfig) -> Services:
    """Connect to the database and construct every service from config."""
    url = get_database_url(
        config.database_url, config.database_user, config.database_password
    )
    engine = create_db_engine(url)
    init_db(engine)

    store = AccountStore(
        create_session_factory(engine), load_encryption_key(config.encryption_key)
    )
    identity = IdentityClient.from_config(config)
    fetcher = CalendarFetcher.from_config(config)

    return Services(
        config=config,
        store=store,
        identity=identity,
        fetcher=fetcher,
        aggregator=CalendarAggregator(store, identity, fetcher),
        sign_in=SignInController(identity, store),
    )


def get_services() -> Services:
    """Services of the app handling the current request."""
    return current_app.extensions[EXTENSION_KEY]
