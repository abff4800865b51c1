"""
Database layer for Multi-Calendar.

Provides SQLAlchemy models, connection management and the account store.
"""

from .accounts import (
    AccountRecord,
    AccountStore,
    CredentialStoreReadFailed,
    CredentialStoreWriteFailed,
    load_encryption_key,
)
from .connection import (
    create_db_engine,
    create_session_factory,
    get_database_url,
    init_db,
    session_scope,
)
from .models import Account, AccountEvent, Base

__all__ = [
    # Connection
    "get_database_url",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
    # Models
    "Base",
    "Account",
    "AccountEvent",
    # Accounts
    "AccountRecord",
    "AccountStore",
    "CredentialStoreReadFailed",
    "CredentialStoreWriteFailed",
    "load_encryption_key",
]
