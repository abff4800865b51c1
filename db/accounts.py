"""
CRUD operations for authorized calendar accounts.

Each account binds an email to the refresh credential issued when it signed
in. Credentials are encrypted at rest using Fernet symmetric encryption.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .connection import session_scope
from .models import Account

logger = logging.getLogger(__name__)


class CredentialStoreReadFailed(Exception):
    """The account table could not be read."""


class CredentialStoreWriteFailed(Exception):
    """A new account could not be written."""


@dataclass(frozen=True)
class AccountRecord:
    """An account as seen by the rest of the application."""

    id: int
    email: str
    # None when the stored ciphertext cannot be decrypted with the current key
    refresh_credential: Optional[str]


def load_encryption_key(key: Optional[str] = None) -> bytes:
    """Resolve the Fernet key, generating a temporary one if none is configured."""
    key = key or os.environ.get("CREDENTIAL_ENCRYPTION_KEY")
    if key:
        return key.encode()

    logger.warning(
        "CREDENTIAL_ENCRYPTION_KEY not set - generating temporary key. "
        "Set this env var to keep stored accounts usable across restarts."
    )
    return Fernet.generate_key()


class AccountStore:
    """
    Persisted mapping from account email to refresh credential.

    Creation is upsert-by-email: an existing record is never overwritten, so
    a repeat sign-in leaves the original credential in place.
    """

    def __init__(self, session_factory: sessionmaker, encryption_key: bytes):
        self._session_factory = session_factory
        self._fernet = Fernet(encryption_key)

    def _encrypt(self, data: str) -> str:
        return self._fernet.encrypt(data.encode()).decode()

    def _decrypt(self, data: str) -> str:
        return self._fernet.decrypt(data.encode()).decode()

    def _to_record(self, account: Account) -> AccountRecord:
        try:
            credential = self._decrypt(account.refresh_credential_encrypted)
        except InvalidToken:
            logger.error(f"Failed to decrypt refresh credential for {account.email}")
            credential = None
        return AccountRecord(
            id=account.id, email=account.email, refresh_credential=credential
        )

    def create_if_missing(self, email: str, refresh_credential: str) -> bool:
        """
        Store a new account unless one already exists for the email.

        Args:
            email: Account email (unique key)
            refresh_credential: Provider-issued refresh credential

        Returns:
            True if a record was created, False if one already existed

        Raises:
            CredentialStoreWriteFailed: If the database rejects the write
        """
        try:
            with session_scope(self._session_factory) as db:
                existing = db.execute(
                    select(Account.id).where(Account.email == email)
                ).first()
                if existing:
                    logger.info(f"Account {email} already stored, leaving it unchanged")
                    return False

                db.add(
                    Account(
                        email=email,
                        refresh_credential_encrypted=self._encrypt(refresh_credential),
                    )
                )
        except IntegrityError:
            # Another sign-in for the same email committed between our read and write
            logger.warning(f"Account {email} was created concurrently, skipping")
            return False
        except SQLAlchemyError as e:
            raise CredentialStoreWriteFailed(str(e)) from e

        logger.info(f"Stored new account {email}")
        return True

    def get_all(self) -> list[AccountRecord]:
        """
        Get every stored account with its decrypted refresh credential.

        Raises:
            CredentialStoreReadFailed: If the database cannot be read
        """
        try:
            with session_scope(self._session_factory) as db:
                accounts = db.execute(select(Account).order_by(Account.id)).scalars().all()
                return [self._to_record(a) for a in accounts]
        except SQLAlchemyError as e:
            raise CredentialStoreReadFailed(str(e)) from e

    def get_by_email(self, email: str) -> Optional[AccountRecord]:
        """Get a single account by email, or None if not stored."""
        try:
            with session_scope(self._session_factory) as db:
                account = db.execute(
                    select(Account).where(Account.email == email)
                ).scalar_one_or_none()
                return self._to_record(account) if account else None
        except SQLAlchemyError as e:
            raise CredentialStoreReadFailed(str(e)) from e

    def list_emails(self) -> list[dict]:
        """List every account as an {id, email} projection."""
        try:
            with session_scope(self._session_factory) as db:
                accounts = db.execute(select(Account).order_by(Account.id)).scalars().all()
                return [a.to_dict() for a in accounts]
        except SQLAlchemyError as e:
            raise CredentialStoreReadFailed(str(e)) from e

    def count(self) -> int:
        """Number of stored accounts."""
        try:
            with session_scope(self._session_factory) as db:
                return db.execute(select(func.count(Account.id))).scalar_one()
        except SQLAlchemyError as e:
            raise CredentialStoreReadFailed(str(e)) from e
