"""
Aggregation of calendar events across every stored account.

Accounts are processed one after another. Each produces an AccountResult;
failed results are dropped before the events are merged, so one account's
failure never affects the others.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from db.accounts import AccountRecord, AccountStore
from identity.client import IdentityClient
from identity.errors import TokenExchangeFailed

from .graph import CalendarFetcher

logger = logging.getLogger(__name__)


@dataclass
class AccountResult:
    """Outcome of fetching one account's calendar."""

    email: str
    events: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CalendarAggregator:
    def __init__(
        self,
        store: AccountStore,
        identity: IdentityClient,
        fetcher: CalendarFetcher,
    ):
        self._store = store
        self._identity = identity
        self._fetcher = fetcher

    def collect(self) -> list[AccountResult]:
        """
        Fetch every account's events, one result per account in store order.

        Raises:
            CredentialStoreReadFailed: If the accounts cannot be read
        """
        accounts = self._store.get_all()
        logger.info(f"Aggregating calendars for {len(accounts)} account(s)")
        return [self._collect_account(account) for account in accounts]

    def _collect_account(self, account: AccountRecord) -> AccountResult:
        if not account.refresh_credential:
            return AccountResult(
                email=account.email, error="Stored refresh credential is unreadable"
            )

        try:
            access_credential = self._identity.refresh(account.refresh_credential)
        except TokenExchangeFailed as e:
            logger.warning(f"Skipping {account.email}: {e.message}")
            return AccountResult(email=account.email, error=e.message)
        except Exception as e:
            logger.exception(f"Skipping {account.email}: unexpected refresh error")
            return AccountResult(email=account.email, error=str(e))

        events = self._fetcher.fetch_month_events(access_credential)
        return AccountResult(email=account.email, events=events)

    def aggregate_all_calendars(self) -> list[dict[str, Any]]:
        """
        Merge the events of every account whose credential could be refreshed.

        Each account's events keep their start-time order; the merged list is
        not re-sorted across accounts.
        """
        results = self.collect()
        succeeded = [result for result in results if result.ok]

        merged: list[dict[str, Any]] = []
        for result in succeeded:
            merged.extend(result.events)

        logger.info(
            f"Aggregated {len(merged)} events from "
            f"{len(succeeded)}/{len(results)} account(s)"
        )
        return merged

    def list_accounts(self) -> list[dict]:
        """All stored accounts as {id, email} projections."""
        return self._store.list_emails()
