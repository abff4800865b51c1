"""
Calendar routes.

Provides:
- GET /calendar/ - events from every authorized account, merged
- GET /calendar/list - the authorized accounts
"""

import logging

from flask import Blueprint, jsonify

from db.accounts import CredentialStoreReadFailed
from services import get_services

logger = logging.getLogger(__name__)


def create_calendar_blueprint(url_prefix: str = "/calendar") -> Blueprint:
    """Create the calendar blueprint."""
    calendar = Blueprint("calendar", __name__, url_prefix=url_prefix)

    @calendar.route("/", methods=["GET"])
    def aggregate_calendars():
        """Merged events of this month across all accounts."""
        try:
            calendars = get_services().aggregator.aggregate_all_calendars()
        except CredentialStoreReadFailed as e:
            logger.error(f"Could not read stored accounts: {e}")
            return jsonify({"error": str(e), "calendars": []}), 500

        return jsonify({"calendars": calendars}), 200

    @calendar.route("/list", methods=["GET"])
    def list_calendars():
        """Email of every authorized account."""
        try:
            accounts = get_services().aggregator.list_accounts()
        except CredentialStoreReadFailed as e:
            logger.error(f"Could not read stored accounts: {e}")
            return jsonify({"error": str(e)}), 500

        return jsonify(accounts), 200

    return calendar
