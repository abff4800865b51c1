"""
Calendar fetching and aggregation.
"""

from .aggregator import AccountResult, CalendarAggregator
from .graph import CalendarFetcher, month_window, to_event_summary

__all__ = [
    "AccountResult",
    "CalendarAggregator",
    "CalendarFetcher",
    "month_window",
    "to_event_summary",
]
