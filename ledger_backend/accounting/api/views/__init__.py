# accounting/api/views/__init__.py

"""
accounting.api.views package

Expose public API views cleanly without making routing/imports fragile.

Important:
- Do NOT import accounting.api.urls from here to avoid circular imports.
"""

from accounting.api.views.accounts import AccountDetailView, AccountListView
from accounting.api.views.closing_checks import ClosingChecksView
from accounting.api.views.journal_entries import (
    JournalEntryCancelView,
    JournalEntryDetailView,
    JournalEntryListCreateView,
    JournalEntryReverseView,
)
from accounting.api.views.periods import PeriodDetailView, PeriodListCreateView

__all__ = [
    "AccountListView",
    "AccountDetailView",
    "ClosingChecksView",
    "JournalEntryListCreateView",
    "JournalEntryDetailView",
    "JournalEntryCancelView",
    "JournalEntryReverseView",
    "PeriodListCreateView",
    "PeriodDetailView",
]
