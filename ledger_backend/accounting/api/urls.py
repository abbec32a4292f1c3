# accounting/api/urls.py

from django.urls import path

from accounting.api.views.accounts import AccountDetailView, AccountListView
from accounting.api.views.closing_checks import ClosingChecksView
from accounting.api.views.journal_entries import (
    JournalEntryCancelView,
    JournalEntryDetailView,
    JournalEntryListCreateView,
    JournalEntryReverseView,
)
from accounting.api.views.periods import PeriodDetailView, PeriodListCreateView

urlpatterns = [
    # Journal documents
    path("journal-entries/", JournalEntryListCreateView.as_view(), name="journal-entries"),
    path("journal-entries/<int:pk>/", JournalEntryDetailView.as_view(), name="journal-entry-detail"),
    path("journal-entries/<int:pk>/cancel/", JournalEntryCancelView.as_view(), name="journal-entry-cancel"),
    path("journal-entries/<int:pk>/reverse/", JournalEntryReverseView.as_view(), name="journal-entry-reverse"),
    # Periods (POST on detail closes the period)
    path("accounting-periods/", PeriodListCreateView.as_view(), name="accounting-periods"),
    path("accounting-periods/<int:pk>/", PeriodDetailView.as_view(), name="accounting-period-detail"),
    # Closing checks
    path("closing-checks/", ClosingChecksView.as_view(), name="closing-checks"),
    # Master data (read-only)
    path("accounts/", AccountListView.as_view(), name="accounts"),
    path("accounts/<int:pk>/", AccountDetailView.as_view(), name="account-detail"),
]
