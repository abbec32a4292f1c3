# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountDetailSerializer, AccountListSerializer
from accounting.api.serializers.closing_checks import (
    ClosingCheckCatalogQuerySerializer,
    ClosingCheckDefinitionSerializer,
    ClosingCheckItemSerializer,
    ClosingCheckResultSerializer,
    RunClosingChecksSerializer,
)
from accounting.api.serializers.journal_entries import (
    JournalEntrySerializer,
    JournalEntryWriteSerializer,
    ReverseEntrySerializer,
)
from accounting.api.serializers.periods import (
    ClosePeriodSerializer,
    PeriodSerializer,
    PeriodWriteSerializer,
)

__all__ = [
    "AccountListSerializer",
    "AccountDetailSerializer",
    "JournalEntrySerializer",
    "JournalEntryWriteSerializer",
    "ReverseEntrySerializer",
    "PeriodSerializer",
    "PeriodWriteSerializer",
    "ClosePeriodSerializer",
    "ClosingCheckItemSerializer",
    "ClosingCheckResultSerializer",
    "ClosingCheckDefinitionSerializer",
    "ClosingCheckCatalogQuerySerializer",
    "RunClosingChecksSerializer",
]
