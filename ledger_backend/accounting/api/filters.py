# accounting/api/filters.py

"""
LIST FILTERS (django-filter)

Query parameters are camelCase to match the rest of the wire format:
    /api/accounting/journal-entries/?periodId=3&status=DRAFT
    /api/accounting/journal-entries/?startDate=2024-11-01&endDate=2024-11-30
    /api/accounting/journal-entries/?search=JV-10
    /api/accounting/accounting-periods/?isClosed=false
"""

import django_filters
from django.db.models import Q

from accounting.models import JournalDocument, Period


class JournalDocumentFilter(django_filters.FilterSet):
    periodId = django_filters.NumberFilter(field_name="period_id")
    status = django_filters.ChoiceFilter(field_name="status", choices=JournalDocument.STATUSES)
    type = django_filters.ChoiceFilter(field_name="doc_type", choices=JournalDocument.DOC_TYPES)
    startDate = django_filters.DateFilter(field_name="date", lookup_expr="gte")
    endDate = django_filters.DateFilter(field_name="date", lookup_expr="lte")
    search = django_filters.CharFilter(method="filter_search")

    class Meta:
        model = JournalDocument
        fields = []

    def filter_search(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(number__icontains=value)
            | Q(description__icontains=value)
            | Q(reference_number__icontains=value)
        )


class PeriodFilter(django_filters.FilterSet):
    isClosed = django_filters.BooleanFilter(field_name="is_closed")

    class Meta:
        model = Period
        fields = []
