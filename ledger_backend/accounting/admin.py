# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.journal import JournalDocument, JournalLine
from accounting.models.period import Period

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "level",
        "parent",
        "is_active",
    )
    list_filter = ("account_type", "level", "is_active")
    search_fields = ("code", "name")
    ordering = ("code",)
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("parent",)

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("code", "name", "account_type", "level", "parent"),
            },
        ),
        (
            "Status",
            {
                "fields": ("is_active",),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )


# ============================================================
# JOURNAL DOCUMENT (READ-ONLY ONCE POSTED)
# ============================================================


class JournalLineInline(admin.TabularInline):
    model = JournalLine
    extra = 0
    fields = ("line_no", "account", "debit", "credit", "description")
    raw_id_fields = ("account",)

    def has_add_permission(self, request, obj=None):
        return obj is None or obj.status == JournalDocument.DRAFT

    def has_change_permission(self, request, obj=None):
        return obj is None or obj.status == JournalDocument.DRAFT

    def has_delete_permission(self, request, obj=None):
        return obj is None or obj.status == JournalDocument.DRAFT


@admin.register(JournalDocument)
class JournalDocumentAdmin(admin.ModelAdmin):
    list_display = (
        "number",
        "date",
        "doc_type",
        "status",
        "period",
        "total_debit",
        "total_credit",
        "posted_at",
    )
    list_filter = ("status", "doc_type", "period")
    search_fields = ("number", "description", "reference_number")
    ordering = ("-date", "-created_at")
    inlines = [JournalLineInline]

    readonly_fields = (
        "status",
        "total_debit",
        "total_credit",
        "reversal_of",
        "created_by",
        "posted_by",
        "posted_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    )

    # Status changes go through accounting.services.posting only.
    def has_change_permission(self, request, obj=None):
        if obj is not None and obj.status != JournalDocument.DRAFT:
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.status != JournalDocument.DRAFT:
            return False
        return super().has_delete_permission(request, obj)


# ============================================================
# PERIOD (STRICTLY READ-ONLY)
# ============================================================


@admin.register(Period)
class PeriodAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "start_date",
        "end_date",
        "is_closed",
        "net_income",
        "closed_at",
    )
    list_filter = ("is_closed",)
    search_fields = ("name",)
    ordering = ("-start_date",)

    readonly_fields = (
        "name",
        "start_date",
        "end_date",
        "is_closed",
        "is_closing",
        "closed_at",
        "closed_by",
        "closing_date",
        "closing_description",
        "total_debit",
        "total_credit",
        "total_revenue",
        "total_expenses",
        "net_income",
        "version",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
