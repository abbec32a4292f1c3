# accounting/api/serializers/journal_entries.py

"""
======================================================
PATH: accounting/api/serializers/journal_entries.py
======================================================
JOURNAL ENTRY SERIALIZERS

Wire format is camelCase; the poster takes snake_case kwargs.

Rules enforced here (field-level, 400):
- at least 2 items on create
- amounts are non-negative decimals with 2 places
- exchangeRate > 0

Everything that needs the database (accounts, periods, numbers, balance)
is enforced by accounting.services.posting.
"""

from decimal import Decimal

from rest_framework import serializers

from accounting.models.journal import JournalDocument, JournalLine


class JournalLineSerializer(serializers.ModelSerializer):
    lineNo = serializers.IntegerField(source="line_no", read_only=True)
    accountId = serializers.IntegerField(source="account_id", read_only=True, allow_null=True)
    accountCode = serializers.CharField(source="account.code", read_only=True, allow_null=True)
    foreignAmount = serializers.DecimalField(
        source="foreign_amount", max_digits=18, decimal_places=2, read_only=True, allow_null=True
    )
    foreignCurrency = serializers.CharField(source="foreign_currency", read_only=True)

    class Meta:
        model = JournalLine
        fields = (
            "id",
            "lineNo",
            "accountId",
            "accountCode",
            "debit",
            "credit",
            "description",
            "foreignAmount",
            "foreignCurrency",
        )
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    type = serializers.CharField(source="doc_type", read_only=True)
    exchangeRate = serializers.DecimalField(source="exchange_rate", max_digits=18, decimal_places=6, read_only=True)
    referenceNumber = serializers.CharField(source="reference_number", read_only=True)
    periodId = serializers.IntegerField(source="period_id", read_only=True)
    totalDebit = serializers.DecimalField(source="total_debit", max_digits=18, decimal_places=2, read_only=True)
    totalCredit = serializers.DecimalField(source="total_credit", max_digits=18, decimal_places=2, read_only=True)
    reversalOfId = serializers.IntegerField(source="reversal_of_id", read_only=True, allow_null=True)
    createdBy = serializers.IntegerField(source="created_by_id", read_only=True, allow_null=True)
    postedBy = serializers.IntegerField(source="posted_by_id", read_only=True, allow_null=True)
    postedAt = serializers.DateTimeField(source="posted_at", read_only=True)
    cancelledAt = serializers.DateTimeField(source="cancelled_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)
    items = JournalLineSerializer(source="lines", many=True, read_only=True)

    class Meta:
        model = JournalDocument
        fields = (
            "id",
            "number",
            "date",
            "type",
            "currency",
            "exchangeRate",
            "description",
            "referenceNumber",
            "status",
            "periodId",
            "totalDebit",
            "totalCredit",
            "reversalOfId",
            "createdBy",
            "postedBy",
            "postedAt",
            "cancelledAt",
            "createdAt",
            "updatedAt",
            "items",
        )
        read_only_fields = fields


class JournalLineInputSerializer(serializers.Serializer):
    accountId = serializers.IntegerField(required=False, allow_null=True)
    debit = serializers.DecimalField(max_digits=18, decimal_places=2, min_value=Decimal("0"), default=Decimal("0"))
    credit = serializers.DecimalField(max_digits=18, decimal_places=2, min_value=Decimal("0"), default=Decimal("0"))
    description = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    foreignAmount = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    foreignCurrency = serializers.CharField(required=False, allow_blank=True, max_length=3, default="")

    def to_service(self, attrs) -> dict:
        return {
            "account_id": attrs.get("accountId"),
            "debit": attrs.get("debit"),
            "credit": attrs.get("credit"),
            "description": attrs.get("description", ""),
            "foreign_amount": attrs.get("foreignAmount"),
            "foreign_currency": attrs.get("foreignCurrency", ""),
        }


class JournalEntryWriteSerializer(serializers.Serializer):
    number = serializers.CharField(max_length=50)
    date = serializers.DateField()
    periodId = serializers.IntegerField()
    type = serializers.ChoiceField(choices=JournalDocument.DOC_TYPES, required=False)
    currency = serializers.CharField(max_length=3, required=False)
    exchangeRate = serializers.DecimalField(
        max_digits=18, decimal_places=6, required=False, min_value=Decimal("0.000001")
    )
    description = serializers.CharField(required=False, allow_blank=True, default="")
    referenceNumber = serializers.CharField(required=False, allow_blank=True, max_length=100)
    items = JournalLineInputSerializer(many=True)

    def validate_items(self, value):
        if len(value) < 2:
            raise serializers.ValidationError("At least 2 items are required.")
        return value

    def to_service_kwargs(self) -> dict:
        """Map validated camelCase data to poster kwargs (only keys present)."""
        data = self.validated_data
        mapping = {
            "number": "number",
            "date": "date",
            "periodId": "period_id",
            "type": "doc_type",
            "currency": "currency",
            "exchangeRate": "exchange_rate",
            "description": "description",
            "referenceNumber": "reference_number",
        }
        kwargs = {dst: data[src] for src, dst in mapping.items() if src in data}
        if "items" in data:
            line_serializer = JournalLineInputSerializer()
            kwargs["lines"] = [line_serializer.to_service(item) for item in data["items"]]
        return kwargs


class ReverseEntrySerializer(serializers.Serializer):
    periodId = serializers.IntegerField()
    date = serializers.DateField()
    number = serializers.CharField(max_length=50, required=False, allow_blank=True)
