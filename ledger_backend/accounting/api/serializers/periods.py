# accounting/api/serializers/periods.py

"""
======================================================
PATH: accounting/api/serializers/periods.py
======================================================
ACCOUNTING PERIOD SERIALIZERS

Rules:
- startDate and endDate are required on create
- endDate must be after startDate
- closingDate is required to close; description is optional
"""

from rest_framework import serializers

from accounting.models.period import Period


class PeriodSerializer(serializers.ModelSerializer):
    startDate = serializers.DateField(source="start_date", read_only=True)
    endDate = serializers.DateField(source="end_date", read_only=True)
    isClosed = serializers.BooleanField(source="is_closed", read_only=True)
    isClosing = serializers.BooleanField(source="is_closing", read_only=True)
    closedAt = serializers.DateTimeField(source="closed_at", read_only=True)
    closedBy = serializers.IntegerField(source="closed_by_id", read_only=True, allow_null=True)
    closingDate = serializers.DateField(source="closing_date", read_only=True)
    closingDescription = serializers.CharField(source="closing_description", read_only=True)
    totalDebit = serializers.DecimalField(source="total_debit", max_digits=18, decimal_places=2, read_only=True)
    totalCredit = serializers.DecimalField(source="total_credit", max_digits=18, decimal_places=2, read_only=True)
    totalRevenue = serializers.DecimalField(source="total_revenue", max_digits=18, decimal_places=2, read_only=True)
    totalExpenses = serializers.DecimalField(source="total_expenses", max_digits=18, decimal_places=2, read_only=True)
    netIncome = serializers.DecimalField(source="net_income", max_digits=18, decimal_places=2, read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Period
        fields = (
            "id",
            "name",
            "startDate",
            "endDate",
            "isClosed",
            "isClosing",
            "closedAt",
            "closedBy",
            "closingDate",
            "closingDescription",
            "totalDebit",
            "totalCredit",
            "totalRevenue",
            "totalExpenses",
            "netIncome",
            "version",
            "createdAt",
            "updatedAt",
        )
        read_only_fields = fields


class PeriodWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    startDate = serializers.DateField()
    endDate = serializers.DateField()

    def validate(self, attrs):
        start = attrs.get("startDate")
        end = attrs.get("endDate")

        if start and end and end <= start:
            raise serializers.ValidationError({"endDate": "endDate must be after startDate"})

        return attrs


class ClosePeriodSerializer(serializers.Serializer):
    closingDate = serializers.DateField()
    description = serializers.CharField(required=False, allow_blank=True, default="")
