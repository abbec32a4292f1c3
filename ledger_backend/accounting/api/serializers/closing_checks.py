# accounting/api/serializers/closing_checks.py

from rest_framework import serializers

from accounting.services.closing_checks import CATEGORIES, PENDING


class ClosingCheckItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    category = serializers.CharField()
    description = serializers.CharField()
    required = serializers.BooleanField()
    status = serializers.CharField()
    errorMessage = serializers.CharField(source="error_message", allow_null=True)
    errorKind = serializers.CharField(source="error_kind", allow_null=True)
    periodId = serializers.IntegerField(source="period_id", allow_null=True)
    executedAt = serializers.DateTimeField(source="executed_at", allow_null=True)


class ClosingCheckSummarySerializer(serializers.Serializer):
    total = serializers.IntegerField()
    completed = serializers.IntegerField()
    failed = serializers.IntegerField()
    successRate = serializers.IntegerField(source="success_rate")
    canClose = serializers.BooleanField(source="can_close")


class ClosingCheckResultSerializer(serializers.Serializer):
    results = ClosingCheckItemSerializer(many=True)
    summary = ClosingCheckSummarySerializer()
    periodId = serializers.IntegerField(source="period_id")
    executedAt = serializers.DateTimeField(source="executed_at")


class ClosingCheckDefinitionSerializer(serializers.Serializer):
    """Catalog entry; every check is PENDING until it runs."""

    id = serializers.CharField()
    name = serializers.CharField()
    category = serializers.CharField()
    description = serializers.CharField()
    required = serializers.BooleanField()
    external = serializers.BooleanField()
    status = serializers.SerializerMethodField()

    def get_status(self, obj) -> str:
        return PENDING


class ClosingCheckCatalogQuerySerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=CATEGORIES, required=False)
    required = serializers.BooleanField(required=False, allow_null=True, default=None)


class RunClosingChecksSerializer(serializers.Serializer):
    periodId = serializers.IntegerField()
    checkIds = serializers.ListField(child=serializers.CharField(), required=False, allow_null=True)
