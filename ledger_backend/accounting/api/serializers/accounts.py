# accounting/api/serializers/accounts.py

from rest_framework import serializers

from accounting.models.account import Account


class AccountListSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for one level of the account tree.
    UI needs: code, name, type, level (and id / parentId for the cascade).
    """

    accountType = serializers.CharField(source="account_type", read_only=True)
    parentId = serializers.IntegerField(source="parent_id", read_only=True, allow_null=True)
    isActive = serializers.BooleanField(source="is_active", read_only=True)
    isPostable = serializers.BooleanField(source="is_postable", read_only=True)

    class Meta:
        model = Account
        fields = ("id", "code", "name", "accountType", "level", "parentId", "isActive", "isPostable")
        read_only_fields = fields


class AccountDetailSerializer(AccountListSerializer):
    path = serializers.SerializerMethodField()

    class Meta(AccountListSerializer.Meta):
        fields = AccountListSerializer.Meta.fields + ("path",)
        read_only_fields = fields

    def get_path(self, obj):
        path = self.context.get("path") or [obj]
        return [{"id": a.pk, "code": a.code, "name": a.name, "level": a.level} for a in path]
