# PATH: accounting/api/views/accounts.py

"""
PATH: accounting/api/views/accounts.py

CHART OF ACCOUNTS API (READ-ONLY)

GET /api/accounting/accounts/?parentId=&level=
    One level of the tree (GROUP accounts when parentId is omitted).
GET /api/accounting/accounts/{id}/
    One account with its GROUP → ... path.

Security:
- Authenticated
- Requires: accounting.view_account
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.errors import ledger_error_response
from accounting.api.serializers.accounts import AccountDetailSerializer, AccountListSerializer
from accounting.models.account import Account
from accounting.services import chart_service
from accounting.services.exceptions import LedgerError

VIEW_PERMISSION = "accounting.view_account"


def _forbidden() -> Response:
    return Response(
        {"detail": "You do not have permission to view accounts."},
        status=status.HTTP_403_FORBIDDEN,
    )


class AccountListView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountListSerializer

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(name="parentId", type=int, required=False),
            OpenApiParameter(
                name="level",
                type=str,
                required=False,
                enum=[code for code, _ in Account.LEVELS],
            ),
        ],
        responses=AccountListSerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_PERMISSION):
            return _forbidden()

        parent_id = (request.query_params.get("parentId") or "").strip() or None
        level = (request.query_params.get("level") or "").strip().upper() or None

        if parent_id is not None and not parent_id.isdigit():
            return Response({"parentId": "Must be an integer."}, status=status.HTTP_400_BAD_REQUEST)
        if level is not None and level not in Account.LEVEL_ORDER:
            return Response({"level": f"Must be one of {', '.join(Account.LEVEL_ORDER)}."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            accounts = chart_service.children_of(int(parent_id) if parent_id else None, level=level)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(AccountListSerializer(accounts, many=True).data, status=status.HTTP_200_OK)


class AccountDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountDetailSerializer

    @extend_schema(tags=["accounting"], responses={200: AccountDetailSerializer, 404: dict})
    def get(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(VIEW_PERMISSION):
            return _forbidden()

        try:
            account = chart_service.get_account(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)

        path = chart_service.account_path(account)
        return Response(AccountDetailSerializer(account, context={"path": path}).data)
