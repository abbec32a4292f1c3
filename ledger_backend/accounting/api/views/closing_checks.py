# PATH: accounting/api/views/closing_checks.py

"""
PATH: accounting/api/views/closing_checks.py

CLOSING CHECKS API

GET  /api/accounting/closing-checks/   catalog (?category=&required=)
POST /api/accounting/closing-checks/   run {periodId, checkIds?} (read-only dry run)

Security:
- Authenticated
- Requires: accounting.view_period
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.errors import ledger_error_response
from accounting.api.serializers.closing_checks import (
    ClosingCheckCatalogQuerySerializer,
    ClosingCheckDefinitionSerializer,
    ClosingCheckResultSerializer,
    RunClosingChecksSerializer,
)
from accounting.services import closing_checks
from accounting.services.exceptions import LedgerError

VIEW_PERMISSION = "accounting.view_period"


class ClosingChecksView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = RunClosingChecksSerializer

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(name="category", type=str, required=False),
            OpenApiParameter(name="required", type=bool, required=False),
        ],
        responses=ClosingCheckDefinitionSerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_PERMISSION):
            return Response(
                {"detail": "You do not have permission to view closing checks."},
                status=status.HTTP_403_FORBIDDEN,
            )

        query = ClosingCheckCatalogQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        checks = closing_checks.available_checks(
            category=query.validated_data.get("category"),
            required=query.validated_data.get("required"),
        )
        return Response(ClosingCheckDefinitionSerializer(checks, many=True).data)

    @extend_schema(
        tags=["accounting"],
        request=RunClosingChecksSerializer,
        responses={200: ClosingCheckResultSerializer, 400: dict, 404: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_PERMISSION):
            return Response(
                {"detail": "You do not have permission to run closing checks."},
                status=status.HTTP_403_FORBIDDEN,
            )

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = closing_checks.run(data["periodId"], check_ids=data.get("checkIds"))
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(ClosingCheckResultSerializer(result).data)
