# PATH: accounting/api/views/periods.py

"""
PATH: accounting/api/views/periods.py

ACCOUNTING PERIODS API

GET    /api/accounting/accounting-periods/        list (?isClosed=), newest first
POST   /api/accounting/accounting-periods/        create
GET    /api/accounting/accounting-periods/{id}/   retrieve
PUT    /api/accounting/accounting-periods/{id}/   edit (open periods only)
DELETE /api/accounting/accounting-periods/{id}/   delete (open, no documents)
POST   /api/accounting/accounting-periods/{id}/   close (runs closing checks)

Security:
- Authenticated
- Django model permissions on Period (view / add / change / delete)
- Closing requires: accounting.close_period
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.errors import django_validation_response, ledger_error_response
from accounting.api.filters import PeriodFilter
from accounting.api.serializers.periods import (
    ClosePeriodSerializer,
    PeriodSerializer,
    PeriodWriteSerializer,
)
from accounting.models.period import Period
from accounting.services import period_service
from accounting.services.exceptions import LedgerError

VIEW_PERMISSION = "accounting.view_period"
ADD_PERMISSION = "accounting.add_period"
CHANGE_PERMISSION = "accounting.change_period"
DELETE_PERMISSION = "accounting.delete_period"
CLOSE_PERMISSION = "accounting.close_period"


def _forbidden(action: str) -> Response:
    return Response(
        {"detail": f"You do not have permission to {action} accounting periods."},
        status=status.HTTP_403_FORBIDDEN,
    )


class PeriodListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PeriodSerializer
    filterset_class = PeriodFilter
    pagination_class = None
    queryset = Period.objects.order_by("-start_date")

    @extend_schema(
        tags=["accounting"],
        parameters=[OpenApiParameter(name="isClosed", type=bool, required=False)],
        responses=PeriodSerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_PERMISSION):
            return _forbidden("view")

        qs = self.filter_queryset(self.get_queryset())
        return Response(self.get_serializer(qs, many=True).data)

    @extend_schema(
        tags=["accounting"],
        request=PeriodWriteSerializer,
        responses={201: PeriodSerializer, 400: dict, 403: dict, 409: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(ADD_PERMISSION):
            return _forbidden("create")

        serializer = PeriodWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            period = period_service.create_period(
                name=data["name"],
                start_date=data["startDate"],
                end_date=data["endDate"],
            )
        except LedgerError as exc:
            return ledger_error_response(exc)
        except DjangoValidationError as exc:
            return django_validation_response(exc)

        return Response(PeriodSerializer(period).data, status=status.HTTP_201_CREATED)


class PeriodDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = PeriodSerializer

    @extend_schema(tags=["accounting"], responses={200: PeriodSerializer, 404: dict})
    def get(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(VIEW_PERMISSION):
            return _forbidden("view")

        try:
            period = period_service.get_period(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(PeriodSerializer(period).data)

    @extend_schema(
        tags=["accounting"],
        request=PeriodWriteSerializer,
        responses={200: PeriodSerializer, 400: dict, 404: dict, 409: dict},
    )
    def put(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(CHANGE_PERMISSION):
            return _forbidden("edit")

        serializer = PeriodWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            period = period_service.update_period(
                pk,
                name=data.get("name"),
                start_date=data.get("startDate"),
                end_date=data.get("endDate"),
            )
        except LedgerError as exc:
            return ledger_error_response(exc)
        except DjangoValidationError as exc:
            return django_validation_response(exc)

        return Response(PeriodSerializer(period).data)

    @extend_schema(tags=["accounting"], responses={204: None, 404: dict, 409: dict})
    def delete(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(DELETE_PERMISSION):
            return _forbidden("delete")

        try:
            period_service.delete_period(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        tags=["accounting"],
        request=ClosePeriodSerializer,
        responses={200: PeriodSerializer, 400: dict, 403: dict, 404: dict, 409: dict},
        description="Close the period. Blocked (400) when any required closing check fails.",
    )
    def post(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(CLOSE_PERMISSION):
            return _forbidden("close")

        serializer = ClosePeriodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            period = period_service.request_close(
                pk,
                closing_date=data["closingDate"],
                description=data.get("description", ""),
                user=request.user,
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(PeriodSerializer(period).data)
