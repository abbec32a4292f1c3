# PATH: accounting/api/views/journal_entries.py

"""
PATH: accounting/api/views/journal_entries.py

JOURNAL ENTRIES API

GET    /api/accounting/journal-entries/               list (filters, paginated)
POST   /api/accounting/journal-entries/               create draft
GET    /api/accounting/journal-entries/{id}/          retrieve
PUT    /api/accounting/journal-entries/{id}/          edit draft
POST   /api/accounting/journal-entries/{id}/          post (DRAFT → POSTED)
DELETE /api/accounting/journal-entries/{id}/          delete draft
POST   /api/accounting/journal-entries/{id}/cancel/   DRAFT → CANCELLED
POST   /api/accounting/journal-entries/{id}/reverse/  post a reversal

Security:
- Authenticated
- Django model permissions on JournalDocument:
    view / add / change / delete / post
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.errors import django_validation_response, ledger_error_response
from accounting.api.filters import JournalDocumentFilter
from accounting.api.serializers.journal_entries import (
    JournalEntrySerializer,
    JournalEntryWriteSerializer,
    ReverseEntrySerializer,
)
from accounting.models.journal import JournalDocument
from accounting.services import posting
from accounting.services.exceptions import LedgerError

VIEW_PERMISSION = "accounting.view_journaldocument"
ADD_PERMISSION = "accounting.add_journaldocument"
CHANGE_PERMISSION = "accounting.change_journaldocument"
DELETE_PERMISSION = "accounting.delete_journaldocument"
POST_PERMISSION = "accounting.post_journaldocument"


def _forbidden(action: str) -> Response:
    return Response(
        {"detail": f"You do not have permission to {action} journal entries."},
        status=status.HTTP_403_FORBIDDEN,
    )


def _document_response(document_id, http_status=status.HTTP_200_OK) -> Response:
    document = posting.get_document(document_id)
    return Response(JournalEntrySerializer(document).data, status=http_status)


class JournalEntryListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    filterset_class = JournalDocumentFilter
    queryset = (
        JournalDocument.objects.select_related("period")
        .prefetch_related("lines__account")
        .order_by("-date", "-created_at")
    )

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(name="periodId", type=int, required=False),
            OpenApiParameter(name="status", type=str, required=False),
            OpenApiParameter(name="startDate", type=str, required=False, description="YYYY-MM-DD"),
            OpenApiParameter(name="endDate", type=str, required=False, description="YYYY-MM-DD"),
            OpenApiParameter(name="search", type=str, required=False, description="Number / description"),
        ],
        responses=JournalEntrySerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_PERMISSION):
            return _forbidden("view")

        qs = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(qs, many=True).data)

    @extend_schema(
        tags=["accounting"],
        request=JournalEntryWriteSerializer,
        responses={201: JournalEntrySerializer, 400: dict, 403: dict, 404: dict, 409: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(ADD_PERMISSION):
            return _forbidden("create")

        serializer = JournalEntryWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            document = posting.create_draft(user=request.user, **serializer.to_service_kwargs())
        except LedgerError as exc:
            return ledger_error_response(exc)
        except DjangoValidationError as exc:
            return django_validation_response(exc)

        return _document_response(document.pk, status.HTTP_201_CREATED)


class JournalEntryDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer

    @extend_schema(tags=["accounting"], responses={200: JournalEntrySerializer, 404: dict})
    def get(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(VIEW_PERMISSION):
            return _forbidden("view")

        try:
            return _document_response(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)

    @extend_schema(
        tags=["accounting"],
        request=JournalEntryWriteSerializer,
        responses={200: JournalEntrySerializer, 400: dict, 404: dict, 409: dict},
    )
    def put(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(CHANGE_PERMISSION):
            return _forbidden("edit")

        serializer = JournalEntryWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            posting.update_draft(pk, **serializer.to_service_kwargs())
            return _document_response(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)
        except DjangoValidationError as exc:
            return django_validation_response(exc)

    @extend_schema(
        tags=["accounting"],
        request=None,
        responses={200: JournalEntrySerializer, 400: dict, 404: dict, 409: dict},
        description="Post a draft journal entry (DRAFT → POSTED).",
    )
    def post(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(POST_PERMISSION):
            return _forbidden("post")

        try:
            posting.post(pk, user=request.user)
            return _document_response(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)

    @extend_schema(tags=["accounting"], responses={204: None, 404: dict, 409: dict})
    def delete(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(DELETE_PERMISSION):
            return _forbidden("delete")

        try:
            posting.delete(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(status=status.HTTP_204_NO_CONTENT)


class JournalEntryCancelView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer

    @extend_schema(tags=["accounting"], request=None, responses={200: JournalEntrySerializer, 404: dict, 409: dict})
    def post(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(CHANGE_PERMISSION):
            return _forbidden("cancel")

        try:
            posting.cancel(pk, user=request.user)
            return _document_response(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)


class JournalEntryReverseView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ReverseEntrySerializer

    @extend_schema(
        tags=["accounting"],
        request=ReverseEntrySerializer,
        responses={201: JournalEntrySerializer, 400: dict, 404: dict, 409: dict},
    )
    def post(self, request, pk, *args, **kwargs):
        if not request.user.has_perm(POST_PERMISSION):
            return _forbidden("reverse")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            reversal = posting.reverse(
                pk,
                period_id=data["periodId"],
                date=data["date"],
                number=(data.get("number") or "").strip() or None,
                user=request.user,
            )
            return _document_response(reversal.pk, status.HTTP_201_CREATED)
        except LedgerError as exc:
            return ledger_error_response(exc)
        except DjangoValidationError as exc:
            return django_validation_response(exc)
