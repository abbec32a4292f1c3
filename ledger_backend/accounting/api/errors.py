# accounting/api/errors.py

"""
DOMAIN ERROR → HTTP RESPONSE

Single mapping used by every accounting view:
- validation errors        → 400
- not found                → 404
- state / period conflicts → 409 (retryable ones add Retry-After)
- closing blocked          → 400 with failedChecks + allChecks
- anything else            → 500 (logged)
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response

from accounting.services import exceptions as errors

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (errors.LedgerValidationError, status.HTTP_400_BAD_REQUEST),
    (errors.ClosingBlockedError, status.HTTP_400_BAD_REQUEST),
    (errors.AccountNotFound, status.HTTP_404_NOT_FOUND),
    (errors.DocumentNotFound, status.HTTP_404_NOT_FOUND),
    (errors.PeriodNotFound, status.HTTP_404_NOT_FOUND),
    (errors.InvalidStateTransition, status.HTTP_409_CONFLICT),
    (errors.PeriodOverlapError, status.HTTP_409_CONFLICT),
    (errors.PeriodClosedError, status.HTTP_409_CONFLICT),
    (errors.PeriodCloseInProgressError, status.HTTP_409_CONFLICT),
)


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _wire(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_wire(v) for v in value]
    return value


def status_for(exc: errors.LedgerError) -> int:
    for cls, code in STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def ledger_error_response(exc: errors.LedgerError) -> Response:
    http_status = status_for(exc)
    if http_status >= 500:
        logger.exception("Unhandled ledger error", extra={"code": exc.code})
        return Response(
            {"error": exc.code, "detail": "Internal ledger error."},
            status=http_status,
        )

    body = {"error": exc.code, "detail": str(exc)}
    body.update({_camel(k): _wire(v) for k, v in exc.details().items()})

    if isinstance(exc, errors.ClosingBlockedError):
        from accounting.api.serializers.closing_checks import (
            ClosingCheckItemSerializer,
            ClosingCheckResultSerializer,
        )

        body["failedChecks"] = ClosingCheckItemSerializer(exc.failed_checks, many=True).data
        body["allChecks"] = ClosingCheckResultSerializer(exc.result).data

    headers = {"Retry-After": "1"} if exc.retryable else None
    return Response(body, status=http_status, headers=headers)


def django_validation_response(exc: DjangoValidationError) -> Response:
    if hasattr(exc, "message_dict"):
        detail = exc.message_dict
    else:
        detail = exc.messages
    return Response({"error": "validation_error", "detail": detail}, status=status.HTTP_400_BAD_REQUEST)
