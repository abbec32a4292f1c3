# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
LEDGER POSTER (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create / edit / delete draft journal documents and their lines
- Move a document out of DRAFT (post, cancel)
- Enforce debit == credit (within LEDGER_BALANCE_EPSILON)
- Write period running totals
- Guarantee atomicity

Everything else (sales, payroll, receipts, the HTTP layer) must pass through here.

Locking order (deadlock-free):
    document row  →  period row
All validation precedes any write; any failure rolls the transaction back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date as date_type
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from accounting.models import Account, JournalDocument, JournalLine, Period
from accounting.services import chart_service
from accounting.services.exceptions import (
    AccountNotPostable,
    DocumentNotFound,
    DocumentOutsidePeriodError,
    DuplicateDocumentNumberError,
    EmptyLineError,
    InsufficientLinesError,
    InvalidLineAmountError,
    InvalidLineDescriptionError,
    InvalidStateTransition,
    LedgerIntegrityError,
    UnbalancedEntryError,
)
from accounting.services.journal_lifecycle import DELETE, EDIT, validate_transition
from accounting.services.period_lock import assert_period_open, lock_period

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
MIN_LINES = 2
LINE_DESCRIPTION_MAX_LENGTH = JournalLine._meta.get_field("description").max_length

HEADER_FIELDS = (
    "number",
    "date",
    "doc_type",
    "currency",
    "exchange_rate",
    "description",
    "reference_number",
)


def _money(value, *, line_no: int | None = None) -> Decimal:
    if value is None or value == "":
        return ZERO

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidLineAmountError(f"Invalid money value: {value!r}", line_no=line_no) from exc

    if not amt.is_finite():
        raise InvalidLineAmountError(f"Invalid money value: {value!r}", line_no=line_no)

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _epsilon() -> Decimal:
    return Decimal(str(getattr(settings, "LEDGER_BALANCE_EPSILON", "0.01")))


@dataclass(frozen=True)
class _Line:
    line_no: int
    account: Account | None
    debit: Decimal
    credit: Decimal
    description: str = ""
    foreign_amount: Decimal | None = None
    foreign_currency: str = ""


def _normalize_lines(lines: Iterable[dict]) -> list[_Line]:
    """
    Draft-level line validation.

    Rejects unknown / non-leaf accounts, negative amounts, over-long descriptions and
    lines with both sides non-zero. Missing accounts and all-zero lines are tolerated
    until post.
    """
    if lines is None:
        raise InsufficientLinesError(count=0)

    normalized: list[_Line] = []
    for idx, raw in enumerate(lines, start=1):
        if not isinstance(raw, dict):
            raise InvalidLineAmountError("Each line must be an object/dict", line_no=idx)

        account = raw.get("account")
        account_id = raw.get("account_id")
        if account is None and account_id not in (None, ""):
            account = chart_service.resolve_leaf(account_id, line_no=idx)
        elif account is not None:
            account = chart_service.resolve_leaf(account.pk, line_no=idx)

        debit = _money(raw.get("debit"), line_no=idx)
        credit = _money(raw.get("credit"), line_no=idx)

        if debit < 0 or credit < 0:
            raise InvalidLineAmountError("Debit or credit cannot be negative", line_no=idx)
        if debit > 0 and credit > 0:
            raise InvalidLineAmountError("A line cannot have both debit and credit", line_no=idx)

        foreign_amount = raw.get("foreign_amount")
        if foreign_amount not in (None, ""):
            foreign_amount = _money(foreign_amount, line_no=idx)
        else:
            foreign_amount = None

        description = (raw.get("description") or "").strip()
        if len(description) > LINE_DESCRIPTION_MAX_LENGTH:
            raise InvalidLineDescriptionError(
                f"Line description exceeds {LINE_DESCRIPTION_MAX_LENGTH} characters",
                line_no=idx,
            )

        normalized.append(
            _Line(
                line_no=idx,
                account=account,
                debit=debit,
                credit=credit,
                description=description,
                foreign_amount=foreign_amount,
                foreign_currency=(raw.get("foreign_currency") or "").strip().upper(),
            )
        )

    if len(normalized) < MIN_LINES:
        raise InsufficientLinesError(count=len(normalized))

    return normalized


def _write_lines(document: JournalDocument, lines: list[_Line]) -> None:
    JournalLine.objects.bulk_create(
        [
            JournalLine(
                document=document,
                line_no=line.line_no,
                account=line.account,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
                foreign_amount=line.foreign_amount,
                foreign_currency=line.foreign_currency,
            )
            for line in lines
        ]
    )


def _assert_in_period(*, period: Period, on_date: date_type) -> None:
    if not period.contains(on_date):
        raise DocumentOutsidePeriodError(
            date=on_date,
            period_id=period.pk,
            start_date=period.start_date,
            end_date=period.end_date,
        )


def _assert_number_free(*, number: str, period_id, exclude_id=None) -> None:
    qs = JournalDocument.objects.filter(period_id=period_id, number=number)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise DuplicateDocumentNumberError(number=number, period_id=period_id)


def _lock_document(document_id) -> JournalDocument:
    try:
        document = (
            JournalDocument.objects.select_for_update()
            .filter(pk=document_id)
            .first()
        )
    except (ValueError, TypeError) as exc:
        raise DocumentNotFound(document_id) from exc
    if document is None:
        raise DocumentNotFound(document_id)
    return document


def _lock_open_periods(*period_ids) -> dict:
    """Lock each distinct period in a fixed order and require it to be open."""
    locked = {}
    for period_id in sorted(set(period_ids), key=str):
        period = lock_period(period_id)
        assert_period_open(period=period)
        locked[period_id] = period
    return locked


def get_document(document_id) -> JournalDocument:
    try:
        return (
            JournalDocument.objects.select_related("period")
            .prefetch_related("lines__account")
            .get(pk=document_id)
        )
    except (JournalDocument.DoesNotExist, ValueError, TypeError) as exc:
        raise DocumentNotFound(document_id) from exc


# ============================================================
# DRAFTS
# ============================================================


@transaction.atomic
def create_draft(
    *,
    number: str,
    date: date_type,
    period_id,
    lines: Iterable[dict],
    doc_type: str = JournalDocument.MANUAL,
    currency: str | None = None,
    exchange_rate=Decimal("1"),
    description: str = "",
    reference_number: str = "",
    user=None,
    reversal_of: JournalDocument | None = None,
) -> JournalDocument:
    """
    Create a DRAFT journal document with its lines. No balance validation.
    """
    number = (number or "").strip()
    normalized = _normalize_lines(lines)

    period = lock_period(period_id)
    assert_period_open(period=period)
    _assert_in_period(period=period, on_date=date)
    _assert_number_free(number=number, period_id=period.pk)

    try:
        with transaction.atomic():
            document = JournalDocument(
                number=number,
                date=date,
                doc_type=doc_type,
                currency=currency or settings.LEDGER_DEFAULT_CURRENCY,
                exchange_rate=exchange_rate,
                description=description,
                reference_number=reference_number,
                period=period,
                created_by=user if getattr(user, "pk", None) else None,
                reversal_of=reversal_of,
            )
            document.save()
    except IntegrityError as exc:
        if JournalDocument.objects.filter(period_id=period.pk, number=number).exists():
            raise DuplicateDocumentNumberError(number=number, period_id=period.pk) from exc
        raise

    _write_lines(document, normalized)

    logger.info(
        "Journal draft created",
        extra={"document_id": document.pk, "number": number, "period_id": period.pk},
    )
    return document


@transaction.atomic
def update_draft(document_id, *, lines: Iterable[dict] | None = None, period_id=None, **fields) -> JournalDocument:
    """
    Edit header fields and/or replace the lines of a DRAFT document.
    """
    unknown = set(fields) - set(HEADER_FIELDS)
    if unknown:
        raise TypeError(f"Unknown document fields: {', '.join(sorted(unknown))}")

    document = _lock_document(document_id)
    validate_transition(document=document, target_status=EDIT)

    normalized = _normalize_lines(lines) if lines is not None else None

    # A move needs both the current and the target period open.
    target_period_id = period_id if period_id is not None else document.period_id
    period = _lock_open_periods(document.period_id, target_period_id)[target_period_id]

    for name, value in fields.items():
        if name == "number":
            value = (value or "").strip()
        setattr(document, name, value)
    document.period = period

    _assert_in_period(period=period, on_date=document.date)
    _assert_number_free(number=document.number, period_id=period.pk, exclude_id=document.pk)

    document.save()

    if normalized is not None:
        document.lines.all().delete()
        _write_lines(document, normalized)

    logger.info("Journal draft updated", extra={"document_id": document.pk})
    return document


@transaction.atomic
def cancel(document_id, *, user=None) -> JournalDocument:
    document = _lock_document(document_id)
    validate_transition(document=document, target_status=JournalDocument.CANCELLED)
    _lock_open_periods(document.period_id)

    document.status = JournalDocument.CANCELLED
    document.cancelled_at = timezone.now()
    document.save()

    logger.info(
        "Journal document cancelled",
        extra={"document_id": document.pk, "user_id": getattr(user, "pk", None)},
    )
    return document


@transaction.atomic
def delete(document_id) -> None:
    document = _lock_document(document_id)
    validate_transition(document=document, target_status=DELETE)
    _lock_open_periods(document.period_id)

    document.delete()
    logger.info("Journal draft deleted", extra={"document_id": document_id})


# ============================================================
# POSTING
# ============================================================


def _validate_for_post(document: JournalDocument) -> list[JournalLine]:
    lines = list(document.lines.select_related("account").order_by("line_no"))
    if len(lines) < MIN_LINES:
        raise InsufficientLinesError(count=len(lines))

    for line in lines:
        if line.account_id is None:
            raise EmptyLineError(f"Line {line.line_no} has no account", line_no=line.line_no)
        if line.debit < 0 or line.credit < 0:
            raise InvalidLineAmountError("Debit or credit cannot be negative", line_no=line.line_no)
        if line.debit > 0 and line.credit > 0:
            raise InvalidLineAmountError("A line cannot have both debit and credit", line_no=line.line_no)
        if line.debit == 0 and line.credit == 0:
            raise EmptyLineError(f"Line {line.line_no} has no amount", line_no=line.line_no)

        account = line.account
        if account.level != Account.DETAIL:
            raise AccountNotPostable(
                account_id=account.pk,
                reason=f"level {account.level} is not postable",
                line_no=line.line_no,
            )
        if not account.is_active:
            raise AccountNotPostable(account_id=account.pk, reason="inactive", line_no=line.line_no)

    return lines


@transaction.atomic
def post(document_id, *, user=None) -> JournalDocument:
    """
    DRAFT → POSTED.

    Recomputes totals from the current lines, freezes the document and
    adds its deltas to the period running totals in one UPDATE.
    """
    document = _lock_document(document_id)
    validate_transition(document=document, target_status=JournalDocument.POSTED)

    period = lock_period(document.period_id)
    assert_period_open(period=period, on_date=document.date)
    _assert_in_period(period=period, on_date=document.date)

    lines = _validate_for_post(document)

    total_debit = sum((line.debit for line in lines), ZERO).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    total_credit = sum((line.credit for line in lines), ZERO).quantize(TWOPLACES, rounding=ROUND_HALF_UP)

    if abs(total_debit - total_credit) > _epsilon():
        raise UnbalancedEntryError(debit_total=total_debit, credit_total=total_credit)

    revenue = ZERO
    expenses = ZERO
    for line in lines:
        acc_type = line.account.account_type
        # Revenue normally has credit balances; expense normally has debit balances.
        if acc_type == Account.REVENUE:
            revenue += line.credit - line.debit
        elif acc_type == Account.EXPENSE:
            expenses += line.debit - line.credit

    document.status = JournalDocument.POSTED
    document.total_debit = total_debit
    document.total_credit = total_credit
    document.posted_at = timezone.now()
    document.posted_by = user if getattr(user, "pk", None) else None
    document.save()

    Period.objects.filter(pk=period.pk).update(
        total_debit=F("total_debit") + total_debit,
        total_credit=F("total_credit") + total_credit,
        total_revenue=F("total_revenue") + revenue,
        total_expenses=F("total_expenses") + expenses,
        net_income=F("net_income") + (revenue - expenses),
        version=F("version") + 1,
    )

    logger.info(
        "Journal document posted",
        extra={
            "document_id": document.pk,
            "period_id": period.pk,
            "total_debit": str(total_debit),
            "total_credit": str(total_credit),
        },
    )
    return document


@transaction.atomic
def reverse(document_id, *, period_id, date: date_type, user=None, number: str | None = None) -> JournalDocument:
    """
    Post a REVERSAL document that mirrors a POSTED document.

    The original stays POSTED and untouched; the reversal (debit and credit
    swapped) is created and posted into the explicitly given period.
    """
    original = _lock_document(document_id)
    if original.status != JournalDocument.POSTED:
        raise InvalidStateTransition(
            entity="JournalDocument",
            entity_id=original.pk,
            from_state=original.status,
            to_state="REVERSED",
        )
    if JournalDocument.objects.filter(reversal_of=original).exists():
        raise InvalidStateTransition(
            entity="JournalDocument",
            entity_id=original.pk,
            from_state="REVERSED",
            to_state="REVERSED",
        )

    source_lines = list(original.lines.select_related("account").order_by("line_no"))
    line_debit = sum((line.debit for line in source_lines), ZERO)
    line_credit = sum((line.credit for line in source_lines), ZERO)
    if line_debit != original.total_debit or line_credit != original.total_credit:
        raise LedgerIntegrityError(
            f"Posted document {original.number} no longer matches its frozen totals",
            document_id=original.pk,
        )

    lines = [
        {
            "account": line.account,
            "debit": line.credit,
            "credit": line.debit,
            "description": line.description,
            "foreign_amount": line.foreign_amount,
            "foreign_currency": line.foreign_currency,
        }
        for line in source_lines
    ]

    draft = create_draft(
        number=number or f"{original.number}-R",
        date=date,
        period_id=period_id,
        lines=lines,
        doc_type=JournalDocument.REVERSAL,
        currency=original.currency,
        exchange_rate=original.exchange_rate,
        description=f"Reversal of {original.number}",
        reference_number=original.number,
        user=user,
        reversal_of=original,
    )
    reversal = post(draft.pk, user=user)

    logger.info(
        "Journal document reversed",
        extra={"document_id": original.pk, "reversal_id": reversal.pk},
    )
    return reversal
