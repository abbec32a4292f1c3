# PATH: accounting/services/period_service.py

"""
PERIOD MANAGER

Creates, edits and closes accounting periods.

Closing is two-phase inside ONE transaction holding the period row lock:
  1) run the closing checks (implicitly; a verdict computed outside the
     lock is never trusted)
  2) recompute totals from POSTED documents and flip is_closed

Guarantees:
- Periods never overlap (inclusive bounds) and end_date > start_date
- Close is atomic: either every field flips or nothing does
- A blocked close leaves the period exactly as it was
- Closed periods are immutable and cannot be deleted
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date as date_type
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import Case, DecimalField, F, Sum, Value, When
from django.db.models.functions import Coalesce
from django.utils import timezone

from accounting.models import Account, JournalDocument, JournalLine, Period
from accounting.services.exceptions import (
    ClosingBlockedError,
    InvalidClosingDateError,
    InvalidPeriodRangeError,
    InvalidStateTransition,
    PeriodClosedError,
    PeriodNotFound,
    PeriodOverlapError,
    DocumentOutsidePeriodError,
)
from accounting.services.period_lock import lock_period

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PeriodTotals:
    total_debit: Decimal
    total_credit: Decimal
    total_revenue: Decimal
    total_expenses: Decimal

    @property
    def net_income(self) -> Decimal:
        return (self.total_revenue - self.total_expenses).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _validate_range(*, start_date: date_type, end_date: date_type) -> None:
    if not start_date or not end_date or end_date <= start_date:
        raise InvalidPeriodRangeError(start_date=start_date, end_date=end_date)


def _ensure_no_overlap(*, start_date: date_type, end_date: date_type, exclude_id=None) -> None:
    qs = Period.objects.filter(
        start_date__lte=end_date,
        end_date__gte=start_date,
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)

    conflicting = list(qs.order_by("start_date").values_list("pk", flat=True))
    if conflicting:
        raise PeriodOverlapError(
            start_date=start_date,
            end_date=end_date,
            conflicting_ids=conflicting,
        )


def get_period(period_id) -> Period:
    try:
        return Period.objects.get(pk=period_id)
    except (Period.DoesNotExist, ValueError, TypeError) as exc:
        raise PeriodNotFound(period_id) from exc


# ============================================================
# CRUD
# ============================================================


@transaction.atomic
def create_period(*, name: str, start_date: date_type, end_date: date_type) -> Period:
    _validate_range(start_date=start_date, end_date=end_date)
    # TODO: concurrent creates of overlapping ranges can both pass this check
    # on READ COMMITTED; an exclusion constraint on daterange would close it.
    _ensure_no_overlap(start_date=start_date, end_date=end_date)

    period = Period(name=name, start_date=start_date, end_date=end_date)
    period.save()

    logger.info(
        "Accounting period created",
        extra={"period_id": period.pk, "start_date": str(start_date), "end_date": str(end_date)},
    )
    return period


@transaction.atomic
def update_period(
    period_id,
    *,
    name: str | None = None,
    start_date: date_type | None = None,
    end_date: date_type | None = None,
) -> Period:
    period = lock_period(period_id, nowait=False)
    if period.is_closed:
        raise PeriodClosedError(period_id=period.pk, name=period.name)

    new_start = start_date or period.start_date
    new_end = end_date or period.end_date
    _validate_range(start_date=new_start, end_date=new_end)
    _ensure_no_overlap(start_date=new_start, end_date=new_end, exclude_id=period.pk)

    stray = (
        JournalDocument.objects.filter(period=period)
        .exclude(date__gte=new_start, date__lte=new_end)
        .order_by("date")
        .first()
    )
    if stray is not None:
        raise DocumentOutsidePeriodError(
            date=stray.date,
            period_id=period.pk,
            start_date=new_start,
            end_date=new_end,
        )

    if name is not None:
        period.name = name
    period.start_date = new_start
    period.end_date = new_end
    period.save()
    return period


@transaction.atomic
def delete_period(period_id) -> None:
    period = lock_period(period_id, nowait=False)
    if period.is_closed:
        raise PeriodClosedError(period_id=period.pk, name=period.name)

    if JournalDocument.objects.filter(period=period).exists():
        raise InvalidStateTransition(
            entity="Period",
            entity_id=period.pk,
            from_state="HAS_DOCUMENTS",
            to_state="DELETED",
        )

    period.delete()
    logger.info("Accounting period deleted", extra={"period_id": period_id})


# ============================================================
# TOTALS
# ============================================================


def recompute_totals(period: Period) -> PeriodTotals:
    """
    Aggregate POSTED lines of the period. Read-only; never trusts the
    running counters.
    """
    money = DecimalField(max_digits=18, decimal_places=2)
    zero = Value(ZERO, output_field=money)

    agg = JournalLine.objects.filter(
        document__period=period,
        document__status=JournalDocument.POSTED,
    ).aggregate(
        sum_debit=Coalesce(Sum("debit"), zero),
        sum_credit=Coalesce(Sum("credit"), zero),
        sum_revenue=Coalesce(
            Sum(
                Case(
                    When(account__account_type=Account.REVENUE, then=F("credit") - F("debit")),
                    default=zero,
                    output_field=money,
                )
            ),
            zero,
        ),
        sum_expenses=Coalesce(
            Sum(
                Case(
                    When(account__account_type=Account.EXPENSE, then=F("debit") - F("credit")),
                    default=zero,
                    output_field=money,
                )
            ),
            zero,
        ),
    )

    return PeriodTotals(
        total_debit=_money(agg["sum_debit"]),
        total_credit=_money(agg["sum_credit"]),
        total_revenue=_money(agg["sum_revenue"]),
        total_expenses=_money(agg["sum_expenses"]),
    )


# ============================================================
# CLOSE
# ============================================================


@transaction.atomic
def request_close(
    period_id,
    *,
    closing_date: date_type,
    description: str = "",
    user=None,
    check_ids: list[str] | None = None,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> Period:
    """
    Close a period if (and only if) every required closing check passes.

    Raises:
        PeriodNotFound, PeriodClosedError, InvalidClosingDateError,
        ClosingBlockedError (carries the full check result),
        ClosingChecksCancelled
    """
    # Lazy import: closing_checks imports period_service for recompute_totals.
    from accounting.services import closing_checks

    period = lock_period(period_id, nowait=False)
    if period.is_closed:
        raise PeriodClosedError(period_id=period.pk, name=period.name)

    if closing_date is None or closing_date < period.end_date:
        raise InvalidClosingDateError(closing_date=closing_date, end_date=period.end_date)

    # Visible only to this transaction until commit; same-connection posts
    # (e.g. from inside a check) are refused while it is set.
    Period.objects.filter(pk=period.pk).update(is_closing=True)

    # Phase 1: checks, under the row lock
    result = closing_checks.run(
        period.pk,
        check_ids=check_ids,
        timeout=timeout,
        cancel_event=cancel_event,
    )
    if not result.summary.can_close:
        failed = [item for item in result.results if item.required and not item.is_completed]
        logger.warning(
            "Period close blocked by closing checks",
            extra={"period_id": period.pk, "failed_checks": [c.id for c in failed]},
        )
        raise ClosingBlockedError(period_id=period.pk, failed_checks=failed, result=result)

    # Phase 2: recompute + flip
    totals = recompute_totals(period)
    now = timezone.now()

    Period.objects.filter(pk=period.pk).update(
        is_closed=True,
        is_closing=False,
        closed_at=now,
        closed_by=user if getattr(user, "pk", None) else None,
        closing_date=closing_date,
        closing_description=(description or "").strip(),
        total_debit=totals.total_debit,
        total_credit=totals.total_credit,
        total_revenue=totals.total_revenue,
        total_expenses=totals.total_expenses,
        net_income=totals.net_income,
        version=F("version") + 1,
        updated_at=now,
    )

    period.refresh_from_db()
    logger.info(
        "Accounting period closed",
        extra={
            "period_id": period.pk,
            "net_income": str(period.net_income),
            "user_id": getattr(user, "pk", None),
        },
    )
    return period
